from __future__ import annotations

from typing import Optional, Protocol

import asyncpg

from app.modules.users.schemas import UserRecord


class CredentialStore(Protocol):
    """
    What the auth core needs from wherever user credentials live.
    """

    async def find_by_username(self, username: str) -> Optional[UserRecord]: ...

    async def exists_by_username(self, username: str) -> bool: ...

    async def exists_by_email(self, email: str) -> bool: ...

    async def save(self, user: UserRecord) -> UserRecord: ...

    async def update_password(self, username: str, password_hash: str) -> None: ...

    async def set_two_factor(self, username: str, enabled: bool) -> None: ...


_USER_COLUMNS = """
    id,
    username,
    password_hash,
    full_name,
    email,
    phone_number,
    role,
    active,
    two_factor_enabled,
    created_at
"""


class UserRepository:
    """
    Data-access layer for the `users` table.

    IMPORTANT:
    - usernames are matched exactly; emails case-insensitively.
    - `role` is stored as its enum name (CUSTOMER, ADMIN, BANKOFFICER).
    """

    def __init__(self, conn: asyncpg.Connection) -> None:
        self.conn = conn

    # -------------------------------------------------------------------------
    # READ
    # -------------------------------------------------------------------------

    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        row = await self.conn.fetchrow(
            f"""
            SELECT {_USER_COLUMNS}
            FROM users
            WHERE username = $1
            """,
            username,
        )
        return UserRecord(**dict(row)) if row else None

    async def exists_by_username(self, username: str) -> bool:
        return bool(
            await self.conn.fetchval(
                "SELECT EXISTS (SELECT 1 FROM users WHERE username = $1)",
                username,
            )
        )

    async def exists_by_email(self, email: str) -> bool:
        return bool(
            await self.conn.fetchval(
                "SELECT EXISTS (SELECT 1 FROM users WHERE lower(email) = lower($1))",
                email,
            )
        )

    # -------------------------------------------------------------------------
    # WRITE
    # -------------------------------------------------------------------------

    async def save(self, user: UserRecord) -> UserRecord:
        """
        Insert a new user (id is None) or update an existing one.
        Returns the stored row.
        """
        if user.id is None:
            row = await self.conn.fetchrow(
                f"""
                INSERT INTO users (
                    username,
                    password_hash,
                    full_name,
                    email,
                    phone_number,
                    role,
                    active,
                    two_factor_enabled
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                RETURNING {_USER_COLUMNS}
                """,
                user.username,
                user.password_hash,
                user.full_name,
                user.email,
                user.phone_number,
                user.role.value,
                user.active,
                user.two_factor_enabled,
            )
        else:
            row = await self.conn.fetchrow(
                f"""
                UPDATE users
                SET password_hash      = $2,
                    full_name          = $3,
                    email              = $4,
                    phone_number       = $5,
                    role               = $6,
                    active             = $7,
                    two_factor_enabled = $8,
                    updated_at         = now()
                WHERE id = $1
                RETURNING {_USER_COLUMNS}
                """,
                user.id,
                user.password_hash,
                user.full_name,
                user.email,
                user.phone_number,
                user.role.value,
                user.active,
                user.two_factor_enabled,
            )
        return UserRecord(**dict(row))

    async def update_password(self, username: str, password_hash: str) -> None:
        await self.conn.execute(
            """
            UPDATE users
            SET password_hash = $2, updated_at = now()
            WHERE username = $1
            """,
            username,
            password_hash,
        )

    async def set_two_factor(self, username: str, enabled: bool) -> None:
        await self.conn.execute(
            """
            UPDATE users
            SET two_factor_enabled = $2, updated_at = now()
            WHERE username = $1
            """,
            username,
            enabled,
        )
