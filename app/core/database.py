# app/core/database.py

import asyncpg
from typing import AsyncGenerator, Optional

from app.core.config import settings


USERS_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS users (
    id                  BIGSERIAL PRIMARY KEY,
    username            VARCHAR(50)  NOT NULL UNIQUE,
    password_hash       TEXT         NOT NULL,
    full_name           VARCHAR(100) NOT NULL,
    email               VARCHAR(100) NOT NULL UNIQUE,
    phone_number        VARCHAR(15),
    role                VARCHAR(20)  NOT NULL DEFAULT 'CUSTOMER',
    active              BOOLEAN      NOT NULL DEFAULT true,
    two_factor_enabled  BOOLEAN      NOT NULL DEFAULT false,
    created_at          TIMESTAMPTZ  NOT NULL DEFAULT now(),
    updated_at          TIMESTAMPTZ  NOT NULL DEFAULT now()
)
"""


class Database:
    """
    Central asyncpg connection pool wrapper.

    - connect() / disconnect() manage the pool lifecycle.
    - get_connection() yields a pooled connection inside a transaction.
    - ping() is used by /health and startup checks.
    """

    def __init__(self) -> None:
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        if self.pool is not None:
            return

        self.pool = await asyncpg.create_pool(
            host=settings.DATABASE_HOST,
            port=settings.DATABASE_PORT,
            user=settings.DATABASE_USER,
            password=settings.DATABASE_PASSWORD,
            database=settings.DATABASE_NAME,
            min_size=settings.DATABASE_POOL_MIN_SIZE,
            max_size=settings.DATABASE_POOL_SIZE,
        )

    async def disconnect(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    async def init_schema(self) -> None:
        """
        Create the credential table if it does not exist yet.
        """
        if self.pool is None:
            await self.connect()
        async with self.pool.acquire() as conn:
            await conn.execute(USERS_TABLE_DDL)

    async def ping(self) -> bool:
        """
        Lightweight health check used by /health and startup.

        Returns True if the database responds to a simple query.
        """
        try:
            if self.pool is None:
                await self.connect()
            async with self.pool.acquire() as conn:
                await conn.execute("SELECT 1")
            return True
        except Exception:
            return False

    async def get_connection(self) -> AsyncGenerator[asyncpg.Connection, None]:
        """
        Acquire a connection for the duration of one request and wrap it
        in a transaction.
        """
        if self.pool is None:
            await self.connect()

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn


db = Database()
