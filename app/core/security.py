# app/core/security.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Request
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def _pepper_password(password: str) -> str:
    """
    Apply a global pepper (if configured) to the password.

    This MUST be used in both hashing and verification so they match.
    """
    # If PASSWORD_PEPPER is missing or empty, this is effectively a no-op.
    pepper = getattr(settings, "PASSWORD_PEPPER", "") or ""
    return password + pepper


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if plain_password matches hashed_password."""
    try:
        return _pwd_context.verify(_pepper_password(plain_password), hashed_password)
    except (ValueError, TypeError):
        # If the stored hash is invalid/corrupt, treat as non-match
        return False


def dummy_verify() -> None:
    """
    Burn roughly the same time as a real verify, for unknown usernames.
    """
    _pwd_context.dummy_verify()


def get_password_hash(password: str) -> str:
    """Hash a password for storing in the database."""
    return _pwd_context.hash(_pepper_password(password))


# ---------------------------------------------------------------------------
# Bearer tokens
# ---------------------------------------------------------------------------

class InvalidTokenError(Exception):
    """Raised by TokenIssuer.verify for any token it does not accept."""


@dataclass(frozen=True)
class TokenClaims:
    username: str
    role: str
    session_id: Optional[str] = None


class TokenIssuer:
    """
    Creates and verifies signed, stateless bearer tokens.

    A token proves who signed in and with which role. It says nothing about
    whether their session is still alive; that is SessionStore's job.
    """

    TOKEN_TYPE = "access"

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expires_in_seconds: int = 3600,
    ) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_in_seconds = expires_in_seconds

    def issue(self, username: str, role: str, session_id: Optional[str] = None) -> str:
        now = datetime.now(timezone.utc)
        expire = now + timedelta(seconds=self.expires_in_seconds)

        to_encode: Dict[str, Any] = {
            "sub": username,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
            "type": self.TOKEN_TYPE,
            "jti": str(uuid4()),
        }
        if session_id:
            to_encode["sid"] = session_id

        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
            )
        except JWTError as ex:
            raise InvalidTokenError(str(ex)) from ex

        if payload.get("type") != self.TOKEN_TYPE:
            raise InvalidTokenError("Invalid token type")

        username = payload.get("sub")
        if not username:
            raise InvalidTokenError("Token missing subject")

        return TokenClaims(
            username=username,
            role=payload.get("role") or "",
            session_id=payload.get("sid"),
        )


def looks_like_jwt(value: str) -> bool:
    return value.count(".") == 2


token_issuer = TokenIssuer(
    settings.JWT_SECRET_KEY,
    algorithm=settings.JWT_ALGORITHM,
    expires_in_seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS,
)


# ---------------------------------------------------------------------------
# Request credential helpers
# ---------------------------------------------------------------------------

def get_bearer_token(request: Request) -> Optional[str]:
    """
    Extract the Bearer value from the Authorization header, if any.

    This is synchronous; do *not* "await" it.
    """
    auth_header = request.headers.get("authorization")
    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]
