# app/modules/auth/service.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import asyncpg
from fastapi.concurrency import run_in_threadpool

from app.core.email import DeliveryError
from app.core.security import TokenIssuer, dummy_verify, get_password_hash, verify_password
from app.modules.audit.repository import LoginAuditLog
from app.modules.audit.schemas import LoginEvent, LoginEventType
from app.modules.auth.constants import (
    MSG_AUTHENTICATED,
    MSG_INVALID_OTP,
    MSG_OTP_REQUIRED,
    MSG_REGISTERED,
    OTP_EMAIL_SUBJECT,
)
from app.modules.auth.exceptions import (
    AlreadyExistsException,
    AuthFailureKind,
    InvalidCredentialsException,
)
from app.modules.auth.mfa.service import OtpService
from app.modules.auth.schemas import AuthResponse, LoginResponse, Principal, RegisterRequest
from app.modules.auth.session_service import SessionStore
from app.modules.users.repository import CredentialStore
from app.modules.users.schemas import Role, UserRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialCheck:
    """
    Result of checking a username/password pair. Exactly one of
    `user` / `failure` is set.
    """
    user: Optional[UserRecord] = None
    failure: Optional[AuthFailureKind] = None

    @property
    def ok(self) -> bool:
        return self.user is not None


@dataclass(frozen=True)
class IssuedSession:
    token: str
    session_id: str


@dataclass(frozen=True)
class AuthResult:
    """
    What the router needs: the body for the caller and, when a session
    was opened, its id for the cookie.
    """
    response: AuthResponse
    session_id: Optional[str] = None


class AuthService:
    """
    Register / login / verify-OTP state machine:

      CREDENTIALS_CHECK -> TOKEN_ISSUED                       (2FA off)
      CREDENTIALS_CHECK -> OTP_PENDING -> TOKEN_ISSUED|FAILED (2FA on)

    All credential failures surface as one InvalidCredentialsException;
    the internal AuthFailureKind only goes to the log.
    """

    def __init__(
        self,
        users: CredentialStore,
        tokens: TokenIssuer,
        sessions: SessionStore,
        otp: OtpService,
        audit: LoginAuditLog,
        mailer,
    ) -> None:
        self.users = users
        self.tokens = tokens
        self.sessions = sessions
        self.otp = otp
        self.audit = audit
        self.mailer = mailer

    # ------------------------------------------------------------------
    # REGISTER
    # ------------------------------------------------------------------
    async def register(self, payload: RegisterRequest) -> AuthResult:
        if await self.users.exists_by_username(payload.username):
            raise AlreadyExistsException(f"Username already exists: {payload.username}")

        if await self.users.exists_by_email(payload.email):
            raise AlreadyExistsException(f"Email already registered: {payload.email}")

        password_hash = await run_in_threadpool(get_password_hash, payload.password)
        try:
            user = await self.users.save(
                UserRecord(
                    username=payload.username,
                    password_hash=password_hash,
                    full_name=payload.full_name,
                    email=payload.email,
                    phone_number=payload.phone_number,
                    role=Role.CUSTOMER,
                    active=True,
                    two_factor_enabled=False,
                )
            )
        except asyncpg.UniqueViolationError as ex:
            # a concurrent registration won the insert after our checks
            constraint = getattr(ex, "constraint_name", None) or str(ex)
            if "email" in constraint:
                raise AlreadyExistsException(f"Email already registered: {payload.email}") from ex
            raise AlreadyExistsException(f"Username already exists: {payload.username}") from ex
        logger.info("Registered user %s", user.username)

        issued = await self._open_session(user)
        return AuthResult(
            response=AuthResponse(
                token=issued.token,
                username=user.username,
                role=user.role.value,
                message=MSG_REGISTERED,
            ),
            session_id=issued.session_id,
        )

    # ------------------------------------------------------------------
    # LOGIN
    # ------------------------------------------------------------------
    async def login(
        self,
        username: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        check = await self._check_credentials(username, password)
        if not check.ok:
            logger.info("Login rejected for %s: %s", username, check.failure.value)
            raise InvalidCredentialsException()

        user = check.user

        if user.two_factor_enabled:
            await self._start_otp(user)
            return AuthResult(
                response=LoginResponse(
                    token=None,
                    username=user.username,
                    role=user.role.value,
                    message=MSG_OTP_REQUIRED,
                    two_factor_required=True,
                )
            )

        issued = await self._open_session(user)
        self.audit.record(user.username, LoginEventType.PASSWORD, ip_address, user_agent)
        logger.info("User %s logged in", user.username)

        return AuthResult(
            response=LoginResponse(
                token=issued.token,
                username=user.username,
                role=user.role.value,
                message=MSG_AUTHENTICATED,
                two_factor_required=False,
            ),
            session_id=issued.session_id,
        )

    async def _check_credentials(self, username: str, password: str) -> CredentialCheck:
        try:
            user = await self.users.find_by_username(username)
            if user is None:
                await run_in_threadpool(dummy_verify)
                return CredentialCheck(failure=AuthFailureKind.UNKNOWN_USER)
            if not await run_in_threadpool(verify_password, password, user.password_hash):
                return CredentialCheck(failure=AuthFailureKind.BAD_PASSWORD)
            if not user.active:
                return CredentialCheck(failure=AuthFailureKind.INACTIVE)
            return CredentialCheck(user=user)
        except Exception:
            logger.exception("Unexpected error while checking credentials for %s", username)
            return CredentialCheck(failure=AuthFailureKind.UNEXPECTED)

    async def _start_otp(self, user: UserRecord) -> None:
        code = await self.otp.issue(user.username)
        logger.info("OTP issued for %s (valid %ss)", user.username, self.otp.ttl_seconds)

        if not user.email or not user.email.strip():
            logger.warning("User %s has 2FA enabled but no email on file", user.username)
            return

        body = (
            f"Your OTP is: {code}\n"
            f"It will expire in {self._otp_ttl_minutes()} minutes."
        )
        try:
            await self.mailer.send(user.email, OTP_EMAIL_SUBJECT, body)
        except DeliveryError as ex:
            logger.warning("Failed to send OTP email to %s: %s", user.email, ex)
        except Exception:
            logger.exception("Unexpected error sending OTP email to %s", user.email)

    # ------------------------------------------------------------------
    # VERIFY OTP
    # ------------------------------------------------------------------
    async def verify_otp(
        self,
        username: str,
        code: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        try:
            user = await self.users.find_by_username(username)
        except Exception:
            logger.exception("Unexpected error loading %s for OTP verification", username)
            user = None

        if user is None or not user.active:
            logger.info("OTP rejected for %s: %s", username, AuthFailureKind.UNKNOWN_USER.value)
            raise InvalidCredentialsException(MSG_INVALID_OTP)

        if not await self.otp.validate(username, code):
            logger.info("OTP rejected for %s: %s", username, AuthFailureKind.OTP_REJECTED.value)
            raise InvalidCredentialsException(MSG_INVALID_OTP)

        issued = await self._open_session(user)
        self.audit.record(user.username, LoginEventType.OTP, ip_address, user_agent)
        logger.info("User %s completed OTP login", user.username)

        return AuthResult(
            response=AuthResponse(
                token=issued.token,
                username=user.username,
                role=user.role.value,
                message=MSG_AUTHENTICATED,
            ),
            session_id=issued.session_id,
        )

    # ------------------------------------------------------------------
    # LOGOUT / ACTIVITY
    # ------------------------------------------------------------------
    async def logout(self, principal: Principal) -> None:
        await self.sessions.invalidate_session(principal.session_id)
        logger.info("User %s logged out", principal.username)

    def recent_login_activity(self, username: str, limit: int = 20) -> List[LoginEvent]:
        return self.audit.recent(username, limit)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _otp_ttl_minutes(self) -> int:
        # rounded up, never below one minute
        return max(1, -(-self.otp.ttl_seconds // 60))

    async def _open_session(self, user: UserRecord) -> IssuedSession:
        session_id = await self.sessions.create_session(user)
        token = self.tokens.issue(user.username, user.role.value, session_id=session_id)
        return IssuedSession(token=token, session_id=session_id)
