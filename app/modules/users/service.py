import logging

from fastapi import HTTPException, status
from fastapi.concurrency import run_in_threadpool

from app.core.exceptions import NotFoundError
from app.core.security import get_password_hash, verify_password
from app.modules.auth.session_service import SessionStore
from app.modules.users.repository import CredentialStore
from app.modules.users.schemas import (
    ChangePasswordRequest,
    TwoFactorStatus,
    UserProfileResponse,
    UserRecord,
)

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, users: CredentialStore, sessions: SessionStore):
        self.users = users
        self.sessions = sessions

    async def _require_user(self, username: str) -> UserRecord:
        user = await self.users.find_by_username(username)
        if user is None:
            raise NotFoundError("Current user not found")
        return user

    # ---------------------------------------------------------
    # PROFILE
    # ---------------------------------------------------------
    async def get_profile(self, username: str) -> UserProfileResponse:
        return UserProfileResponse.from_record(await self._require_user(username))

    # ---------------------------------------------------------
    # TWO-FACTOR
    # ---------------------------------------------------------
    async def get_two_factor(self, username: str) -> TwoFactorStatus:
        user = await self._require_user(username)
        return TwoFactorStatus(enabled=user.two_factor_enabled)

    async def set_two_factor(self, username: str, enabled: bool) -> TwoFactorStatus:
        await self._require_user(username)
        await self.users.set_two_factor(username, enabled)
        logger.info(
            "Two-factor authentication %s for user: %s",
            "enabled" if enabled else "disabled",
            username,
        )
        return TwoFactorStatus(enabled=enabled)

    # ---------------------------------------------------------
    # PASSWORD
    # ---------------------------------------------------------
    async def change_password(self, username: str, payload: ChangePasswordRequest) -> None:
        """
        Re-check the current password, store the new hash, then drop the
        user's session so every device has to sign in again.
        """
        user = await self._require_user(username)
        if not await run_in_threadpool(verify_password, payload.current_password, user.password_hash):
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Current password is incorrect")

        new_hash = await run_in_threadpool(get_password_hash, payload.new_password)
        await self.users.update_password(username, new_hash)
        await self.sessions.invalidate_all_sessions_for(username)
        logger.info("Password changed for %s; sessions invalidated", username)
