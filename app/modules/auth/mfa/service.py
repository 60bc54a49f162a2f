# app/modules/auth/mfa/service.py

import hmac
import logging
import secrets
import time
from typing import Callable, Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from app.core.cache import KeyValueStore, cache
from app.core.config import settings
from app.modules.auth.constants import OTP_MAX, OTP_MIN, OTP_PREFIX
from app.modules.auth.mfa.schemas import OtpEntry

logger = logging.getLogger(__name__)


class OtpService:
    """
    Email one-time passwords: one pending 6-digit code per username,
    kept in the KV store for a short TTL and consumed on first match.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.kv = kv
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    @staticmethod
    def generate_code() -> str:
        return str(secrets.randbelow(OTP_MAX - OTP_MIN + 1) + OTP_MIN)

    async def issue(self, username: str) -> str:
        code = self.generate_code()
        entry = OtpEntry(code=code, expires_at=int(self.clock()) + self.ttl_seconds)
        try:
            await self.kv.set(
                OTP_PREFIX + username,
                entry.model_dump_json(),
                ttl=self.ttl_seconds,
            )
        except (RedisError, OSError):
            logger.exception("Failed to store OTP for %s", username)
        return code

    async def _pending(self, username: str) -> Optional[OtpEntry]:
        try:
            raw = await self.kv.get(OTP_PREFIX + username)
        except (RedisError, OSError):
            logger.exception("Failed to read OTP for %s", username)
            return None
        if raw is None:
            return None
        try:
            return OtpEntry.model_validate_json(raw)
        except ValidationError:
            logger.error("Corrupt OTP entry for %s", username)
            return None

    async def validate(self, username: str, code: str) -> bool:
        entry = await self._pending(username)
        if entry is None:
            return False

        if entry.expires_at <= self.clock():
            return False

        if not hmac.compare_digest(entry.code.encode(), (code or "").encode()):
            return False

        try:
            # whoever actually removes the key wins; a concurrent
            # second caller sees 0 and is rejected
            removed = await self.kv.delete(OTP_PREFIX + username)
        except (RedisError, OSError):
            logger.exception("Failed to consume OTP for %s", username)
            return False
        return removed == 1


otp_service = OtpService(cache, ttl_seconds=settings.OTP_TTL_SECONDS)
