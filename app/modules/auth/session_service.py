# app/modules/auth/session_service.py

import asyncio
import logging
import time
from typing import Callable, Optional
from uuid import uuid4

from pydantic import ValidationError
from redis.exceptions import RedisError

from app.core.cache import KeyValueStore, cache
from app.core.config import settings
from app.modules.auth.constants import (
    IDLE_TIMEOUT_PREFIX,
    SESSION_LOCK_PREFIX,
    SESSION_LOCK_RETRY_SECONDS,
    SESSION_LOCK_WAIT_SECONDS,
    SESSION_PREFIX,
    USER_SESSIONS_PREFIX,
)
from app.modules.auth.schemas import SessionData
from app.modules.users.schemas import UserRecord

logger = logging.getLogger(__name__)

# Failures of the KV round-trip itself
STORE_ERRORS = (RedisError, OSError)


class SessionStore:
    """
    Authoritative "is this session alive" check, backed by the TTL'd KV store.

    Three keys per session:
      session:{id}             JSON record, TTL = absolute lifetime
      user_sessions:{username} -> id, TTL = absolute lifetime
      session_idle:{id}        last-activity epoch, TTL = idle lifetime

    A session is alive only while both session:{id} and session_idle:{id}
    exist. Reads fail closed (store errors look like "no session"); writes
    and deletes log and carry on.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        session_timeout_seconds: int = 3600,
        idle_timeout_seconds: int = 900,
        lock_ttl_seconds: int = 5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.kv = kv
        self.session_timeout_seconds = session_timeout_seconds
        self.idle_timeout_seconds = idle_timeout_seconds
        self.lock_ttl_seconds = lock_ttl_seconds
        self.clock = clock

    # ------------------------------------------------------------------
    # CREATE
    # ------------------------------------------------------------------
    async def create_session(self, user: UserRecord) -> str:
        session_id = uuid4().hex
        lock_key = SESSION_LOCK_PREFIX + user.username

        locked = await self._acquire_lock(lock_key, session_id)
        if not locked:
            logger.warning(
                "Session lock for %s not acquired; creating session without it",
                user.username,
            )

        try:
            existing = await self.get_active_session_for(user.username)
            if existing is not None:
                await self.invalidate_session(existing)

            now = int(self.clock())
            data = SessionData(
                session_id=session_id,
                username=user.username,
                user_id=user.id,
                role=user.role.value,
                email=user.email,
                created_at=now,
                last_activity=now,
            )

            try:
                await self.kv.set(
                    SESSION_PREFIX + session_id,
                    data.model_dump_json(by_alias=True),
                    ttl=self.session_timeout_seconds,
                )
                await self.kv.set(
                    USER_SESSIONS_PREFIX + user.username,
                    session_id,
                    ttl=self.session_timeout_seconds,
                )
                await self.kv.set(
                    IDLE_TIMEOUT_PREFIX + session_id,
                    str(now),
                    ttl=self.idle_timeout_seconds,
                )
            except STORE_ERRORS:
                logger.exception("Failed to write session for %s", user.username)
        finally:
            if locked:
                await self._release_lock(lock_key, session_id)

        return session_id

    async def _acquire_lock(self, lock_key: str, owner: str) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + SESSION_LOCK_WAIT_SECONDS
        while True:
            try:
                if await self.kv.set_if_absent(lock_key, owner, ttl=self.lock_ttl_seconds):
                    return True
            except STORE_ERRORS:
                logger.exception("Session lock %s unavailable", lock_key)
                return False
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(SESSION_LOCK_RETRY_SECONDS)

    async def _release_lock(self, lock_key: str, owner: str) -> None:
        try:
            await self.kv.delete_if_equals(lock_key, owner)
        except STORE_ERRORS:
            logger.exception("Failed to release session lock %s", lock_key)

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    async def get_active_session_for(self, username: str) -> Optional[str]:
        try:
            return await self.kv.get(USER_SESSIONS_PREFIX + username)
        except STORE_ERRORS:
            logger.exception("Failed to read active session for %s", username)
            return None

    async def _read_record(self, session_id: str) -> Optional[SessionData]:
        try:
            raw = await self.kv.get(SESSION_PREFIX + session_id)
        except STORE_ERRORS:
            logger.exception("Failed to read session %s", session_id)
            return None
        if raw is None:
            return None
        try:
            return SessionData.model_validate_json(raw)
        except ValidationError:
            logger.error("Corrupt session record %s", session_id)
            return None

    async def is_valid(self, session_id: str) -> bool:
        try:
            record = await self.kv.get(SESSION_PREFIX + session_id)
            if record is None:
                return False

            idle = await self.kv.get(IDLE_TIMEOUT_PREFIX + session_id)
        except STORE_ERRORS:
            logger.exception("Failed to check session %s", session_id)
            return False

        if idle is None:
            # idle timeout fired before the absolute one
            logger.info("Session %s idle-expired; invalidating", session_id)
            await self.invalidate_session(session_id)
            return False

        return True

    async def get_session_data(self, session_id: str) -> Optional[SessionData]:
        data = await self._read_record(session_id)
        if data is None:
            return None

        now = int(self.clock())
        try:
            await self.kv.set(
                IDLE_TIMEOUT_PREFIX + session_id,
                str(now),
                ttl=self.idle_timeout_seconds,
            )
        except STORE_ERRORS:
            logger.exception("Failed to refresh idle timeout for %s", session_id)
            return data

        return data.model_copy(update={"last_activity": now})

    # ------------------------------------------------------------------
    # INVALIDATE
    # ------------------------------------------------------------------
    async def invalidate_session(self, session_id: str) -> None:
        data = await self._read_record(session_id)
        try:
            await self.kv.delete(SESSION_PREFIX + session_id)
            await self.kv.delete(IDLE_TIMEOUT_PREFIX + session_id)
            if data is not None:
                # only unlink the username if it still points at this session
                await self.kv.delete_if_equals(
                    USER_SESSIONS_PREFIX + data.username,
                    session_id,
                )
        except STORE_ERRORS:
            logger.exception("Error invalidating session: %s", session_id)

    async def invalidate_all_sessions_for(self, username: str) -> None:
        session_id = await self.get_active_session_for(username)
        if session_id is None:
            return
        await self.invalidate_session(session_id)
        try:
            # record may already be gone, leaving the mapping behind
            await self.kv.delete_if_equals(USER_SESSIONS_PREFIX + username, session_id)
        except STORE_ERRORS:
            logger.exception("Error unlinking sessions for %s", username)


session_store = SessionStore(
    cache,
    session_timeout_seconds=settings.SESSION_TIMEOUT_SECONDS,
    idle_timeout_seconds=settings.SESSION_IDLE_TIMEOUT_SECONDS,
    lock_ttl_seconds=settings.SESSION_LOCK_TTL_SECONDS,
)
