# app/modules/audit/repository.py

import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from app.core.config import settings
from app.modules.audit.history import BoundedHistory
from app.modules.audit.schemas import LoginEvent, LoginEventType


class LoginAuditLog:
    """
    Per-user login history, newest first, capped at `capacity` entries.

    In-process state. Each username has its own lock so push-and-trim is
    atomic per user without serializing unrelated users.
    """

    def __init__(
        self,
        capacity: int = 20,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.capacity = capacity
        self.clock = clock
        self._histories: Dict[str, BoundedHistory[LoginEvent]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, username: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(username)
            if lock is None:
                lock = self._locks[username] = threading.Lock()
            return lock

    def record(
        self,
        username: str,
        event_type: LoginEventType,
        ip: Optional[str] = None,
        agent: Optional[str] = None,
    ) -> LoginEvent:
        event = LoginEvent(
            type=event_type,
            source_ip=ip,
            user_agent=agent,
            timestamp=self.clock(),
        )
        with self._lock_for(username):
            history = self._histories.get(username)
            if history is None:
                history = self._histories[username] = BoundedHistory(self.capacity)
            history.push(event)
        return event

    def recent(self, username: str, limit: int = 20) -> List[LoginEvent]:
        # lookups never allocate a lock for a user who has no history
        with self._registry_lock:
            lock = self._locks.get(username)
        if lock is None:
            return []
        with lock:
            history = self._histories.get(username)
            if history is None:
                return []
            return history.newest(limit)

    def clear(self) -> None:
        with self._registry_lock:
            self._histories.clear()
            self._locks.clear()


login_audit_log = LoginAuditLog(capacity=settings.LOGIN_HISTORY_CAPACITY)
