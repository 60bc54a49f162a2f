import os

# Must be set before anything under app/ reads settings
os.environ["CACHE_BACKEND"] = "memory"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMTP_HOST"] = ""

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.core.cache import cache
from app.core.security import get_password_hash
from app.dependencies.services import get_mail_sender, get_user_repository
from app.modules.audit.repository import login_audit_log
from app.modules.users.schemas import Role, UserRecord


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeClock:
    """Callable epoch clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryUserRepository:
    """Dict-backed stand-in for UserRepository."""

    def __init__(self) -> None:
        self.users: Dict[str, UserRecord] = {}
        self._next_id = 1

    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        user = self.users.get(username)
        return user.model_copy() if user else None

    async def exists_by_username(self, username: str) -> bool:
        return username in self.users

    async def exists_by_email(self, email: str) -> bool:
        return any(u.email.lower() == email.lower() for u in self.users.values())

    async def save(self, user: UserRecord) -> UserRecord:
        if user.id is None:
            user = user.model_copy(
                update={"id": self._next_id, "created_at": datetime.now(timezone.utc)}
            )
            self._next_id += 1
        self.users[user.username] = user
        return user.model_copy()

    async def update_password(self, username: str, password_hash: str) -> None:
        self.users[username] = self.users[username].model_copy(
            update={"password_hash": password_hash}
        )

    async def set_two_factor(self, username: str, enabled: bool) -> None:
        self.users[username] = self.users[username].model_copy(
            update={"two_factor_enabled": enabled}
        )

    def add(
        self,
        username: str,
        password: str,
        role: Role = Role.CUSTOMER,
        two_factor: bool = False,
        email: Optional[str] = None,
        active: bool = True,
    ) -> UserRecord:
        user = UserRecord(
            id=self._next_id,
            username=username,
            password_hash=get_password_hash(password),
            full_name=username.title(),
            email=email if email is not None else f"{username}@example.com",
            role=role,
            active=active,
            two_factor_enabled=two_factor,
            created_at=datetime.now(timezone.utc),
        )
        self._next_id += 1
        self.users[username] = user
        return user


class RecordingMailSender:
    """Keeps every message instead of sending it."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []

    async def send(self, to_address: str, subject: str, body: str) -> None:
        self.sent.append((to_address, subject, body))

    def last_code(self) -> str:
        _, _, body = self.sent[-1]
        return re.search(r"\b(\d{6})\b", body).group(1)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def mailer():
    return RecordingMailSender()


@pytest.fixture(autouse=True)
def reset_shared_state():
    """
    The app-level cache and login history are process singletons;
    start every test from empty.
    """
    cache.clear()
    login_audit_log.clear()
    yield
    cache.clear()
    login_audit_log.clear()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(users, mailer):
    app.dependency_overrides[get_user_repository] = lambda: users
    app.dependency_overrides[get_mail_sender] = lambda: mailer

    async with AsyncClient(
            transport=ASGITransport(app=app, client=("203.0.113.7", 50000)),
            base_url="http://test"
    ) as client:
        yield client
