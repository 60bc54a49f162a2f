# tests/unit/test_session_store.py

import asyncio
import json

import pytest
from unittest.mock import AsyncMock, Mock
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.cache import InMemoryCache
from app.modules.auth.session_service import SessionStore
from app.modules.users.schemas import Role, UserRecord


def make_user(username="alice", role=Role.CUSTOMER):
    return UserRecord(
        id=7,
        username=username,
        password_hash="x",
        full_name=username.title(),
        email=f"{username}@example.com",
        role=role,
    )


@pytest.fixture
def kv(clock):
    return InMemoryCache(clock=clock)


@pytest.fixture
def store(kv, clock):
    return SessionStore(
        kv,
        session_timeout_seconds=3600,
        idle_timeout_seconds=900,
        clock=clock,
    )


@pytest.mark.asyncio
async def test_create_session_writes_all_three_keys(store, kv, clock):
    sid = await store.create_session(make_user())

    record = json.loads(await kv.get(f"session:{sid}"))
    assert record["username"] == "alice"
    assert record["role"] == "CUSTOMER"
    assert record["userId"] == 7
    assert record["createdAt"] == int(clock())

    assert await kv.get("user_sessions:alice") == sid
    assert await kv.get(f"session_idle:{sid}") == str(int(clock()))

    assert await kv.ttl(f"session:{sid}") == 3600
    assert await kv.ttl(f"session_idle:{sid}") == 900


@pytest.mark.asyncio
async def test_new_session_is_valid(store):
    sid = await store.create_session(make_user())

    assert await store.is_valid(sid) is True
    assert await store.get_active_session_for("alice") == sid


@pytest.mark.asyncio
async def test_second_session_invalidates_first(store):
    first = await store.create_session(make_user())
    second = await store.create_session(make_user())

    assert first != second
    assert await store.is_valid(first) is False
    assert await store.is_valid(second) is True
    assert await store.get_active_session_for("alice") == second


@pytest.mark.asyncio
async def test_sessions_of_other_users_are_untouched(store):
    alice = await store.create_session(make_user("alice"))
    await store.create_session(make_user("bob"))

    assert await store.is_valid(alice) is True


@pytest.mark.asyncio
async def test_missing_idle_marker_invalidates_session(store, kv):
    sid = await store.create_session(make_user())
    await kv.delete(f"session_idle:{sid}")

    assert await store.is_valid(sid) is False
    # the check also cleans up the rest of the session
    assert await kv.get(f"session:{sid}") is None
    assert await store.get_active_session_for("alice") is None


@pytest.mark.asyncio
async def test_missing_primary_record_is_invalid(store, kv):
    sid = await store.create_session(make_user())
    await kv.delete(f"session:{sid}")

    assert await store.is_valid(sid) is False


@pytest.mark.asyncio
async def test_unknown_session_is_invalid(store):
    assert await store.is_valid("does-not-exist") is False
    assert await store.get_session_data("does-not-exist") is None


@pytest.mark.asyncio
async def test_idle_timeout_expires_session(store, clock):
    sid = await store.create_session(make_user())

    clock.advance(901)

    assert await store.is_valid(sid) is False


@pytest.mark.asyncio
async def test_get_session_data_slides_idle_expiry(store, kv, clock):
    sid = await store.create_session(make_user())

    for _ in range(3):
        clock.advance(600)
        data = await store.get_session_data(sid)
        assert data.last_activity == int(clock())
        assert await kv.ttl(f"session_idle:{sid}") == 900

    # 1800s after creation: well past one idle window, still alive
    assert await store.is_valid(sid) is True


@pytest.mark.asyncio
async def test_absolute_timeout_wins_over_activity(store, clock):
    sid = await store.create_session(make_user())

    for _ in range(6):
        clock.advance(600)
        await store.get_session_data(sid)

    assert await store.is_valid(sid) is False


@pytest.mark.asyncio
async def test_invalidate_session_keeps_newer_mapping(store, kv):
    old = await store.create_session(make_user())
    new = await store.create_session(make_user())

    # stale logout for the old session must not unlink the new one
    await store.invalidate_session(old)

    assert await kv.get("user_sessions:alice") == new
    assert await store.is_valid(new) is True


@pytest.mark.asyncio
async def test_invalidate_all_sessions_for_user(store, kv):
    sid = await store.create_session(make_user())

    await store.invalidate_all_sessions_for("alice")

    assert await store.is_valid(sid) is False
    assert await kv.get("user_sessions:alice") is None


@pytest.mark.asyncio
async def test_invalidate_all_without_session_is_noop(store):
    await store.invalidate_all_sessions_for("nobody")


@pytest.mark.asyncio
async def test_concurrent_logins_leave_exactly_one_valid_session(store):
    user = make_user()

    sids = await asyncio.gather(*(store.create_session(user) for _ in range(10)))

    valid = [sid for sid in sids if await store.is_valid(sid)]
    assert len(valid) == 1
    assert await store.get_active_session_for("alice") == valid[0]


@pytest.mark.asyncio
async def test_read_errors_fail_closed():
    kv = Mock()
    kv.get = AsyncMock(side_effect=RedisConnectionError("down"))

    store = SessionStore(kv)

    assert await store.is_valid("abc") is False
    assert await store.get_session_data("abc") is None
    assert await store.get_active_session_for("alice") is None


@pytest.mark.asyncio
async def test_write_errors_do_not_propagate():
    kv = Mock()
    kv.get = AsyncMock(return_value=None)
    kv.set_if_absent = AsyncMock(return_value=True)
    kv.delete_if_equals = AsyncMock(return_value=True)
    kv.set = AsyncMock(side_effect=RedisConnectionError("down"))

    store = SessionStore(kv)

    sid = await store.create_session(make_user())

    assert sid
    kv.delete_if_equals.assert_awaited_with("lock:session:alice", sid)
