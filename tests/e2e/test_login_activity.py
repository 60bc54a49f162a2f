# tests/e2e/test_login_activity.py

import pytest
from httpx import AsyncClient

from app.modules.users.schemas import Role


async def login(client, username, agent="pytest"):
    response = await client.post(
        "/api/auth/login",
        json={"username": username, "password": "s3cret-pass"},
        headers={"User-Agent": agent},
    )
    assert response.status_code == 200
    return response.json()["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_history_keeps_newest_twenty(async_client: AsyncClient, users):
    users.add("carol", "s3cret-pass")

    token = None
    for i in range(25):
        token = await login(async_client, "carol", agent=f"agent-{i}")

    response = await async_client.get("/api/auth/login-activity", headers=bearer(token))

    assert response.status_code == 200
    events = response.json()
    assert len(events) == 20
    assert [e["userAgent"] for e in events] == [f"agent-{i}" for i in range(24, 4, -1)]
    assert events[0]["type"] == "PASSWORD"
    assert events[0]["sourceIp"] == "203.0.113.7"


@pytest.mark.asyncio
async def test_history_limit_parameter(async_client: AsyncClient, users):
    users.add("carol", "s3cret-pass")
    for i in range(5):
        token = await login(async_client, "carol", agent=f"agent-{i}")

    response = await async_client.get(
        "/api/auth/login-activity",
        params={"limit": 2},
        headers=bearer(token),
    )

    assert [e["userAgent"] for e in response.json()] == ["agent-4", "agent-3"]


@pytest.mark.asyncio
async def test_history_requires_authentication(async_client: AsyncClient):
    response = await async_client.get("/api/auth/login-activity")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_otp_logins_are_recorded(async_client: AsyncClient, users, mailer):
    users.add("bob", "s3cret-pass", two_factor=True)
    await async_client.post("/api/auth/login", json={"username": "bob", "password": "s3cret-pass"})
    verified = await async_client.post(
        "/api/auth/verify-otp",
        json={"username": "bob", "code": mailer.last_code()},
    )

    response = await async_client.get(
        "/api/auth/login-activity",
        headers=bearer(verified.json()["token"]),
    )

    # the password step alone does not count as a sign-in
    assert [e["type"] for e in response.json()] == ["OTP"]


@pytest.mark.asyncio
async def test_staff_can_read_other_users_history(async_client: AsyncClient, users):
    users.add("carol", "s3cret-pass")
    users.add("olivia", "s3cret-pass", role=Role.BANKOFFICER)
    await login(async_client, "carol")
    await login(async_client, "carol")
    officer = await login(async_client, "olivia")

    response = await async_client.get(
        "/api/audit/login-activity/carol",
        headers=bearer(officer),
    )

    assert response.status_code == 200
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_customers_cannot_read_other_users_history(async_client: AsyncClient, users):
    users.add("carol", "s3cret-pass")
    users.add("dave", "s3cret-pass")
    await login(async_client, "carol")
    dave = await login(async_client, "dave")

    response = await async_client.get(
        "/api/audit/login-activity/carol",
        headers=bearer(dave),
    )

    assert response.status_code == 403
