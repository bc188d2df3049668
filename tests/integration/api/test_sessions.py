import pytest
from httpx import AsyncClient

from tests.fixtures.helpers import bearer, login


@pytest.mark.asyncio
async def test_list_sessions(client: AsyncClient, seeded, test_data):
    """Signed-in Devices

    Given I am logged in on a laptop and a phone
    When I list my sessions from the phone
    Then I see both devices and the phone is marked as current
    """
    email = seeded["users"]["staff"]["email"]
    await login(client, email, user_agent=test_data.user_agent("laptop"))
    phone = await login(client, email, user_agent=test_data.user_agent("phone"))
    await login(client, seeded["users"]["owner"]["email"])

    response = await client.get("/sessions", headers=bearer(phone["access_token"]))

    assert response.status_code == 200
    sessions = {s["id"]: s for s in response.json()}
    assert len(sessions) == 2
    current = sessions[phone["session_id"]]
    assert current["is_current"] is True
    assert current["device"] == "Safari on iOS"
    assert current["device_type"] == "mobile"
    laptop = next(s for s in sessions.values() if not s["is_current"])
    assert laptop["device"] == "Chrome on Windows"
    assert laptop["device_type"] == "desktop"
    assert laptop["ip_address"] == "127.0.0.1"


@pytest.mark.asyncio
async def test_forwarded_address_is_recorded(client: AsyncClient, seeded):
    tokens = (
        await client.post(
            "/auth/login",
            json={"email": seeded["users"]["staff"]["email"], "password": "SecurePass123!"},
            headers={"X-Forwarded-For": "198.51.100.23, 10.0.0.1"},
        )
    ).json()

    response = await client.get("/sessions", headers=bearer(tokens["access_token"]))

    assert response.json()[0]["ip_address"] == "198.51.100.23"


@pytest.mark.asyncio
async def test_revoke_one_device(client: AsyncClient, seeded, test_data):
    email = seeded["users"]["staff"]["email"]
    laptop = await login(client, email, user_agent=test_data.user_agent("laptop"))
    tablet = await login(client, email, user_agent=test_data.user_agent("tablet"))

    response = await client.delete(
        f"/sessions/{tablet['session_id']}", headers=bearer(laptop["access_token"])
    )

    assert response.status_code == 200
    assert response.json() == {"session_id": tablet["session_id"], "revoked": True}

    remaining = await client.get("/sessions", headers=bearer(laptop["access_token"]))
    assert [s["id"] for s in remaining.json()] == [laptop["session_id"]]

    refresh = await client.post("/auth/refresh", json={"session_token": tablet["session_token"]})
    assert refresh.status_code == 401

    again = await client.delete(
        f"/sessions/{tablet['session_id']}", headers=bearer(laptop["access_token"])
    )
    assert again.status_code == 200
    assert again.json()["revoked"] is False


@pytest.mark.asyncio
async def test_cannot_revoke_another_users_session(client: AsyncClient, seeded):
    staff = await login(client, seeded["users"]["staff"]["email"])
    owner = await login(client, seeded["users"]["owner"]["email"])

    response = await client.delete(
        f"/sessions/{owner['session_id']}", headers=bearer(staff["access_token"])
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "SESSION_NOT_FOUND"
    refresh = await client.post("/auth/refresh", json={"session_token": owner["session_token"]})
    assert refresh.status_code == 200


@pytest.mark.asyncio
async def test_org_admin_revokes_tenant_sessions(client: AsyncClient, seeded):
    owner = await login(client, seeded["users"]["owner"]["email"])
    staff = await login(client, seeded["users"]["staff"]["email"])
    outsider = await login(client, seeded["users"]["outsider"]["email"])

    response = await client.post("/sessions/tenant/revoke", headers=bearer(owner["access_token"]))

    assert response.status_code == 200
    assert response.json() == {
        "tenant_id": str(seeded["tenants"]["acme"]),
        "revoked_count": 2,
    }
    for tokens, expected in ((owner, 401), (staff, 401), (outsider, 200)):
        refresh = await client.post(
            "/auth/refresh", json={"session_token": tokens["session_token"]}
        )
        assert refresh.status_code == expected


@pytest.mark.asyncio
async def test_staff_cannot_revoke_tenant_sessions(client: AsyncClient, seeded):
    staff = await login(client, seeded["users"]["staff"]["email"])

    response = await client.post("/sessions/tenant/revoke", headers=bearer(staff["access_token"]))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"
