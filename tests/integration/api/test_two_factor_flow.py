import pytest
from httpx import AsyncClient

from tests.fixtures.helpers import PASSWORD, bearer, current_code, login, wrong_code


async def enable_two_factor(client: AsyncClient, access_token: str):
    setup = await client.post("/2fa/setup", headers=bearer(access_token))
    assert setup.status_code == 200
    secret = setup.json()["secret"]
    activate = await client.post(
        "/2fa/activate", json={"code": current_code(secret)}, headers=bearer(access_token)
    )
    assert activate.status_code == 200
    return secret, activate.json()["backup_codes"]


@pytest.mark.asyncio
async def test_enroll_and_login_with_second_factor(client: AsyncClient, seeded):
    """Two-Factor Login

    Given I enabled two-factor authentication
    When I log in with my password
    Then I only get an elevation token
    And exchanging it with a current code issues my session
    """
    email = seeded["users"]["staff"]["email"]
    tokens = await login(client, email)
    secret, backup_codes = await enable_two_factor(client, tokens["access_token"])
    assert len(backup_codes) == 10

    status = await client.get("/2fa/status", headers=bearer(tokens["access_token"]))
    assert status.json() == {"enabled": True, "pending": False, "remaining_backup_codes": 10}

    first_step = await login(client, email)
    assert first_step["requires_second_factor"] is True
    assert "access_token" not in first_step

    response = await client.post(
        "/auth/login/2fa",
        json={"elevation_token": first_step["elevation_token"], "code": current_code(secret)},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["access_token"]
    assert data["session_token"]
    assert data["remaining_backup_codes"] is None


@pytest.mark.asyncio
async def test_backup_code_is_single_use(client: AsyncClient, seeded):
    email = seeded["users"]["staff"]["email"]
    tokens = await login(client, email)
    _, backup_codes = await enable_two_factor(client, tokens["access_token"])

    first_step = await login(client, email)
    response = await client.post(
        "/auth/login/2fa",
        json={"elevation_token": first_step["elevation_token"], "code": backup_codes[0]},
    )
    assert response.status_code == 200
    assert response.json()["remaining_backup_codes"] == 9

    second_step = await login(client, email)
    reused = await client.post(
        "/auth/login/2fa",
        json={"elevation_token": second_step["elevation_token"], "code": backup_codes[0]},
    )
    assert reused.status_code == 401
    assert reused.json()["error"]["code"] == "ALREADY_USED"


@pytest.mark.asyncio
async def test_wrong_second_factor_code(client: AsyncClient, seeded):
    email = seeded["users"]["staff"]["email"]
    tokens = await login(client, email)
    secret, _ = await enable_two_factor(client, tokens["access_token"])

    first_step = await login(client, email)
    response = await client.post(
        "/auth/login/2fa",
        json={"elevation_token": first_step["elevation_token"], "code": wrong_code(secret)},
    )

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CODE"


@pytest.mark.asyncio
async def test_pending_setup_does_not_affect_login(client: AsyncClient, seeded):
    email = seeded["users"]["staff"]["email"]
    tokens = await login(client, email)
    await client.post("/2fa/setup", headers=bearer(tokens["access_token"]))

    again = await login(client, email)

    assert "access_token" in again


@pytest.mark.asyncio
async def test_disable_two_factor(client: AsyncClient, seeded):
    email = seeded["users"]["staff"]["email"]
    tokens = await login(client, email)
    secret, _ = await enable_two_factor(client, tokens["access_token"])

    wrong_password = await client.post(
        "/2fa/disable",
        json={"password": "NotThePassword1", "code": current_code(secret)},
        headers=bearer(tokens["access_token"]),
    )
    assert wrong_password.status_code == 401

    response = await client.post(
        "/2fa/disable",
        json={"password": PASSWORD, "code": current_code(secret)},
        headers=bearer(tokens["access_token"]),
    )
    assert response.status_code == 200
    assert response.json() == {"enabled": False}

    again = await login(client, email)
    assert "access_token" in again
