import time

import pyotp

PASSWORD = "SecurePass123!"

ADMIN_API_KEY = "integration-admin-key"


def audit_actions(uow):
    """(action, status) of every audit event written through a mocked UnitOfWork"""
    return [
        (call.args[0].action, call.args[0].status.value)
        for call in uow.audit_events.create.await_args_list
    ]


def current_code(secret: str) -> str:
    return pyotp.TOTP(secret).now()


def wrong_code(secret: str) -> str:
    """A six-digit code outside the accepted window for secret"""
    totp = pyotp.TOTP(secret)
    now = time.time()
    accepted = {totp.at(now + step * 30) for step in range(-3, 4)}
    return next(c for c in ("000000", "111111", "222222", "333333") if c not in accepted)


def bearer(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}


async def login(client, email: str, password: str = PASSWORD, user_agent: str = None):
    """POST /auth/login and return the decoded body; asserts HTTP 200"""
    headers = {"User-Agent": user_agent} if user_agent else {}
    response = await client.post(
        "/auth/login", json={"email": email, "password": password}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()
