from datetime import timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from src.adapter.services.totp_verifier import hash_backup_code
from src.app.use_cases.auth import (
    LoginResponse,
    LoginUseCase,
    SecondFactorRequiredResponse,
)
from src.app.use_cases.auth.session_support import hash_token
from src.domain.base import utcnow
from src.domain.entities import TenantStatus, UserRole, UserStatus
from tests.fixtures.helpers import PASSWORD, audit_actions, current_code, wrong_code


@pytest.fixture
def use_case(mock_uow, codec, verifier, settings, user_cache):
    return LoginUseCase(mock_uow, codec, verifier, settings, user_cache)


@pytest.fixture
def active_user(mock_uow, make_user, tenant):
    user = make_user()
    mock_uow.users.get_by_email.return_value = user
    mock_uow.users.get_by_id.return_value = user
    mock_uow.tenants.get_by_id.return_value = tenant
    return user


@pytest.fixture
def two_factor_user(active_user, verifier):
    enrollment = verifier.begin_enrollment(active_user, active_user.email)
    backup_codes = verifier.activate(active_user, current_code(enrollment.secret))
    return active_user, backup_codes


@pytest.mark.asyncio
async def test_successful_login(use_case, mock_uow, active_user, codec, origin, user_cache):
    user_cache.entries[f"user:{active_user.id}"] = "{}"

    result = await use_case.execute(active_user.email, PASSWORD, origin)

    assert result.is_ok()
    data = result.value
    assert isinstance(data, LoginResponse)
    assert data.token_type == "bearer"
    assert 0 < data.expires_in <= 15 * 60

    claims = codec.verify_access(data.access_token)
    assert claims.user_id == active_user.id
    assert claims.tenant_id == active_user.tenant_id
    assert claims.role == "staff"
    assert claims.session_id == data.session_id

    session_claims = codec.verify_session(data.session_token)
    assert session_claims.session_id == data.session_id

    # Session record stores the hash, never the credential
    record = mock_uow.sessions.create.await_args.args[0]
    assert record.session_id == data.session_id
    assert record.token_hash == hash_token(data.session_token)
    assert record.ip_address == origin.ip_address
    assert record.device_browser == "Chrome"
    assert record.device_os == "macOS"
    assert record.usage_count == 1

    assert active_user.last_login_ip == origin.ip_address
    assert active_user.last_login_at is not None
    assert audit_actions(mock_uow) == [("login", "success")]
    mock_uow.commit.assert_awaited_once()
    assert user_cache.entries == {}


@pytest.mark.asyncio
async def test_unknown_email(use_case, mock_uow, origin):
    mock_uow.users.get_by_email.return_value = None

    result = await use_case.execute("nobody@acme.com", PASSWORD, origin)

    assert result.is_err()
    assert result.error.code == "INVALID_CREDENTIALS"
    assert audit_actions(mock_uow) == [("login", "failed")]
    event = mock_uow.audit_events.create.await_args.args[0]
    assert event.ip_address == origin.ip_address
    assert event.event_metadata["reason"] == "unknown_email"
    mock_uow.sessions.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_wrong_password_is_indistinguishable(use_case, mock_uow, active_user, origin):
    result = await use_case.execute(active_user.email, "WrongPassword!", origin)

    assert result.error.code == "INVALID_CREDENTIALS"
    assert result.error.message == "Invalid email or password"
    assert audit_actions(mock_uow) == [("login", "failed")]
    mock_uow.sessions.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_disabled_account_never_reaches_second_factor(
    use_case, mock_uow, two_factor_user, origin
):
    user, _ = two_factor_user
    user.status = UserStatus.disabled
    use_case.codec = MagicMock(wraps=use_case.codec)

    result = await use_case.execute(user.email, PASSWORD, origin)

    assert result.error.code == "ACCOUNT_DISABLED"
    use_case.codec.issue_elevation.assert_not_called()
    assert audit_actions(mock_uow) == [("login", "failed")]


@pytest.mark.asyncio
async def test_suspended_tenant(use_case, mock_uow, active_user, tenant, origin):
    tenant.status = TenantStatus.suspended

    result = await use_case.execute(active_user.email, PASSWORD, origin)

    assert result.error.code == "TENANT_INACTIVE"
    assert audit_actions(mock_uow) == [("login", "failed")]


@pytest.mark.asyncio
async def test_expired_subscription(use_case, active_user, tenant, origin):
    tenant.subscription_ends_at = utcnow() - timedelta(days=1)

    result = await use_case.execute(active_user.email, PASSWORD, origin)

    assert result.error.code == "TENANT_INACTIVE"


@pytest.mark.asyncio
async def test_super_admin_without_tenant(use_case, mock_uow, make_user, codec, origin):
    admin = make_user(email="root@example.com", role=UserRole.super_admin)
    admin.tenant_id = None
    mock_uow.users.get_by_email.return_value = admin

    result = await use_case.execute(admin.email, PASSWORD, origin)

    assert result.is_ok()
    assert codec.verify_access(result.value.access_token).tenant_id is None
    mock_uow.tenants.get_by_id.assert_not_awaited()


@pytest.mark.asyncio
async def test_two_factor_user_gets_elevation_token(
    use_case, mock_uow, two_factor_user, codec, origin
):
    user, _ = two_factor_user

    result = await use_case.execute(user.email, PASSWORD, origin)

    assert result.is_ok()
    assert isinstance(result.value, SecondFactorRequiredResponse)
    assert result.value.requires_second_factor is True
    assert result.value.expires_in == 300
    assert codec.verify_elevation(result.value.elevation_token) == user.id
    mock_uow.sessions.create.assert_not_awaited()
    mock_uow.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_complete_with_totp(use_case, mock_uow, two_factor_user, codec, origin):
    user, _ = two_factor_user
    elevation = codec.issue_elevation(user.id)

    result = await use_case.complete_second_factor(
        elevation, current_code(user.two_factor_secret), origin
    )

    assert result.is_ok()
    assert result.value.remaining_backup_codes is None
    assert codec.verify_access(result.value.access_token).user_id == user.id
    assert audit_actions(mock_uow) == [("login", "success")]


@pytest.mark.asyncio
async def test_complete_with_backup_code(use_case, mock_uow, two_factor_user, codec, origin):
    user, backup_codes = two_factor_user
    elevation = codec.issue_elevation(user.id)

    result = await use_case.complete_second_factor(elevation, backup_codes[0], origin)

    assert result.is_ok()
    assert result.value.remaining_backup_codes == 9
    assert len(user.backup_codes_used) == 1
    mock_uow.users.update.assert_awaited_with(user)


@pytest.mark.asyncio
async def test_reused_backup_code(use_case, mock_uow, two_factor_user, codec, origin):
    user, backup_codes = two_factor_user
    await use_case.complete_second_factor(codec.issue_elevation(user.id), backup_codes[0], origin)
    mock_uow.audit_events.create.reset_mock()

    result = await use_case.complete_second_factor(
        codec.issue_elevation(user.id), backup_codes[0], origin
    )

    assert result.error.code == "ALREADY_USED"
    assert audit_actions(mock_uow) == [("login_2fa", "failed")]


@pytest.mark.asyncio
async def test_wrong_code(use_case, mock_uow, two_factor_user, codec, origin):
    user, _ = two_factor_user

    result = await use_case.complete_second_factor(
        codec.issue_elevation(user.id), wrong_code(user.two_factor_secret), origin
    )

    assert result.error.code == "INVALID_CODE"
    assert audit_actions(mock_uow) == [("login_2fa", "failed")]
    mock_uow.sessions.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_expired_elevation_rejected_before_code(
    use_case, mock_uow, two_factor_user, codec, origin
):
    user, _ = two_factor_user
    expired = codec.issue_elevation(user.id, ttl=timedelta(seconds=-1))

    result = await use_case.complete_second_factor(
        expired, current_code(user.two_factor_secret), origin
    )

    assert result.error.code == "ELEVATION_EXPIRED"
    mock_uow.users.get_by_id.assert_not_awaited()
    mock_uow.sessions.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_access_token_is_not_an_elevation_token(
    use_case, two_factor_user, codec, origin
):
    user, _ = two_factor_user
    access = codec.issue_access(user.id, user.tenant_id, "staff", user.email)

    result = await use_case.complete_second_factor(
        access.token, current_code(user.two_factor_secret), origin
    )

    assert result.error.code == "WRONG_PURPOSE"


@pytest.mark.asyncio
async def test_unknown_subject_in_elevation(use_case, mock_uow, codec, origin):
    mock_uow.users.get_by_id.return_value = None

    result = await use_case.complete_second_factor(codec.issue_elevation(uuid4()), "123456", origin)

    assert result.error.code == "INVALID_TOKEN"


def _lose_first_write(mock_uow, user, consumed_elsewhere):
    """Guarded write fails once, reloading the record as another request left it"""
    calls = []

    async def save_second_factor(target, expected_version):
        calls.append(expected_version)
        if len(calls) == 1:
            target.backup_codes_used = list(consumed_elsewhere)
            target.second_factor_version = expected_version + 1
            return False
        target.second_factor_version = expected_version + 1
        return True

    mock_uow.users.save_second_factor.side_effect = save_second_factor
    return calls


@pytest.mark.asyncio
async def test_backup_code_spent_by_concurrent_request(
    use_case, mock_uow, two_factor_user, codec, origin
):
    user, backup_codes = two_factor_user
    code_hash = hash_backup_code(backup_codes[0])
    calls = _lose_first_write(mock_uow, user, [code_hash])

    result = await use_case.complete_second_factor(
        codec.issue_elevation(user.id), backup_codes[0], origin
    )

    assert result.error.code == "ALREADY_USED"
    assert len(calls) == 1
    assert user.backup_codes_used == [code_hash]
    mock_uow.sessions.create.assert_not_awaited()
    assert audit_actions(mock_uow) == [("login_2fa", "failed")]


@pytest.mark.asyncio
async def test_different_backup_code_retried_after_lost_write(
    use_case, mock_uow, two_factor_user, codec, origin
):
    user, backup_codes = two_factor_user
    calls = _lose_first_write(mock_uow, user, [hash_backup_code(backup_codes[1])])

    result = await use_case.complete_second_factor(
        codec.issue_elevation(user.id), backup_codes[0], origin
    )

    assert result.is_ok()
    assert result.value.remaining_backup_codes == 8
    assert len(calls) == 2
    assert set(user.backup_codes_used) == {
        hash_backup_code(backup_codes[0]),
        hash_backup_code(backup_codes[1]),
    }
