from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.app.services.user_cache import user_key
from src.app.use_cases.auth import LogoutUseCase
from src.app.use_cases.auth.session_support import build_session_record
from src.domain.base import utcnow
from src.domain.entities import RevocationReason
from src.domain.exceptions import RevocationRegistryUnavailable, StorageError
from tests.fixtures.helpers import audit_actions


@pytest.fixture
def use_case(mock_uow, codec, revocations, user_cache):
    return LogoutUseCase(mock_uow, codec, revocations, user_cache)


@pytest.fixture
def session(mock_uow, codec, make_user, origin):
    user = make_user()
    token = codec.issue_session(user.id, user.tenant_id)
    record = build_session_record(token, user.id, user.tenant_id, origin)
    mock_uow.sessions.get_by_session_id.return_value = record
    return user, token, record


@pytest.mark.asyncio
async def test_logout_revokes_session_and_blacklists_access(
    use_case, mock_uow, session, revocations, origin
):
    user, token, record = session

    result = await use_case.logout(
        user.id,
        user.tenant_id,
        origin,
        session_token=token.token,
        access_jti="jti-1",
        access_expires_at=utcnow() + timedelta(minutes=10),
    )

    assert result.is_ok()
    assert result.value.session_revoked is True
    mock_uow.sessions.revoke.assert_awaited_once_with(record.session_id, RevocationReason.logout)
    assert await revocations.is_blacklisted("jti-1") is True
    assert audit_actions(mock_uow) == [("logout", "success")]


@pytest.mark.asyncio
async def test_logout_uses_session_id_from_access_claims(use_case, mock_uow, session, origin):
    user, _, record = session

    result = await use_case.logout(user.id, user.tenant_id, origin, session_id=record.session_id)

    assert result.value.session_revoked is True
    mock_uow.sessions.revoke.assert_awaited_once_with(record.session_id, RevocationReason.logout)


@pytest.mark.asyncio
async def test_logout_ignores_someone_elses_session(use_case, mock_uow, session, origin):
    _, token, _ = session

    result = await use_case.logout(uuid4(), None, origin, session_token=token.token)

    assert result.is_ok()
    assert result.value.session_revoked is False
    mock_uow.sessions.revoke.assert_not_awaited()


@pytest.mark.asyncio
async def test_logout_survives_storage_failure(use_case, mock_uow, session, revocations, origin):
    user, token, _ = session
    mock_uow.sessions.revoke.side_effect = StorageError("db down")

    result = await use_case.logout(
        user.id,
        user.tenant_id,
        origin,
        session_token=token.token,
        access_jti="jti-2",
        access_expires_at=utcnow() + timedelta(minutes=10),
    )

    assert result.is_ok()
    assert result.value.session_revoked is False
    # Blacklisting still happened
    assert await revocations.is_blacklisted("jti-2") is True


@pytest.mark.asyncio
async def test_logout_survives_blacklist_outage(mock_uow, codec, session, origin):
    registry = AsyncMock()
    registry.blacklist.side_effect = RevocationRegistryUnavailable("redis down")
    use_case = LogoutUseCase(mock_uow, codec, registry)
    user, token, _ = session

    result = await use_case.logout(
        user.id,
        user.tenant_id,
        origin,
        session_token=token.token,
        access_jti="jti-3",
        access_expires_at=utcnow() + timedelta(minutes=10),
    )

    assert result.is_ok()
    assert result.value.session_revoked is True


@pytest.mark.asyncio
async def test_logout_with_unusable_session_token(use_case, mock_uow, make_user, origin):
    user = make_user()

    result = await use_case.logout(user.id, user.tenant_id, origin, session_token="garbage")

    assert result.is_ok()
    assert result.value.session_revoked is False
    assert audit_actions(mock_uow) == [("logout", "success")]


@pytest.mark.asyncio
async def test_logout_all(use_case, mock_uow, make_user, user_cache, origin):
    user = make_user()
    mock_uow.sessions.revoke_all_for_user.return_value = 3
    user_cache.entries[user_key(user.id)] = "{}"
    user_cache.entries[f"{user_key(user.id)}:permissions"] = "[]"

    result = await use_case.logout_all(user.id, user.tenant_id, origin)

    assert result.is_ok()
    assert result.value.revoked_count == 3
    mock_uow.sessions.revoke_all_for_user.assert_awaited_once_with(
        user.id, RevocationReason.logout_all
    )
    assert user_cache.entries == {}
    assert audit_actions(mock_uow) == [("logout_all", "success")]


@pytest.mark.asyncio
async def test_logout_all_surfaces_storage_failure(use_case, mock_uow, make_user, origin):
    user = make_user()
    mock_uow.sessions.revoke_all_for_user.side_effect = StorageError("db down")

    with pytest.raises(StorageError):
        await use_case.logout_all(user.id, user.tenant_id, origin)
