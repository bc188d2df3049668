from datetime import timedelta
from typing import Optional
from uuid import UUID, uuid4

import pytest
from unittest.mock import AsyncMock, MagicMock

from config import AuthSettings
from src.adapter.services.access_revocation import InMemoryAccessRevocationRegistry
from src.adapter.services.token_codec import JoseTokenCodec
from src.adapter.services.totp_verifier import TotpSecondFactorVerifier
from src.adapter.services.user_cache import InMemoryUserCache
from src.app.use_cases.auth import RequestOrigin
from src.domain.entities import Tenant, User, UserRole, UserStatus
from src.domain.passwords import hash_password
from tests.fixtures.helpers import PASSWORD

# Hashed once per test run; bcrypt at cost 12 is slow
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.users = MagicMock()
    uow.users.get_by_email = AsyncMock(return_value=None)
    uow.users.get_by_id = AsyncMock(return_value=None)
    uow.users.update = AsyncMock(side_effect=lambda user: user)

    async def save_second_factor(user, expected_version):
        user.second_factor_version = expected_version + 1
        return True

    uow.users.save_second_factor = AsyncMock(side_effect=save_second_factor)

    uow.tenants = MagicMock()
    uow.tenants.get_by_id = AsyncMock(return_value=None)

    uow.sessions = MagicMock()
    uow.sessions.create = AsyncMock(side_effect=lambda session: session)
    uow.sessions.find_valid = AsyncMock(return_value=None)
    uow.sessions.get_by_session_id = AsyncMock(return_value=None)
    uow.sessions.list_for_user = AsyncMock(return_value=[])
    uow.sessions.touch = AsyncMock()
    uow.sessions.revoke = AsyncMock(return_value=True)
    uow.sessions.rotate = AsyncMock(side_effect=lambda sid, replacement, reason: replacement)
    uow.sessions.revoke_all_for_user = AsyncMock(return_value=0)
    uow.sessions.revoke_all_for_tenant = AsyncMock(return_value=0)
    uow.sessions.prune = AsyncMock(return_value=0)

    uow.audit_events = MagicMock()
    uow.audit_events.create = AsyncMock(side_effect=lambda event: event)
    return uow


@pytest.fixture
def settings():
    return AuthSettings(
        access_secret="unit-access-secret",
        session_secret="unit-session-secret",
        issuer="tenant-auth",
        audience="tenant-auth-users",
        access_ttl=timedelta(minutes=15),
        session_ttl=timedelta(days=7),
        elevation_ttl=timedelta(minutes=5),
    )


@pytest.fixture
def codec(settings):
    return JoseTokenCodec(settings)


@pytest.fixture
def verifier():
    return TotpSecondFactorVerifier("Tenant Auth")


@pytest.fixture
def revocations():
    return InMemoryAccessRevocationRegistry()


@pytest.fixture
def user_cache():
    return InMemoryUserCache()


@pytest.fixture
def origin():
    return RequestOrigin(
        ip_address="203.0.113.7",
        user_agent=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
    )


@pytest.fixture
def tenant():
    return Tenant(id=uuid4(), name="Acme Corp")


@pytest.fixture
def make_user(tenant):
    def _make(
        email: str = "user@acme.com",
        status: UserStatus = UserStatus.active,
        role: UserRole = UserRole.staff,
        tenant_id: Optional[UUID] = None,
    ) -> User:
        return User(
            id=uuid4(),
            email=email,
            password_hash=PASSWORD_HASH,
            status=status,
            role=role,
            tenant_id=tenant_id or tenant.id,
            backup_code_hashes=[],
            backup_codes_used=[],
            second_factor_version=0,
        )

    return _make

