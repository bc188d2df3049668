"""
Role -> capability lookup.

Static configuration consumed as a pure function; the full business
permission matrix lives with the shop and inventory modules.
"""

from typing import FrozenSet

from src.domain.entities.enums import UserRole

SESSIONS_READ_OWN = "sessions:read_own"
SESSIONS_REVOKE_OWN = "sessions:revoke_own"
SESSIONS_REVOKE_TENANT = "sessions:revoke_tenant"
USERS_MANAGE = "users:manage"
TENANTS_MANAGE = "tenants:manage"

_BASE = frozenset({SESSIONS_READ_OWN, SESSIONS_REVOKE_OWN})

ROLE_CAPABILITIES = {
    UserRole.super_admin: _BASE | {SESSIONS_REVOKE_TENANT, USERS_MANAGE, TENANTS_MANAGE},
    UserRole.org_admin: _BASE | {SESSIONS_REVOKE_TENANT, USERS_MANAGE},
    UserRole.shop_admin: _BASE | {USERS_MANAGE},
    UserRole.manager: _BASE,
    UserRole.staff: _BASE,
    UserRole.accountant: _BASE,
    UserRole.viewer: _BASE,
}


def capabilities_for(role: str) -> FrozenSet[str]:
    try:
        return ROLE_CAPABILITIES[UserRole(role)]
    except ValueError:
        return frozenset()


def has_capability(role: str, capability: str) -> bool:
    return capability in capabilities_for(role)
