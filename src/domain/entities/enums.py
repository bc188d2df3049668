"""
Auth Service Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class UserStatus(str, Enum):
    """User account status"""

    active = "active"
    disabled = "disabled"


class TenantStatus(str, Enum):
    """Tenant status"""

    active = "active"
    suspended = "suspended"


class UserRole(str, Enum):
    """User role; super_admin is the only role without a tenant"""

    super_admin = "super_admin"
    org_admin = "org_admin"
    shop_admin = "shop_admin"
    manager = "manager"
    staff = "staff"
    accountant = "accountant"
    viewer = "viewer"


class DeviceType(str, Enum):
    """Device class parsed from a user agent"""

    mobile = "mobile"
    tablet = "tablet"
    desktop = "desktop"
    unknown = "unknown"


class RevocationReason(str, Enum):
    """Why a session record was revoked"""

    logout = "logout"
    logout_all = "logout_all"
    rotated = "rotated"
    revoked_by_user = "revoked_by_user"
    tenant_revoked = "tenant_revoked"
    password_changed = "password_changed"
    password_reset = "password_reset"
    reuse_detected = "reuse_detected"


class AuditStatus(str, Enum):
    """Outcome recorded on an audit event"""

    success = "success"
    failed = "failed"
