"""
Auth Service Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    AuditStatus,
    DeviceType,
    RevocationReason,
    TenantStatus,
    UserRole,
    UserStatus,
)

# Export all entities
from .user import User
from .tenant import Tenant
from .session import Session
from .audit_event import AuditEvent

__all__ = [
    # Enums
    "AuditStatus",
    "DeviceType",
    "RevocationReason",
    "TenantStatus",
    "UserRole",
    "UserStatus",
    # Entities
    "User",
    "Tenant",
    "Session",
    "AuditEvent",
]
