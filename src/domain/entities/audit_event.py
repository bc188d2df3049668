"""
AuditEvent Entity

Immutable log of all authentication events.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from src.domain.base import utcnow
from .enums import AuditStatus


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - immutable log of all authentication events.

    Business Rules:
    - Immutable (never updated or deleted)
    - tenant_id and user_id are nullable (unknown email, super admins)
    - Failed credential checks are always recorded with reason and origin
    """

    __tablename__ = "audit_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    tenant_id: Optional[UUID] = Field(default=None, index=True)
    user_id: Optional[UUID] = Field(default=None, index=True)

    action: str = Field(max_length=100)  # e.g., "login", "logout_all"
    status: AuditStatus = Field(default=AuditStatus.success)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    event_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
        Index("idx_audit_tenant_action", "tenant_id", "action"),
        Index("idx_audit_user_status", "user_id", "status"),
    )
