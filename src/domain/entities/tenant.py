"""
Tenant Entity

Organization scope that users and sessions belong to. Only its active
status is consulted by the auth engine.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow
from .enums import TenantStatus


class Tenant(SQLModel, table=True):
    """
    Tenant entity - isolated workspace for organizations.

    Business Rules:
    - Suspension blocks login and refresh for every member
    - An expired subscription blocks login and refresh
    """

    __tablename__ = "tenants"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=255)

    status: TenantStatus = Field(default=TenantStatus.active)
    subscription_ends_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (Index("idx_tenant_status", "status"),)

    def is_active(self, now: Optional[datetime] = None) -> bool:
        if self.status != TenantStatus.active:
            return False
        if self.subscription_ends_at is None:
            return True
        return self.subscription_ends_at > (now or utcnow())
