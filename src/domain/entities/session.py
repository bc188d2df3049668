"""
Session Entity

Registry record backing one long-lived session credential.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utcnow
from .enums import DeviceType


class Session(SQLModel, table=True):
    """
    Session entity - metadata of an issued session credential.

    Business Rules:
    - session_id is the stable id carried in the credential (sid claim)
    - Only the SHA-256 of the credential is stored
    - Revoked or expired records are never valid
    - Revoked records stay queryable until pruned after expiry
    - Rotation revokes the record and links it to its successor
    """

    __tablename__ = "sessions"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    session_id: str = Field(unique=True, index=True, max_length=64)

    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    tenant_id: Optional[UUID] = Field(default=None, index=True)

    token_hash: str = Field(max_length=64)  # SHA-256 hex

    # Revocation
    revoked: bool = Field(default=False)
    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    revoked_reason: Optional[str] = Field(default=None, max_length=64)
    replaced_by: Optional[str] = Field(default=None, max_length=64)

    # Origin, parsed once at creation
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)
    device_type: DeviceType = Field(default=DeviceType.unknown)
    device_browser: str = Field(default="Unknown", max_length=64)
    device_os: str = Field(default="Unknown", max_length=64)

    # Usage tracking
    last_used_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_used_ip: Optional[str] = Field(default=None, max_length=64)
    usage_count: int = Field(default=1)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))

    __table_args__ = (
        Index("idx_session_expires_at", "expires_at"),
        Index("idx_session_user_revoked", "user_id", "revoked"),
        Index("idx_session_tenant_revoked", "tenant_id", "revoked"),
    )

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return not self.revoked and self.expires_at > (now or utcnow())
