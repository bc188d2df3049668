"""
User Entity

Credential record of a person: password, second factor and backup codes.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from src.domain.base import utcnow
from .enums import UserRole, UserStatus


class User(SQLModel, table=True):
    """
    User entity - credential record of a person within one tenant.

    Business Rules:
    - Email must be unique across all users
    - Password stored as bcrypt hash (cost factor 12)
    - tenant_id is null only for super admins
    - two_factor_secret is set while 2FA is enabled or pending activation
    - backup_codes_used is always a subset of backup_code_hashes
    - Second-factor fields change only through a version-checked write
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=60)  # Bcrypt output is 60 chars

    status: UserStatus = Field(default=UserStatus.active)
    role: UserRole = Field(default=UserRole.viewer)
    tenant_id: Optional[UUID] = Field(default=None, foreign_key="tenants.id", index=True)

    # Second factor
    two_factor_enabled: bool = Field(default=False)
    two_factor_secret: Optional[str] = Field(default=None, max_length=64)
    backup_code_hashes: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    backup_codes_used: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    # Bumped on every second-factor write; guards concurrent backup code use
    second_factor_version: int = Field(default=0)

    # Single-use credentials (SHA-256 of the outstanding token)
    email_verified: bool = Field(default=False)
    email_verification_token_hash: Optional[str] = Field(default=None, max_length=64)
    password_reset_token_hash: Optional[str] = Field(default=None, max_length=64)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    last_login_ip: Optional[str] = Field(default=None, max_length=64)

    __table_args__ = (Index("idx_user_tenant_status", "tenant_id", "status"),)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active
