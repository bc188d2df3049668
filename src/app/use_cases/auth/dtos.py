"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for auth domain.
Provides type safety and clear contracts between layers.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


# ============================================================================
# Commands
# ============================================================================


class RequestOrigin(BaseModel):
    """Where a request came from; recorded on sessions and audit events"""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


# ============================================================================
# Response DTOs
# ============================================================================


class LoginResponse(BaseModel):
    """Issued credentials after a complete login"""

    access_token: str
    session_token: str
    session_id: str
    token_type: str = "bearer"
    expires_in: int
    remaining_backup_codes: Optional[int] = None


class SecondFactorRequiredResponse(BaseModel):
    """Password accepted; the second factor must be presented next"""

    requires_second_factor: bool = True
    elevation_token: str
    expires_in: int


class RefreshTokenResponse(BaseModel):
    """Response for refresh token use case"""

    access_token: str
    session_token: str
    session_id: str
    token_type: str = "bearer"
    expires_in: int
    rotated: bool


class LogoutResponse(BaseModel):
    status: str
    session_revoked: bool


class LogoutAllResponse(BaseModel):
    status: str
    revoked_count: int


class ChangePasswordResponse(BaseModel):
    status: str
    sessions_revoked: int


class VerifyEmailResponse(BaseModel):
    """Response for email verification use case"""

    status: str
    message: str


class RequestEmailVerificationResponse(BaseModel):
    status: str
    message: str


class RequestPasswordResetResponse(BaseModel):
    """Response for request password reset use case"""

    status: str
    message: str


class ConfirmPasswordResetResponse(BaseModel):
    """Response for confirm password reset use case"""

    status: str
    message: str
    sessions_revoked: int


# ============================================================================
# Session listing
# ============================================================================


class SessionInfo(BaseModel):
    """One row of the active-session list"""

    id: str
    device: str
    device_type: str
    browser: str
    os: str
    ip_address: Optional[str] = None
    last_used: datetime
    created_at: datetime
    expires_at: datetime
    is_current: bool


class RevokeSessionResponse(BaseModel):
    session_id: str
    revoked: bool


class RevokeTenantSessionsResponse(BaseModel):
    tenant_id: str
    revoked_count: int


class PruneSessionsResponse(BaseModel):
    deleted_count: int
    cutoff: datetime


# ============================================================================
# Second factor
# ============================================================================


class TwoFactorStatusResponse(BaseModel):
    enabled: bool
    pending: bool
    remaining_backup_codes: int


class TwoFactorSetupResponse(BaseModel):
    secret: str
    provisioning_uri: str


class TwoFactorActivateResponse(BaseModel):
    enabled: bool
    backup_codes: List[str]


class TwoFactorDisableResponse(BaseModel):
    enabled: bool
