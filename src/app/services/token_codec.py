"""
Token Codec interface.

Signs and verifies every credential the engine hands out. Implementations
are pure: no storage, no clock other than the token's own timestamps.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import UUID

ACCESS_TYPE = "access"
SESSION_TYPE = "session"
ELEVATION_PURPOSE = "2fa-pending"
PASSWORD_RESET_PURPOSE = "password_reset"
EMAIL_VERIFICATION_PURPOSE = "email_verification"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    token_id: str
    expires_at: datetime


@dataclass(frozen=True)
class AccessClaims:
    user_id: UUID
    tenant_id: Optional[UUID]
    role: str
    email: str
    token_id: str
    expires_at: datetime
    session_id: Optional[str] = None


@dataclass(frozen=True)
class SessionClaims:
    user_id: UUID
    tenant_id: Optional[UUID]
    session_id: str
    expires_at: datetime


class ITokenCodec(ABC):
    @abstractmethod
    def issue_access(
        self,
        subject: UUID,
        tenant: Optional[UUID],
        role: str,
        email: str,
        session_id: Optional[str] = None,
    ) -> IssuedToken:
        """Short-lived access credential; raises SigningError"""

    @abstractmethod
    def issue_session(self, subject: UUID, tenant: Optional[UUID]) -> IssuedToken:
        """Long-lived session credential with a fresh session id"""

    @abstractmethod
    def verify_access(self, token: str) -> AccessClaims:
        """Raises TokenExpired, TokenMalformed or WrongTokenType"""

    @abstractmethod
    def verify_session(self, token: str) -> SessionClaims:
        """Raises TokenExpired, TokenMalformed or WrongTokenType"""

    @abstractmethod
    def issue_single_use(
        self,
        subject: UUID,
        purpose: str,
        extra: Optional[Dict[str, Any]] = None,
        ttl: Optional[timedelta] = None,
    ) -> str:
        """Purpose-bound credential (password reset, email verification)"""

    @abstractmethod
    def verify_single_use(self, token: str, expected_purpose: str) -> Dict[str, Any]:
        """Raises TokenExpired, TokenMalformed or WrongPurpose"""

    @abstractmethod
    def issue_elevation(self, subject: UUID, ttl: Optional[timedelta] = None) -> str:
        """Proof of first-factor success, valid only for the second-factor step"""

    @abstractmethod
    def verify_elevation(self, token: str) -> UUID:
        """Returns the subject; raises TokenExpired, TokenMalformed or WrongPurpose"""
