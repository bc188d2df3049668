from abc import ABC, abstractmethod
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from src.domain.entities import RevocationReason, Session


class ISessionRepository(ABC):
    """Session registry interface - application layer"""

    @abstractmethod
    async def create(self, session: Session) -> Session:
        """Persist a new session record"""
        pass

    @abstractmethod
    async def find_valid(self, session_id: str) -> Optional[Session]:
        """Get a session that is neither revoked nor expired"""
        pass

    @abstractmethod
    async def get_by_session_id(
        self, session_id: str, include_invalid: bool = False
    ) -> Optional[Session]:
        """Get a session by its stable id, optionally including revoked/expired ones"""
        pass

    @abstractmethod
    async def list_for_user(
        self, user_id: UUID, include_invalid: bool = False
    ) -> List[Session]:
        """Get a user's sessions, newest first"""
        pass

    @abstractmethod
    async def touch(self, session: Session, ip_address: Optional[str]) -> None:
        """Record a use of the session: usage counter and last-used fields"""
        pass

    @abstractmethod
    async def revoke(self, session_id: str, reason: RevocationReason) -> bool:
        """Revoke one session. Returns False if it was already revoked or unknown."""
        pass

    @abstractmethod
    async def rotate(
        self, session_id: str, replacement: Session, reason: RevocationReason
    ) -> Session:
        """
        Revoke session_id iff it is still valid, then persist replacement.

        Raises SessionAlreadyRotated when the conditional revoke matches nothing.
        """
        pass

    @abstractmethod
    async def revoke_all_for_user(self, user_id: UUID, reason: RevocationReason) -> int:
        """Revoke all active sessions of a user. Returns count of revoked sessions."""
        pass

    @abstractmethod
    async def revoke_all_for_tenant(
        self, tenant_id: Optional[UUID], reason: RevocationReason
    ) -> int:
        """Revoke all active sessions of a tenant. Raises ValidationError for None."""
        pass

    @abstractmethod
    async def prune(self, retention: timedelta) -> int:
        """Delete sessions that expired more than `retention` ago. Returns count."""
        pass
