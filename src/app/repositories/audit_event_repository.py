from abc import ABC, abstractmethod

from src.domain.entities import AuditEvent


class IAuditEventRepository(ABC):
    """Append-only audit trail of authentication outcomes"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Stage an event; it is written with the surrounding commit"""
        pass
