from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.storage import storage_errors
from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.domain.entities import AuditEvent


class AuditEventRepository(IAuditEventRepository):
    """AuditEvent repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        async with storage_errors("audit write"):
            self.session.add(audit_event)
            await self.session.flush()
        return audit_event
