from typing import Optional
from uuid import UUID

from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.storage import storage_errors
from src.app.repositories.tenant_repository import ITenantRepository
from src.domain.entities import Tenant


class TenantRepository(ITenantRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, tenant_id: UUID) -> Optional[Tenant]:
        async with storage_errors("tenant lookup"):
            return await self.session.get(Tenant, tenant_id)
