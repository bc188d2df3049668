"""
Prune Sessions Use Case

Storage hygiene: expired records are already invalid, this only deletes
them once they are older than the retention window.
"""

import logging
from datetime import timedelta
from typing import Optional

from config import AuthSettings
from src.libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth.dtos import PruneSessionsResponse
from src.domain.base import utcnow

logger = logging.getLogger(__name__)


class PruneSessionsUseCase:
    def __init__(self, uow: UnitOfWork, settings: AuthSettings):
        self.uow = uow
        self.settings = settings

    async def execute(self, retention_days: Optional[int] = None) -> Result[PruneSessionsResponse]:
        if retention_days is not None and retention_days < 0:
            return Return.err(Error("VALIDATION_ERROR", "retention_days must not be negative"))

        retention = (
            timedelta(days=retention_days)
            if retention_days is not None
            else self.settings.session_retention
        )

        async with self.uow:
            deleted = await self.uow.sessions.prune(retention)
            await self.uow.commit()

        logger.info(f"Pruned {deleted} expired sessions")
        return Return.ok(PruneSessionsResponse(deleted_count=deleted, cutoff=utcnow() - retention))
