"""
Manage Sessions Use Case

Session list for the "signed-in devices" screen, sign-out of a single
device and tenant-wide revocation.
"""

import logging
from typing import List, Optional
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.app.use_cases.auth.dtos import (
    RequestOrigin,
    RevokeSessionResponse,
    RevokeTenantSessionsResponse,
    SessionInfo,
)
from src.app.use_cases.auth.session_support import invalidate_user_cache, record_audit
from src.domain.device import DeviceInfo
from src.domain.entities import RevocationReason, Session
from src.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)


def to_session_info(session: Session, current_session_id: Optional[str]) -> SessionInfo:
    device = DeviceInfo(session.device_type, session.device_browser, session.device_os)
    return SessionInfo(
        id=session.session_id,
        device=device.describe(),
        device_type=session.device_type.value,
        browser=session.device_browser,
        os=session.device_os,
        ip_address=session.last_used_ip or session.ip_address,
        last_used=session.last_used_at,
        created_at=session.created_at,
        expires_at=session.expires_at,
        is_current=session.session_id == current_session_id,
    )


class ManageSessionsUseCase:
    """
    Business Rules:
    - Users can only see and revoke their own sessions; someone else's
      session id is reported as not found
    - Revoking an already revoked session succeeds (idempotent)
    - Tenant-wide revocation requires a tenant; super admin sessions are
      not tenant-scoped
    - Every revocation is audit-logged
    """

    def __init__(self, uow: UnitOfWork, user_cache: Optional[IUserCache] = None):
        self.uow = uow
        self.user_cache = user_cache

    async def list_active_sessions(
        self, user_id: UUID, current_session_id: Optional[str] = None
    ) -> Result[List[SessionInfo]]:
        async with self.uow:
            sessions = await self.uow.sessions.list_for_user(user_id)
            return Return.ok([to_session_info(s, current_session_id) for s in sessions])

    async def revoke_session(
        self,
        user_id: UUID,
        tenant_id: Optional[UUID],
        session_id: str,
        origin: RequestOrigin,
    ) -> Result[RevokeSessionResponse]:
        async with self.uow:
            record = await self.uow.sessions.get_by_session_id(session_id, include_invalid=True)
            if record is None or record.user_id != user_id:
                return Return.err(Error("SESSION_NOT_FOUND", "Session not found"))

            revoked = await self.uow.sessions.revoke(session_id, RevocationReason.revoked_by_user)

            await record_audit(
                self.uow,
                "revoke_session",
                origin,
                user_id=user_id,
                tenant_id=tenant_id,
                session_id=session_id,
                already_revoked=not revoked,
            )
            await self.uow.commit()

        await invalidate_user_cache(self.user_cache, user_id)
        return Return.ok(RevokeSessionResponse(session_id=session_id, revoked=revoked))

    async def revoke_tenant_sessions(
        self,
        tenant_id: Optional[UUID],
        actor_id: Optional[UUID],
        origin: Optional[RequestOrigin] = None,
    ) -> Result[RevokeTenantSessionsResponse]:
        async with self.uow:
            try:
                count = await self.uow.sessions.revoke_all_for_tenant(
                    tenant_id, RevocationReason.tenant_revoked
                )
            except ValidationError as exc:
                return Return.err(Error(exc.code, exc.message))

            await record_audit(
                self.uow,
                "revoke_tenant_sessions",
                origin,
                user_id=actor_id,
                tenant_id=tenant_id,
                revoked_count=count,
            )
            await self.uow.commit()

        logger.info(f"Revoked {count} sessions of tenant {tenant_id}")
        return Return.ok(
            RevokeTenantSessionsResponse(tenant_id=str(tenant_id), revoked_count=count)
        )
