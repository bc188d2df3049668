from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.session_repository import ISessionRepository
from src.domain.base import utcnow
from src.domain.entities import RevocationReason, Session
from src.domain.exceptions import SessionAlreadyRotated, ValidationError
from src.adapter.repositories.storage import storage_errors


class SessionRepository(ISessionRepository):
    """Session registry implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, session_obj: Session) -> Session:
        """Persist a new session record"""
        async with storage_errors("create"):
            self.session.add(session_obj)
            await self.session.flush()
            await self.session.refresh(session_obj)
        return session_obj

    async def find_valid(self, session_id: str) -> Optional[Session]:
        """Get a session that is neither revoked nor expired"""
        return await self.get_by_session_id(session_id, include_invalid=False)

    async def get_by_session_id(
        self, session_id: str, include_invalid: bool = False
    ) -> Optional[Session]:
        """Get a session by its stable id"""
        stmt = (
            select(Session)
            .where(Session.session_id == session_id)
            .execution_options(populate_existing=True)
        )
        if not include_invalid:
            stmt = stmt.where(Session.revoked == False, Session.expires_at > utcnow())
        async with storage_errors("lookup"):
            result = await self.session.exec(stmt)
            return result.one_or_none()

    async def list_for_user(
        self, user_id: UUID, include_invalid: bool = False
    ) -> List[Session]:
        """Get a user's sessions, newest first"""
        stmt = (
            select(Session)
            .where(Session.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if not include_invalid:
            stmt = stmt.where(Session.revoked == False, Session.expires_at > utcnow())
        stmt = stmt.order_by(Session.created_at.desc())
        async with storage_errors("list"):
            result = await self.session.exec(stmt)
            return list(result.all())

    async def touch(self, session_obj: Session, ip_address: Optional[str]) -> None:
        """Increment usage counter and update last-used fields in one statement"""
        values = {
            "usage_count": Session.usage_count + 1,
            "last_used_at": utcnow(),
        }
        if ip_address:
            values["last_used_ip"] = ip_address
        stmt = (
            update(Session)
            .where(Session.session_id == session_obj.session_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        async with storage_errors("touch"):
            await self.session.execute(stmt)
            await self.session.flush()

    async def revoke(self, session_id: str, reason: RevocationReason) -> bool:
        """Revoke a specific session; already revoked is a no-op"""
        stmt = (
            update(Session)
            .where(Session.session_id == session_id, Session.revoked == False)
            .values(revoked=True, revoked_at=utcnow(), revoked_reason=reason.value)
            .execution_options(synchronize_session=False)
        )
        async with storage_errors("revoke"):
            result = await self.session.execute(stmt)
            await self.session.flush()
        return result.rowcount > 0

    async def rotate(
        self, session_id: str, replacement: Session, reason: RevocationReason
    ) -> Session:
        """
        Revoke-then-create as one observable transition.

        The conditional UPDATE only matches a still-valid record, so of two
        racing rotations exactly one sees rowcount == 1.
        """
        now = utcnow()
        stmt = (
            update(Session)
            .where(
                Session.session_id == session_id,
                Session.revoked == False,
                Session.expires_at > now,
            )
            .values(
                revoked=True,
                revoked_at=now,
                revoked_reason=reason.value,
                replaced_by=replacement.session_id,
            )
            .execution_options(synchronize_session=False)
        )
        async with storage_errors("rotate"):
            result = await self.session.execute(stmt)
            if result.rowcount == 0:
                raise SessionAlreadyRotated(f"Session {session_id} is no longer valid")
            self.session.add(replacement)
            await self.session.flush()
            await self.session.refresh(replacement)
        return replacement

    async def revoke_all_for_user(self, user_id: UUID, reason: RevocationReason) -> int:
        """Revoke all active sessions for a user"""
        stmt = (
            update(Session)
            .where(Session.user_id == user_id, Session.revoked == False)
            .values(revoked=True, revoked_at=utcnow(), revoked_reason=reason.value)
            .execution_options(synchronize_session=False)
        )
        async with storage_errors("revoke_all_for_user"):
            result = await self.session.execute(stmt)
            await self.session.flush()
        return result.rowcount

    async def revoke_all_for_tenant(
        self, tenant_id: Optional[UUID], reason: RevocationReason
    ) -> int:
        """Revoke all active sessions for a tenant"""
        if tenant_id is None:
            raise ValidationError(
                "Tenant id is required; super admin sessions are not tenant-scoped"
            )
        stmt = (
            update(Session)
            .where(Session.tenant_id == tenant_id, Session.revoked == False)
            .values(revoked=True, revoked_at=utcnow(), revoked_reason=reason.value)
            .execution_options(synchronize_session=False)
        )
        async with storage_errors("revoke_all_for_tenant"):
            result = await self.session.execute(stmt)
            await self.session.flush()
        return result.rowcount

    async def prune(self, retention: timedelta) -> int:
        """Delete sessions whose expiry is older than now - retention"""
        cutoff = utcnow() - retention
        stmt = (
            delete(Session)
            .where(Session.expires_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        async with storage_errors("prune"):
            result = await self.session.execute(stmt)
            await self.session.flush()
        return result.rowcount
