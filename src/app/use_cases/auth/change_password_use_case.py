"""
Change Password Use Case
"""

import logging
from typing import Optional
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.domain.entities import AuditStatus, RevocationReason
from src.domain.exceptions import InvalidCredentials
from src.domain.passwords import hash_password, validate_password, verify_password
from .dtos import ChangePasswordResponse, RequestOrigin
from .session_support import invalidate_user_cache, record_audit

logger = logging.getLogger(__name__)


class ChangePasswordUseCase:
    """
    Business Rules:
    - Current password must be presented; a wrong one is audited as failed
    - New password must be at least 8 characters
    - Every session of the user is revoked, including the caller's
    """

    def __init__(self, uow: UnitOfWork, user_cache: Optional[IUserCache] = None):
        self.uow = uow
        self.user_cache = user_cache

    async def execute(
        self,
        user_id: UUID,
        current_password: str,
        new_password: str,
        origin: RequestOrigin,
    ) -> Result[ChangePasswordResponse]:
        if not validate_password(new_password):
            return Return.err(
                Error("INVALID_PASSWORD", "Password must be at least 8 characters long")
            )

        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            if not verify_password(current_password, user.password_hash):
                await record_audit(
                    self.uow,
                    "password_change",
                    origin,
                    user_id=user.id,
                    tenant_id=user.tenant_id,
                    status=AuditStatus.failed,
                    reason="wrong_password",
                )
                await self.uow.commit()
                logger.warning(f"Password change rejected for user {user.id}")
                return Return.err(
                    Error(InvalidCredentials.code, "Current password is incorrect")
                )

            user.password_hash = hash_password(new_password)
            await self.uow.users.update(user)

            revoked = await self.uow.sessions.revoke_all_for_user(
                user.id, RevocationReason.password_changed
            )
            await record_audit(
                self.uow,
                "password_change",
                origin,
                user_id=user.id,
                tenant_id=user.tenant_id,
                sessions_revoked=revoked,
            )
            await self.uow.commit()

        await invalidate_user_cache(self.user_cache, user_id, everything=True)
        return Return.ok(ChangePasswordResponse(status="success", sessions_revoked=revoked))
