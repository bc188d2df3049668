"""
Logout Use Case

Ends one session or every session of a user.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.libs.result import Result, Return
from src.app.services.access_revocation import IAccessRevocationRegistry
from src.app.services.token_codec import ITokenCodec
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.domain.base import utcnow
from src.domain.entities import RevocationReason
from src.domain.exceptions import RevocationRegistryUnavailable, StorageError, TokenError
from .dtos import LogoutAllResponse, LogoutResponse, RequestOrigin
from .session_support import invalidate_user_cache, record_audit

logger = logging.getLogger(__name__)


class LogoutUseCase:
    """
    Use case for logout and logout-all.

    Business Rules:
    - logout never fails: revoking the session and blacklisting the access
      credential are both best-effort, logged, and independent
    - Only the caller's own session can be ended by logout
    - logout_all revokes every session of the user and drops every cached
      projection key of the user
    """

    def __init__(
        self,
        uow: UnitOfWork,
        codec: ITokenCodec,
        revocations: IAccessRevocationRegistry,
        user_cache: Optional[IUserCache] = None,
    ):
        self.uow = uow
        self.codec = codec
        self.revocations = revocations
        self.user_cache = user_cache

    async def logout(
        self,
        user_id: UUID,
        tenant_id: Optional[UUID],
        origin: RequestOrigin,
        session_token: Optional[str] = None,
        session_id: Optional[str] = None,
        access_jti: Optional[str] = None,
        access_expires_at: Optional[datetime] = None,
    ) -> Result[LogoutResponse]:
        """
        Execute logout.

        Args:
            user_id: Authenticated user
            tenant_id: Tenant of the access credential
            origin: Caller address and user agent
            session_token: Session credential to end, if the client sent it
            session_id: Session id from the access credential, used when no
                session credential was sent
            access_jti: Id of the access credential to blacklist
            access_expires_at: Natural expiry of that access credential

        Returns:
            Result with LogoutResponse; always ok
        """
        if session_token:
            try:
                claims = self.codec.verify_session(session_token)
                if claims.user_id == user_id:
                    session_id = claims.session_id
            except TokenError as exc:
                logger.info(f"Logout with unusable session credential: {exc.code}")

        revoked = await self._revoke_session(user_id, tenant_id, session_id, origin)
        await self._blacklist_access(access_jti, access_expires_at)
        await invalidate_user_cache(self.user_cache, user_id)

        return Return.ok(LogoutResponse(status="logged_out", session_revoked=revoked))

    async def logout_all(
        self,
        user_id: UUID,
        tenant_id: Optional[UUID],
        origin: RequestOrigin,
        access_jti: Optional[str] = None,
        access_expires_at: Optional[datetime] = None,
    ) -> Result[LogoutAllResponse]:
        """
        Revoke every session of the user.

        Returns:
            Result with the number of sessions revoked
        """
        async with self.uow:
            count = await self.uow.sessions.revoke_all_for_user(
                user_id, RevocationReason.logout_all
            )
            await record_audit(
                self.uow,
                "logout_all",
                origin,
                user_id=user_id,
                tenant_id=tenant_id,
                revoked_count=count,
            )
            await self.uow.commit()

        await self._blacklist_access(access_jti, access_expires_at)
        await invalidate_user_cache(self.user_cache, user_id, everything=True)
        logger.info(f"User {user_id} logged out of {count} sessions")

        return Return.ok(LogoutAllResponse(status="logged_out", revoked_count=count))

    async def _revoke_session(
        self,
        user_id: UUID,
        tenant_id: Optional[UUID],
        session_id: Optional[str],
        origin: RequestOrigin,
    ) -> bool:
        revoked = False
        try:
            async with self.uow:
                if session_id:
                    record = await self.uow.sessions.get_by_session_id(
                        session_id, include_invalid=True
                    )
                    if record is not None and record.user_id == user_id:
                        revoked = await self.uow.sessions.revoke(
                            session_id, RevocationReason.logout
                        )
                await record_audit(
                    self.uow,
                    "logout",
                    origin,
                    user_id=user_id,
                    tenant_id=tenant_id,
                    session_id=session_id,
                    session_revoked=revoked,
                )
                await self.uow.commit()
        except StorageError:
            logger.warning(f"Session revoke failed during logout of user {user_id}", exc_info=True)
            return False
        return revoked

    async def _blacklist_access(
        self, access_jti: Optional[str], access_expires_at: Optional[datetime]
    ) -> None:
        if not access_jti or access_expires_at is None:
            return
        try:
            await self.revocations.blacklist(access_jti, access_expires_at - utcnow())
        except RevocationRegistryUnavailable:
            logger.warning(f"Could not blacklist access token {access_jti}", exc_info=True)
