"""
Refresh Token Use Case

Exchanges a session credential for a fresh access credential, rotating
the session credential when rotation is enabled.
"""

import hmac
import logging
from datetime import timedelta
from typing import Optional

from config import AuthSettings
from src.libs.result import Error, Result, Return
from src.app.services.token_codec import ITokenCodec
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import AuditStatus, RevocationReason, Session
from src.domain.exceptions import (
    AccountDisabled,
    SessionAlreadyRotated,
    SessionInvalid,
    StorageError,
    TenantInactive,
    TokenError,
)
from .dtos import RefreshTokenResponse, RequestOrigin
from .session_support import (
    build_session_record,
    hash_token,
    record_audit,
    seconds_until,
)

logger = logging.getLogger(__name__)

# A rotated credential presented again within this window is treated as a
# lost race between two tabs; later than that, as a stolen credential.
ROTATION_REUSE_GRACE = timedelta(seconds=30)


class RefreshTokenUseCase:
    """
    Use case for refreshing access credentials.

    Business Rules:
    - Not found, expired, revoked and hash mismatch are one error
      (SESSION_INVALID)
    - User must still be active and tenant still active
    - Rotation revokes the old record and creates its successor in one
      conditional update; a racing duplicate gets SESSION_ALREADY_ROTATED
    - Presenting a credential that was already rotated is audited as
      session reuse; outside the grace window every session of the user
      is revoked
    - Without rotation the session id is kept and only usage is tracked
    """

    def __init__(self, uow: UnitOfWork, codec: ITokenCodec, settings: AuthSettings):
        self.uow = uow
        self.codec = codec
        self.settings = settings

    async def execute(
        self, session_token: str, origin: RequestOrigin
    ) -> Result[RefreshTokenResponse]:
        """
        Execute refresh token use case.

        Args:
            session_token: Session credential issued at login or last refresh
            origin: Caller address and user agent

        Returns:
            Result with RefreshTokenResponse containing new credentials, or Error
        """
        try:
            claims = self.codec.verify_session(session_token)
        except TokenError as exc:
            logger.info(f"Refresh rejected: {exc.code}")
            return self._invalid()

        async with self.uow:
            record = await self.uow.sessions.get_by_session_id(
                claims.session_id, include_invalid=True
            )

            if (
                record is None
                or record.user_id != claims.user_id
                or not hmac.compare_digest(record.token_hash, hash_token(session_token))
            ):
                return self._invalid()

            if record.revoked and record.revoked_reason == RevocationReason.rotated.value:
                return await self._reuse_detected(record, origin)

            if not record.is_valid():
                return self._invalid()

            user = await self.uow.users.get_by_id(record.user_id)
            if user is None:
                return self._invalid()
            if not user.is_active:
                return Return.err(Error(AccountDisabled.code, "User account is disabled"))

            if user.tenant_id is not None:
                tenant = await self.uow.tenants.get_by_id(user.tenant_id)
                if tenant is None or not tenant.is_active():
                    return Return.err(
                        Error(
                            TenantInactive.code,
                            "Organization is inactive or subscription has expired",
                        )
                    )

            if self.settings.rotate_session_on_refresh:
                successor = self.codec.issue_session(user.id, record.tenant_id)
                replacement = build_session_record(
                    successor, user.id, record.tenant_id, origin
                )
                try:
                    await self.uow.sessions.rotate(
                        record.session_id, replacement, RevocationReason.rotated
                    )
                except SessionAlreadyRotated:
                    logger.warning(f"Concurrent refresh lost race for session {record.session_id}")
                    return Return.err(
                        Error(SessionAlreadyRotated.code, "Session was already refreshed")
                    )
                session_token, session_id = successor.token, successor.token_id
            else:
                session_id = record.session_id

            access = self.codec.issue_access(
                user.id, record.tenant_id, user.role.value, user.email, session_id=session_id
            )

            await record_audit(
                self.uow,
                "token_refresh",
                origin,
                user_id=user.id,
                tenant_id=record.tenant_id,
                session_id=session_id,
                previous_session_id=record.session_id,
            )
            await self.uow.commit()

            rotated = session_id != record.session_id
            if not rotated:
                await self._track_usage(record, origin.ip_address)

            return Return.ok(
                RefreshTokenResponse(
                    access_token=access.token,
                    session_token=session_token,
                    session_id=session_id,
                    expires_in=seconds_until(access),
                    rotated=rotated,
                )
            )

    async def _track_usage(self, record: Session, ip_address: Optional[str]) -> None:
        """Usage counters are bookkeeping; failing here must not fail the refresh"""
        try:
            await self.uow.sessions.touch(record, ip_address)
            await self.uow.commit()
        except StorageError:
            logger.warning(
                f"Usage tracking failed for session {record.session_id}", exc_info=True
            )
            await self.uow.rollback()

    async def _reuse_detected(self, record: Session, origin: RequestOrigin) -> Result:
        revoked_count = 0
        within_grace = (
            record.revoked_at is not None
            and utcnow() - record.revoked_at <= ROTATION_REUSE_GRACE
        )
        if not within_grace:
            revoked_count = await self.uow.sessions.revoke_all_for_user(
                record.user_id, RevocationReason.reuse_detected
            )

        await record_audit(
            self.uow,
            "session_reuse_detected",
            origin,
            user_id=record.user_id,
            tenant_id=record.tenant_id,
            status=AuditStatus.failed,
            session_id=record.session_id,
            replaced_by=record.replaced_by,
            sessions_revoked=revoked_count,
        )
        await self.uow.commit()
        logger.warning(
            f"Rotated session {record.session_id} presented again from "
            f"{origin.ip_address}; revoked {revoked_count} sessions"
        )
        return Return.err(
            Error(SessionAlreadyRotated.code, "Session was already refreshed")
        )

    @staticmethod
    def _invalid() -> Result:
        return Return.err(Error(SessionInvalid.code, "Invalid or expired session"))
