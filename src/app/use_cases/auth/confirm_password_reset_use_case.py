"""
Confirm Password Reset Use Case

Handles password reset confirmation with secure token validation.
"""

import hmac
import logging
from typing import Optional
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.token_codec import PASSWORD_RESET_PURPOSE, ITokenCodec
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.domain.entities import RevocationReason
from src.domain.exceptions import AlreadyUsed, TokenError
from src.domain.passwords import hash_password, validate_password
from .dtos import ConfirmPasswordResetResponse, RequestOrigin
from .session_support import hash_token, invalidate_user_cache, record_audit

logger = logging.getLogger(__name__)


class ConfirmPasswordResetUseCase:
    """
    Use case for confirming password reset.

    Business Rules:
    - Token signature, expiry and purpose are checked by the codec
    - Token must match the outstanding hash stored on the user (single use)
    - New password must meet complexity requirements (min 8 chars)
    - All user sessions are revoked for security
    - Audit event created for security tracking
    """

    def __init__(
        self,
        uow: UnitOfWork,
        codec: ITokenCodec,
        user_cache: Optional[IUserCache] = None,
    ):
        self.uow = uow
        self.codec = codec
        self.user_cache = user_cache

    async def execute(
        self, token: str, new_password: str, origin: Optional[RequestOrigin] = None
    ) -> Result[ConfirmPasswordResetResponse]:
        """
        Execute confirm password reset use case.

        Errors:
            - INVALID_PASSWORD: Password does not meet complexity requirements
            - TOKEN_EXPIRED: Token has expired
            - INVALID_TOKEN / WRONG_PURPOSE: Token unusable for a reset
            - ALREADY_USED: Token was used or superseded by a newer request
        """
        if not validate_password(new_password):
            return Return.err(
                Error("INVALID_PASSWORD", "Password must be at least 8 characters long")
            )

        try:
            payload = self.codec.verify_single_use(token, PASSWORD_RESET_PURPOSE)
            user_id = UUID(payload["sub"])
        except TokenError as exc:
            return Return.err(Error(exc.code, "Invalid or expired password reset token"))
        except ValueError:
            return Return.err(Error("INVALID_TOKEN", "Invalid or expired password reset token"))

        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("INVALID_TOKEN", "Invalid or expired password reset token"))

            stored = user.password_reset_token_hash
            if not stored or not hmac.compare_digest(stored, hash_token(token)):
                logger.warning(f"Stale password reset token presented for user {user.id}")
                return Return.err(
                    Error(AlreadyUsed.code, "Password reset token has already been used")
                )

            user.password_hash = hash_password(new_password)
            user.password_reset_token_hash = None
            await self.uow.users.update(user)

            revoked_count = await self.uow.sessions.revoke_all_for_user(
                user.id, RevocationReason.password_reset
            )

            await record_audit(
                self.uow,
                "password_reset_confirmed",
                origin,
                user_id=user.id,
                tenant_id=user.tenant_id,
                sessions_revoked=revoked_count,
            )
            await self.uow.commit()

        await invalidate_user_cache(self.user_cache, user_id, everything=True)
        return Return.ok(
            ConfirmPasswordResetResponse(
                status="success",
                message="Password has been reset successfully",
                sessions_revoked=revoked_count,
            )
        )
