"""
Verify Email Use Case

Handles email verification via secure token.
"""

import hmac
from typing import Optional
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.token_codec import EMAIL_VERIFICATION_PURPOSE, ITokenCodec
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.domain.exceptions import TokenError
from .dtos import VerifyEmailResponse
from .session_support import hash_token, invalidate_user_cache, record_audit


class VerifyEmailUseCase:
    """
    Use case for email verification.

    Business Rules:
    - Token must carry purpose email_verification and the user's current email
    - Token must match the outstanding hash (single-use)
    - Sets email_verified = True and clears the hash
    - Already verified users return success
    - Records audit event
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

    async def execute(self, token: str) -> Result[VerifyEmailResponse]:
        """
        Execute email verification use case.

        Args:
            token: Verification token from email link

        Returns:
            Result with verification status, or Error
        """
        try:
            payload = self.codec.verify_single_use(token, EMAIL_VERIFICATION_PURPOSE)
            user_id = UUID(payload["sub"])
        except TokenError as exc:
            return Return.err(Error(exc.code, "Invalid or expired verification token"))
        except ValueError:
            return Return.err(Error("INVALID_TOKEN", "Invalid or expired verification token"))

        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None or payload.get("email") != user.email:
                return Return.err(Error("INVALID_TOKEN", "Invalid or expired verification token"))

            if user.email_verified:
                return Return.ok(
                    VerifyEmailResponse(status="already_verified", message="Email is already verified")
                )

            stored = user.email_verification_token_hash
            if not stored or not hmac.compare_digest(stored, hash_token(token)):
                return Return.err(Error("INVALID_TOKEN", "Invalid or expired verification token"))

            user.email_verified = True
            user.email_verification_token_hash = None
            await self.uow.users.update(user)

            await record_audit(
                self.uow,
                "email_verified",
                None,
                user_id=user.id,
                tenant_id=user.tenant_id,
                email=user.email,
            )
            await self.uow.commit()

        await invalidate_user_cache(self.user_cache, user_id)
        return Return.ok(
            VerifyEmailResponse(status="verified", message="Email verified successfully")
        )
