"""
Request Password Reset Use Case

Issues a single-use password reset credential and mails the link.
"""

import logging
from typing import Optional

from config import AuthSettings
from src.libs.result import Result, Return
from src.app.services.email_sender import IEmailSender
from src.app.services.token_codec import PASSWORD_RESET_PURPOSE, ITokenCodec
from src.app.services.unit_of_work import UnitOfWork
from src.domain.passwords import burn_password_check
from .dtos import RequestOrigin, RequestPasswordResetResponse
from .session_support import hash_token, record_audit

logger = logging.getLogger(__name__)

_GENERIC_RESPONSE = RequestPasswordResetResponse(
    status="sent",
    message="If the email exists, a password reset link has been sent",
)


class RequestPasswordResetUseCase:
    """
    Use case for requesting password reset.

    Business Rules:
    - Token is a signed single-use credential (purpose password_reset)
    - Only its SHA-256 is stored; a newer request supersedes an older one
    - Token expires after PASSWORD_RESET_TTL_MINUTES
    - No email enumeration (same response and comparable time for
      unknown emails and disabled accounts)
    - Email delivery is best-effort
    """

    def __init__(
        self,
        uow: UnitOfWork,
        codec: ITokenCodec,
        email_sender: IEmailSender,
        settings: AuthSettings,
    ):
        self.uow = uow
        self.codec = codec
        self.email_sender = email_sender
        self.settings = settings

    async def execute(
        self, email: str, origin: Optional[RequestOrigin] = None
    ) -> Result[RequestPasswordResetResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_email(email)

            if user is None or not user.is_active:
                burn_password_check(email)
                return Return.ok(_GENERIC_RESPONSE)

            reset_token = self.codec.issue_single_use(
                user.id, PASSWORD_RESET_PURPOSE, ttl=self.settings.password_reset_ttl
            )
            user.password_reset_token_hash = hash_token(reset_token)
            await self.uow.users.update(user)

            await record_audit(
                self.uow,
                "password_reset_requested",
                origin,
                user_id=user.id,
                tenant_id=user.tenant_id,
            )
            await self.uow.commit()
            recipient = user.email

        link = f"{self.settings.frontend_url}/reset-password?token={reset_token}"
        minutes = int(self.settings.password_reset_ttl.total_seconds() // 60)
        try:
            await self.email_sender.send(
                recipient,
                "Reset your password",
                f"Use this link to reset your password: {link}\n"
                f"The link expires in {minutes} minutes.",
            )
        except Exception:
            logger.warning(f"Password reset email to {recipient} failed", exc_info=True)

        return Return.ok(_GENERIC_RESPONSE)
