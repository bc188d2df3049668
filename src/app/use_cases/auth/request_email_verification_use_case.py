"""
Request Email Verification Use Case

Issues a single-use email verification credential and mails the link.
"""

import logging
from uuid import UUID

from config import AuthSettings
from src.libs.result import Error, Result, Return
from src.app.services.email_sender import IEmailSender
from src.app.services.token_codec import EMAIL_VERIFICATION_PURPOSE, ITokenCodec
from src.app.services.unit_of_work import UnitOfWork
from .dtos import RequestEmailVerificationResponse
from .session_support import hash_token

logger = logging.getLogger(__name__)


class RequestEmailVerificationUseCase:
    """
    Business Rules:
    - Already verified users get success without a new token
    - Token carries the email it was issued for
    - A new request supersedes any outstanding token
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

    async def execute(self, user_id: UUID) -> Result[RequestEmailVerificationResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            if user.email_verified:
                return Return.ok(
                    RequestEmailVerificationResponse(
                        status="already_verified", message="Email is already verified"
                    )
                )

            token = self.codec.issue_single_use(
                user.id,
                EMAIL_VERIFICATION_PURPOSE,
                extra={"email": user.email},
                ttl=self.settings.email_verification_ttl,
            )
            user.email_verification_token_hash = hash_token(token)
            await self.uow.users.update(user)
            await self.uow.commit()
            recipient = user.email

        link = f"{self.settings.frontend_url}/verify-email?token={token}"
        try:
            await self.email_sender.send(
                recipient, "Verify your email", f"Confirm your email address: {link}"
            )
        except Exception:
            logger.warning(f"Verification email to {recipient} failed", exc_info=True)

        return Return.ok(
            RequestEmailVerificationResponse(
                status="sent", message="Verification email has been sent"
            )
        )
