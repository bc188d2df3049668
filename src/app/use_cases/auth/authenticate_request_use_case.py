"""
Authenticate Request Use Case

Turns a bearer access credential into claims for the request layer.
"""

import logging

from src.libs.result import Error, Result, Return
from src.app.services.access_revocation import IAccessRevocationRegistry
from src.app.services.token_codec import AccessClaims, ITokenCodec
from src.domain.exceptions import RevocationRegistryUnavailable, TokenError

logger = logging.getLogger(__name__)


class AuthenticateRequestUseCase:
    """
    Business Rules:
    - Signature, issuer, audience, expiry and token type are checked first
    - Blacklisted access credentials are rejected (TOKEN_REVOKED)
    - If the blacklist cannot be consulted the request is rejected
    """

    def __init__(self, codec: ITokenCodec, revocations: IAccessRevocationRegistry):
        self.codec = codec
        self.revocations = revocations

    async def execute(self, access_token: str) -> Result[AccessClaims]:
        try:
            claims = self.codec.verify_access(access_token)
        except TokenError as exc:
            return Return.err(Error(exc.code, exc.message))

        try:
            if await self.revocations.is_blacklisted(claims.token_id):
                return Return.err(Error("TOKEN_REVOKED", "Token has been revoked"))
        except RevocationRegistryUnavailable as exc:
            logger.warning(
                f"Rejecting request for user {claims.user_id}: revocation check unavailable"
            )
            return Return.err(Error(exc.code, "Unable to verify token status"))

        return Return.ok(claims)
