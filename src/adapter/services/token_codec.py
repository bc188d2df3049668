import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from config import AuthSettings
from src.app.services.token_codec import (
    ACCESS_TYPE,
    ELEVATION_PURPOSE,
    SESSION_TYPE,
    AccessClaims,
    IssuedToken,
    ITokenCodec,
    SessionClaims,
)
from src.domain.exceptions import (
    SigningError,
    TokenExpired,
    TokenMalformed,
    WrongPurpose,
    WrongTokenType,
)

logger = logging.getLogger(__name__)

_RESERVED_CLAIMS = {"sub", "type", "jti", "iat", "exp", "iss", "aud"}


def _from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value, UTC).replace(tzinfo=None)


def _optional_uuid(value: Optional[str]) -> Optional[UUID]:
    return UUID(value) if value else None


class JoseTokenCodec(ITokenCodec):
    """
    HS256 JWT codec built on python-jose.

    Access, elevation and single-use credentials are signed with the access
    secret; session credentials with a dedicated session secret, so a leak
    of one key cannot forge the other class.
    """

    def __init__(self, settings: AuthSettings):
        self.settings = settings

    # ------------------------------------------------------------------
    # Signing primitives
    # ------------------------------------------------------------------

    def _registered_claims(self, ttl: timedelta) -> Dict[str, Any]:
        now = datetime.now(UTC)
        return {
            "iat": now,
            "exp": now + ttl,
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
        }

    def _sign(self, claims: Dict[str, Any], secret: str) -> str:
        if not secret:
            raise SigningError("Signing key is not configured")
        try:
            return jwt.encode(dict(claims), secret, algorithm=self.settings.algorithm)
        except JWTError as exc:
            logger.error(f"Token signing failed: {exc}")
            raise SigningError("Failed to sign token") from exc

    def _decode(self, token: str, secret: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[self.settings.algorithm],
                audience=self.settings.audience,
                issuer=self.settings.issuer,
            )
        except ExpiredSignatureError as exc:
            raise TokenExpired("Token has expired") from exc
        except JWTError as exc:
            raise TokenMalformed("Invalid token") from exc

    # ------------------------------------------------------------------
    # Access and session credentials
    # ------------------------------------------------------------------

    def issue_access(
        self,
        subject: UUID,
        tenant: Optional[UUID],
        role: str,
        email: str,
        session_id: Optional[str] = None,
    ) -> IssuedToken:
        token_id = uuid4().hex
        claims = self._registered_claims(self.settings.access_ttl)
        claims.update(
            {
                "sub": str(subject),
                "tid": str(tenant) if tenant else None,
                "role": role,
                "email": email,
                "sid": session_id,
                "jti": token_id,
                "type": ACCESS_TYPE,
            }
        )
        expires_at = claims["exp"].replace(tzinfo=None)
        token = self._sign(claims, self.settings.access_secret)
        logger.debug(f"Access token issued for user {subject}")
        return IssuedToken(token, token_id, expires_at)

    def issue_session(self, subject: UUID, tenant: Optional[UUID]) -> IssuedToken:
        session_id = secrets.token_hex(16)
        claims = self._registered_claims(self.settings.session_ttl)
        claims.update(
            {
                "sub": str(subject),
                "tid": str(tenant) if tenant else None,
                "sid": session_id,
                "type": SESSION_TYPE,
            }
        )
        expires_at = claims["exp"].replace(tzinfo=None)
        token = self._sign(claims, self.settings.session_secret)
        logger.debug(f"Session token issued for user {subject}")
        return IssuedToken(token, session_id, expires_at)

    def verify_access(self, token: str) -> AccessClaims:
        payload = self._decode(token, self.settings.access_secret)
        if payload.get("type") != ACCESS_TYPE:
            raise WrongTokenType("Not an access token")
        try:
            return AccessClaims(
                user_id=UUID(payload["sub"]),
                tenant_id=_optional_uuid(payload.get("tid")),
                role=payload["role"],
                email=payload["email"],
                token_id=payload["jti"],
                expires_at=_from_timestamp(payload["exp"]),
                session_id=payload.get("sid"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenMalformed("Access token is missing claims") from exc

    def verify_session(self, token: str) -> SessionClaims:
        payload = self._decode(token, self.settings.session_secret)
        if payload.get("type") != SESSION_TYPE:
            raise WrongTokenType("Not a session token")
        try:
            return SessionClaims(
                user_id=UUID(payload["sub"]),
                tenant_id=_optional_uuid(payload.get("tid")),
                session_id=payload["sid"],
                expires_at=_from_timestamp(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenMalformed("Session token is missing claims") from exc

    # ------------------------------------------------------------------
    # Purpose-bound credentials
    # ------------------------------------------------------------------

    def issue_single_use(
        self,
        subject: UUID,
        purpose: str,
        extra: Optional[Dict[str, Any]] = None,
        ttl: Optional[timedelta] = None,
    ) -> str:
        claims = {k: v for k, v in (extra or {}).items() if k not in _RESERVED_CLAIMS}
        claims.update(self._registered_claims(ttl or self.settings.password_reset_ttl))
        claims.update({"sub": str(subject), "type": purpose, "jti": uuid4().hex})
        return self._sign(claims, self.settings.access_secret)

    def verify_single_use(self, token: str, expected_purpose: str) -> Dict[str, Any]:
        payload = self._decode(token, self.settings.access_secret)
        if payload.get("type") != expected_purpose:
            raise WrongPurpose(f"Token is not a {expected_purpose} token")
        if "sub" not in payload:
            raise TokenMalformed("Token has no subject")
        return payload

    def issue_elevation(self, subject: UUID, ttl: Optional[timedelta] = None) -> str:
        return self.issue_single_use(
            subject, ELEVATION_PURPOSE, ttl=ttl or self.settings.elevation_ttl
        )

    def verify_elevation(self, token: str) -> UUID:
        payload = self.verify_single_use(token, ELEVATION_PURPOSE)
        try:
            return UUID(payload["sub"])
        except ValueError as exc:
            raise TokenMalformed("Elevation token subject is invalid") from exc
