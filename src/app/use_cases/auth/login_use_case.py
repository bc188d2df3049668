"""
Login Use Case

Handles password login, the optional second-factor step and issuance of
tenant-scoped access and session credentials.
"""

import logging
from typing import Optional, Union

from config import AuthSettings
from src.libs.result import Error, Result, Return
from src.app.services.second_factor import ISecondFactorVerifier
from src.app.services.token_codec import ITokenCodec
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.domain.base import utcnow
from src.domain.entities import AuditStatus, User
from src.domain.exceptions import (
    AccountDisabled,
    AlreadyUsed,
    AuthError,
    ElevationExpired,
    InvalidCode,
    InvalidCredentials,
    TenantInactive,
    TokenError,
    TokenExpired,
)
from src.domain.passwords import burn_password_check, verify_password
from .dtos import LoginResponse, RequestOrigin, SecondFactorRequiredResponse
from .session_support import (
    consume_backup_code,
    invalidate_user_cache,
    issue_credentials,
    record_audit,
    seconds_until,
)

logger = logging.getLogger(__name__)


class LoginUseCase:
    """
    Use case for user login and credential issuance.

    Business Rules:
    - Unknown email and wrong password are indistinguishable (same error,
      one bcrypt check on both paths)
    - User must have status=active
    - Tenant must be active with a running subscription (super admins
      have no tenant)
    - Users with 2FA enabled get an elevation token instead of credentials
    - Every rejection records exactly one failed audit event
    - Success creates a session record, updates last_login_* and records
      a success audit event in the same transaction
    """

    def __init__(
        self,
        uow: UnitOfWork,
        codec: ITokenCodec,
        verifier: ISecondFactorVerifier,
        settings: AuthSettings,
        user_cache: Optional[IUserCache] = None,
    ):
        self.uow = uow
        self.codec = codec
        self.verifier = verifier
        self.settings = settings
        self.user_cache = user_cache

    async def execute(
        self, email: str, password: str, origin: RequestOrigin
    ) -> Result[Union[LoginResponse, SecondFactorRequiredResponse]]:
        """
        Execute login use case.

        Args:
            email: User email
            password: Plain text password
            origin: Caller address and user agent

        Returns:
            Result with LoginResponse, SecondFactorRequiredResponse when a
            second factor is pending, or Error
        """
        async with self.uow:
            user = await self.uow.users.get_by_email(email)

            if user is None:
                burn_password_check(password)
                return await self._reject(
                    InvalidCredentials("Invalid email or password"),
                    origin,
                    reason="unknown_email",
                    email=email,
                )

            if not verify_password(password, user.password_hash):
                return await self._reject(
                    InvalidCredentials("Invalid email or password"),
                    origin,
                    user=user,
                    reason="wrong_password",
                )

            rejection = await self._check_standing(user, origin)
            if rejection is not None:
                return rejection

            if user.two_factor_enabled:
                elevation_token = self.codec.issue_elevation(user.id)
                logger.info(f"Second factor required for user {user.id}")
                return Return.ok(
                    SecondFactorRequiredResponse(
                        elevation_token=elevation_token,
                        expires_in=int(self.settings.elevation_ttl.total_seconds()),
                    )
                )

            return Return.ok(await self._issue(user, origin, method="password"))

    async def complete_second_factor(
        self, elevation_token: str, code: str, origin: RequestOrigin
    ) -> Result[LoginResponse]:
        """
        Finish a login that is waiting for its second factor.

        The elevation token is checked before the code, so an expired token
        is rejected even when the code would have been accepted.

        Args:
            elevation_token: Token returned by execute()
            code: Current TOTP code or an unused backup code
            origin: Caller address and user agent
        """
        try:
            user_id = self.codec.verify_elevation(elevation_token)
        except TokenExpired:
            logger.warning("Second factor presented with an expired elevation token")
            return Return.err(
                Error(ElevationExpired.code, "Login expired, sign in with your password again")
            )
        except TokenError as exc:
            return Return.err(Error(exc.code, "Invalid elevation token"))

        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None or not user.two_factor_enabled:
                return Return.err(Error(TokenError.code, "Invalid elevation token"))

            rejection = await self._check_standing(user, origin)
            if rejection is not None:
                return rejection

            remaining = None
            if self.verifier.challenge(user, code):
                method = "totp"
            else:
                try:
                    remaining = await consume_backup_code(self.uow, self.verifier, user, code)
                except (InvalidCode, AlreadyUsed) as exc:
                    return await self._reject(
                        exc, origin, user=user, reason=exc.code.lower(), action="login_2fa"
                    )
                method = "backup_code"

            response = await self._issue(user, origin, method=method)
            response.remaining_backup_codes = remaining
            return Return.ok(response)

    async def _check_standing(
        self, user: User, origin: RequestOrigin
    ) -> Optional[Result]:
        if not user.is_active:
            return await self._reject(
                AccountDisabled("User account is disabled"),
                origin,
                user=user,
                reason="account_disabled",
            )

        if user.tenant_id is not None:
            tenant = await self.uow.tenants.get_by_id(user.tenant_id)
            if tenant is None or not tenant.is_active():
                return await self._reject(
                    TenantInactive("Organization is inactive or subscription has expired"),
                    origin,
                    user=user,
                    reason="tenant_inactive",
                )
        return None

    async def _issue(self, user: User, origin: RequestOrigin, method: str) -> LoginResponse:
        credentials = await issue_credentials(self.uow, self.codec, user, origin)

        user.last_login_at = utcnow()
        user.last_login_ip = origin.ip_address
        await self.uow.users.update(user)

        await record_audit(
            self.uow,
            "login",
            origin,
            user_id=user.id,
            tenant_id=user.tenant_id,
            session_id=credentials.session.token_id,
            method=method,
        )
        await self.uow.commit()

        await invalidate_user_cache(self.user_cache, user.id)
        logger.info(f"User {user.id} logged in ({method})")

        return LoginResponse(
            access_token=credentials.access.token,
            session_token=credentials.session.token,
            session_id=credentials.session.token_id,
            expires_in=seconds_until(credentials.access),
        )

    async def _reject(
        self,
        error: AuthError,
        origin: RequestOrigin,
        user: Optional[User] = None,
        reason: str = "",
        action: str = "login",
        **metadata,
    ) -> Result:
        await record_audit(
            self.uow,
            action,
            origin,
            user_id=user.id if user else None,
            tenant_id=user.tenant_id if user else None,
            status=AuditStatus.failed,
            reason=reason,
            **metadata,
        )
        await self.uow.commit()
        logger.warning(f"{action} rejected: {reason} from {origin.ip_address}")
        return Return.err(Error(error.code, error.message))
