"""
Two-Factor Use Case

Enrollment, activation, status and removal of the TOTP second factor.
"""

import logging
from typing import Optional
from uuid import UUID

from src.libs.result import Error, Result, Return
from src.app.services.second_factor import ISecondFactorVerifier
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.app.use_cases.auth.dtos import (
    RequestOrigin,
    TwoFactorActivateResponse,
    TwoFactorDisableResponse,
    TwoFactorSetupResponse,
    TwoFactorStatusResponse,
)
from src.app.use_cases.auth.session_support import (
    consume_backup_code,
    invalidate_user_cache,
    record_audit,
)
from src.domain.entities import AuditStatus, User
from src.domain.exceptions import (
    AlreadyUsed,
    AuthError,
    InvalidCode,
    InvalidCredentials,
    ValidationError,
)
from src.domain.passwords import verify_password

logger = logging.getLogger(__name__)


class TwoFactorUseCase:
    """
    Business Rules:
    - Setup stores a pending secret; login is unaffected until activation
    - Activation needs a valid code and returns 10 backup codes once
    - Disabling needs the current password and a valid TOTP or backup code
    - Failed code checks are audit-logged
    """

    def __init__(
        self,
        uow: UnitOfWork,
        verifier: ISecondFactorVerifier,
        user_cache: Optional[IUserCache] = None,
    ):
        self.uow = uow
        self.verifier = verifier
        self.user_cache = user_cache

    async def status(self, user_id: UUID) -> Result[TwoFactorStatusResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))
            return Return.ok(
                TwoFactorStatusResponse(
                    enabled=user.two_factor_enabled,
                    pending=not user.two_factor_enabled and bool(user.two_factor_secret),
                    remaining_backup_codes=(
                        self.verifier.remaining_backup_codes(user)
                        if user.two_factor_enabled
                        else 0
                    ),
                )
            )

    async def begin_enrollment(
        self, user_id: UUID, origin: Optional[RequestOrigin] = None
    ) -> Result[TwoFactorSetupResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            version = user.second_factor_version
            try:
                enrollment = self.verifier.begin_enrollment(user, user.email)
            except ValidationError as exc:
                return Return.err(Error(exc.code, exc.message))

            if not await self.uow.users.save_second_factor(user, version):
                return self._changed_concurrently()
            await record_audit(
                self.uow, "2fa_setup", origin, user_id=user.id, tenant_id=user.tenant_id
            )
            await self.uow.commit()

            return Return.ok(
                TwoFactorSetupResponse(
                    secret=enrollment.secret, provisioning_uri=enrollment.provisioning_uri
                )
            )

    async def activate(
        self, user_id: UUID, code: str, origin: Optional[RequestOrigin] = None
    ) -> Result[TwoFactorActivateResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            version = user.second_factor_version
            try:
                backup_codes = self.verifier.activate(user, code)
            except ValidationError as exc:
                return Return.err(Error(exc.code, exc.message))
            except InvalidCode as exc:
                return await self._reject(user, "2fa_activate", exc, origin)

            if not await self.uow.users.save_second_factor(user, version):
                return self._changed_concurrently()
            await record_audit(
                self.uow, "2fa_enabled", origin, user_id=user.id, tenant_id=user.tenant_id
            )
            await self.uow.commit()

        await invalidate_user_cache(self.user_cache, user_id)
        return Return.ok(TwoFactorActivateResponse(enabled=True, backup_codes=backup_codes))

    async def disable(
        self,
        user_id: UUID,
        password: str,
        code: str,
        origin: Optional[RequestOrigin] = None,
    ) -> Result[TwoFactorDisableResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            if not verify_password(password, user.password_hash):
                return await self._reject(
                    user, "2fa_disable", InvalidCredentials("Password is incorrect"), origin
                )

            if not user.two_factor_enabled:
                return Return.err(
                    Error(ValidationError.code, "Two-factor authentication is not enabled")
                )

            if not self.verifier.challenge(user, code):
                try:
                    await consume_backup_code(self.uow, self.verifier, user, code)
                except (InvalidCode, AlreadyUsed) as exc:
                    return await self._reject(user, "2fa_disable", exc, origin)

            version = user.second_factor_version
            self.verifier.deactivate(user)
            if not await self.uow.users.save_second_factor(user, version):
                return self._changed_concurrently()
            await record_audit(
                self.uow, "2fa_disabled", origin, user_id=user.id, tenant_id=user.tenant_id
            )
            await self.uow.commit()

        await invalidate_user_cache(self.user_cache, user_id)
        return Return.ok(TwoFactorDisableResponse(enabled=False))

    async def _reject(
        self, user: User, action: str, error: AuthError, origin: Optional[RequestOrigin]
    ) -> Result:
        await record_audit(
            self.uow,
            action,
            origin,
            user_id=user.id,
            tenant_id=user.tenant_id,
            status=AuditStatus.failed,
            reason=error.code.lower(),
        )
        await self.uow.commit()
        logger.warning(f"{action} rejected for user {user.id}: {error.code}")
        return Return.err(Error(error.code, error.message))

    @staticmethod
    def _changed_concurrently() -> Result:
        return Return.err(Error(ValidationError.code, "Two-factor settings changed, try again"))
