from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.api.error import ClientError, ServerError
from src.app.services.second_factor import ISecondFactorVerifier
from src.app.services.token_codec import AccessClaims
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.app.use_cases.auth import RequestOrigin
from src.app.use_cases.auth.dtos import (
    TwoFactorActivateResponse,
    TwoFactorDisableResponse,
    TwoFactorSetupResponse,
    TwoFactorStatusResponse,
)
from src.app.use_cases.two_factor import TwoFactorUseCase
from src.depends import (
    get_current_user,
    get_origin,
    get_second_factor_verifier,
    get_unit_of_work,
    get_user_cache,
)

router = APIRouter(prefix="/2fa", tags=["Two-Factor"])


def _raise_for(error):
    if error.code == "USER_NOT_FOUND":
        raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
    elif error.code == "VALIDATION_ERROR":
        raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
    elif error.code in ("INVALID_CODE", "ALREADY_USED", "INVALID_CREDENTIALS"):
        raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
    raise ServerError(error)


@router.get("/status", status_code=status.HTTP_200_OK, response_model=TwoFactorStatusResponse)
async def two_factor_status(
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    verifier: ISecondFactorVerifier = Depends(get_second_factor_verifier),
):
    """Whether 2FA is enabled and how many backup codes are left"""
    result = await TwoFactorUseCase(uow, verifier).status(current_user.user_id)
    if result.is_err():
        _raise_for(result.error)
    return result.value


@router.post("/setup", status_code=status.HTTP_200_OK, response_model=TwoFactorSetupResponse)
async def setup_two_factor(
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    verifier: ISecondFactorVerifier = Depends(get_second_factor_verifier),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Start 2FA Enrollment

    Returns the secret and an otpauth:// URI for the authenticator app.
    Login is unaffected until /2fa/activate succeeds.

    Raises:
        - 400 Bad Request: 2FA already enabled
    """
    result = await TwoFactorUseCase(uow, verifier).begin_enrollment(
        current_user.user_id, origin
    )
    if result.is_err():
        _raise_for(result.error)
    return result.value


class CodeRequest(BaseModel):
    code: str = Field(..., min_length=6, max_length=16, description="Authenticator code")


@router.post(
    "/activate", status_code=status.HTTP_200_OK, response_model=TwoFactorActivateResponse
)
async def activate_two_factor(
    request: CodeRequest,
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    verifier: ISecondFactorVerifier = Depends(get_second_factor_verifier),
    user_cache: IUserCache = Depends(get_user_cache),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Activate 2FA

    Backup codes are returned only in this response.

    Raises:
        - 400 Bad Request: No pending enrollment or already enabled
        - 401 Unauthorized: Wrong code
    """
    result = await TwoFactorUseCase(uow, verifier, user_cache).activate(
        current_user.user_id, request.code, origin
    )
    if result.is_err():
        _raise_for(result.error)
    return result.value


class DisableRequest(BaseModel):
    password: str = Field(..., description="Current password")
    code: str = Field(..., min_length=6, max_length=16, description="TOTP or backup code")


@router.post("/disable", status_code=status.HTTP_200_OK, response_model=TwoFactorDisableResponse)
async def disable_two_factor(
    request: DisableRequest,
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    verifier: ISecondFactorVerifier = Depends(get_second_factor_verifier),
    user_cache: IUserCache = Depends(get_user_cache),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Disable 2FA

    Raises:
        - 400 Bad Request: 2FA not enabled
        - 401 Unauthorized: Wrong password or code
    """
    result = await TwoFactorUseCase(uow, verifier, user_cache).disable(
        current_user.user_id, request.password, request.code, origin
    )
    if result.is_err():
        _raise_for(result.error)
    return result.value
