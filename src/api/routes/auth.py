from typing import Optional, Union

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from config import AuthSettings
from src.api.error import ClientError, ServerError
from src.app.services.access_revocation import IAccessRevocationRegistry
from src.app.services.email_sender import IEmailSender
from src.app.services.second_factor import ISecondFactorVerifier
from src.app.services.token_codec import AccessClaims, ITokenCodec
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.user_cache import IUserCache
from src.app.use_cases.auth import (
    ChangePasswordResponse,
    ChangePasswordUseCase,
    ConfirmPasswordResetResponse,
    ConfirmPasswordResetUseCase,
    LoginResponse,
    LoginUseCase,
    LogoutAllResponse,
    LogoutResponse,
    LogoutUseCase,
    RefreshTokenResponse,
    RefreshTokenUseCase,
    RequestEmailVerificationResponse,
    RequestEmailVerificationUseCase,
    RequestOrigin,
    RequestPasswordResetResponse,
    RequestPasswordResetUseCase,
    SecondFactorRequiredResponse,
    VerifyEmailResponse,
    VerifyEmailUseCase,
)
from src.depends import (
    get_access_revocations,
    get_auth_settings,
    get_current_user,
    get_email_sender,
    get_origin,
    get_second_factor_verifier,
    get_token_codec,
    get_unit_of_work,
    get_user_cache,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])

TOKEN_ERRORS = ("TOKEN_EXPIRED", "INVALID_TOKEN", "WRONG_TOKEN_TYPE", "WRONG_PURPOSE")


class LoginRequest(BaseModel):
    """
    Login HTTP request payload

    Validates incoming login request.
    """

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=Union[LoginResponse, SecondFactorRequiredResponse],
)
async def login(
    request: LoginRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    codec: ITokenCodec = Depends(get_token_codec),
    verifier: ISecondFactorVerifier = Depends(get_second_factor_verifier),
    settings: AuthSettings = Depends(get_auth_settings),
    user_cache: IUserCache = Depends(get_user_cache),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    User Login

    Returns access and session tokens, or an elevation token when the
    account has two-factor authentication enabled.

    Raises:
        - 401 Unauthorized: Invalid credentials
        - 403 Forbidden: Account disabled or organization inactive
        - 500 Internal Server Error: Server error
    """
    use_case = LoginUseCase(uow, codec, verifier, settings, user_cache)
    result = await use_case.execute(request.email, request.password, origin)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_CREDENTIALS":
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code in ("ACCOUNT_DISABLED", "TENANT_INACTIVE"):
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        raise ServerError(error)

    return result.value


class SecondFactorRequest(BaseModel):
    elevation_token: str = Field(..., description="Token returned by /auth/login")
    code: str = Field(..., min_length=6, max_length=16, description="TOTP or backup code")


@router.post("/login/2fa", status_code=status.HTTP_200_OK, response_model=LoginResponse)
async def complete_second_factor(
    request: SecondFactorRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    codec: ITokenCodec = Depends(get_token_codec),
    verifier: ISecondFactorVerifier = Depends(get_second_factor_verifier),
    settings: AuthSettings = Depends(get_auth_settings),
    user_cache: IUserCache = Depends(get_user_cache),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Complete Login With Second Factor

    Raises:
        - 401 Unauthorized: Elevation token expired/invalid, wrong or used code
        - 403 Forbidden: Account disabled or organization inactive
    """
    use_case = LoginUseCase(uow, codec, verifier, settings, user_cache)
    result = await use_case.complete_second_factor(
        request.elevation_token, request.code, origin
    )

    if result.is_err():
        error = result.error
        if error.code in ("ELEVATION_EXPIRED", "INVALID_CODE", "ALREADY_USED") + TOKEN_ERRORS:
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code in ("ACCOUNT_DISABLED", "TENANT_INACTIVE"):
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        raise ServerError(error)

    return result.value


class RefreshRequest(BaseModel):
    """
    Refresh token HTTP request payload

    Validates incoming refresh request.
    """

    session_token: str = Field(..., description="Session token")


@router.post("/refresh", status_code=status.HTTP_200_OK, response_model=RefreshTokenResponse)
async def refresh(
    request: RefreshRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    codec: ITokenCodec = Depends(get_token_codec),
    settings: AuthSettings = Depends(get_auth_settings),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Refresh Access Token

    Exchanges a session token for a new access token. With rotation
    enabled the session token is replaced as well.

    Raises:
        - 401 Unauthorized: Invalid, expired or revoked session
        - 403 Forbidden: Account disabled or organization inactive
        - 409 Conflict: Session was already refreshed
    """
    use_case = RefreshTokenUseCase(uow, codec, settings)
    result = await use_case.execute(request.session_token, origin)

    if result.is_err():
        error = result.error
        if error.code == "SESSION_INVALID":
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code == "SESSION_ALREADY_ROTATED":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        elif error.code in ("ACCOUNT_DISABLED", "TENANT_INACTIVE"):
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        raise ServerError(error)

    return result.value


class LogoutRequest(BaseModel):
    session_token: Optional[str] = Field(None, description="Session token to end")


@router.post("/logout", status_code=status.HTTP_200_OK, response_model=LogoutResponse)
async def logout(
    request: Optional[LogoutRequest] = None,
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    codec: ITokenCodec = Depends(get_token_codec),
    revocations: IAccessRevocationRegistry = Depends(get_access_revocations),
    user_cache: IUserCache = Depends(get_user_cache),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Logout

    Ends the current session and blacklists the presented access token.
    Always succeeds once the caller is authenticated.
    """
    use_case = LogoutUseCase(uow, codec, revocations, user_cache)
    result = await use_case.logout(
        current_user.user_id,
        current_user.tenant_id,
        origin,
        session_token=request.session_token if request else None,
        session_id=current_user.session_id,
        access_jti=current_user.token_id,
        access_expires_at=current_user.expires_at,
    )
    return result.value


@router.post("/logout-all", status_code=status.HTTP_200_OK, response_model=LogoutAllResponse)
async def logout_all(
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    codec: ITokenCodec = Depends(get_token_codec),
    revocations: IAccessRevocationRegistry = Depends(get_access_revocations),
    user_cache: IUserCache = Depends(get_user_cache),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Logout Everywhere

    Revokes every session of the caller on every device.
    """
    use_case = LogoutUseCase(uow, codec, revocations, user_cache)
    result = await use_case.logout_all(
        current_user.user_id,
        current_user.tenant_id,
        origin,
        access_jti=current_user.token_id,
        access_expires_at=current_user.expires_at,
    )

    if result.is_err():
        raise ServerError(result.error)

    return result.value


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., description="New password (min 8 chars)")


@router.post(
    "/change-password", status_code=status.HTTP_200_OK, response_model=ChangePasswordResponse
)
async def change_password(
    request: ChangePasswordRequest,
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    user_cache: IUserCache = Depends(get_user_cache),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Change Password

    Signs the user out of every session, including the current one.

    Raises:
        - 400 Bad Request: New password does not meet requirements
        - 401 Unauthorized: Current password is wrong
        - 404 Not Found: User no longer exists
    """
    use_case = ChangePasswordUseCase(uow, user_cache)
    result = await use_case.execute(
        current_user.user_id, request.current_password, request.new_password, origin
    )

    if result.is_err():
        error = result.error
        if error.code == "INVALID_PASSWORD":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        elif error.code == "INVALID_CREDENTIALS":
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


class RequestPasswordResetRequest(BaseModel):
    email: EmailStr = Field(..., description="User email address")


@router.post(
    "/request-password-reset",
    status_code=status.HTTP_200_OK,
    response_model=RequestPasswordResetResponse,
)
async def request_password_reset(
    request: RequestPasswordResetRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    codec: ITokenCodec = Depends(get_token_codec),
    email_sender: IEmailSender = Depends(get_email_sender),
    settings: AuthSettings = Depends(get_auth_settings),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Request Password Reset

    Always returns the same response whether or not the email exists.
    """
    use_case = RequestPasswordResetUseCase(uow, codec, email_sender, settings)
    result = await use_case.execute(request.email, origin)

    if result.is_err():
        raise ServerError(result.error)

    return result.value


class ConfirmPasswordResetRequest(BaseModel):
    token: str = Field(..., description="Password reset token from email")
    new_password: str = Field(..., description="New password (min 8 chars)")


@router.post(
    "/confirm-password-reset",
    status_code=status.HTTP_200_OK,
    response_model=ConfirmPasswordResetResponse,
)
async def confirm_password_reset(
    request: ConfirmPasswordResetRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    codec: ITokenCodec = Depends(get_token_codec),
    user_cache: IUserCache = Depends(get_user_cache),
    origin: RequestOrigin = Depends(get_origin),
):
    """
    Confirm Password Reset

    Raises:
        - 400 Bad Request: Invalid, expired or used token; weak password
    """
    use_case = ConfirmPasswordResetUseCase(uow, codec, user_cache)
    result = await use_case.execute(request.token, request.new_password, origin)

    if result.is_err():
        error = result.error
        if error.code in ("INVALID_PASSWORD", "ALREADY_USED") + TOKEN_ERRORS:
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value


@router.post(
    "/request-email-verification",
    status_code=status.HTTP_200_OK,
    response_model=RequestEmailVerificationResponse,
)
async def request_email_verification(
    current_user: AccessClaims = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    codec: ITokenCodec = Depends(get_token_codec),
    email_sender: IEmailSender = Depends(get_email_sender),
    settings: AuthSettings = Depends(get_auth_settings),
):
    """Send a verification link to the caller's email address"""
    use_case = RequestEmailVerificationUseCase(uow, codec, email_sender, settings)
    result = await use_case.execute(current_user.user_id)

    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return result.value


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., description="Verification token from email")


@router.post("/verify-email", status_code=status.HTTP_200_OK, response_model=VerifyEmailResponse)
async def verify_email(
    request: VerifyEmailRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    codec: ITokenCodec = Depends(get_token_codec),
    user_cache: IUserCache = Depends(get_user_cache),
):
    """
    Verify Email

    Raises:
        - 400 Bad Request: Invalid or expired token
    """
    use_case = VerifyEmailUseCase(uow, codec, user_cache)
    result = await use_case.execute(request.token)

    if result.is_err():
        error = result.error
        if error.code in TOKEN_ERRORS:
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ServerError(error)

    return result.value
