"""
Authentication Use Cases

Login, second factor completion, refresh, logout and the single-use
credential flows (password reset, email verification).
"""

from .authenticate_request_use_case import AuthenticateRequestUseCase
from .change_password_use_case import ChangePasswordUseCase
from .confirm_password_reset_use_case import ConfirmPasswordResetUseCase
from .login_use_case import LoginUseCase
from .logout_use_case import LogoutUseCase
from .refresh_token_use_case import RefreshTokenUseCase
from .request_email_verification_use_case import RequestEmailVerificationUseCase
from .request_password_reset_use_case import RequestPasswordResetUseCase
from .verify_email_use_case import VerifyEmailUseCase
from .dtos import (
    ChangePasswordResponse,
    ConfirmPasswordResetResponse,
    LoginResponse,
    LogoutAllResponse,
    LogoutResponse,
    RefreshTokenResponse,
    RequestEmailVerificationResponse,
    RequestOrigin,
    RequestPasswordResetResponse,
    SecondFactorRequiredResponse,
    VerifyEmailResponse,
)

__all__ = [
    # Use Cases
    "AuthenticateRequestUseCase",
    "ChangePasswordUseCase",
    "ConfirmPasswordResetUseCase",
    "LoginUseCase",
    "LogoutUseCase",
    "RefreshTokenUseCase",
    "RequestEmailVerificationUseCase",
    "RequestPasswordResetUseCase",
    "VerifyEmailUseCase",
    # DTOs - Commands
    "RequestOrigin",
    # DTOs - Responses
    "ChangePasswordResponse",
    "ConfirmPasswordResetResponse",
    "LoginResponse",
    "LogoutAllResponse",
    "LogoutResponse",
    "RefreshTokenResponse",
    "RequestEmailVerificationResponse",
    "RequestPasswordResetResponse",
    "SecondFactorRequiredResponse",
    "VerifyEmailResponse",
]
