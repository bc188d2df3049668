"""
Auth Domain Exceptions

Raised by the codec, the registries and the second-factor verifier.
Use cases translate expected ones into Result errors carrying `code`.
"""


class AuthError(Exception):
    code = "AUTH_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidCredentials(AuthError):
    code = "INVALID_CREDENTIALS"


class AccountDisabled(AuthError):
    code = "ACCOUNT_DISABLED"


class TenantInactive(AuthError):
    code = "TENANT_INACTIVE"


class SessionInvalid(AuthError):
    code = "SESSION_INVALID"


class SessionAlreadyRotated(AuthError):
    code = "SESSION_ALREADY_ROTATED"


class ElevationExpired(AuthError):
    code = "ELEVATION_EXPIRED"


class InvalidCode(AuthError):
    code = "INVALID_CODE"


class AlreadyUsed(AuthError):
    code = "ALREADY_USED"


class ValidationError(AuthError):
    code = "VALIDATION_ERROR"


class SigningError(AuthError):
    code = "SIGNING_ERROR"


class StorageError(AuthError):
    code = "STORAGE_ERROR"


class RevocationRegistryUnavailable(AuthError):
    code = "REVOCATION_CHECK_UNAVAILABLE"


# Token codec verification outcomes


class TokenError(AuthError):
    code = "INVALID_TOKEN"


class TokenExpired(TokenError):
    code = "TOKEN_EXPIRED"


class TokenMalformed(TokenError):
    code = "INVALID_TOKEN"


class WrongTokenType(TokenError):
    code = "WRONG_TOKEN_TYPE"


class WrongPurpose(TokenError):
    code = "WRONG_PURPOSE"
