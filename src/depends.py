from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig, AuthSettings
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError
from src.app.services.access_revocation import IAccessRevocationRegistry
from src.app.services.email_sender import IEmailSender
from src.app.services.second_factor import ISecondFactorVerifier
from src.app.services.token_codec import AccessClaims, ITokenCodec
from src.app.services.user_cache import IUserCache
from src.app.use_cases.auth import AuthenticateRequestUseCase, RequestOrigin

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

security = HTTPBearer()


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


# Services are built once in create_app and parked on app.state


def get_auth_settings(request: Request) -> AuthSettings:
    return request.app.state.auth_settings


def get_token_codec(request: Request) -> ITokenCodec:
    return request.app.state.token_codec


def get_second_factor_verifier(request: Request) -> ISecondFactorVerifier:
    return request.app.state.second_factor


def get_access_revocations(request: Request) -> IAccessRevocationRegistry:
    return request.app.state.access_revocations


def get_user_cache(request: Request) -> IUserCache:
    return request.app.state.user_cache


def get_email_sender(request: Request) -> IEmailSender:
    return request.app.state.email_sender


def get_origin(request: Request) -> RequestOrigin:
    """Caller address (first X-Forwarded-For hop when proxied) and user agent"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return RequestOrigin(
        ip_address=ip_address, user_agent=request.headers.get("user-agent")
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    codec: ITokenCodec = Depends(get_token_codec),
    revocations: IAccessRevocationRegistry = Depends(get_access_revocations),
) -> AccessClaims:
    """
    Dependency to extract and verify the access token from the Authorization header.

    Returns:
        AccessClaims with user_id, tenant_id, role, token id and session id

    Raises:
        ClientError: 401 if token is invalid, expired or revoked;
            503 if the revocation store cannot be consulted
    """
    use_case = AuthenticateRequestUseCase(codec, revocations)
    result = await use_case.execute(credentials.credentials)

    if result.is_err():
        error = result.error
        if error.code == "REVOCATION_CHECK_UNAVAILABLE":
            raise ClientError(error, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)

    return result.value
