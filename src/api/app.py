import asyncio
import logging
from contextlib import asynccontextmanager, suppress

import redis.asyncio as redis
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware

from config import AuthSettings
from src.adapter.services.access_revocation import (
    InMemoryAccessRevocationRegistry,
    RedisAccessRevocationRegistry,
)
from src.adapter.services.email_sender import LoggingEmailSender
from src.adapter.services.token_codec import JoseTokenCodec
from src.adapter.services.totp_verifier import TotpSecondFactorVerifier
from src.adapter.services.user_cache import InMemoryUserCache, RedisUserCache
from src.domain.exceptions import RevocationRegistryUnavailable, SigningError, StorageError
from .error import ClientError, ServerError, error_response

logger = logging.getLogger(__name__)


async def handle_client_error(request: Request, exc: ClientError):
    logger.warning(f"Client error: {exc.base_error.code} {exc.base_error.message}")
    return error_response(exc.status_code, exc.base_error.code, exc.base_error.message)


async def handle_server_error(request: Request, exc: ServerError):
    logger.error(f"Server error: {exc.base_error.code}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, exc.base_error.code, "Internal server error"
    )


async def handle_storage_error(request: Request, exc: StorageError):
    logger.error(f"Storage error: {exc.message}", exc_info=exc)
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE, exc.code, "Service temporarily unavailable"
    )


async def handle_revocation_unavailable(request: Request, exc: RevocationRegistryUnavailable):
    logger.error(f"Revocation registry unavailable: {exc.message}")
    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE, exc.code, "Service temporarily unavailable"
    )


async def handle_signing_error(request: Request, exc: SigningError):
    logger.error(f"Signing error: {exc.message}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.code, "Internal server error")


async def prune_sessions_periodically(settings: AuthSettings, interval_seconds: float):
    """Delete long-expired session records until cancelled"""
    from src.depends import AsyncSessionLocal
    from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
    from src.app.use_cases.sessions import PruneSessionsUseCase

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            async with AsyncSessionLocal() as session:
                use_case = PruneSessionsUseCase(SqlAlchemyUnitOfWork(session), settings)
                await use_case.execute()
        except StorageError:
            logger.warning("Scheduled session pruning failed", exc_info=True)


def create_app(ApplicationConfig) -> FastAPI:
    settings = AuthSettings.from_config(ApplicationConfig)

    redis_client = None
    if ApplicationConfig.CACHE_BACKEND == "redis":
        redis_client = redis.from_url(ApplicationConfig.REDIS_URL, decode_responses=True)
        access_revocations = RedisAccessRevocationRegistry(redis_client)
        user_cache = RedisUserCache(redis_client)
    else:
        access_revocations = InMemoryAccessRevocationRegistry()
        user_cache = InMemoryUserCache()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        prune_task = None
        interval = ApplicationConfig.SESSION_PRUNE_INTERVAL_MINUTES
        if interval and interval > 0:
            prune_task = asyncio.create_task(
                prune_sessions_periodically(settings, interval * 60), name="session-prune"
            )
            logger.info(f"Session pruning every {interval} minutes")
        yield
        if prune_task is not None:
            prune_task.cancel()
            with suppress(asyncio.CancelledError):
                await prune_task
        if redis_client is not None:
            await redis_client.aclose()

    app = FastAPI(title="Tenant Auth API", version="0.1.0", lifespan=lifespan)

    app.state.auth_settings = settings
    app.state.token_codec = JoseTokenCodec(settings)
    app.state.second_factor = TotpSecondFactorVerifier(settings.totp_issuer)
    app.state.access_revocations = access_revocations
    app.state.user_cache = user_cache
    app.state.email_sender = LoggingEmailSender()
    app.state.admin_api_key = ApplicationConfig.ADMIN_API_KEY

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from src.api.routes import admin, auth, health_check, sessions, two_factor

    app.include_router(health_check.router, tags=["Health"])
    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(sessions.router, tags=["Sessions"])
    app.include_router(two_factor.router, tags=["Two-Factor"])
    app.include_router(admin.router, tags=["Admin"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)
    app.add_exception_handler(StorageError, handle_storage_error)
    app.add_exception_handler(RevocationRegistryUnavailable, handle_revocation_unavailable)
    app.add_exception_handler(SigningError, handle_signing_error)

    return app
