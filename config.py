import os
from datetime import timedelta

import yaml
from pydantic import BaseModel, ConfigDict

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./test.db")
    REDIS_URL = data.get("REDIS_URL", "redis://localhost:6379/0")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    CACHE_BACKEND = data.get("CACHE_BACKEND", "redis")
    ADMIN_API_KEY = data.get("ADMIN_API_KEY", "test-admin-key-12345")
    FRONTEND_URL = data.get("FRONTEND_URL", "http://localhost:3000")

    # Token signing; access and session credentials never share a key
    JWT_ACCESS_SECRET = data.get("JWT_ACCESS_SECRET", "dev-access-secret-change-in-production")
    JWT_SESSION_SECRET = data.get("JWT_SESSION_SECRET", "dev-session-secret-change-in-production")
    JWT_ISSUER = data.get("JWT_ISSUER", "tenant-auth")
    JWT_AUDIENCE = data.get("JWT_AUDIENCE", "tenant-auth-users")
    ACCESS_TOKEN_TTL_MINUTES = data.get("ACCESS_TOKEN_TTL_MINUTES", 15)
    SESSION_TOKEN_TTL_DAYS = data.get("SESSION_TOKEN_TTL_DAYS", 7)
    ELEVATION_TOKEN_TTL_MINUTES = data.get("ELEVATION_TOKEN_TTL_MINUTES", 5)
    PASSWORD_RESET_TTL_MINUTES = data.get("PASSWORD_RESET_TTL_MINUTES", 60)
    EMAIL_VERIFICATION_TTL_HOURS = data.get("EMAIL_VERIFICATION_TTL_HOURS", 24)

    # Session lifecycle
    ROTATE_SESSION_ON_REFRESH = bool(data.get("ROTATE_SESSION_ON_REFRESH", True))
    SESSION_RETENTION_DAYS = data.get("SESSION_RETENTION_DAYS", 30)
    SESSION_PRUNE_INTERVAL_MINUTES = data.get("SESSION_PRUNE_INTERVAL_MINUTES", 0)

    TOTP_ISSUER = data.get("TOTP_ISSUER", "Tenant Auth")


class AuthSettings(BaseModel):
    """
    Immutable token and session settings.

    Built once in create_app and handed to the codec, the registries
    and the use cases; nothing reads token settings from a global.
    """

    model_config = ConfigDict(frozen=True)

    access_secret: str
    session_secret: str
    issuer: str = "tenant-auth"
    audience: str = "tenant-auth-users"
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    session_ttl: timedelta = timedelta(days=7)
    elevation_ttl: timedelta = timedelta(minutes=5)
    password_reset_ttl: timedelta = timedelta(hours=1)
    email_verification_ttl: timedelta = timedelta(hours=24)
    rotate_session_on_refresh: bool = True
    session_retention: timedelta = timedelta(days=30)
    totp_issuer: str = "Tenant Auth"
    frontend_url: str = "http://localhost:3000"

    @classmethod
    def from_config(cls, config) -> "AuthSettings":
        return cls(
            access_secret=config.JWT_ACCESS_SECRET,
            session_secret=config.JWT_SESSION_SECRET,
            issuer=config.JWT_ISSUER,
            audience=config.JWT_AUDIENCE,
            access_ttl=timedelta(minutes=config.ACCESS_TOKEN_TTL_MINUTES),
            session_ttl=timedelta(days=config.SESSION_TOKEN_TTL_DAYS),
            elevation_ttl=timedelta(minutes=config.ELEVATION_TOKEN_TTL_MINUTES),
            password_reset_ttl=timedelta(minutes=config.PASSWORD_RESET_TTL_MINUTES),
            email_verification_ttl=timedelta(hours=config.EMAIL_VERIFICATION_TTL_HOURS),
            rotate_session_on_refresh=config.ROTATE_SESSION_ON_REFRESH,
            session_retention=timedelta(days=config.SESSION_RETENTION_DAYS),
            totp_issuer=config.TOTP_ISSUER,
            frontend_url=config.FRONTEND_URL,
        )
