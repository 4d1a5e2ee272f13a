"""
Environment-aware configuration.
Secrets, token lifetimes, cookie policy and the database URL all come from
the environment (a .env file is read if present).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///session-auth.db")
    SQL_ECHO = _env_bool("SQL_ECHO", "false")

    # Access and refresh tokens are signed with different secrets
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "dev-access-secret-change-me-0123456789")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "dev-refresh-secret-change-me-0123456789")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "session-auth-service")
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    REFRESH_TOKEN_EXPIRES = timedelta(days=7)

    ACCESS_COOKIE_NAME = "access_token"
    REFRESH_COOKIE_NAME = "refresh_token"
    # refresh cookie is only ever sent to the session endpoints
    REFRESH_COOKIE_PATH = os.getenv("REFRESH_COOKIE_PATH", "/api/v1/auth")
    COOKIE_SECURE = _env_bool("COOKIE_SECURE", "false")
    COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "Strict")

    PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", "8"))
    # presenting a dead refresh token kills every session of its owner
    REVOKE_SESSIONS_ON_REUSE = _env_bool("REVOKE_SESSIONS_ON_REUSE", "true")


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    LOG_LEVEL = "WARNING"
    DATABASE_URL = "sqlite:///:memory:"
    JWT_ACCESS_SECRET = "test-access-secret-do-not-use-in-production"
    JWT_REFRESH_SECRET = "test-refresh-secret-do-not-use-in-production"
    COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    COOKIE_SECURE = True


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def validate_config(config_class) -> None:
    """Refuse to start production without explicitly configured signing secrets."""
    if config_class is not ProductionConfig:
        return
    for key in ("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET"):
        if not os.getenv(key):
            raise RuntimeError(f"{key} must be set in production")
