"""
Environment-aware configuration.
Secrets, token lifetimes, cookie flags and the session store backend all
come from the environment (.env is read if present).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY")
    DEBUG = False
    TESTING = False
    # CORS: comma-separated list of origins; cookies need credentials support
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///storefront.db")

    # Token signing: two distinct secrets, no defaults outside dev/test
    ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET")
    REFRESH_TOKEN_SECRET = os.getenv("REFRESH_TOKEN_SECRET")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "storefront-auth")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "900")))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_SECONDS", str(7 * 24 * 60 * 60))))
    # Issue a new refresh token on every refresh (and invalidate the old one)
    REFRESH_TOKEN_ROTATION = _flag("REFRESH_TOKEN_ROTATION")

    # Session store
    SESSION_STORE = os.getenv("SESSION_STORE", "redis")
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "5"))

    # Cookies
    COOKIE_SECURE = _flag("COOKIE_SECURE")
    COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "Strict")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    PROPAGATE_EXCEPTIONS = False
    SECRET_KEY = BaseConfig.SECRET_KEY or "dev-secret-key"
    ACCESS_TOKEN_SECRET = BaseConfig.ACCESS_TOKEN_SECRET or "dev-access-secret-change-me"
    REFRESH_TOKEN_SECRET = BaseConfig.REFRESH_TOKEN_SECRET or "dev-refresh-secret-change-me"


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    DATABASE_URL = "sqlite://"
    ACCESS_TOKEN_SECRET = "test-access-secret"
    REFRESH_TOKEN_SECRET = "test-refresh-secret"
    REFRESH_TOKEN_ROTATION = False
    SESSION_STORE = "memory"
    COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    COOKIE_SECURE = _flag("COOKIE_SECURE", "true")


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
