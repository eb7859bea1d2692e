"""
Application configuration using pydantic-settings.
All config is loaded from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Railbook Reservation API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # JSON lines outside production too

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./railbook.db"
    DATABASE_URL_SYNC: str = "sqlite:///./railbook.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    SQLITE_BUSY_TIMEOUT: float = 30.0  # seconds a writer waits for the lock
    CREATE_SCHEMA_ON_STARTUP: bool = True

    # Booking transactions
    BOOKING_MAX_ATTEMPTS: int = 3
    BOOKING_RETRY_BACKOFF_MS: int = 10
    TICKET_ID_MAX_ATTEMPTS: int = 5

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CACHE_TTL: int = 60
    REDIS_ENABLED: bool = True

    # Development auth provider
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin123"

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
