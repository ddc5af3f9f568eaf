"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Database (embedded store for jobs, run logs and local tables)
    DATABASE_URL: str = "sqlite+aiosqlite:///./tablesync.db"

    # API
    API_KEY: Optional[str] = None
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Sync execution
    SYNC_TIMEOUT_SECONDS: float = 300.0
    DISCOVER_TIMEOUT_SECONDS: float = 15.0
    PREVIEW_TIMEOUT_SECONDS: float = 30.0
    PREVIEW_MAX_ROWS: int = 10
    RUN_LOG_RETENTION: int = 50

    # Triggers
    FILE_WATCH_DEBOUNCE_MS: int = 500
    SHUTDOWN_GRACE_SECONDS: float = 30.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
