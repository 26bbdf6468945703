"""
Application configuration using Pydantic Settings
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///citibike.db"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Import configuration
    IMPORT_BATCH_SIZE: int = 10_000
    PROGRESS_EVERY_ROWS: int = 100_000
    RAW_LINE_MAX_LENGTH: int = 2000

    # Report defaults
    STATS_MIN_RIDES: int = 200
    STATS_TOP_N: int = 20

    @field_validator("IMPORT_BATCH_SIZE", "PROGRESS_EVERY_ROWS", "RAW_LINE_MAX_LENGTH")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


settings = Settings()
