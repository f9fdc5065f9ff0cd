"""
Application configuration management
"""

from decimal import Decimal
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "CineBook"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = False
    API_PREFIX: str = "/api/v1"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str  # Must be provided via environment

    @field_validator('DATABASE_URL')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if v.startswith('postgresql://'):
            v = v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 40
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_ECHO: bool = False
    DB_ISOLATION_LEVEL: Optional[str] = "SERIALIZABLE"

    @field_validator('DB_ISOLATION_LEVEL', mode="before")
    @classmethod
    def normalize_isolation_level(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v.strip().upper().replace("-", " ")

    SEED_DEMO_DATA: bool = False

    # Monitoring
    PROMETHEUS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # Booking
    BOOKING_HOLD_MINUTES: int = 10
    MAX_SEATS_PER_BOOKING: int = 10
    CONVENIENCE_FEE_PERCENT: Decimal = Decimal("2.5")
    TAX_PERCENT: Decimal = Decimal("18")
    CANCELLATION_CUTOFF_HOURS: int = 2
    ALMOST_FULL_THRESHOLD_PERCENT: Decimal = Decimal("80")
    BOOKING_REFERENCE_PREFIX: str = "CB"
    CONTENTION_RETRY_AFTER_SECONDS: int = 1

    # Expiry reclaimer
    RECLAIM_ENABLED: bool = True
    RECLAIM_INTERVAL_SECONDS: int = 60
    RECLAIM_BATCH_SIZE: int = 100

    @field_validator('MAX_SEATS_PER_BOOKING', 'BOOKING_HOLD_MINUTES', 'RECLAIM_BATCH_SIZE')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def is_testing(self) -> bool:
        return self.APP_ENV == "testing"


# Create global settings instance
settings = Settings()
