"""
Application configuration management
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "QuickSeats"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = False  # Default to production-safe
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

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50

    # Inventory
    SEAT_HOLD_TTL_MINUTES: int = 15
    EVENT_LOCK_TTL_SECONDS: int = 10
    EVENT_LOCK_WAIT_SECONDS: float = 5.0
    MAX_SEATS_PER_ORDER: int = 20

    # Payment gateway (hosted checkout, HMAC signed fields)
    PAYMENT_GATEWAY_URL: str = "https://testsecureacceptance.cybersource.com/pay"
    PAYMENT_ACCESS_KEY: str = ""
    PAYMENT_PROFILE_ID: str = ""
    PAYMENT_SECRET_KEY: str = ""
    PAYMENT_CURRENCY: str = "LKR"
    PAYMENT_LOCALE: str = "en"
    PAYMENT_RETURN_URL: str = "http://localhost:8000/api/v1/checkout/return"
    FRONTEND_RESULT_URL: str = "http://localhost:3000/checkout/result"

    # Email
    SENDGRID_API_KEY: str = ""
    MAIL_FROM_ADDRESS: str = "noreply@quickseats.lk"
    MAIL_FROM_NAME: str = "QuickSeats"

    # Redemption artifacts
    ARTIFACT_STORAGE_DIR: str = "artifacts"
    ARTIFACT_PUBLIC_BASE_URL: str = "http://localhost:8000/artifacts"

    # Cron
    CRON_SECRET: Optional[str] = None

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Monitoring
    PROMETHEUS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    @field_validator("CORS_ORIGINS", mode="before")
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
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

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Create global settings instance
settings = Settings()
