"""
Application configuration with Pydantic Settings for validation and type safety.
Supports environment-specific configurations and .env file loading.
"""

from enum import Enum
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Environment(str, Enum):
    """Application environment types"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """
    Application settings with validation.
    Settings are loaded from environment variables or .env file.
    """

    # Application settings
    app_name: str = Field(default="TiffinMate", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=5000, ge=1, le=65535, description="Server port")

    # Database settings
    database_url: str = Field(
        default="postgresql+psycopg2://tiffinmate@localhost:5432/tiffinmate",
        description="SQLAlchemy database URL",
    )
    db_echo: bool = Field(default=False, description="SQLAlchemy echo SQL statements")
    db_init_attempts: int = Field(
        default=8, ge=1, description="Database initialization retry attempts"
    )
    db_init_delay_sec: float = Field(
        default=2.0, ge=0, description="Delay between DB init attempts"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log format string",
    )
    log_file: Optional[str] = Field(
        default=None, description="Optional rotating log file path"
    )
    log_file_max_bytes: int = Field(default=10485760, ge=1024)
    log_file_backup_count: int = Field(default=5, ge=0)

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8081"],
        description="Allowed CORS origins",
    )
    cors_allow_credentials: bool = Field(
        default=True, description="Allow CORS credentials"
    )
    cors_allow_methods: list[str] = Field(
        default=["*"], description="Allowed HTTP methods"
    )
    cors_allow_headers: list[str] = Field(
        default=["*"], description="Allowed HTTP headers"
    )

    # API settings
    api_prefix: str = Field(default="/api", description="API route prefix")
    api_title: str = Field(
        default="TiffinMate API", description="API documentation title"
    )
    api_description: str = Field(
        default="Tiffin subscription, meal selection, delivery and payment backend",
        description="API documentation description",
    )

    # Auth settings
    jwt_secret_key: str = Field(
        default="change-me-in-production", description="JWT signing secret"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    jwt_expire_days: int = Field(default=30, ge=1, description="Token lifetime")
    otp_length: int = Field(default=6, ge=4, le=8)
    otp_expiry_minutes: int = Field(default=5, ge=1)
    otp_max_attempts: int = Field(default=3, ge=1)

    # Rate limiting (slowapi limit strings)
    disable_rate_limit: bool = Field(
        default=False, description="Turn off all request rate limits"
    )
    rate_limit_default: str = Field(default="100/15minutes")
    rate_limit_login: str = Field(default="10/15minutes")
    rate_limit_otp: str = Field(default="5/15minutes")

    # SMS settings
    sms_provider: str = Field(
        default="console", description="SMS provider: console or fast2sms"
    )
    fast2sms_api_key: Optional[str] = Field(default=None)
    fast2sms_url: str = Field(default="https://www.fast2sms.com/dev/bulkV2")
    sms_sender_id: str = Field(default="TIFFIN")
    sms_timeout_sec: float = Field(default=10.0, gt=0)

    # Business settings
    business_name: str = Field(default="TiffinMate")
    timezone: str = Field(default="Asia/Kolkata", description="Business timezone")
    upi_id: str = Field(default="tiffinmate@upi")
    upi_payee_name: str = Field(default="TiffinMate")
    payment_due_days: int = Field(default=3, ge=0)
    trial_max_days: int = Field(default=3, ge=1)
    expiry_reminder_days: int = Field(default=2, ge=0)

    # Scheduler settings
    scheduler_enabled: bool = Field(default=True)
    cron_midnight: str = Field(default="0 0 * * *")
    cron_auto_deliveries: str = Field(default="0 5 * * *")
    cron_expiry_reminder: str = Field(default="0 9 * * *")
    cron_expiry_warning: str = Field(default="0 10 * * *")
    cron_auto_disable: str = Field(default="0 11 * * *")
    cron_default_dinner: str = Field(default="5 11 * * *")
    cron_payment_overdue: str = Field(default="0 12 * * *")
    cron_default_lunch: str = Field(default="5 23 * * *")
    cron_auto_mark_delivered: str = Field(default="*/10 * * * *")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment value"""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator("sms_provider")
    @classmethod
    def validate_sms_provider(cls, v: str) -> str:
        v = v.lower()
        if v not in ("console", "fast2sms"):
            raise ValueError("sms_provider must be 'console' or 'fast2sms'")
        return v

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        """Check if running in testing environment"""
        return self.environment == Environment.TESTING


# Global settings instance
settings = Settings()
