"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Surgery Support API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # Redis
    redis_host: str = Field(..., alias="REDIS_HOST")
    redis_port: int = Field(..., alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # JWT (tokens are issued by the identity provider, only verified here)
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Availability
    overview_horizon_days: int = Field(default=30, alias="OVERVIEW_HORIZON_DAYS")
    booking_horizon_days: int = Field(default=90, alias="BOOKING_HORIZON_DAYS")
    booked_slot_probability: float = Field(
        default=0.3,
        alias="BOOKED_SLOT_PROBABILITY",
        description="Chance that a canonical slot is treated as already booked",
    )
    availability_seed: int | None = Field(
        default=None,
        alias="AVAILABILITY_SEED",
        description="Seed for the simulated booking generator (random when unset)",
    )
    enforce_provider_conflicts: bool = Field(default=True, alias="ENFORCE_PROVIDER_CONFLICTS")

    # Reschedule flow timings (seconds)
    notification_dispatch_delay: float = Field(default=1.0, alias="NOTIFICATION_DISPATCH_DELAY")
    confirmation_close_delay: float = Field(default=2.0, alias="CONFIRMATION_CLOSE_DELAY")

    # Simulated delivery latency (seconds)
    notification_batch_delay: float = Field(default=1.0, alias="NOTIFICATION_BATCH_DELAY")
    email_send_delay: float = Field(default=0.5, alias="EMAIL_SEND_DELAY")
    sms_send_delay: float = Field(default=0.3, alias="SMS_SEND_DELAY")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
