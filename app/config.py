from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List
import os


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")
    port: int = Field(default=8000, alias="PORT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./rihla.db",
        alias="DATABASE_URL"
    )
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")

    # Token secrets (issuance lives in the auth service, we only verify)
    access_token_secret: str = Field(
        default="dev-access-secret-at-least-32-characters-long",
        alias="ACCESS_TOKEN_SECRET"
    )
    refresh_token_secret: str = Field(
        default="dev-refresh-secret-at-least-32-characters-long",
        alias="REFRESH_TOKEN_SECRET"
    )
    email_token_secret: str = Field(
        default="dev-email-secret-at-least-32-characters-long",
        alias="EMAIL_TOKEN_SECRET"
    )
    algorithm: str = "HS256"

    # Object store (media URLs only)
    cloudinary_cloud_name: str = Field(default="", alias="CLOUDINARY_CLOUD_NAME")
    cloudinary_api_key: str = Field(default="", alias="CLOUDINARY_API_KEY")
    cloudinary_api_secret: str = Field(default="", alias="CLOUDINARY_API_SECRET")

    # Redis - typing indicators and rate limit storage
    redis_url: str = Field(default="", alias="REDIS_URL")
    typing_ttl_seconds: int = Field(default=5, alias="TYPING_TTL_SECONDS")

    # CORS - Frontend URLs from environment (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:8081,http://localhost:19006",
        alias="ALLOWED_ORIGINS"
    )

    # ==============================================
    # Reservations & pricing
    # ==============================================
    # Format: comma-separated weekday numbers (Monday=0, Sunday=6)
    weekend_days: str = Field(default="5,6", alias="WEEKEND_DAYS")
    default_currency: str = Field(default="MRO", alias="DEFAULT_CURRENCY")
    reservation_hold_hours: int = Field(default=24, alias="RESERVATION_HOLD_HOURS")

    # Background sweep (expire pending / complete finished stays)
    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    expire_sweep_interval_seconds: int = Field(default=300, alias="EXPIRE_SWEEP_INTERVAL_SECONDS")

    # ==============================================
    # Push notifications (Expo)
    # ==============================================
    push_enabled: bool = Field(default=True, alias="PUSH_ENABLED")
    expo_push_url: str = Field(
        default="https://exp.host/--/api/v2/push/send",
        alias="EXPO_PUSH_URL"
    )
    push_timeout_seconds: int = Field(default=10, alias="PUSH_TIMEOUT_SECONDS")

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    @field_validator('access_token_secret', 'refresh_token_secret', 'email_token_secret')
    @classmethod
    def validate_token_secret(cls, v: str) -> str:
        """Token secrets must be present and long enough"""
        if not v:
            raise ValueError("Token secrets are required and cannot be empty")
        if len(v) < 32:
            raise ValueError("Token secrets must be at least 32 characters long")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def has_media_storage(self) -> bool:
        """Check if all object store credentials are present"""
        return bool(
            self.cloudinary_cloud_name and
            self.cloudinary_api_key and
            self.cloudinary_api_secret
        )

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        if not self.allowed_origins:
            return ["http://localhost:3000"]

        seen = set()
        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in seen:
                seen.add(origin)
                origins.append(origin)

        return origins if origins else ["http://localhost:3000"]

    @property
    def weekend_day_numbers(self) -> List[int]:
        """
        Parse weekend days into list of weekday numbers.
        Default: [5, 6] (Saturday, Sunday)
        """
        try:
            return [int(d.strip()) for d in self.weekend_days.split(",") if d.strip()]
        except ValueError:
            return [5, 6]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    On hosted deployments (RENDER set) the platform injects the
    environment, so the local .env file is not read.
    """
    if os.environ.get("RENDER"):
        return Settings(_env_file=None)
    return Settings()


# Initialize settings on module load
settings = get_settings()
