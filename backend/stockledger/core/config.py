"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. This ensures:
1. Type validation at startup
2. Centralized configuration
3. Documentation of available settings
4. Proper defaults
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database - defaults to relative path for Docker, override via env for local dev
    database_url: str = "sqlite:///./stockledger.db"

    # Security (tokens are issued by the identity provider, we only verify them)
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 240  # 4 hours

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Timezone used to decide what "today" is
    timezone: str = "UTC"

    # ==========================================================================
    # Inventory rules
    # ==========================================================================
    backdate_window_days: int = 7  # single-movement path only
    max_lookback_days: int = 3660  # roll-forward guard, roughly ten years
    low_stock_threshold_percent: float = 0.2
    low_stock_threshold_absolute: int = 10

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    @field_validator("backdate_window_days", "max_lookback_days")
    @classmethod
    def validate_non_negative_days(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Day windows must be non-negative")
        return v

    @field_validator("low_stock_threshold_percent")
    @classmethod
    def validate_threshold_percent(cls, v: float) -> float:
        if not 0 <= v <= 1:
            raise ValueError("low_stock_threshold_percent must be between 0 and 1")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production safety."""
        import warnings

        if not self.debug:
            if self.secret_key == "change-me-in-production":
                raise ValueError(
                    "FATAL: Cannot start in production mode with default SECRET_KEY. "
                    "Set a secure SECRET_KEY environment variable (minimum 32 characters)."
                )
            if len(self.secret_key) < 32:
                raise ValueError(
                    f"FATAL: SECRET_KEY must be at least 32 characters in production mode "
                    f"(current length: {len(self.secret_key)})."
                )

            localhost_patterns = ["localhost", "127.0.0.1", "0.0.0.0"]
            origins = [o.strip() for o in self.cors_origins.split(",")]
            localhost_origins = [o for o in origins if any(p in o for p in localhost_patterns)]
            if localhost_origins:
                warnings.warn(
                    f"CORS origins contain localhost URLs in production mode: {localhost_origins}.",
                    UserWarning,
                    stacklevel=2,
                )

        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list, filtering localhost in production."""
        if self.cors_origins == "*":
            return ["*"]

        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

        if not self.debug:
            localhost_patterns = ["localhost", "127.0.0.1", "0.0.0.0"]
            origins = [o for o in origins if not any(p in o for p in localhost_patterns)]

        return origins


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
