from functools import lru_cache
from threading import Lock
import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator

# Environment Constants
ENV_PRODUCTION = "production"
ENV_STAGING = "staging"
ENV_DEVELOPMENT = "development"
ENV_LOCAL = "local"


@lru_cache
def get_settings() -> "Settings":
    """Returns a singleton instance of the application settings."""
    return Settings()


_settings_reload_lock = Lock()


def reload_settings_from_environment() -> "Settings":
    """
    Atomically rebuild and replace cached settings from environment values.

    This avoids mutating the cached singleton instance in-place.
    """
    logger = structlog.get_logger()
    with _settings_reload_lock:
        logger.info("settings_reload_started")
        get_settings.cache_clear()
        refreshed = get_settings()
        logger.info("settings_reload_completed")
        return refreshed


class Settings(BaseSettings):
    """
    Main configuration for CostLens.
    Uses Pydantic-Settings for environment variable parsing from .env.
    """

    APP_NAME: str = "CostLens"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    # ENVIRONMENT options: local, development, staging, production
    ENVIRONMENT: str = ENV_DEVELOPMENT
    TESTING: bool = False

    # Record store (async SQLAlchemy URL)
    DATABASE_URL: str = "sqlite+aiosqlite:///./costlens.db"
    DB_ECHO: bool = False

    # Forecast engine
    FORECAST_LOOKBACK_MONTHS: int = Field(default=6, ge=1)
    FORECAST_MIN_REGRESSION_MONTHS: int = Field(default=3, ge=2)
    # Tax and support line items are re-added as a flat estimate on top of the trend
    FORECAST_SUPPORT_MARKUP: float = Field(default=1.10, ge=1.0)
    # Fixed costs are spread over a nominal month, not the target month's day count
    FORECAST_FIXED_COST_DAYS: int = Field(default=30, gt=0)

    # Services whose name contains any of these markers (case-sensitive) are
    # left out of trend fitting and chart history.
    EXCLUDED_SERVICE_MARKERS: list[str] = ["Tax", "Support"]

    # Dashboard
    DEFAULT_EXCHANGE_RATE: float = 150.0

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    @model_validator(mode="after")
    def validate_all_config(self) -> "Settings":
        if self.TESTING and self.ENVIRONMENT in {ENV_PRODUCTION, ENV_STAGING}:
            raise ValueError(
                "TESTING must be false in staging/production runtime environments."
            )
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL must be set.")
        if any(not marker for marker in self.EXCLUDED_SERVICE_MARKERS):
            # An empty marker would match every service name.
            raise ValueError("EXCLUDED_SERVICE_MARKERS must not contain empty strings.")
        return self

    @property
    def is_production(self) -> bool:
        """True only when ENVIRONMENT is explicitly set to 'production'."""
        return self.ENVIRONMENT == ENV_PRODUCTION
