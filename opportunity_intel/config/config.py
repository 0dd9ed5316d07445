"""Configuration management for the opportunity intelligence service."""

from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from ..errors import ConfigError


class Config(BaseSettings):
    """Application configuration from environment variables."""

    # Providers
    grants_gov_api_url: str = "https://api.grants.gov/v1/api"
    grants_gov_attribution: str = "Opportunity Intel"
    usaspending_api_url: str = "https://api.usaspending.gov/api/v2"
    provider_timeout_seconds: float = Field(8.0, gt=0)
    provider_max_attempts: int = Field(3, ge=1, le=10)

    # Aggregation
    max_fetch_window: int = Field(500, ge=1)
    default_page_size: int = Field(20, ge=1, le=500)

    # Housekeeping
    cache_cleanup_interval_minutes: int = Field(10, ge=1)
    heuristics_path: Optional[str] = None
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": False}


def validate_config(**overrides) -> Config:
    """Load and validate configuration from environment.

    Raises ConfigError listing ALL offending variables (not just the first one).
    """
    try:
        return Config(**overrides)
    except ValidationError as exc:
        bad = sorted({str(err["loc"][0]).upper() for err in exc.errors() if err.get("loc")})
        names = ", ".join(bad) or "unknown"
        raise ConfigError(
            f"Invalid environment variable(s): {names}. "
            "Please fix them in your .env file or environment."
        ) from exc


def load_config() -> Config:
    """Load configuration from environment (startup entry point)."""
    return validate_config()
