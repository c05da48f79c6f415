"""Configuration settings for settlement reconciliation."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STATE_FILE = Path.home() / ".settlement_recon.json"


def split_ids(raw: str | None) -> list[str]:
    """Split a comma separated list, trimming entries and dropping blanks."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseSettings):
    """Flat settings read from the environment or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Stripe API
    stripe_secret_key: SecretStr | None = Field(
        default=None, validation_alias="STRIPE_SECRET_KEY"
    )
    stripe_api_url: str = Field(
        default="https://api.stripe.com", validation_alias="STRIPE_API_URL"
    )
    stripe_timeout: float = Field(default=30.0, validation_alias="STRIPE_TIMEOUT")
    stripe_max_retries: int = Field(default=3, validation_alias="STRIPE_MAX_RETRIES")

    # Reconciliation inputs (prompted for when unset)
    excluded_product_id: str | None = Field(
        default=None, validation_alias="EXCLUDED_PRODUCT_ID"
    )
    exclusion_customer_ids: str | None = Field(
        default=None, validation_alias="EXCLUSION_CUSTOMER_IDS"
    )
    suppression_markers: str = Field(
        default="razoyo,automaticffl,refactored.group",
        validation_alias="SUPPRESSION_MARKERS",
    )

    # Persisted run configuration
    state_file: Path = Field(default=DEFAULT_STATE_FILE, validation_alias="RECON_STATE_FILE")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )

    @property
    def exclusion_customer_id_list(self) -> list[str]:
        return split_ids(self.exclusion_customer_ids)

    @property
    def suppression_marker_list(self) -> list[str]:
        return [marker.lower() for marker in split_ids(self.suppression_markers)]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
