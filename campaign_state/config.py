"""Configuration for the campaign state engine."""

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class EngineSettings(BaseSettings):
    """Settings for source adapters, fallback storage and donation flow.

    Values come from CAMPAIGN_STATE_* environment variables or a .env file.
    """

    # Content-addressed metadata gateway
    metadata_gateway_url: str = "https://ipfs.io/ipfs/"
    metadata_timeout_seconds: float = 10.0

    # Off-chain document store
    redis_url: str = "redis://localhost:6379"
    document_collection: str = "campaigns"

    # Device-local cache
    local_cache_path: Path = Path.home() / ".campaign_state" / "campaigns.json"

    # Ledger units (1 native unit = 10**decimals base units)
    native_unit_decimals: int = 18

    # Donation flow
    donation_display_timeout_seconds: float = 5.0

    # Listings
    listing_cache_ttl_seconds: float = 300.0
    listing_limit: int = 5
    related_limit: int = 5

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {
        "env_prefix": "CAMPAIGN_STATE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("metadata_gateway_url")
    @classmethod
    def ensure_trailing_slash(cls, value: str) -> str:
        return value if value.endswith("/") else value + "/"

    @field_validator("native_unit_decimals")
    @classmethod
    def non_negative_decimals(cls, value: int) -> int:
        if value < 0:
            raise ValueError("native_unit_decimals must be >= 0")
        return value


@lru_cache
def get_settings() -> EngineSettings:
    """Get cached engine settings instance."""
    return EngineSettings()
