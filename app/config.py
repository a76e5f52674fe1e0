"""
Configuration module for the video search & download API.

This module centralizes all environment variables, constants, and runtime configuration
using pydantic-settings for type-safe configuration management.
"""

import os
import shutil
from functools import lru_cache
from typing import Dict, List, Optional, Tuple
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from app.models import Tier


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS Configuration
    allowed_origin: str = Field(
        default="*",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    # Administrative authentication (key issuance, listing, maintenance)
    admin_api_key: str = Field(
        default="",
        validation_alias="ADMIN_API_KEY",
        description="Credential required by /admin endpoints"
    )

    # Quota Configuration
    free_monthly_limit: int = Field(
        default=30000,
        validation_alias="FREE_MONTHLY_LIMIT",
        description="Accepted requests per calendar month for free-tier keys",
        ge=0
    )

    premium_monthly_limit: int = Field(
        default=300000,
        validation_alias="PREMIUM_MONTHLY_LIMIT",
        description="Accepted requests per calendar month for premium-tier keys",
        ge=0
    )

    default_key_validity_days: int = Field(
        default=365,
        validation_alias="DEFAULT_KEY_VALIDITY_DAYS",
        description="Lifetime of newly issued keys when no explicit validity is given",
        gt=0
    )

    seed_api_keys: str = Field(
        default="",
        validation_alias="SEED_API_KEYS",
        description="Keys issued at startup, formatted as key:tier[,key:tier]"
    )

    # Directory Configuration
    temp_dir: str = Field(
        default="./temp",
        validation_alias="TEMP_DIR",
        description="Scratch directory for MP3 conversions"
    )

    temp_file_max_age_minutes: int = Field(
        default=60,
        validation_alias="TEMP_FILE_MAX_AGE_MINUTES",
        description="Age after which scratch files are deleted"
    )

    temp_cleanup_interval_minutes: int = Field(
        default=60,
        validation_alias="TEMP_CLEANUP_INTERVAL_MINUTES",
        description="Interval of the background scratch-file cleanup"
    )

    temp_cleanup_enabled: bool = Field(
        default=True,
        validation_alias="TEMP_CLEANUP_ENABLED",
        description="Enable/disable the background scratch-file cleanup"
    )

    # Search / streaming
    search_result_limit: int = Field(
        default=20,
        validation_alias="SEARCH_RESULT_LIMIT",
        description="Maximum number of videos returned by /search",
        gt=0
    )

    stream_chunk_size: int = Field(
        default=64 * 1024,
        validation_alias="STREAM_CHUNK_SIZE",
        description="Chunk size in bytes used when proxying media streams"
    )

    stream_timeout: int = Field(
        default=30,
        validation_alias="STREAM_TIMEOUT",
        description="Seconds to wait for the upstream media host"
    )

    ytdlp_cookies_file: Optional[str] = Field(
        default=None,
        validation_alias="YTDLP_COOKIES_FILE",
        description="Path to cookies.txt for authenticated extraction"
    )

    # External converter sites used as the last delivery fallback
    external_services: Dict[str, str] = Field(
        default={
            "y2mate": "https://www.y2mate.com/youtube/{video_id}",
            "savefrom": "https://en.savefrom.net/#url=https://www.youtube.com/watch?v={video_id}",
            "ssyoutube": "https://ssyoutube.com/watch?v={video_id}",
        },
        validation_alias="EXTERNAL_SERVICES",
        description="Map of service name to URL template containing {video_id}"
    )

    converter_fallback_service: str = Field(
        default="y2mate",
        validation_alias="CONVERTER_FALLBACK_SERVICE",
        description="External service used when every local delivery strategy fails"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


def parse_seed_keys(raw: str) -> List[Tuple[str, str]]:
    """
    Parse SEED_API_KEYS ("bera:free,acme:premium") into (key, tier) pairs.
    Entries without a tier default to free.

    Every entry is checked before anything is returned, so a bad entry
    rejects the whole list rather than a prefix of it.

    Raises:
        ValueError: an entry has an empty key or an unknown tier
    """
    pairs = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        key, _, tier = entry.partition(":")
        key = key.strip()
        tier = tier.strip().lower() or Tier.FREE.value
        if not key:
            raise ValueError(f"empty key in '{entry}'")
        if tier not in {t.value for t in Tier}:
            raise ValueError(f"unknown tier '{tier}' for key {key[:4]}…")
        pairs.append((key, tier))
    return pairs


# Initialize settings
settings = get_settings()

TEMP_DIR = settings.temp_dir
TEMP_FILE_MAX_AGE_MINUTES = settings.temp_file_max_age_minutes
TEMP_CLEANUP_INTERVAL_MINUTES = settings.temp_cleanup_interval_minutes

FREE_MONTHLY_LIMIT = settings.free_monthly_limit
PREMIUM_MONTHLY_LIMIT = settings.premium_monthly_limit
DEFAULT_KEY_VALIDITY_DAYS = settings.default_key_validity_days

SEARCH_RESULT_LIMIT = settings.search_result_limit
STREAM_CHUNK_SIZE = settings.stream_chunk_size
STREAM_TIMEOUT = settings.stream_timeout
YTDLP_COOKIES_FILE = settings.ytdlp_cookies_file

EXTERNAL_SERVICES = settings.external_services
CONVERTER_FALLBACK_SERVICE = settings.converter_fallback_service

# Create directories on startup
os.makedirs(TEMP_DIR, exist_ok=True)


def _log_startup_status():
    """Log quota and media tooling configuration on startup."""
    print(f"INFO: Monthly quota - free: {FREE_MONTHLY_LIMIT}, premium: {PREMIUM_MONTHLY_LIMIT}, keys valid {DEFAULT_KEY_VALIDITY_DAYS} days")
    if not settings.admin_api_key:
        print("WARNING: ADMIN_API_KEY not set - /admin endpoints are disabled")
    if shutil.which("ffmpeg") is None:
        print("WARNING: ffmpeg not found on PATH - MP3 conversion will fall back to external converters")
    if CONVERTER_FALLBACK_SERVICE not in EXTERNAL_SERVICES:
        print(f"WARNING: Converter fallback '{CONVERTER_FALLBACK_SERVICE}' is not a configured external service")


_log_startup_status()
