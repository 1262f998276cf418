"""Configuration settings for the meeting room reservation service.

Loads settings from environment variables (prefix ``ROOMS_``) with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Reservation service configuration."""

    model_config = SettingsConfigDict(env_prefix="ROOMS_", env_file=".env", extra="ignore")

    # Venue
    venue_timezone: str = "America/Sao_Paulo"

    # Business rules
    default_opening_hour: int = 8
    default_closing_hour: int = 18
    max_duration_minutes: int = 240
    past_grace_seconds: int = 120
    default_color: str = "#1976D2"

    # Reports
    report_window_days: int = 30

    # Startup
    seed_rooms: bool = True

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
