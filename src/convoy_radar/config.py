"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="CVR_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Convoy Radar API"
    api_prefix: str = "/api"

    poll_interval_seconds: float = Field(default=20.0, gt=0.0, description="Fixed monitor tick period.")
    geolocation_timeout_seconds: float = Field(default=5.0, gt=0.0)
    geolocation_url: Optional[str] = Field(
        default=None,
        description="Optional HTTP endpoint returning the merchant device position as JSON.",
    )

    trend_proximity_km: float = Field(default=2.0, ge=0.0, description="Closest approach that arms 'passed'.")
    trend_passed_delta_km: float = Field(default=0.6, ge=0.0, description="Recession needed to confirm 'passed'.")
    trend_dead_band_km: float = Field(default=0.45, ge=0.0, description="Jitter band reported as 'stable'.")

    offer_archive_limit: int = Field(default=20, ge=0)
    offer_archive_age_days: float = Field(default=5.0, ge=0.0)

    default_radius_km: float = Field(default=30.0, gt=0.0)
    max_radius_km: float = Field(default=500.0, gt=0.0)
    distance_presets: tuple[int, ...] = Field(default=(10, 25, 40, 60, 80))

    live_window_seconds: float = Field(default=45.0, ge=0.0)
    origin_change_threshold_deg: float = Field(default=0.00035, ge=0.0)

    headcount_rpc_name: str = Field(default="get_convoy_headcount_bulk_v1")

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("distance_presets", mode="before")
    @classmethod
    def _parse_int_tuple_from_env(cls, value: Any) -> tuple[int, ...]:
        """Parse integer tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(int(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(int(item) for item in parsed)
            except (json.JSONDecodeError, TypeError, ValueError):
                pass
            if "," in value:
                return tuple(int(item.strip()) for item in value.split(",") if item.strip())
            if value.strip():
                try:
                    return (int(value.strip()),)
                except ValueError:
                    return tuple()
        return tuple()


settings = Settings()
