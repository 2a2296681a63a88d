"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETPLAN_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet Route Planner API"
    api_prefix: str = "/api"

    oracle_api_key: Optional[str] = Field(
        default=None,
        description="API key for the route-sequencing model. Planning is impossible without it.",
    )
    oracle_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the generative language REST API.",
    )
    oracle_model: str = Field(default="gemini-3-pro-preview", description="Model used to sequence trips.")
    oracle_advice_model: str = Field(
        default="gemini-3-flash-preview",
        description="Cheaper model used for advisory savings suggestions.",
    )
    oracle_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    oracle_advice_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    oracle_timeout_seconds: float = Field(default=120.0, gt=0.0)
    oracle_max_retries: int = Field(default=2, ge=0)
    oracle_backoff_seconds: float = Field(default=1.0, ge=0.0)
    oracle_call_delay_seconds: float = Field(
        default=0.6,
        ge=0.0,
        description="Pause before each sequencing call inside one optimization run.",
    )

    rate_limit_max_requests: int = Field(default=10, ge=1)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0.0)
    max_instruction_length: int = Field(default=5000, ge=1)

    depot_name: str = "Wijchen"
    depot_latitude: float = 51.8157
    depot_longitude: float = 5.7663
    default_service_minutes: int = Field(default=15, ge=0)
    default_tolerance_minutes: int = Field(default=15, ge=0)
    default_max_route_duration_hours: float = Field(default=9.0, gt=0.0)
    monthly_operating_hours: float = Field(default=160.0, gt=0.0)
    trip_fee_truck: float = Field(default=50.0, ge=0.0)
    trip_fee_van: float = Field(default=30.0, ge=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
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


settings = Settings()
