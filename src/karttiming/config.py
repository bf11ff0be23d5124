"""Runtime configuration using Pydantic Settings.

Every field can be overridden through a ``KARTTIMING_``-prefixed environment
variable or a ``.env`` file, e.g. ``KARTTIMING_WEATHER_API_KEY=...``.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Ingestion settings.

    ``rollover_on_day_change`` admits a payload showing the previous day's
    last session as soon as the UTC day has changed. Since the stale tail of a
    day is normally first seen the next morning, enabling it gives up the
    stale-tail guard in exchange for never suppressing a genuine first session.
    """

    model_config = SettingsConfigDict(
        env_prefix="KARTTIMING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    database_url: str = "sqlite:///karttiming.db"
    resume_state_path: str = "collector_state.json"

    # Live timing
    timing_base_url: str = "https://kart-timer.com/drivers"
    timing_track_id: int = 110
    timing_timeout_seconds: float = Field(default=2.5, gt=0)
    poll_interval_seconds: float = Field(default=3.0, gt=0)
    idle_poll_interval_seconds: float = Field(default=300.0, gt=0)

    # Operating window (UTC hours) and day rollover
    operating_start_hour_utc: int = Field(default=5, ge=0, le=23)
    operating_end_hour_utc: int = Field(default=19, ge=0, le=23)
    day_end_idle_hours: float = Field(default=1.5, gt=0)
    rollover_on_day_change: bool = False

    # Lap plausibility
    max_lap_time_seconds: float = Field(default=600.0, gt=0)
    invalid_lap_min_seconds: float = 20.0
    invalid_lap_max_seconds: float = 90.0
    invalid_lap_overrides: dict[str, tuple[float, float]] = Field(default_factory=dict)

    # Weather
    weather_api_key: str | None = None
    weather_location: str = "Batumi"
    weather_base_url: str = "https://api.weatherapi.com/v1"
    weather_timeout_seconds: float = Field(default=10.0, gt=0)
    weather_interval_seconds: float = Field(default=60.0, gt=0)

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    @model_validator(mode="after")
    def _check_consistency(self) -> Settings:
        if self.timing_timeout_seconds >= self.poll_interval_seconds:
            raise ValueError("timing_timeout_seconds must be shorter than poll_interval_seconds")
        if self.weather_timeout_seconds >= self.weather_interval_seconds:
            raise ValueError("weather_timeout_seconds must be shorter than weather_interval_seconds")
        bounds = [(self.invalid_lap_min_seconds, self.invalid_lap_max_seconds)]
        bounds += list(self.invalid_lap_overrides.values())
        for low, high in bounds:
            if low >= high:
                raise ValueError(f"Invalid lap bounds ({low}, {high}): min must be below max")
        return self

    def invalid_lap_bounds(self) -> dict[str | None, tuple[float, float]]:
        """Suspect-lap bounds keyed by track length; ``None`` is the fallback."""
        bounds: dict[str | None, tuple[float, float]] = dict(self.invalid_lap_overrides)
        bounds[None] = (self.invalid_lap_min_seconds, self.invalid_lap_max_seconds)
        return bounds


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
