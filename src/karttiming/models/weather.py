"""Weather snapshot and session attribution models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class WeatherSnapshot(BaseModel):
    """Point-in-time ambient conditions (~1 min updates)."""

    model_config = ConfigDict(frozen=True)

    timestamp_utc: datetime
    temp_c: float
    is_day: bool
    condition_code: int
    condition_text: str
    wind_kph: float
    wind_degree: float
    pressure_mb: float
    precipitation_mm: float
    humidity: float
    cloud: float
    feels_like_c: float
    dew_point_c: float
    id: int | None = None

    def same_conditions(self, other: WeatherSnapshot) -> bool:
        """True when every reading matches, ignoring timestamp and store id."""
        ignored = {"timestamp_utc", "id"}
        return self.model_dump(exclude=ignored) == other.model_dump(exclude=ignored)


class PrecipitationClass(str, Enum):
    DRY = "Dry"
    DAMP = "Damp"
    WET = "Wet"
    EXTRA_WET = "ExtraWet"


class SkyClass(str, Enum):
    CLEAR = "Clear"
    CLOUDY = "Cloudy"
    OVERCAST = "Overcast"


class WindClass(str, Enum):
    NO_WIND = "NoWind"
    WINDY = "Windy"


class WeatherAttribution(BaseModel):
    """Weather frozen onto a session when the session is first created."""

    model_config = ConfigDict(frozen=True)

    recorded_at: datetime
    weather_history_id: int | None = None
    air_temp_c: float | None = None
    humidity: float | None = None
    precipitation_mm: float | None = None
    cloud: float | None = None
    precipitation_class: PrecipitationClass | None = None
    sky_class: SkyClass | None = None
    wind_class: WindClass | None = None
