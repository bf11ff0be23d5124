"""karttiming data models."""

from karttiming.models.lap import KartLap, LapRecord, day_number, make_session_id
from karttiming.models.session import SessionInfo, SessionRecord
from karttiming.models.weather import (
    PrecipitationClass,
    SkyClass,
    WeatherAttribution,
    WeatherSnapshot,
    WindClass,
)

__all__ = [
    "KartLap",
    "LapRecord",
    "PrecipitationClass",
    "SessionInfo",
    "SessionRecord",
    "SkyClass",
    "WeatherAttribution",
    "WeatherSnapshot",
    "WindClass",
    "day_number",
    "make_session_id",
]
