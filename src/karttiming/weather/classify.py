"""Categorical weather classes frozen onto a session."""

from __future__ import annotations

from datetime import datetime

from karttiming.models.weather import (
    PrecipitationClass,
    SkyClass,
    WeatherAttribution,
    WeatherSnapshot,
    WindClass,
)


def classify_precipitation(precipitation_mm: float) -> PrecipitationClass:
    if precipitation_mm == 0:
        return PrecipitationClass.DRY
    if precipitation_mm < 1:
        return PrecipitationClass.DAMP
    if precipitation_mm < 5:
        return PrecipitationClass.WET
    return PrecipitationClass.EXTRA_WET


def classify_sky(cloud: float) -> SkyClass:
    if cloud < 15:
        return SkyClass.CLEAR
    if cloud < 70:
        return SkyClass.CLOUDY
    return SkyClass.OVERCAST


def classify_wind(wind_kph: float) -> WindClass:
    return WindClass.NO_WIND if wind_kph < 10 else WindClass.WINDY


def attribute_weather(snapshot: WeatherSnapshot | None, recorded_at: datetime) -> WeatherAttribution:
    """Build the attribution for a session first seen at ``recorded_at``.

    Without a preceding snapshot the attribution carries no readings.
    """
    if snapshot is None:
        return WeatherAttribution(recorded_at=recorded_at)
    return WeatherAttribution(
        recorded_at=recorded_at,
        weather_history_id=snapshot.id,
        air_temp_c=snapshot.temp_c,
        humidity=snapshot.humidity,
        precipitation_mm=snapshot.precipitation_mm,
        cloud=snapshot.cloud,
        precipitation_class=classify_precipitation(snapshot.precipitation_mm),
        sky_class=classify_sky(snapshot.cloud),
        wind_class=classify_wind(snapshot.wind_kph),
    )
