"""Shared test fixtures and sample upstream responses."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from karttiming.config import Settings
from karttiming.models.weather import WeatherSnapshot
from karttiming.storage import (
    LapRepository,
    SessionRepository,
    WeatherStore,
    create_db_engine,
    create_schema,
)

TIMING_BASE_URL = "https://kart-timer.com/drivers"
WEATHER_BASE_URL = "https://api.weatherapi.com/v1"


def make_row(
    position: Any = 1,
    kart: Any = "7",
    lap: Any = 5,
    time: Any = "1:02.345",
    gap: Any = None,
    name: str = "Driver",
) -> list[Any]:
    """One results row in the upstream positional layout."""
    return [position, name, kart, lap, "", "", time, gap]


def make_timing(
    rows: list[list[Any]] | None = None,
    number: str = "3",
    length: str = "1030",
) -> dict[str, Any]:
    return {
        "headinfo": {"number": number, "len": length},
        "results": rows if rows is not None else [make_row()],
    }


def timing_bytes(**kwargs: Any) -> bytes:
    return json.dumps(make_timing(**kwargs)).encode()


SAMPLE_TIMING = make_timing(
    rows=[
        make_row(position=1, kart="7", lap=5, time="1:02.345", gap=None),
        make_row(position=2, kart="12", lap=5, time="63.100", gap="0.755"),
        make_row(position=3, kart="3", lap=4, time="", gap=None),
    ],
)

SAMPLE_WEATHER_RESPONSE = {
    "location": {"name": "Batumi", "country": "Georgia"},
    "current": {
        "last_updated_epoch": 1673620200,
        "last_updated": "2023-01-13 06:30",
        "temp_c": 10.0,
        "temp_f": 50.0,
        "is_day": 0,
        "condition": {
            "text": "Clear",
            "icon": "//cdn.weatherapi.com/weather/64x64/night/113.png",
            "code": 1000,
        },
        "wind_mph": 2.2,
        "wind_kph": 3.6,
        "wind_degree": 10,
        "wind_dir": "N",
        "pressure_mb": 1020.0,
        "pressure_in": 30.13,
        "precip_mm": 11.3,
        "precip_in": 0.0,
        "humidity": 74,
        "cloud": 0.4,
        "feelslike_c": 10.3,
        "feelslike_f": 50.5,
        "dewpoint_c": 5.0,
        "vis_km": 16.0,
        "uv": 1.0,
        "gust_kph": 5.8,
    },
}


def make_snapshot(timestamp: datetime, **overrides: Any) -> WeatherSnapshot:
    values: dict[str, Any] = {
        "timestamp_utc": timestamp,
        "temp_c": 22.0,
        "is_day": True,
        "condition_code": 1000,
        "condition_text": "Sunny",
        "wind_kph": 5.0,
        "wind_degree": 180.0,
        "pressure_mb": 1015.0,
        "precipitation_mm": 0.0,
        "humidity": 60.0,
        "cloud": 10.0,
        "feels_like_c": 23.0,
        "dew_point_c": 12.0,
    }
    values.update(overrides)
    return WeatherSnapshot(**values)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        resume_state_path=str(tmp_path / "state.json"),
        weather_api_key="test-key",
    )


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'karttiming.db'}")
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def weather_store(engine) -> WeatherStore:
    return WeatherStore(engine)


@pytest.fixture
def sessions(engine, weather_store, clock) -> SessionRepository:
    return SessionRepository(engine, weather_store, clock=clock)


@pytest.fixture
def laps(engine, sessions) -> LapRepository:
    return LapRepository(engine, sessions)
