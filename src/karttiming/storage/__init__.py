"""Storage layer — schema, repositories and the weather store."""

from __future__ import annotations

from .base import create_db_engine, upsert
from .laps import LapRepository
from .schema import create_schema
from .sessions import SessionRepository
from .weather_store import WeatherStore

__all__ = [
    "LapRepository",
    "SessionRepository",
    "WeatherStore",
    "create_db_engine",
    "create_schema",
    "upsert",
]
