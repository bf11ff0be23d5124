"""Weather history persistence."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from karttiming._logging import log_store_call
from karttiming._time import as_utc
from karttiming.models.weather import WeatherSnapshot
from karttiming.storage.base import store_errors
from karttiming.storage.schema import weather_history

logger = logging.getLogger(__name__)


def _to_snapshot(row: Any) -> WeatherSnapshot:
    return WeatherSnapshot(
        id=row["id"],
        timestamp_utc=as_utc(row["recorded_at"]),
        temp_c=row["temp_c"],
        is_day=row["is_day"],
        condition_code=row["condition_code"],
        condition_text=row["condition_text"],
        wind_kph=row["wind_kph"],
        wind_degree=row["wind_degree"],
        pressure_mb=row["pressure_mb"],
        precipitation_mm=row["precip_mm"],
        humidity=row["humidity"],
        cloud=row["cloud"],
        feels_like_c=row["feels_like_c"],
        dew_point_c=row["dew_point_c"],
    )


class WeatherStore:
    """Stores weather snapshots and finds the one in effect at a given time."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @log_store_call
    def store(self, snapshot: WeatherSnapshot) -> int:
        """Insert a snapshot and return its id."""
        values = {
            "recorded_at": as_utc(snapshot.timestamp_utc),
            "temp_c": snapshot.temp_c,
            "is_day": snapshot.is_day,
            "condition_code": snapshot.condition_code,
            "condition_text": snapshot.condition_text,
            "wind_kph": snapshot.wind_kph,
            "wind_degree": snapshot.wind_degree,
            "pressure_mb": snapshot.pressure_mb,
            "precip_mm": snapshot.precipitation_mm,
            "humidity": snapshot.humidity,
            "cloud": snapshot.cloud,
            "feels_like_c": snapshot.feels_like_c,
            "dew_point_c": snapshot.dew_point_c,
        }
        with store_errors("store weather snapshot"), self._engine.begin() as conn:
            result = conn.execute(sa.insert(weather_history).values(**values))
            return int(result.inserted_primary_key[0])

    @log_store_call
    def last_before(self, time: datetime) -> WeatherSnapshot | None:
        """Latest snapshot recorded strictly before ``time``, or None."""
        stmt = (
            sa.select(weather_history)
            .where(weather_history.c.recorded_at < as_utc(time))
            .order_by(weather_history.c.recorded_at.desc(), weather_history.c.id.desc())
            .limit(1)
        )
        with store_errors("read weather history"), self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            logger.debug("No weather recorded before %s", time)
            return None
        return _to_snapshot(row)
