"""Lap persistence."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import IO

import pandas as pd
import sqlalchemy as sa
from sqlalchemy.engine import Engine

from karttiming._logging import log_store_call
from karttiming._time import as_utc
from karttiming.models.lap import KartLap, LapRecord
from karttiming.storage.base import store_errors, upsert
from karttiming.storage.schema import lap_data, session
from karttiming.storage.sessions import SessionRepository

logger = logging.getLogger(__name__)

# Suspect-lap bounds in seconds, keyed by track length; ``None`` is the fallback.
DEFAULT_INVALID_LAP_BOUNDS: dict[str | None, tuple[float, float]] = {None: (20.0, 90.0)}


class LapRepository:
    """Idempotent lap writes keyed by ``(session, kart, lap)``."""

    def __init__(
        self,
        engine: Engine,
        sessions: SessionRepository,
        *,
        invalid_lap_bounds: Mapping[str | None, tuple[float, float]] | None = None,
    ) -> None:
        self._engine = engine
        self._sessions = sessions
        self._bounds = dict(DEFAULT_INVALID_LAP_BOUNDS)
        self._bounds.update(invalid_lap_bounds or {})

    def is_invalid_lap(self, lap: LapRecord) -> bool:
        """Flag pit-in/out laps, red flags and similar outliers."""
        low, high = self._bounds.get(lap.track_length, self._bounds[None])
        return lap.lap_time <= Decimal(str(low)) or lap.lap_time >= Decimal(str(high))

    def save_lap(self, lap: LapRecord) -> None:
        """Create the lap's session on first sight, then upsert the lap."""
        self._sessions.create_or_get_session(lap)
        self.upsert_lap(lap.session_id, lap)

    @log_store_call
    def upsert_lap(self, session_id: str, lap: LapRecord) -> None:
        values = {
            "session_id": session_id,
            "recorded_at": as_utc(lap.recorded_at),
            "kart": lap.kart_id,
            "lap": lap.lap_number,
            "laptime": lap.lap_time,
            "position": lap.position,
            "gap": lap.gap,
            "weather_id": None,
            "invalid_lap": self.is_invalid_lap(lap),
        }
        with store_errors(f"store lap {lap.lap_number} of kart {lap.kart_id}"), self._engine.begin() as conn:
            upsert(
                conn,
                lap_data,
                values,
                conflict=["session_id", "kart", "lap"],
                update=["laptime", "position", "gap", "recorded_at", "invalid_lap"],
            )

    # ── Read side ──────────────────────────────────────────────

    @log_store_call
    def get_history_for_session(self, session_id: str) -> list[KartLap]:
        """All laps of a session ordered by kart and lap number."""
        stmt = (
            sa.select(
                lap_data.c.id,
                lap_data.c.kart,
                lap_data.c.lap,
                lap_data.c.laptime,
                lap_data.c.invalid_lap,
            )
            .where(lap_data.c.session_id == session_id)
            .order_by(lap_data.c.kart, lap_data.c.lap)
        )
        with store_errors(f"read laps of session {session_id}"), self._engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [
            KartLap(
                lap_id=row.id,
                kart_id=row.kart,
                lap_number=row.lap,
                lap_time=row.laptime,
                invalid_lap=bool(row.invalid_lap),
            )
            for row in rows
        ]

    @log_store_call
    def update_lap_invalid_status(self, lap_id: int, is_invalid: bool) -> bool:
        """Manually mark a lap valid or invalid. Returns False for unknown laps."""
        stmt = sa.update(lap_data).where(lap_data.c.id == lap_id).values(invalid_lap=is_invalid)
        with store_errors(f"update lap {lap_id}"), self._engine.begin() as conn:
            return conn.execute(stmt).rowcount > 0

    @log_store_call
    def get_total_laps_driven(self) -> int:
        with store_errors("count laps"), self._engine.connect() as conn:
            return int(conn.execute(sa.select(sa.func.count()).select_from(lap_data)).scalar_one())

    @log_store_call
    def get_first_recorded_time(self) -> datetime | None:
        with store_errors("read first lap time"), self._engine.connect() as conn:
            first = conn.execute(sa.select(sa.func.min(lap_data.c.recorded_at))).scalar_one()
        return as_utc(first) if first is not None else None

    @log_store_call
    def export_history_csv(self, start: datetime, end: datetime, buffer: IO[str]) -> int:
        """Write laps recorded in ``[start, end)`` as CSV. Returns the row count."""
        stmt = (
            sa.select(
                lap_data.c.recorded_at,
                session.c.day,
                session.c.session,
                session.c.total_length,
                lap_data.c.kart,
                lap_data.c.lap,
                lap_data.c.laptime,
                lap_data.c.position,
                lap_data.c.gap,
                lap_data.c.invalid_lap,
            )
            .select_from(lap_data.join(session, lap_data.c.session_id == session.c.id))
            .where(lap_data.c.recorded_at >= as_utc(start), lap_data.c.recorded_at < as_utc(end))
            .order_by(lap_data.c.recorded_at, lap_data.c.kart, lap_data.c.lap)
        )
        with store_errors("export lap history"), self._engine.connect() as conn:
            frame = pd.read_sql(stmt, conn)
        frame.to_csv(buffer, index=False)
        return len(frame)
