"""Session persistence and weather attribution."""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from karttiming._logging import log_store_call
from karttiming._time import Clock, as_utc, utc_now
from karttiming.models.lap import LapRecord, day_number
from karttiming.models.session import SessionInfo, SessionRecord
from karttiming.storage.base import store_errors, upsert
from karttiming.storage.schema import session, weather
from karttiming.storage.weather_store import WeatherStore
from karttiming.weather.classify import attribute_weather

logger = logging.getLogger(__name__)


class SessionRepository:
    """Creates session rows on the first lap seen for them, and reads them back.

    Creation is idempotent per session id. One repository-wide lock serializes
    first arrivals, so concurrent callers produce a single session row and a
    single weather attribution.
    """

    def __init__(self, engine: Engine, weather_store: WeatherStore, *, clock: Clock = utc_now) -> None:
        self._engine = engine
        self._weather_store = weather_store
        self._clock = clock
        self._lock = threading.Lock()
        self._initialized: set[str] = set()

    def create_or_get_session(self, lap: LapRecord) -> None:
        """Make sure the session ``lap`` belongs to exists."""
        session_id = lap.session_id
        if session_id in self._initialized:
            return

        with self._lock:
            if session_id in self._initialized:
                return
            logger.debug("Session %s has not been created yet in this process", session_id)
            self._create_session(lap)
            self._initialized.add(session_id)

    @log_store_call
    def _create_session(self, lap: LapRecord) -> bool:
        """Write the attribution and session rows. Returns False if the session already existed."""
        session_id = lap.session_id
        now = self._clock()
        with store_errors(f"create session {session_id}"), self._engine.begin() as conn:
            existing = conn.execute(
                sa.select(session.c.id).where(session.c.id == session_id)
            ).first()
            if existing is not None:
                # Stored by an earlier process; keep its original attribution.
                conn.execute(
                    sa.update(session).where(session.c.id == session_id).values(updated_at=now)
                )
                logger.info("Session %s already stored, refreshed it", session_id)
                return False

            snapshot = self._weather_store.last_before(lap.recorded_at)
            attribution = attribute_weather(snapshot, lap.recorded_at)
            weather_id = conn.execute(
                sa.insert(weather).values(
                    recorded_at=as_utc(attribution.recorded_at),
                    weather_history_id=attribution.weather_history_id,
                    air_temp=attribution.air_temp_c,
                    humidity=attribution.humidity,
                    precipitation=attribution.precipitation_mm,
                    cloud=attribution.cloud,
                    weather=_enum_value(attribution.precipitation_class),
                    sky=_enum_value(attribution.sky_class),
                    wind=_enum_value(attribution.wind_class),
                )
            ).inserted_primary_key[0]

            upsert(
                conn,
                session,
                {
                    "id": session_id,
                    "recorded_at": as_utc(lap.recorded_at),
                    "updated_at": as_utc(lap.recorded_at),
                    "day": day_number(lap.calendar_day),
                    "session": lap.session_number,
                    "total_length": lap.track_length,
                    "weather_id": weather_id,
                    "track_config": None,
                },
                conflict=["id"],
                overrides={"updated_at": now},
            )

        logger.info(
            "Created session %s (sky=%s, precipitation=%s)",
            session_id, attribution.sky_class, attribution.precipitation_class,
        )
        return True

    # ── Read side ──────────────────────────────────────────────

    @log_store_call
    def get_session_infos_for_day(self, day: date) -> list[SessionInfo]:
        """Sessions recorded on ``day``, newest first."""
        stmt = (
            sa.select(
                session.c.id,
                sa.func.coalesce(session.c.updated_at, session.c.recorded_at).label("last_seen_at"),
                session.c.session,
                weather.c.air_temp,
            )
            .select_from(session.outerjoin(weather, session.c.weather_id == weather.c.id))
            .where(session.c.day == day_number(day))
            .order_by(session.c.recorded_at.desc())
        )
        with store_errors(f"read sessions for {day}"), self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [
            SessionInfo(
                session_id=row["id"],
                name=f"Session {row['session']}",
                last_seen_at=as_utc(row["last_seen_at"]),
                air_temp_c=row["air_temp"],
            )
            for row in rows
        ]

    @log_store_call
    def get_session(self, session_id: str) -> SessionRecord | None:
        stmt = sa.select(session).where(session.c.id == session_id)
        with store_errors(f"read session {session_id}"), self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        if row is None:
            return None
        return SessionRecord(
            session_id=row["id"],
            recorded_at=as_utc(row["recorded_at"]),
            updated_at=as_utc(row["updated_at"]) if row["updated_at"] is not None else None,
            day=row["day"],
            session_number=row["session"],
            track_length=row["total_length"],
            weather_id=row["weather_id"],
            track_config=row["track_config"],
        )

    @log_store_call
    def get_session_attribution(self, session_id: str) -> dict[str, Any] | None:
        """Raw attributed weather row of a session."""
        stmt = (
            sa.select(weather)
            .select_from(session.join(weather, session.c.weather_id == weather.c.id))
            .where(session.c.id == session_id)
        )
        with store_errors(f"read weather of session {session_id}"), self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return dict(row) if row is not None else None

    @log_store_call
    def update_track_config(self, session_id: str, track_config: str | None) -> bool:
        """Set the user-supplied track layout. Returns False for unknown sessions."""
        stmt = (
            sa.update(session)
            .where(session.c.id == session_id)
            .values(track_config=track_config, updated_at=self._clock())
        )
        with store_errors(f"update session {session_id}"), self._engine.begin() as conn:
            return conn.execute(stmt).rowcount > 0


def _enum_value(value: Any) -> str | None:
    return value.value if value is not None else None
