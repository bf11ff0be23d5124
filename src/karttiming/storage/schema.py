"""Relational schema of the lap, session and weather tables."""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.engine import Engine

metadata = sa.MetaData()

# SQLite only auto-increments INTEGER PRIMARY KEY columns.
_Id = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

weather_history = sa.Table(
    "weather_history",
    metadata,
    sa.Column("id", _Id, primary_key=True, autoincrement=True),
    sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False, index=True),
    sa.Column("temp_c", sa.Float, nullable=False),
    sa.Column("is_day", sa.Boolean, nullable=False),
    sa.Column("condition_code", sa.Integer, nullable=False),
    sa.Column("condition_text", sa.String, nullable=False),
    sa.Column("wind_kph", sa.Float, nullable=False),
    sa.Column("wind_degree", sa.Float, nullable=False),
    sa.Column("pressure_mb", sa.Float, nullable=False),
    sa.Column("precip_mm", sa.Float, nullable=False),
    sa.Column("humidity", sa.Float, nullable=False),
    sa.Column("cloud", sa.Float, nullable=False),
    sa.Column("feels_like_c", sa.Float, nullable=False),
    sa.Column("dew_point_c", sa.Float, nullable=False),
)

# Weather attributed to a session at creation time.
weather = sa.Table(
    "weather",
    metadata,
    sa.Column("id", _Id, primary_key=True, autoincrement=True),
    sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("weather_history_id", _Id, sa.ForeignKey("weather_history.id")),
    sa.Column("air_temp", sa.Float),
    sa.Column("humidity", sa.Float),
    sa.Column("precipitation", sa.Float),
    sa.Column("cloud", sa.Float),
    sa.Column("weather", sa.String(16)),
    sa.Column("sky", sa.String(16)),
    sa.Column("wind", sa.String(16)),
)

session = sa.Table(
    "session",
    metadata,
    sa.Column("id", sa.String(32), primary_key=True),
    sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.Column("day", sa.Integer, nullable=False, index=True),
    sa.Column("session", sa.Integer, nullable=False),
    sa.Column("total_length", sa.String, nullable=False),
    sa.Column("weather_id", _Id, sa.ForeignKey("weather.id")),
    sa.Column("track_config", sa.String),
)

lap_data = sa.Table(
    "lap_data",
    metadata,
    sa.Column("id", _Id, primary_key=True, autoincrement=True),
    sa.Column("session_id", sa.String(32), sa.ForeignKey("session.id"), nullable=False),
    sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("kart", sa.String, nullable=False),
    sa.Column("lap", sa.Integer, nullable=False),
    sa.Column("laptime", sa.Numeric(10, 3), nullable=False),
    sa.Column("position", sa.Integer, nullable=False),
    sa.Column("gap", sa.String),
    sa.Column("weather_id", _Id),
    sa.Column("invalid_lap", sa.Boolean),
    sa.UniqueConstraint("session_id", "kart", "lap", name="uq_lap_data_session_kart_lap"),
)


def create_schema(engine: Engine) -> None:
    """Create any missing tables."""
    metadata.create_all(engine)
