"""Lap models."""

from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


def day_number(day: date) -> int:
    """Days elapsed since 0001-01-01, the calendar part of a session id."""
    return day.toordinal() - 1


def make_session_id(day: date, session_number: int) -> str:
    return f"{day_number(day)}-{session_number}"


class LapRecord(BaseModel):
    """One timed lap by one kart in one session, as scraped from the timing screen."""

    model_config = ConfigDict(frozen=True)

    recorded_at: datetime
    session_number: int
    track_length: str
    kart_id: str
    lap_number: int = Field(gt=0)
    lap_time: Decimal
    position: int
    gap: str | None = None

    @property
    def calendar_day(self) -> date:
        """UTC calendar day the lap was observed on."""
        return self.recorded_at.astimezone(UTC).date()

    @property
    def session_id(self) -> str:
        return make_session_id(self.calendar_day, self.session_number)

    @property
    def session_key(self) -> tuple[date, int]:
        return self.calendar_day, self.session_number

    @property
    def dedup_key(self) -> tuple[date, int, str, int]:
        return self.calendar_day, self.session_number, self.kart_id, self.lap_number


class KartLap(BaseModel):
    """A stored lap as returned to the read side."""

    model_config = ConfigDict(frozen=True)

    lap_id: int
    kart_id: str
    lap_number: int
    lap_time: Decimal
    invalid_lap: bool = False
