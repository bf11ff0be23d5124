"""Session models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SessionRecord(BaseModel):
    """A stored racing session, keyed by ``"<dayNumber>-<sessionNumber>"``."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    recorded_at: datetime
    updated_at: datetime | None = None
    day: int
    session_number: int
    track_length: str
    weather_id: int | None = None
    track_config: str | None = None


class SessionInfo(BaseModel):
    """Summary row for the list of sessions on a day."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    name: str
    last_seen_at: datetime
    air_temp_c: float | None = None
