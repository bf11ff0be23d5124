"""Day and session lifecycle of the live-timing feed.

The upstream screen never says when a session or a day starts or ends. These
helpers infer it from the wall clock, the time of the last changed payload,
and the reported session number. All state lives in ``ResumeState``, which the
collector owns, passes into every tick and checkpoints to disk.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import BaseModel

from karttiming.config import Settings
from karttiming.models.lap import day_number

logger = logging.getLogger(__name__)


class TrackPhase(str, Enum):
    ACTIVE = "Active"
    DAY_ENDED = "DayEnded"


class ResumeState(BaseModel):
    """Collector state that survives a restart."""

    fingerprint: str | None = None
    last_telemetry_at: datetime | None = None
    day_ended: bool = False
    last_session: str | None = None
    last_session_day: int | None = None

    @property
    def phase(self) -> TrackPhase:
        return TrackPhase.DAY_ENDED if self.day_ended else TrackPhase.ACTIVE


def within_operating_hours(now: datetime, start_hour: int, end_hour: int) -> bool:
    """Whether ``now`` falls inside ``[start_hour, end_hour)`` UTC.

    A window with ``start_hour > end_hour`` wraps past midnight.
    """
    hour = now.astimezone(UTC).hour
    if start_hour <= end_hour:
        return start_hour <= hour < end_hour
    return hour >= start_hour or hour < end_hour


def should_idle(state: ResumeState, now: datetime, settings: Settings) -> bool:
    """True once the track is closed and the feed has been quiet long enough.

    Crossing the end of the operating window alone is not enough: a session
    that is still producing laps keeps the day open.
    """
    if within_operating_hours(now, settings.operating_start_hour_utc, settings.operating_end_hour_utc):
        return False
    if state.last_telemetry_at is None:
        return True
    return now - state.last_telemetry_at > timedelta(hours=settings.day_end_idle_hours)


def end_day(state: ResumeState) -> bool:
    """Move to ``DayEnded``. Returns True only on the transition itself."""
    if state.day_ended:
        return False
    state.day_ended = True
    return True


def admit_session(state: ResumeState, session_number: int, now: datetime, settings: Settings) -> bool:
    """Decide whether a changed payload belongs to live racing.

    After the day has ended, a payload still showing the last session of that
    day is the stale tail of the previous day and is rejected. Session ``1``
    is always admitted. Any other session number moves the state back to
    ``Active``.

    With ``settings.rollover_on_day_change`` a change of UTC day since the last
    admitted session also counts as a new day.
    """
    number = str(session_number)
    today = day_number(now.astimezone(UTC).date())

    stale_tail = state.day_ended and state.last_session == number and number != "1"
    if (
        stale_tail
        and settings.rollover_on_day_change
        and state.last_session_day is not None
        and state.last_session_day != today
    ):
        stale_tail = False

    if stale_tail:
        logger.debug("Day has ended and session %s is its last session, skipping", number)
        return False

    if state.day_ended:
        logger.info("New racing day detected with session %s (previous %s)", number, state.last_session)
    state.day_ended = False
    state.last_session = number
    state.last_session_day = today
    return True
