"""Decoding of the live-timing table into lap records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from karttiming.exceptions import ParseError, RowParseError
from karttiming.models.lap import LapRecord
from karttiming.models.raw import RawTimingPayload

logger = logging.getLogger(__name__)

DEFAULT_MAX_LAP_TIME = Decimal(600)

# Positional layout of one upstream results row.
_POSITION = 0
_KART = 2
_LAP = 3
_TIME = 6
_GAP = 7


@dataclass(frozen=True)
class TimingHeader:
    session_number: int
    track_length: str


@dataclass(frozen=True)
class ParsedTiming:
    """Result of decoding one live-screen payload."""

    header: TimingHeader
    laps: list[LapRecord] = field(default_factory=list)
    dropped: int = 0


def parse_lap_time(value: str) -> Decimal:
    """Normalize ``"m:ss.fff"`` or plain ``"ss.fff"`` notation to seconds.

    Raises:
        RowParseError: if the value is not a finite time.
    """
    text = value.strip()
    try:
        if ":" in text:
            minutes, seconds = text.split(":", 1)
            result = Decimal(seconds) + int(minutes) * 60
        else:
            result = Decimal(text)
    except (InvalidOperation, ValueError) as exc:
        raise RowParseError(f"Unparseable lap time {value!r}") from exc
    if not result.is_finite():
        raise RowParseError(f"Unparseable lap time {value!r}")
    return result


def _as_int(value: Any, name: str, row: list[Any]) -> int:
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise RowParseError(f"Invalid {name} {value!r}", row) from exc


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def decode_row(row: Any, header: TimingHeader, recorded_at: datetime) -> LapRecord | None:
    """Map one positional results row to a lap record.

    Returns ``None`` for rows that carry no lap time yet (a kart on its out
    lap). Every other defect raises ``RowParseError``.
    """
    if not isinstance(row, list):
        raise RowParseError(f"Row is {type(row).__name__}, expected an array", row)
    if len(row) <= _TIME:
        raise RowParseError(f"Row has {len(row)} fields, expected at least {_TIME + 1}", row)

    raw_time = row[_TIME]
    if _is_blank(raw_time):
        return None
    lap_time = parse_lap_time(str(raw_time))

    kart = row[_KART]
    if _is_blank(kart):
        raise RowParseError("Missing kart identifier", row)

    lap_number = _as_int(row[_LAP], "lap number", row)
    if lap_number <= 0:
        raise RowParseError(f"Non-positive lap number {lap_number}", row)

    position = 0 if _is_blank(row[_POSITION]) else _as_int(row[_POSITION], "position", row)

    gap = row[_GAP] if len(row) > _GAP else None
    return LapRecord(
        recorded_at=recorded_at,
        session_number=header.session_number,
        track_length=header.track_length,
        kart_id=str(kart).strip(),
        lap_number=lap_number,
        lap_time=lap_time,
        position=position,
        gap=None if _is_blank(gap) else str(gap),
    )


def parse_header(payload: RawTimingPayload) -> TimingHeader:
    try:
        session_number = int(payload.headinfo.number.strip())
    except ValueError as exc:
        raise ParseError(f"Invalid session number {payload.headinfo.number!r}") from exc
    return TimingHeader(session_number=session_number, track_length=payload.headinfo.len)


def parse_timing(
    raw: bytes,
    recorded_at: datetime,
    *,
    max_lap_time: Decimal = DEFAULT_MAX_LAP_TIME,
) -> ParsedTiming:
    """Decode a raw live-screen payload.

    Args:
        raw: Response body from the timing endpoint.
        recorded_at: UTC time the payload was observed; stamped on every lap.
        max_lap_time: Laps at or above this many seconds are treated as noise.

    Returns:
        The header and every row that decoded to a plausible lap.

    Raises:
        ParseError: if the document or its header is malformed. No laps are
            returned in that case.
    """
    try:
        payload = RawTimingPayload.model_validate_json(raw)
    except ValidationError as exc:
        raise ParseError(f"Failed to decode timing payload: {exc}") from exc

    header = parse_header(payload)
    laps: list[LapRecord] = []
    dropped = 0
    for index, row in enumerate(payload.results):
        try:
            lap = decode_row(row, header, recorded_at)
        except RowParseError as exc:
            logger.warning("Dropping malformed timing row %d: %s", index, exc)
            dropped += 1
            continue
        if lap is None:
            continue
        if lap.lap_time < 0 or lap.lap_time >= max_lap_time:
            logger.debug("Dropping implausible lap time %s for kart %s", lap.lap_time, lap.kart_id)
            dropped += 1
            continue
        laps.append(lap)

    return ParsedTiming(header=header, laps=laps, dropped=dropped)
