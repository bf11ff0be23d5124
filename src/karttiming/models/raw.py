"""Envelopes for the loosely typed upstream payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class RawHeadInfo(BaseModel):
    number: str
    len: str


class RawTimingPayload(BaseModel):
    """Live-screen document: a header plus an untyped results table."""

    headinfo: RawHeadInfo
    results: list[Any]


class RawCondition(BaseModel):
    code: int
    text: str


class RawCurrent(BaseModel):
    temp_c: float
    is_day: int
    condition: RawCondition
    wind_kph: float
    wind_degree: float
    pressure_mb: float
    precip_mm: float
    humidity: float
    cloud: float
    feelslike_c: float
    dewpoint_c: float


class RawWeatherResponse(BaseModel):
    current: RawCurrent
