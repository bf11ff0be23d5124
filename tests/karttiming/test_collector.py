"""Tests for the lap-ingestion loop."""

from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime

import pytest
import sqlalchemy as sa

from karttiming.checkpoint import ResumeStore
from karttiming.collector import LapCollector, TickResult, TickStatus
from karttiming.exceptions import PersistenceError, UpstreamConnectionError
from karttiming.fingerprint import fingerprint
from karttiming.lifecycle import ResumeState, TrackPhase
from karttiming.models.lap import make_session_id
from karttiming.storage import LapRepository, SessionRepository
from karttiming.storage.schema import lap_data, session
from tests.conftest import SAMPLE_TIMING, make_row, timing_bytes

SAMPLE_BYTES = json.dumps(SAMPLE_TIMING).encode()


class _FakeTiming:
    """Returns queued payloads; exceptions in the queue are raised."""

    def __init__(self, *payloads) -> None:
        self._payloads = list(payloads)
        self.calls = 0

    def queue(self, *payloads) -> None:
        self._payloads.extend(payloads)

    def fetch(self) -> bytes:
        self.calls += 1
        payload = self._payloads.pop(0)
        if isinstance(payload, Exception):
            raise payload
        return payload


class _FlakyLaps:
    """Lap repository that fails for one kart."""

    def __init__(self, inner: LapRepository, failing_kart: str) -> None:
        self._inner = inner
        self.failing_kart = failing_kart

    def save_lap(self, lap) -> None:
        if lap.kart_id == self.failing_kart:
            raise PersistenceError("deadlock detected")
        self._inner.save_lap(lap)


def _count(engine, table: sa.Table, *where) -> int:
    stmt = sa.select(sa.func.count()).select_from(table)
    if where:
        stmt = stmt.where(*where)
    with engine.connect() as conn:
        return conn.execute(stmt).scalar_one()


@pytest.fixture
def resume_store(tmp_path) -> ResumeStore:
    return ResumeStore(tmp_path / "state.json")


@pytest.fixture
def timing() -> _FakeTiming:
    return _FakeTiming()


@pytest.fixture
def collector(timing, laps, settings, resume_store, clock) -> LapCollector:
    return LapCollector(timing, laps, settings, resume_store=resume_store, clock=clock)


class TestTick:
    def test_stores_new_laps(self, collector, timing, engine, resume_store, clock) -> None:
        timing.queue(SAMPLE_BYTES)
        state = ResumeState()

        result = collector.tick(state)

        assert result == TickResult(TickStatus.STORED, written=2)
        assert _count(engine, lap_data) == 2
        assert _count(engine, session) == 1
        assert state.fingerprint == fingerprint(SAMPLE_BYTES)
        assert state.last_telemetry_at == clock.now
        assert state.last_session == "3"
        assert resume_store.load() == state

    def test_unchanged_payload_is_skipped(self, collector, timing, engine) -> None:
        timing.queue(SAMPLE_BYTES, SAMPLE_BYTES)
        state = ResumeState()
        collector.tick(state)

        result = collector.tick(state)

        assert result.status is TickStatus.UNCHANGED
        assert _count(engine, lap_data) == 2

    def test_cache_skips_laps_already_written(self, collector, timing, engine) -> None:
        rows = [make_row(kart="7", lap=5), make_row(kart="12", lap=5)]
        timing.queue(timing_bytes(rows=rows), timing_bytes(rows=[*rows, make_row(kart="7", lap=6)]))
        state = ResumeState()
        collector.tick(state)

        result = collector.tick(state)

        assert result == TickResult(TickStatus.STORED, written=1, skipped=2)
        assert _count(engine, lap_data) == 3
        assert len(collector.cache) == 3

    def test_transport_failure(self, collector, timing) -> None:
        timing.queue(UpstreamConnectionError("refused"))
        state = ResumeState()

        assert collector.tick(state).status is TickStatus.FAILED
        assert state == ResumeState()

    def test_parse_failure_keeps_fingerprint(self, collector, timing) -> None:
        timing.queue(b"<html>down for maintenance</html>")
        state = ResumeState(fingerprint="previous")

        assert collector.tick(state).status is TickStatus.FAILED
        assert state.fingerprint == "previous"
        assert state.last_telemetry_at is None

    def test_malformed_row_does_not_lose_siblings(self, collector, timing, engine) -> None:
        timing.queue(timing_bytes(rows=[None, make_row(kart="7", lap=5)]))
        state = ResumeState()

        result = collector.tick(state)

        assert result == TickResult(TickStatus.STORED, written=1)
        assert _count(engine, lap_data) == 1
        assert state.fingerprint is not None

    def test_failed_lap_is_retried(self, timing, laps, settings, clock, engine, resume_store) -> None:
        flaky = _FlakyLaps(laps, failing_kart="12")
        collector = LapCollector(timing, flaky, settings, resume_store=resume_store, clock=clock)
        timing.queue(SAMPLE_BYTES, SAMPLE_BYTES)
        state = ResumeState()

        first = collector.tick(state)
        assert first == TickResult(TickStatus.STORED, written=1, failed=1)
        assert state.fingerprint is None
        assert resume_store.load().fingerprint is None

        flaky.failing_kart = ""
        second = collector.tick(state)
        assert second == TickResult(TickStatus.STORED, written=1, skipped=1)
        assert _count(engine, lap_data) == 2
        assert state.fingerprint == fingerprint(SAMPLE_BYTES)

    def test_repeated_failure_logs_error_once(self, timing, laps, settings, clock, caplog) -> None:
        collector = LapCollector(timing, _FlakyLaps(laps, failing_kart="12"), settings, clock=clock)
        timing.queue(SAMPLE_BYTES, SAMPLE_BYTES, SAMPLE_BYTES)
        state = ResumeState()

        with caplog.at_level(logging.DEBUG, logger="karttiming.collector"):
            results = [collector.tick(state) for _ in range(3)]

        assert [result.failed for result in results] == [1, 1, 1]
        failures = [
            record for record in caplog.records
            if record.name == "karttiming.collector" and "Failed to store lap" in record.getMessage()
        ]
        assert [record.levelno for record in failures] == [logging.ERROR, logging.DEBUG, logging.DEBUG]


class TestDayLifecycle:
    def test_idle_outside_hours_without_telemetry(self, collector, timing, resume_store, clock) -> None:
        clock.now = datetime(2024, 6, 1, 21, 0, tzinfo=UTC)
        state = ResumeState()

        result = collector.tick(state)

        assert result.status is TickStatus.IDLE
        assert timing.calls == 0
        assert state.phase is TrackPhase.DAY_ENDED
        assert resume_store.load().day_ended is True
        assert collector.next_delay(result) == 300.0

    def test_late_session_keeps_collecting(self, collector, timing, clock) -> None:
        clock.now = datetime(2024, 6, 1, 19, 30, tzinfo=UTC)
        state = ResumeState(last_telemetry_at=datetime(2024, 6, 1, 19, 0, tzinfo=UTC))
        timing.queue(SAMPLE_BYTES)

        result = collector.tick(state)

        assert result.status is TickStatus.STORED
        assert collector.next_delay(result) == 3.0

    def test_stale_tail_suppressed_next_morning(self, collector, timing, engine, clock) -> None:
        state = ResumeState()
        clock.now = datetime(2024, 6, 1, 18, 0, tzinfo=UTC)
        timing.queue(timing_bytes(number="12", rows=[make_row(kart="7", lap=9)]))
        assert collector.tick(state).status is TickStatus.STORED

        clock.now = datetime(2024, 6, 1, 19, 45, tzinfo=UTC)
        assert collector.tick(state).status is TickStatus.IDLE
        assert len(collector.cache) == 0

        # The screen still shows yesterday's last session with a changed row.
        clock.now = datetime(2024, 6, 2, 6, 0, tzinfo=UTC)
        timing.queue(timing_bytes(number="12", rows=[make_row(kart="7", lap=9, position=2)]))
        assert collector.tick(state).status is TickStatus.SUPPRESSED
        assert state.last_telemetry_at == clock.now
        assert _count(engine, session) == 1

        clock.advance(minutes=30)
        timing.queue(timing_bytes(number="1", rows=[make_row(kart="4", lap=1)]))
        result = collector.tick(state)

        assert result == TickResult(TickStatus.STORED, written=1)
        assert state.phase is TrackPhase.ACTIVE
        new_session = make_session_id(clock.now.date(), 1)
        assert _count(engine, lap_data, lap_data.c.session_id == new_session) == 1

    def test_restart_does_not_duplicate(self, timing, settings, clock, engine, weather_store, resume_store) -> None:
        def fresh_collector() -> LapCollector:
            sessions = SessionRepository(engine, weather_store, clock=clock)
            laps = LapRepository(engine, sessions)
            return LapCollector(timing, laps, settings, resume_store=resume_store, clock=clock)

        timing.queue(SAMPLE_BYTES, SAMPLE_BYTES)
        fresh_collector().tick(resume_store.load())

        # Crash before the checkpoint caught up: the payload is replayed.
        resume_store.save(ResumeState())
        result = fresh_collector().tick(resume_store.load())

        assert result == TickResult(TickStatus.STORED, written=2)
        assert _count(engine, lap_data) == 2
        assert _count(engine, session) == 1


class TestRun:
    def test_run_resumes_and_stops(self, collector, timing, resume_store, engine) -> None:
        resume_store.save(ResumeState(fingerprint=fingerprint(SAMPLE_BYTES)))
        stop_event = threading.Event()

        def fetch_then_stop() -> bytes:
            stop_event.set()
            return SAMPLE_BYTES

        timing.fetch = fetch_then_stop
        collector.run(stop_event)

        # The resumed fingerprint matches, so nothing is stored again.
        assert _count(engine, lap_data) == 0

    def test_run_survives_unexpected_errors(self, collector, timing) -> None:
        stop_event = threading.Event()
        calls = []

        def explode() -> bytes:
            calls.append(1)
            stop_event.set()
            raise RuntimeError("boom")

        timing.fetch = explode
        collector.run(stop_event, ResumeState())
        assert calls == [1]
