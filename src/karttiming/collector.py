"""Scheduled ingestion of the live-timing screen."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from karttiming._time import Clock, utc_now
from karttiming.cache import DedupKey, IngestionCache
from karttiming.checkpoint import ResumeStore
from karttiming.config import Settings
from karttiming.exceptions import ParseError, PersistenceError, TransportError
from karttiming.fingerprint import is_unchanged
from karttiming.lifecycle import ResumeState, admit_session, end_day, should_idle
from karttiming.parser import parse_timing
from karttiming.storage.laps import LapRepository
from karttiming.timing import TimingClient

logger = logging.getLogger(__name__)


class TickStatus(str, Enum):
    IDLE = "idle"  # track closed, nothing fetched
    FAILED = "failed"  # transport or payload error
    UNCHANGED = "unchanged"  # same payload as last tick
    SUPPRESSED = "suppressed"  # stale tail of the previous day
    STORED = "stored"


@dataclass(frozen=True)
class TickResult:
    status: TickStatus
    written: int = 0
    skipped: int = 0
    failed: int = 0


class LapCollector:
    """Runs the lap-ingestion loop: fetch, detect change, parse, filter, persist.

    Usage:
        collector = LapCollector(timing, laps, settings, resume_store=ResumeStore(path))
        collector.run(stop_event)

    ``tick()`` is one iteration against an explicit ``ResumeState`` and can be
    driven directly in tests.
    """

    def __init__(
        self,
        timing: TimingClient,
        laps: LapRepository,
        settings: Settings,
        *,
        resume_store: ResumeStore | None = None,
        cache: IngestionCache | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._timing = timing
        self._laps = laps
        self._settings = settings
        self._resume_store = resume_store
        self._cache = cache if cache is not None else IngestionCache()
        self._clock = clock
        self._max_lap_time = Decimal(str(settings.max_lap_time_seconds))
        # Laps whose last write failed; repeats of the same failure log at debug.
        self._failing: set[DedupKey] = set()

    @property
    def cache(self) -> IngestionCache:
        return self._cache

    def tick(self, state: ResumeState) -> TickResult:
        now = self._clock()

        if should_idle(state, now, self._settings):
            if end_day(state):
                logger.info("Track closed and no telemetry since %s, ending the day", state.last_telemetry_at)
                self._checkpoint(state)
            self._cache.clear()
            self._failing.clear()
            return TickResult(TickStatus.IDLE)

        try:
            raw = self._timing.fetch()
        except TransportError as exc:
            logger.warning("Failed to fetch live timing: %s", exc)
            return TickResult(TickStatus.FAILED)

        unchanged, digest = is_unchanged(state.fingerprint, raw)
        if unchanged:
            logger.debug("Live timing unchanged since last tick")
            return TickResult(TickStatus.UNCHANGED)

        try:
            parsed = parse_timing(raw, now, max_lap_time=self._max_lap_time)
        except ParseError as exc:
            logger.error("Skipping unparseable live timing payload: %s", exc)
            return TickResult(TickStatus.FAILED)

        try:
            state.fingerprint = digest
            state.last_telemetry_at = now
            admitted = admit_session(state, parsed.header.session_number, now, self._settings)
        finally:
            self._checkpoint(state)

        if not admitted:
            return TickResult(TickStatus.SUPPRESSED)

        written = skipped = failed = 0
        for lap in parsed.laps:
            key = lap.dedup_key
            if self._cache.seen(key):
                skipped += 1
                continue
            try:
                self._laps.save_lap(lap)
            except PersistenceError as exc:
                level = logging.DEBUG if key in self._failing else logging.ERROR
                logger.log(level, "Failed to store lap %d of kart %s: %s", lap.lap_number, lap.kart_id, exc)
                self._failing.add(key)
                failed += 1
                continue
            self._failing.discard(key)
            self._cache.remember(key)
            written += 1

        if failed:
            # Reprocess this payload next tick; the cache skips what was written.
            state.fingerprint = None
            self._checkpoint(state)

        logger.info(
            "Session %d: stored %d laps, %d already stored, %d failed",
            parsed.header.session_number, written, skipped, failed,
        )
        return TickResult(TickStatus.STORED, written=written, skipped=skipped, failed=failed)

    def next_delay(self, result: TickResult) -> float:
        if result.status is TickStatus.IDLE:
            return self._settings.idle_poll_interval_seconds
        return self._settings.poll_interval_seconds

    def run(self, stop_event: threading.Event, state: ResumeState | None = None) -> None:
        """Tick until ``stop_event`` is set.

        State is loaded from the resume store once, unless passed in.
        """
        if state is None:
            state = self._resume_store.load() if self._resume_store else ResumeState()
        logger.info("Started gathering live timing")
        while not stop_event.is_set():
            try:
                result = self.tick(state)
            except Exception:
                logger.exception("Unexpected error while gathering live timing")
                result = TickResult(TickStatus.FAILED)
            stop_event.wait(self.next_delay(result))
        logger.info("Stopped gathering live timing")

    def _checkpoint(self, state: ResumeState) -> None:
        if self._resume_store is None:
            return
        try:
            self._resume_store.save(state)
        except OSError as exc:
            logger.warning("Could not write resume state: %s", exc)
