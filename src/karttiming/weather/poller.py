"""Periodic weather polling that stores only changed conditions."""

from __future__ import annotations

import logging
import threading

from karttiming.exceptions import ParseError, PersistenceError, TransportError
from karttiming.models.weather import WeatherSnapshot
from karttiming.storage.weather_store import WeatherStore
from karttiming.weather.client import WeatherClient

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60.0


class WeatherPoller:
    """Polls the weather API on a fixed interval, independent of lap ingestion.

    The last stored snapshot is kept in memory only, so a restart stores the
    current conditions once more.
    """

    def __init__(self, client: WeatherClient, store: WeatherStore, *, interval: float = DEFAULT_INTERVAL) -> None:
        self._client = client
        self._store = store
        self._interval = interval
        self._last: WeatherSnapshot | None = None

    @property
    def last_stored(self) -> WeatherSnapshot | None:
        return self._last

    def tick(self) -> bool:
        """Fetch once and store if conditions changed. Returns True if stored."""
        try:
            snapshot = self._client.get_current()
        except (TransportError, ParseError) as exc:
            logger.warning("Could not get the weather: %s", exc)
            return False

        if self._last is not None and self._last.same_conditions(snapshot):
            logger.debug("Weather unchanged since %s, skipping", self._last.timestamp_utc)
            return False

        try:
            snapshot_id = self._store.store(snapshot)
        except PersistenceError:
            logger.exception("Failed to store the weather")
            return False

        self._last = snapshot.model_copy(update={"id": snapshot_id})
        logger.info(
            "Stored changed weather: %.1fC, cloud %s%%, precipitation %smm",
            snapshot.temp_c, snapshot.cloud, snapshot.precipitation_mm,
        )
        return True

    def run(self, stop_event: threading.Event) -> None:
        """Tick until ``stop_event`` is set; the wait between ticks is interruptible."""
        logger.info("Started gathering weather every %.0fs", self._interval)
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Unexpected error while gathering weather")
            stop_event.wait(self._interval)
        logger.info("Stopped gathering weather")
