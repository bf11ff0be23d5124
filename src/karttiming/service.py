"""Process wiring: builds the pipeline and runs both polling loops."""

from __future__ import annotations

import logging
import signal
import threading
from types import FrameType
from typing import Callable

from karttiming._logging import configure_logging
from karttiming.checkpoint import ResumeStore
from karttiming.collector import LapCollector
from karttiming.config import Settings, get_settings
from karttiming.storage import (
    LapRepository,
    SessionRepository,
    WeatherStore,
    create_db_engine,
    create_schema,
)
from karttiming.timing import TimingClient
from karttiming.weather import WeatherClient, WeatherPoller

logger = logging.getLogger(__name__)

JOIN_TIMEOUT = 30.0


class IngestionService:
    """Owns the lap collector and weather poller threads.

    Both loops share the database engine and one stop event; they share no
    in-memory state.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

        self._engine = create_db_engine(settings.database_url)
        create_schema(self._engine)

        weather_store = WeatherStore(self._engine)
        sessions = SessionRepository(self._engine, weather_store)
        laps = LapRepository(self._engine, sessions, invalid_lap_bounds=settings.invalid_lap_bounds())

        self._timing = TimingClient(
            base_url=settings.timing_base_url,
            track_id=settings.timing_track_id,
            timeout=settings.timing_timeout_seconds,
        )
        self.collector = LapCollector(
            self._timing,
            laps,
            settings,
            resume_store=ResumeStore(settings.resume_state_path),
        )

        self._weather_client: WeatherClient | None = None
        self.weather_poller: WeatherPoller | None = None
        if settings.weather_api_key:
            self._weather_client = WeatherClient(
                settings.weather_api_key,
                settings.weather_location,
                base_url=settings.weather_base_url,
                timeout=settings.weather_timeout_seconds,
            )
            self.weather_poller = WeatherPoller(
                self._weather_client,
                weather_store,
                interval=settings.weather_interval_seconds,
            )
        else:
            logger.warning("No weather API key configured; sessions will be stored without weather")

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def start(self) -> None:
        self._spawn("lap-collector", self.collector.run)
        if self.weather_poller is not None:
            self._spawn("weather-poller", self.weather_poller.run)
        logger.info("Ingestion started")

    def stop(self) -> None:
        """Signal both loops and wait for in-flight ticks to finish."""
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout=JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning("Thread %s did not stop within %.0fs", thread.name, JOIN_TIMEOUT)
        self._threads.clear()
        self._timing.close()
        if self._weather_client is not None:
            self._weather_client.close()
        self._engine.dispose()
        logger.info("Ingestion stopped")

    def _spawn(self, name: str, target: Callable[[threading.Event], None]) -> None:
        thread = threading.Thread(target=target, args=(self._stop_event,), name=name, daemon=True)
        thread.start()
        self._threads.append(thread)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_file)
    service = IngestionService(settings)

    def _handle_signal(signum: int, frame: FrameType | None) -> None:
        logger.info("Received signal %d, shutting down", signum)
        service.stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    service.start()
    service.stop_event.wait()
    service.stop()
