"""Client for the current-conditions weather API."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from karttiming._http import SyncTransport
from karttiming._time import Clock, utc_now
from karttiming.exceptions import ParseError
from karttiming.models.raw import RawWeatherResponse
from karttiming.models.weather import WeatherSnapshot

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.weatherapi.com/v1"
DEFAULT_LOCATION = "Batumi"
DEFAULT_TIMEOUT = 10.0


class WeatherClient:
    """Fetches current ambient conditions at the track.

    Usage:
        with WeatherClient(api_key="...") as client:
            snapshot = client.get_current()
    """

    def __init__(
        self,
        api_key: str,
        location: str = DEFAULT_LOCATION,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Clock = utc_now,
    ) -> None:
        if not api_key:
            raise ValueError("A weather API key is required")
        self._api_key = api_key
        self._location = location
        self._clock = clock
        self._transport = SyncTransport(base_url=base_url, timeout=timeout)

    def __enter__(self) -> WeatherClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP connection."""
        self._transport.close()

    def get_current(self) -> WeatherSnapshot:
        """Get current conditions, stamped with the time of the call.

        Raises:
            TransportError: if the API cannot be reached or answers with an error.
            ParseError: if the response body is not the expected document.
        """
        logger.debug("Getting weather for %s", self._location)
        raw = self._transport.get(
            "/current.json",
            {"key": self._api_key, "q": self._location, "aqi": "no"},
        )
        try:
            current = RawWeatherResponse.model_validate_json(raw).current
        except ValidationError as exc:
            raise ParseError(f"Failed to decode weather response: {exc}") from exc

        return WeatherSnapshot(
            timestamp_utc=self._clock(),
            temp_c=current.temp_c,
            is_day=current.is_day == 1,
            condition_code=current.condition.code,
            condition_text=current.condition.text,
            wind_kph=current.wind_kph,
            wind_degree=current.wind_degree,
            pressure_mb=current.pressure_mb,
            precipitation_mm=current.precip_mm,
            humidity=current.humidity,
            cloud=current.cloud,
            feels_like_c=current.feelslike_c,
            dew_point_c=current.dewpoint_c,
        )
