"""Client for the upstream live-timing screen."""

from __future__ import annotations

from karttiming._http import SyncTransport

DEFAULT_BASE_URL = "https://kart-timer.com/drivers"
DEFAULT_TRACK_ID = 110
DEFAULT_TIMEOUT = 2.5


class TimingClient:
    """Fetches the raw live-timing table for one track.

    Usage:
        with TimingClient(track_id=110) as timing:
            raw = timing.fetch()

    Each ``fetch()`` issues exactly one GET. Failures surface as
    ``TransportError`` subclasses; retrying is left to the caller's schedule.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        track_id: int = DEFAULT_TRACK_ID,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._track_id = track_id
        self._transport = SyncTransport(base_url=base_url, timeout=timeout)

    def __enter__(self) -> TimingClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP connection."""
        self._transport.close()

    def fetch(self) -> bytes:
        """Get the current live-screen payload as raw bytes."""
        return self._transport.get(
            "/ajax.php",
            {"p": "livescreen", "track": self._track_id, "target": "updaterace"},
        )
