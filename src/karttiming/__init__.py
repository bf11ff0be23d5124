"""karttiming — live-timing ingestion for a go-kart track."""

from karttiming.collector import LapCollector, TickResult, TickStatus
from karttiming.config import Settings, get_settings
from karttiming.exceptions import (
    KartTimingError,
    ParseError,
    PersistenceError,
    RowParseError,
    TransportError,
    UpstreamAPIError,
    UpstreamConnectionError,
    UpstreamTimeoutError,
)
from karttiming.timing import TimingClient

__all__ = [
    "KartTimingError",
    "LapCollector",
    "ParseError",
    "PersistenceError",
    "RowParseError",
    "Settings",
    "TickResult",
    "TickStatus",
    "TimingClient",
    "TransportError",
    "UpstreamAPIError",
    "UpstreamConnectionError",
    "UpstreamTimeoutError",
    "get_settings",
]

__version__ = "0.1.0"
