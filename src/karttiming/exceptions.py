"""Custom exceptions for the karting ingestion pipeline."""

from __future__ import annotations


class KartTimingError(Exception):
    """Base exception for all karttiming errors."""


class TransportError(KartTimingError):
    """Raised when an upstream HTTP call does not produce a usable response."""


class UpstreamConnectionError(TransportError):
    """Raised when the client cannot connect to an upstream service."""


class UpstreamTimeoutError(TransportError):
    """Raised when a request to an upstream service times out."""


class UpstreamAPIError(TransportError):
    """Raised when an upstream service returns an error response (4xx/5xx)."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}")


class ParseError(KartTimingError):
    """Raised when an upstream payload cannot be decoded as a whole."""


class RowParseError(ParseError):
    """Raised when a single timing row is malformed."""

    def __init__(self, message: str, row: object = None) -> None:
        self.row = row
        super().__init__(message)


class PersistenceError(KartTimingError):
    """Raised when the relational store rejects or fails an operation."""
