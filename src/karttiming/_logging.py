"""Logging setup and call logging for the storage layer."""

from __future__ import annotations

import functools
import logging
import os
import threading
import time
from typing import Any, Callable, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

ROOT_LOGGER = "karttiming"
STORE_LOGGER = "karttiming.store"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configure_lock = threading.Lock()
_configured = False


def configure_logging(level: str | int = "INFO", log_file: str | None = None) -> logging.Logger:
    """Attach console (and optionally file) handlers to the package logger.

    Safe to call more than once; handlers are only added the first time.
    """
    global _configured
    root = logging.getLogger(ROOT_LOGGER)
    with _configure_lock:
        root.setLevel(level)
        if _configured:
            return root

        formatter = logging.Formatter(LOG_FORMAT)
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            handler = logging.FileHandler(log_file, encoding="utf-8")
            handler.setFormatter(formatter)
            root.addHandler(handler)

        root.propagate = False
        _configured = True
    return root


def _summarize(result: Any) -> str:
    if isinstance(result, list):
        return f"{len(result)} items"
    if result is None:
        return "None"
    return type(result).__name__


def log_store_call(fn: F) -> F:
    """Decorator that logs repository method calls, their outcome and timing."""

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        logger = logging.getLogger(STORE_LOGGER)
        # Build a readable argument summary (skip 'self')
        arg_parts = [repr(a) for a in args[1:]]
        arg_parts += [f"{k}={v!r}" for k, v in kwargs.items()]
        arg_str = ", ".join(arg_parts)
        logger.debug("CALL: %s(%s)", fn.__qualname__, arg_str)

        start = time.monotonic()
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            elapsed = time.monotonic() - start
            logger.error(
                "FAIL: %s -> %s: %s (%.3fs)",
                fn.__qualname__, type(exc).__name__, exc, elapsed,
            )
            raise
        elapsed = time.monotonic() - start
        logger.debug("OK: %s -> %s (%.3fs)", fn.__qualname__, _summarize(result), elapsed)
        return result

    return wrapper  # type: ignore[return-value]
