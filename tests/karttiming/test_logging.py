"""Tests for logging setup and the storage call logger."""

from __future__ import annotations

import logging

import pytest

import karttiming._logging as mod
from karttiming._logging import LOG_FORMAT, ROOT_LOGGER, configure_logging, log_store_call


class _FakeRepo:
    @log_store_call
    def get_items(self, day: int) -> list[dict]:
        return [{"kart": "1"}, {"kart": "2"}]

    @log_store_call
    def get_failing(self, key: int) -> None:
        raise ValueError("test error")


@pytest.fixture(autouse=True)
def _reset_package_logger(monkeypatch):
    """Restore the package logger after each test."""
    root = logging.getLogger(ROOT_LOGGER)
    saved = (list(root.handlers), root.level, root.propagate)
    monkeypatch.setattr(mod, "_configured", False)
    yield
    for handler in root.handlers:
        if handler not in saved[0]:
            handler.close()
    root.handlers[:] = saved[0]
    root.setLevel(saved[1])
    root.propagate = saved[2]


class TestConfigureLogging:
    def test_adds_handlers_once(self) -> None:
        root = configure_logging("DEBUG")
        count = len(root.handlers)
        configure_logging("INFO")
        assert len(root.handlers) == count
        assert root.level == logging.INFO
        assert root.propagate is False

    def test_file_handler(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "ingest.log"
        root = configure_logging("INFO", str(log_file))
        logging.getLogger("karttiming.collector").info("Stored %d laps", 3)
        for handler in root.handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "| INFO | karttiming.collector | Stored 3 laps" in content
        assert LOG_FORMAT.startswith("%(asctime)s")


class TestLogStoreCall:
    def test_success(self, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="karttiming.store"):
            result = _FakeRepo().get_items(5)
        assert len(result) == 2
        messages = [record.getMessage() for record in caplog.records]
        assert any("CALL:" in m and "get_items(5)" in m for m in messages)
        assert any("OK:" in m and "2 items" in m for m in messages)

    def test_failure_reraises(self, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="karttiming.store"):
            with pytest.raises(ValueError, match="test error"):
                _FakeRepo().get_failing(7)
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "FAIL:" in errors[0].getMessage()
        assert "ValueError" in errors[0].getMessage()
