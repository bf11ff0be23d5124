"""File checkpoint of the collector's resume state."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from karttiming.lifecycle import ResumeState

logger = logging.getLogger(__name__)


class ResumeStore:
    """Loads and saves ``ResumeState`` as a small JSON document."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ResumeState:
        """Return the saved state, or a fresh one if none can be read."""
        if not self._path.exists():
            return ResumeState()
        try:
            state = ResumeState.model_validate_json(self._path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.warning("Ignoring unreadable resume state at %s: %s", self._path, exc)
            return ResumeState()
        logger.info(
            "Resuming from checkpoint: fingerprint=%s last_telemetry_at=%s day_ended=%s last_session=%s",
            state.fingerprint, state.last_telemetry_at, state.day_ended, state.last_session,
        )
        return state

    def save(self, state: ResumeState) -> None:
        """Write the state atomically: temp file, then rename over the old one."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(state.model_dump_json(), encoding="utf-8")
        os.replace(tmp, self._path)
