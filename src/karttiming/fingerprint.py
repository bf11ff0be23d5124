"""Content fingerprints used to skip unchanged upstream payloads."""

from __future__ import annotations

import hashlib


def fingerprint(raw: bytes) -> str:
    """Return the 128-bit MD5 hex digest of a raw payload."""
    return hashlib.md5(raw).hexdigest()


def is_unchanged(previous: str | None, raw: bytes) -> tuple[bool, str]:
    """Compare ``raw`` against the previous tick's fingerprint.

    Returns:
        ``(unchanged, new_fingerprint)``. The caller decides whether to adopt
        the new fingerprint; nothing is stored here.
    """
    current = fingerprint(raw)
    return current == previous, current
