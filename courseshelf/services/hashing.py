"""Content fingerprints used to recognise moved or renamed files."""

from __future__ import annotations

import hashlib
import logging
import time
from pathlib import Path

from ..config import DEFAULT_HASH_WINDOW
from .events import emit_file_event

LOGGER = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024


def partial_hash(path: Path, window: int = DEFAULT_HASH_WINDOW) -> str:
    """Return the SHA-256 hex digest of the first *window* bytes of *path*.

    Files shorter than the window are hashed whole. ``OSError`` propagates
    when the file cannot be opened or read.
    """

    if window <= 0:
        raise ValueError(f"Hash window must be positive, got {window}")

    digest = hashlib.sha256()
    remaining = window
    start = time.perf_counter()
    with Path(path).open("rb") as handle:
        while remaining > 0:
            chunk = handle.read(min(_READ_CHUNK, remaining))
            if not chunk:
                break
            digest.update(chunk)
            remaining -= len(chunk)

    emit_file_event(
        "hash",
        payload={"path": path, "bytes": window - remaining},
        duration_ms=(time.perf_counter() - start) * 1000.0,
    )
    return digest.hexdigest()


__all__ = ["DEFAULT_HASH_WINDOW", "partial_hash"]
