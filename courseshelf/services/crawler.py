"""Directory traversal for course roots."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

from .events import emit_file_event

LOGGER = logging.getLogger(__name__)


def read_dir_flat(root: Path, depth: int = 2, *, sort: bool = False) -> List[Path]:
    """Return the regular files under *root*, at most *depth* levels deep.

    Depth 1 lists files directly in *root*; depth 2 also lists files one
    directory down. Directories themselves are never returned. ``OSError``
    is raised when a directory cannot be listed. With ``sort`` enabled each
    directory is visited in name order, otherwise in the order the file
    system reports.
    """

    root = Path(root)
    depth = max(1, depth)
    files: List[Path] = []
    _collect(root, depth, sort, files)
    emit_file_event("crawl", payload={"root": root, "depth": depth, "files": len(files)})
    return files


def _collect(directory: Path, depth: int, sort: bool, files: List[Path]) -> None:
    if depth <= 0:
        return

    with os.scandir(directory) as iterator:
        entries = list(iterator)
    if sort:
        entries.sort(key=lambda entry: entry.name)

    for entry in entries:
        if entry.is_dir():
            _collect(Path(entry.path), depth - 1, sort, files)
        elif entry.is_file():
            files.append(Path(entry.path))
        else:
            LOGGER.debug("Skipping non-regular entry %s", entry.path)


def chapter_for(path: Path, root: Path) -> str:
    """Name of the chapter directory holding *path*; ``""`` for root-level files."""

    parent = Path(path).parent
    if parent == Path(root):
        return ""
    return parent.name


__all__ = ["chapter_for", "read_dir_flat"]
