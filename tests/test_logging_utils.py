from __future__ import annotations

import logging
from pathlib import Path

import pytest

from courseshelf.logging_utils import configure_logging, get_log_file_path, resolve_log_level


def test_resolve_log_level() -> None:
    assert resolve_log_level("debug") == logging.DEBUG
    assert resolve_log_level(" Warning ") == logging.WARNING
    assert resolve_log_level(None, logging.ERROR) == logging.ERROR
    assert resolve_log_level(logging.INFO) == logging.INFO

    with pytest.raises(ValueError):
        resolve_log_level("chatty")


def test_configure_logging_replaces_its_own_handlers() -> None:
    root = logging.getLogger()
    previous_level = root.level
    first = logging.NullHandler()
    second = logging.NullHandler()
    try:
        configure_logging(logging.DEBUG, handlers=[first])
        configure_logging(logging.INFO, handlers=[second])

        assert first not in root.handlers
        assert second in root.handlers
        assert root.level == logging.INFO
    finally:
        root.removeHandler(second)
        root.setLevel(previous_level)


def test_log_file_lives_in_storage_root(tmp_path: Path) -> None:
    assert get_log_file_path(tmp_path) == tmp_path / "courseshelf.log"
