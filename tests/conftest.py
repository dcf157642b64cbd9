from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from courseshelf.bootstrap import Bootstrapper
from courseshelf.config import AppConfig
from courseshelf.services.storage import CatalogRepository


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "database_file": "storage/courseshelf.db",
        },
        base_path=tmp_path,
    )

    Bootstrapper(config).initialize()
    return config


@pytest.fixture()
def repository(temp_config: AppConfig) -> CatalogRepository:
    return CatalogRepository(temp_config)


@pytest.fixture()
def course_root(tmp_path: Path) -> Path:
    root = tmp_path / "courses" / "Astronomy"
    root.mkdir(parents=True)
    return root
