from pathlib import Path

import courseshelf.config as config_module
from courseshelf.config import DEFAULT_HASH_WINDOW, AppConfig, ScanSettings


def test_paths_resolve_relative_to_base_path(tmp_path: Path) -> None:
    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "database_file": "storage/catalog/courseshelf.db",
        },
        base_path=tmp_path,
    )

    assert config.storage_root == (tmp_path / "storage").resolve()
    assert config.database_file == (tmp_path / "storage" / "catalog" / "courseshelf.db").resolve()
    assert config.database_file.parent.is_dir()
    assert config.scan == ScanSettings()


def test_storage_root_falls_back_when_preferred_is_unusable(
    tmp_path: Path, monkeypatch
) -> None:
    home_dir = tmp_path / "home"
    monkeypatch.setattr(config_module.Path, "home", lambda: home_dir)

    preferred_storage = tmp_path / "storage"
    preferred_storage.write_text("not a directory", encoding="utf-8")

    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "database_file": "storage/courseshelf.db",
        },
        base_path=tmp_path,
    )

    expected_storage = (home_dir / ".courseshelf" / "storage").resolve()
    assert config.storage_root == expected_storage
    assert config.database_file == (expected_storage / "courseshelf.db").resolve()
    assert expected_storage.exists()


def test_scan_settings_are_read_from_the_scan_section(tmp_path: Path) -> None:
    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "database_file": "storage/courseshelf.db",
            "scan": {"max_depth": 3, "hash_window": 4096, "sort_files": True},
        },
        base_path=tmp_path,
    )

    assert config.scan.max_depth == 3
    assert config.scan.hash_window == 4096
    assert config.scan.sort_files is True


def test_scan_settings_clamp_invalid_values() -> None:
    settings = ScanSettings.from_mapping({"max_depth": 0, "hash_window": -1})

    assert settings.max_depth == 1
    assert settings.hash_window == DEFAULT_HASH_WINDOW
    assert settings.sort_files is False
