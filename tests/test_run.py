"""Tests for the run.py entrypoint commands."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from typer.testing import CliRunner

import run
from courseshelf.services.scanner import CourseScanner
from courseshelf.services.storage import CatalogRepository, ScanStatus


runner = CliRunner()


def _use_config(monkeypatch, config) -> None:
    monkeypatch.setattr(run, "initialize_app", lambda: config)
    monkeypatch.setattr(run, "_prepare_logging", lambda storage_root: None)


def test_add_course_registers_and_scans(monkeypatch, temp_config, course_root: Path) -> None:
    _use_config(monkeypatch, temp_config)
    (course_root / "01 intro.mp4").write_bytes(b"video")
    (course_root / "01 intro.txt").write_bytes(b"notes")

    result = runner.invoke(run.cli, ["add-course", str(course_root), "--title", "Astronomy"])

    assert result.exit_code == 0, result.output
    assert "1 asset(s), 1 attachment(s)" in result.output
    course = CatalogRepository(temp_config).find_course_by_path(str(course_root.resolve()))
    assert course is not None
    assert course.title == "Astronomy"
    assert course.available is True


def test_add_course_without_scan_leaves_catalog_empty(
    monkeypatch, temp_config, course_root: Path
) -> None:
    _use_config(monkeypatch, temp_config)
    (course_root / "01 intro.mp4").write_bytes(b"video")

    result = runner.invoke(run.cli, ["add-course", str(course_root), "--no-scan"])

    assert result.exit_code == 0, result.output
    repository = CatalogRepository(temp_config)
    course, = repository.list_courses()
    assert repository.list_assets(course.id) == []
    assert repository.count_scans() == 0


def test_scan_unknown_course_fails(monkeypatch, temp_config) -> None:
    _use_config(monkeypatch, temp_config)

    result = runner.invoke(run.cli, ["scan", "42"])

    assert result.exit_code == 1
    assert "course 42 not found" in result.output


def test_overview_renders_courses(monkeypatch, temp_config, course_root: Path) -> None:
    _use_config(monkeypatch, temp_config)
    (course_root / "01 intro.mp4").write_bytes(b"video")
    runner.invoke(run.cli, ["add-course", str(course_root)])

    result = runner.invoke(run.cli, ["overview", "--style", "console"])

    assert result.exit_code == 0, result.output
    assert "Course: Astronomy" in result.output
    assert "1 intro (video)" in result.output


def test_serve_builds_app_and_runs_uvicorn(monkeypatch, tmp_path) -> None:
    captured = {}
    config = SimpleNamespace(storage_root=tmp_path)

    monkeypatch.setattr(run, "_open_repository", lambda: (config, object()))
    dummy_app = SimpleNamespace(state=SimpleNamespace())
    monkeypatch.setattr(run, "create_app", lambda repository, config: dummy_app)

    class DummyConfig:
        def __init__(self, app, **kwargs):
            captured["app"] = app
            captured["config_kwargs"] = kwargs

    class DummyServer:
        def __init__(self, config):
            captured["server_config"] = config

        def run(self):
            captured["server_run"] = True

    monkeypatch.setattr(run.uvicorn, "Config", DummyConfig)
    monkeypatch.setattr(run.uvicorn, "Server", DummyServer)

    run.serve(host="0.0.0.0", port=9000, root_path="api/")

    assert captured["app"] is dummy_app
    assert captured["config_kwargs"]["root_path"] == "/api"
    assert captured["config_kwargs"]["port"] == 9000
    assert captured["server_run"] is True
    assert isinstance(dummy_app.state.server, DummyServer)


def test_interrupted_scan_is_recovered_by_the_cli(
    repository: CatalogRepository, course_root: Path
) -> None:
    (course_root / "01 intro.mp4").write_bytes(b"video")
    course_id = repository.add_course(str(course_root), available=True)
    interrupted = repository.create_scan(course_id)
    interrupted.status = ScanStatus.PROCESSING
    repository.update_scan(interrupted)

    run._run_scans(CourseScanner(repository), course_id)

    assert len(repository.list_assets(course_id)) == 1
    assert repository.get_scan_by_course(course_id) is None
