from __future__ import annotations

from pathlib import Path

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from courseshelf.services.scanner import CourseScanner, process_scan
from courseshelf.services.storage import CatalogRepository
from courseshelf.web import create_app


def _client(temp_config):
    repository = CatalogRepository(temp_config)
    scanner = CourseScanner(repository, settings=temp_config.scan)
    app = create_app(repository, config=temp_config, scanner=scanner)
    return TestClient(app), repository, scanner


def test_create_scan_is_idempotent(temp_config, course_root: Path) -> None:
    client, repository, _ = _client(temp_config)
    course_id = repository.add_course(str(course_root))

    first = client.post("/api/scans", json={"course_id": course_id})
    second = client.post("/api/scans", json={"course_id": course_id})

    assert first.status_code == 201
    assert first.json()["scan"]["status"] == "waiting"
    assert second.json()["scan"]["id"] == first.json()["scan"]["id"]

    lookup = client.get(f"/api/scans/course/{course_id}")
    assert lookup.status_code == 200
    assert lookup.json()["scan"]["course_id"] == course_id


def test_unknown_course_returns_404(temp_config) -> None:
    client, _, _ = _client(temp_config)

    assert client.post("/api/scans", json={"course_id": 99}).status_code == 404
    assert client.get("/api/scans/course/99").status_code == 404
    assert client.get("/api/courses/99").status_code == 404


def test_invalid_payload_is_rejected(temp_config) -> None:
    client, _, _ = _client(temp_config)

    assert client.post("/api/scans", json={}).status_code == 422


def test_course_detail_lists_assets_and_attachments(temp_config, course_root: Path) -> None:
    client, repository, scanner = _client(temp_config)
    (course_root / "01 intro.mp4").write_bytes(b"video")
    (course_root / "01 intro.txt").write_bytes(b"notes")
    course_id = repository.add_course(str(course_root))
    scanner.add(course_id)
    scanner.drain(process_scan)

    response = client.get(f"/api/courses/{course_id}")

    assert response.status_code == 200
    course = response.json()["course"]
    assert course["available"] is True
    asset, = course["assets"]
    assert (asset["title"], asset["type"]) == ("intro", "video")
    assert [item["title"] for item in asset["attachments"]] == ["intro.txt"]


def test_worker_runs_with_the_application(temp_config, course_root: Path) -> None:
    client, repository, scanner = _client(temp_config)

    with client:
        assert scanner.is_running

    assert not scanner.is_running
