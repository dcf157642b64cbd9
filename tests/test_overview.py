from __future__ import annotations

import io
from pathlib import Path

from rich.console import Console

from courseshelf.services.scanner import CourseScanner, process_scan
from courseshelf.services.storage import CatalogRepository
from courseshelf.ui.modern import ModernUI
from courseshelf.ui.overview import collect_overview


def _scanned_course(repository: CatalogRepository, root: Path) -> int:
    (root / "Chapter 1").mkdir()
    (root / "Chapter 1" / "01 basics.mp4").write_bytes(b"basics")
    (root / "Chapter 1" / "01 basics.pdf").write_bytes(b"slides")
    (root / "02 summary.html").write_bytes(b"<p>summary</p>")
    course_id = repository.add_course(str(root))
    scanner = CourseScanner(repository)
    scanner.add(course_id)
    scanner.drain(process_scan)
    return course_id


def test_collect_overview_groups_assets_by_chapter(
    repository: CatalogRepository, course_root: Path
) -> None:
    _scanned_course(repository, course_root)

    snapshot = collect_overview(repository)

    assert snapshot.course_count == 1
    assert snapshot.asset_count == 2
    assert snapshot.attachment_count == 1
    assert snapshot.asset_totals == {"video": 1, "html": 1, "pdf": 0}
    chapters = snapshot.courses[0].chapters
    assert [chapter.name for chapter in chapters] == ["", "Chapter 1"]
    basics = chapters[1].assets[0]
    assert [item.title for item in basics.attachments] == ["basics.pdf"]


def test_modern_ui_renders_tree(repository: CatalogRepository, course_root: Path) -> None:
    _scanned_course(repository, course_root)
    buffer = io.StringIO()

    ModernUI(repository, console=Console(file=buffer, width=160, color_system=None)).run()

    output = buffer.getvalue()
    assert "Astronomy" in output
    assert "basics" in output
    assert "basics.pdf" in output


def test_modern_ui_hints_when_empty(repository: CatalogRepository) -> None:
    buffer = io.StringIO()

    ModernUI(repository, console=Console(file=buffer, width=120, color_system=None)).run()

    assert "No courses have been registered yet." in buffer.getvalue()
