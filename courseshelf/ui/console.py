"""Plain-text overview for terminals without Rich rendering."""

from __future__ import annotations

from typing import Iterable

from ..services.storage import CatalogRepository
from .overview import CourseOverview, collect_overview


class ConsoleUI:
    """Minimal console UI that lists courses and their assets."""

    def __init__(self, repository: CatalogRepository) -> None:
        self._repository = repository

    def run(self) -> None:
        print("Course Shelf – Console Overview")
        print("=" * 40)
        for course in collect_overview(self._repository).courses:
            title = f"Course: {course.record.title}"
            print(title)
            print("-" * len(title))
            has_entries = False
            for entry in self._format_course(course):
                has_entries = True
                print(entry)
            if not has_entries:
                print("(empty)")
            print()

    @staticmethod
    def _format_course(course: CourseOverview) -> Iterable[str]:
        for chapter in course.chapters:
            indent = "  "
            if chapter.name:
                yield f"  Chapter: {chapter.name}"
                indent = "    "
            for asset in chapter.assets:
                record = asset.record
                yield f"{indent}{record.prefix} {record.title} ({record.type.value})"
                for attachment in asset.attachments:
                    yield f"{indent}  + {attachment.title}"


__all__ = ["ConsoleUI"]
