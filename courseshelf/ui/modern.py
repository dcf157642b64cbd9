"""A Rich-powered console front-end for browsing scanned courses."""

from __future__ import annotations

from typing import Iterable, Optional

from rich import box
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..services.storage import CatalogRepository, CourseRecord
from .overview import (
    ASSET_LABELS,
    AssetOverview,
    CourseOverview,
    OverviewSnapshot,
    collect_overview,
)


class ModernUI:
    """Render the course catalog as a tree next to summary statistics."""

    def __init__(self, repository: CatalogRepository, *, console: Optional[Console] = None) -> None:
        self._repository = repository
        self._console = console or Console()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(self) -> None:
        snapshot = collect_overview(self._repository)
        console = self._console

        console.rule("[bold magenta]Course Shelf Overview")

        if snapshot.course_count == 0:
            console.print(
                Panel(
                    "No courses have been registered yet.\n"
                    "Use [bold]python run.py add-course PATH[/bold] to add your first course.",
                    border_style="yellow",
                    box=box.ROUNDED,
                )
            )
            return

        tree_panel = Panel(
            self._build_tree(snapshot.courses),
            title="Courses",
            border_style="cyan",
            box=box.ROUNDED,
        )
        console.print(Columns([tree_panel, self._build_stats_panel(snapshot)], expand=True))

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------
    def _build_tree(self, courses: Iterable[CourseOverview]) -> Tree:
        tree = Tree("[bold cyan]Courses", guide_style="cyan")

        for course_overview in courses:
            course_node = tree.add(self._build_course_label(course_overview.record))
            if not course_overview.chapters:
                course_node.add("[dim]No assets yet")
                continue

            for chapter in course_overview.chapters:
                if chapter.name:
                    parent = course_node.add(Text(chapter.name, style="bright_cyan"))
                else:
                    parent = course_node
                for asset_overview in chapter.assets:
                    asset_node = parent.add(self._build_asset_label(asset_overview))
                    for attachment in asset_overview.attachments:
                        asset_node.add(Text(f"📎 {attachment.title}", style="dim"))

        return tree

    @staticmethod
    def _build_course_label(course: CourseRecord) -> Text:
        label = Text(course.title, style="bold")
        if not course.available:
            label.append("  unavailable", style="red")
        label.append("\n")
        label.append(course.path, style="dim")
        return label

    @staticmethod
    def _build_asset_label(overview: AssetOverview) -> Text:
        record = overview.record
        label = Text(f"{record.prefix:>3} ", style="dim")
        label.append(record.title, style="white")
        label.append("  ")
        label.append(ASSET_LABELS.get(record.type.value, record.type.value), style="green")
        return label

    def _build_stats_panel(self, snapshot: OverviewSnapshot) -> Panel:
        metrics = Table.grid(expand=True, padding=(0, 1))
        metrics.add_column(style="dim")
        metrics.add_column(justify="right", style="bold")
        metrics.add_row("Courses", str(snapshot.course_count))
        metrics.add_row("Assets", str(snapshot.asset_count))
        metrics.add_row("Attachments", str(snapshot.attachment_count))

        asset_table = Table.grid(expand=True, padding=(0, 1))
        asset_table.add_column(style="dim")
        asset_table.add_column(justify="right", style="bold")
        for key, label in ASSET_LABELS.items():
            asset_table.add_row(label, str(snapshot.asset_totals.get(key, 0)))

        body = Group(metrics, Rule(style="magenta"), asset_table)
        return Panel(body, title="At a glance", border_style="magenta", box=box.ROUNDED)


__all__ = ["ModernUI"]
