"""Entry-point for the Course Shelf application."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

import typer
import uvicorn

from courseshelf.bootstrap import initialize_app
from courseshelf.config import AppConfig
from courseshelf.logging_utils import (
    DEFAULT_LOG_FORMAT,
    configure_logging,
    get_log_file_path,
    resolve_log_level,
)
from courseshelf.services.errors import NotFoundError
from courseshelf.services.events import repository_event_emitter
from courseshelf.services.scanner import CourseScanner, process_scan
from courseshelf.services.storage import CatalogRepository
from courseshelf.ui.console import ConsoleUI
from courseshelf.ui.modern import ModernUI
from courseshelf.web import create_app


LOGGER = logging.getLogger("courseshelf.cli")


cli = typer.Typer(add_completion=False, help="Course Shelf management commands")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _prepare_logging(storage_root: Path) -> None:
    log_file = get_log_file_path(storage_root)
    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    level = resolve_log_level(os.environ.get("COURSESHELF_LOG_LEVEL"))
    configure_logging(level, handlers=[file_handler, stream_handler])


class UIStyle(str, Enum):
    MODERN = "modern"
    CONSOLE = "console"


style_option = typer.Option(
    UIStyle.MODERN,
    "--style",
    "-s",
    help="Select the overview presentation style.",
    show_default=True,
)


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Launch the web server when no explicit command is provided."""

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve, host=DEFAULT_HOST, port=DEFAULT_PORT, root_path=None)


def _normalize_root_path(root_path: Optional[str]) -> str:
    if root_path is None:
        return ""
    normalized = root_path.strip().rstrip("/")
    if normalized and not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return normalized


def _open_repository() -> Tuple[AppConfig, CatalogRepository]:
    config = initialize_app()
    _prepare_logging(config.storage_root)
    repository = CatalogRepository(config)
    repository.configure_event_emitter(repository_event_emitter)
    return config, repository


def _run_scans(scanner: CourseScanner, course_id: int) -> None:
    scanner.recover()
    scanner.add(course_id)
    processed = scanner.drain(process_scan)
    LOGGER.debug("Processed %s scan job(s)", processed)

    repository = scanner.repository
    course = repository.get_course(course_id)
    if course is None:
        typer.echo(f"Course {course_id} was removed during the scan.")
        return
    if not course.available:
        typer.echo(f"Course '{course.title}' is unavailable: {course.path}")
        return

    assets = repository.list_assets(course_id)
    attachments = repository.list_attachments([asset.id for asset in assets])
    typer.echo(
        f"Course '{course.title}': {len(assets)} asset(s), {len(attachments)} attachment(s)"
    )
    if course.card_path:
        typer.echo(f"Card: {course.card_path}")


@cli.command("add-course")
def add_course(
    path: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
        help="Course directory to register",
    ),
    title: Optional[str] = typer.Option(None, help="Display title (defaults to the directory name)"),
    scan: bool = typer.Option(True, "--scan/--no-scan", help="Scan the course right away"),
) -> None:
    """Register a course directory in the catalog."""

    config, repository = _open_repository()
    existing = repository.find_course_by_path(str(path))
    if existing is not None:
        typer.echo(f"Course already registered with id {existing.id}: {existing.path}")
        course_id = existing.id
    else:
        course_id = repository.add_course(str(path), title)
        typer.echo(f"Registered course {course_id}: {path}")

    if scan:
        _run_scans(CourseScanner(repository, settings=config.scan), course_id)


@cli.command()
def scan(course_id: int = typer.Argument(..., help="Identifier of the course to scan")) -> None:
    """Queue a scan for COURSE_ID and process the queue until it is empty."""

    config, repository = _open_repository()
    scanner = CourseScanner(repository, settings=config.scan)
    try:
        _run_scans(scanner, course_id)
    except NotFoundError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error


@cli.command()
def overview(style: UIStyle = style_option) -> None:
    """Render an overview of scanned courses using the chosen UI style."""

    _, repository = _open_repository()
    if style is UIStyle.MODERN:
        ui = ModernUI(repository)
    else:
        ui = ConsoleUI(repository)
    ui.run()


@cli.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, help="Host interface for the web server"),
    port: int = typer.Option(DEFAULT_PORT, help="Port for the web server"),
    root_path: Optional[str] = typer.Option(
        None,
        help="Prefix the application expects when mounted behind a proxy",
        envvar="COURSESHELF_ROOT_PATH",
    ),
) -> None:
    """Run the HTTP API together with the background scan worker."""

    app_config, repository = _open_repository()
    app = create_app(repository, config=app_config)

    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        root_path=_normalize_root_path(root_path),
    )
    server = uvicorn.Server(server_config)
    app.state.server = server
    server.run()


if __name__ == "__main__":
    cli()
