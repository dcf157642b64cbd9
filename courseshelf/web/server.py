"""FastAPI application exposing the course scanner."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel, Field

from ..config import AppConfig
from ..services.errors import NotFoundError
from ..services.events import repository_event_emitter
from ..services.scanner import CourseScanner
from ..services.storage import (
    AssetRecord,
    AttachmentRecord,
    CatalogRepository,
    CourseRecord,
    ScanRecord,
)


LOGGER = logging.getLogger(__name__)


class ScanCreatePayload(BaseModel):
    course_id: int = Field(..., ge=1)


def _serialize_scan(scan: ScanRecord) -> Dict[str, Any]:
    return {
        "id": scan.id,
        "course_id": scan.course_id,
        "status": scan.status.value,
        "created_at": scan.created_at,
        "updated_at": scan.updated_at,
    }


def _serialize_attachment(attachment: AttachmentRecord) -> Dict[str, Any]:
    return {
        "id": attachment.id,
        "asset_id": attachment.asset_id,
        "title": attachment.title,
        "path": attachment.path,
    }


def _serialize_asset(asset: AssetRecord, attachments: List[AttachmentRecord]) -> Dict[str, Any]:
    return {
        "id": asset.id,
        "chapter": asset.chapter,
        "prefix": asset.prefix,
        "title": asset.title,
        "type": asset.type.value,
        "path": asset.path,
        "hash": asset.hash,
        "attachments": [
            _serialize_attachment(item) for item in attachments if item.asset_id == asset.id
        ],
    }


def _serialize_course(repository: CatalogRepository, course: CourseRecord) -> Dict[str, Any]:
    assets = repository.list_assets(course.id)
    attachments = repository.list_attachments([asset.id for asset in assets])
    return {
        "id": course.id,
        "title": course.title,
        "path": course.path,
        "available": course.available,
        "card_path": course.card_path,
        "assets": [_serialize_asset(asset, attachments) for asset in assets],
    }


def create_app(
    repository: CatalogRepository,
    *,
    config: AppConfig,
    scanner: Optional[CourseScanner] = None,
) -> FastAPI:
    """Return a configured FastAPI application.

    The scan worker is started with the application and stopped on shutdown.
    """

    app = FastAPI(
        title="Course Shelf",
        description="Scan course directories into a searchable catalog",
    )
    repository.configure_event_emitter(repository_event_emitter)
    if scanner is None:
        scanner = CourseScanner(repository, settings=config.scan)
    app.state.scanner = scanner
    app.state.server = None

    def _start_scanner() -> None:
        if not scanner.is_running:
            scanner.start()
            LOGGER.debug("Scan worker started with the web application")

    def _stop_scanner() -> None:
        scanner.stop(timeout=5.0)

    app.add_event_handler("startup", _start_scanner)
    app.add_event_handler("shutdown", _stop_scanner)

    @app.post("/api/scans", status_code=status.HTTP_201_CREATED)
    async def create_scan(payload: ScanCreatePayload) -> Dict[str, Any]:
        try:
            scan = scanner.add(payload.course_id)
        except NotFoundError as error:
            raise HTTPException(status_code=404, detail="Course not found") from error
        return {"scan": _serialize_scan(scan)}

    @app.get("/api/scans/course/{course_id}")
    async def get_course_scan(course_id: int) -> Dict[str, Any]:
        scan = repository.get_scan_by_course(course_id)
        if scan is None:
            raise HTTPException(status_code=404, detail="Scan not found")
        return {"scan": _serialize_scan(scan)}

    @app.get("/api/courses/{course_id}")
    async def get_course(course_id: int) -> Dict[str, Any]:
        course = repository.get_course(course_id)
        if course is None:
            raise HTTPException(status_code=404, detail="Course not found")
        return {"course": _serialize_course(repository, course)}

    return app


__all__ = ["ScanCreatePayload", "create_app"]
