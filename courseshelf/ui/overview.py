"""Shared helpers for building overview snapshots of scanned courses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from ..services.classifier import AssetType
from ..services.storage import AssetRecord, AttachmentRecord, CatalogRepository, CourseRecord


ASSET_LABELS: Dict[str, str] = {
    AssetType.VIDEO.value: "🎬 Video",
    AssetType.HTML.value: "🌐 HTML",
    AssetType.PDF.value: "📑 PDF",
}


@dataclass
class AssetOverview:
    record: AssetRecord
    attachments: List[AttachmentRecord]


@dataclass
class ChapterOverview:
    name: str
    assets: List[AssetOverview] = field(default_factory=list)


@dataclass
class CourseOverview:
    record: CourseRecord
    chapters: List[ChapterOverview]


@dataclass
class OverviewSnapshot:
    courses: List[CourseOverview]
    course_count: int
    asset_count: int
    attachment_count: int
    asset_totals: Dict[str, int]


def collect_overview(repository: CatalogRepository) -> OverviewSnapshot:
    """Aggregate repository data into a convenient snapshot for UIs."""

    courses: List[CourseOverview] = []
    asset_count = 0
    attachment_count = 0
    asset_totals = {key: 0 for key in ASSET_LABELS.keys()}

    for course_record in repository.list_courses():
        assets = repository.list_assets(course_record.id)
        attachments = repository.list_attachments([asset.id for asset in assets])
        by_asset: Dict[int, List[AttachmentRecord]] = {}
        for attachment in attachments:
            by_asset.setdefault(attachment.asset_id, []).append(attachment)

        chapters: Dict[str, ChapterOverview] = {}
        for asset in assets:
            chapter = chapters.setdefault(asset.chapter, ChapterOverview(name=asset.chapter))
            chapter.assets.append(
                AssetOverview(record=asset, attachments=by_asset.get(asset.id, []))
            )
            asset_totals[asset.type.value] += 1

        asset_count += len(assets)
        attachment_count += len(attachments)
        courses.append(CourseOverview(record=course_record, chapters=list(chapters.values())))

    return OverviewSnapshot(
        courses=courses,
        course_count=len(courses),
        asset_count=asset_count,
        attachment_count=attachment_count,
        asset_totals=asset_totals,
    )


__all__ = [
    "ASSET_LABELS",
    "AssetOverview",
    "ChapterOverview",
    "CourseOverview",
    "OverviewSnapshot",
    "collect_overview",
]
