"""Apply a :class:`ScanPlan` to the catalog in a single transaction."""

from __future__ import annotations

import logging
import secrets
import sqlite3
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from .resolver import DesiredAsset, ScanPlan, Slot
from .storage import AssetRecord, AttachmentRecord, CatalogRepository, CourseRecord

LOGGER = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    assets_added: int = 0
    assets_updated: int = 0
    assets_deleted: int = 0
    assets_unchanged: int = 0
    attachments_added: int = 0
    attachments_deleted: int = 0
    card_changed: bool = False

    @property
    def changed(self) -> bool:
        return bool(
            self.assets_added
            or self.assets_updated
            or self.assets_deleted
            or self.attachments_added
            or self.attachments_deleted
            or self.card_changed
        )


def _record_for(existing: AssetRecord, desired: DesiredAsset) -> AssetRecord:
    return AssetRecord(
        id=existing.id,
        course_id=desired.course_id,
        chapter=desired.chapter,
        prefix=desired.prefix,
        title=desired.title,
        type=desired.type,
        path=desired.path,
        hash=desired.hash,
        created_at=existing.created_at,
    )


def _same_asset(existing: AssetRecord, desired: DesiredAsset) -> bool:
    return (
        existing.course_id == desired.course_id
        and existing.chapter == desired.chapter
        and existing.prefix == desired.prefix
        and existing.title == desired.title
        and existing.type == desired.type
        and existing.path == desired.path
        and existing.hash == desired.hash
    )


def pair_by_hash(
    existing: List[AssetRecord], desired: List[DesiredAsset]
) -> Tuple[List[Tuple[AssetRecord, DesiredAsset]], List[DesiredAsset], List[AssetRecord]]:
    """Match existing rows to desired assets by content hash.

    Rows sharing a hash are paired on identical paths first and then in
    order. Returns ``(pairs, to_add, to_delete)``.
    """

    existing_by_hash: Dict[str, List[AssetRecord]] = {}
    for record in existing:
        existing_by_hash.setdefault(record.hash, []).append(record)

    pairs: List[Tuple[AssetRecord, DesiredAsset]] = []
    to_add: List[DesiredAsset] = []
    unmatched: List[DesiredAsset] = []

    for asset in desired:
        candidates = existing_by_hash.get(asset.hash, [])
        same_path = next((record for record in candidates if record.path == asset.path), None)
        if same_path is not None:
            candidates.remove(same_path)
            pairs.append((same_path, asset))
        else:
            unmatched.append(asset)

    for asset in unmatched:
        candidates = existing_by_hash.get(asset.hash, [])
        if candidates:
            pairs.append((candidates.pop(0), asset))
        else:
            to_add.append(asset)

    to_delete = [record for records in existing_by_hash.values() for record in records]
    return pairs, to_add, to_delete


def reconcile(
    repository: CatalogRepository,
    course: CourseRecord,
    plan: ScanPlan,
    *,
    suffix: Optional[str] = None,
) -> ReconcileResult:
    """Bring the catalog rows of *course* in line with *plan*.

    Existing assets are matched to desired ones by content hash so that a
    renamed or moved file keeps its id. Changed rows are first parked at a
    temporary path carrying *suffix* and only moved to their final path
    after deletions and insertions, so no statement ever collides on a
    unique path. Everything runs in one transaction.
    """

    suffix = suffix or f".{secrets.token_hex(5)}"
    result = ReconcileResult()

    with repository.transaction() as connection:
        slot_ids = _apply_assets(repository, course, plan, suffix, result, connection)
        _apply_attachments(repository, plan, slot_ids, result, connection)

        card_path = plan.card_path
        if course.card_path != card_path:
            LOGGER.debug(
                "Updating card for course id=%s: %s -> %s",
                course.id,
                course.card_path,
                card_path,
            )
            result.card_changed = True
        updated_course = replace(course, card_path=card_path)
        repository.update_course(updated_course, connection=connection)

    course.card_path = card_path
    LOGGER.debug("Reconciled course id=%s: %s", course.id, result)
    return result


def _apply_assets(
    repository: CatalogRepository,
    course: CourseRecord,
    plan: ScanPlan,
    suffix: str,
    result: ReconcileResult,
    connection: sqlite3.Connection,
) -> Dict[Slot, int]:
    existing = repository.list_assets(course.id, connection=connection)
    pairs, to_add, to_delete = pair_by_hash(existing, plan.assets)

    changed: List[AssetRecord] = []
    slot_ids: Dict[Slot, int] = {}
    for record, asset in pairs:
        slot_ids[asset.slot] = int(record.id)
        if _same_asset(record, asset):
            result.assets_unchanged += 1
        else:
            changed.append(_record_for(record, asset))

    for record in to_delete:
        LOGGER.debug("Deleting asset id=%s (%s)", record.id, record.path)
        repository.delete_asset(int(record.id), connection=connection)
    result.assets_deleted = len(to_delete)

    for record in changed:
        parked = replace(record, path=record.path + suffix)
        repository.update_asset(parked, connection=connection)

    for asset in to_add:
        LOGGER.debug("Adding asset %s", asset.path)
        new_id = repository.create_asset(
            AssetRecord(
                id=None,
                course_id=asset.course_id,
                chapter=asset.chapter,
                prefix=asset.prefix,
                title=asset.title,
                type=asset.type,
                path=asset.path,
                hash=asset.hash,
            ),
            connection=connection,
        )
        slot_ids[asset.slot] = new_id
    result.assets_added = len(to_add)

    for record in changed:
        LOGGER.debug("Updating asset id=%s (%s)", record.id, record.path)
        repository.update_asset(record, connection=connection)
    result.assets_updated = len(changed)

    return slot_ids


def _apply_attachments(
    repository: CatalogRepository,
    plan: ScanPlan,
    slot_ids: Dict[Slot, int],
    result: ReconcileResult,
    connection: sqlite3.Connection,
) -> None:
    existing = repository.list_attachments(sorted(slot_ids.values()), connection=connection)
    existing_by_path: Dict[str, AttachmentRecord] = {item.path: item for item in existing}

    to_delete: List[AttachmentRecord] = []
    to_add: List[AttachmentRecord] = []
    desired_paths = set()

    for attachment in plan.attachments:
        asset_id = slot_ids.get(attachment.slot)
        if asset_id is None:
            continue
        desired_paths.add(attachment.path)
        wanted = AttachmentRecord(
            id=None,
            course_id=attachment.course_id,
            asset_id=asset_id,
            title=attachment.title,
            path=attachment.path,
        )
        current = existing_by_path.get(attachment.path)
        if current is None:
            to_add.append(wanted)
        elif current.asset_id != asset_id or current.title != attachment.title:
            to_delete.append(current)
            to_add.append(wanted)

    to_delete.extend(item for item in existing if item.path not in desired_paths)

    for item in to_delete:
        repository.delete_attachment(int(item.id), connection=connection)
    for item in to_add:
        repository.create_attachment(item, connection=connection)

    result.attachments_deleted = len(to_delete)
    result.attachments_added = len(to_add)


__all__ = ["ReconcileResult", "pair_by_hash", "reconcile"]
