"""Turn a crawl listing into the desired catalog state for one course."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .classifier import AssetType, is_card, parse_filename
from .crawler import chapter_for

LOGGER = logging.getLogger(__name__)

Slot = Tuple[str, int]


@dataclass
class DesiredAsset:
    course_id: int
    chapter: str
    prefix: int
    title: str
    type: AssetType
    path: str
    hash: str = ""

    @property
    def slot(self) -> Slot:
        return (self.chapter, self.prefix)


@dataclass
class DesiredAttachment:
    course_id: int
    chapter: str
    prefix: int
    title: str
    path: str

    @property
    def slot(self) -> Slot:
        return (self.chapter, self.prefix)


@dataclass
class ScanPlan:
    card_path: Optional[str] = None
    assets: List[DesiredAsset] = field(default_factory=list)
    attachments: List[DesiredAttachment] = field(default_factory=list)


def outranks(candidate: AssetType, current: AssetType) -> bool:
    """Whether *candidate* should replace *current* as the asset of a slot."""

    if candidate.is_video and not current.is_video:
        return True
    return candidate.is_html and current.is_pdf


def _with_extension(title: str, path: str) -> str:
    return title + Path(path).suffix


def resolve(
    course_id: int,
    root: Path,
    files: Iterable[Path],
    *,
    hash_fn: Callable[[Path], str],
) -> ScanPlan:
    """Classify *files* and pick one winning asset per ``(chapter, prefix)`` slot.

    Asset candidates that lose a slot, and winners that get replaced later,
    are kept as attachments of the slot titled with their file extension.
    Only root-level ``card`` images are cover candidates and the first one
    seen wins. ``hash_fn`` is called once per final winner.
    """

    root = Path(root)
    plan = ScanPlan()
    winners: Dict[Slot, DesiredAsset] = {}
    slot_attachments: Dict[Slot, List[DesiredAttachment]] = {}

    for path in files:
        path = Path(path)
        chapter = chapter_for(path, root)

        if not chapter and is_card(path.name):
            if plan.card_path is None:
                plan.card_path = str(path)
            else:
                LOGGER.debug("Ignoring additional card %s (using %s)", path, plan.card_path)
            continue

        parsed = parse_filename(path.name)
        if parsed is None:
            LOGGER.debug("Ignoring file without a numeric prefix: %s", path)
            continue

        slot: Slot = (chapter, parsed.prefix)
        attachments = slot_attachments.setdefault(slot, [])

        if parsed.asset_type is None:
            attachments.append(
                DesiredAttachment(course_id, chapter, parsed.prefix, parsed.title, str(path))
            )
            continue

        candidate = DesiredAsset(
            course_id=course_id,
            chapter=chapter,
            prefix=parsed.prefix,
            title=parsed.title,
            type=parsed.asset_type,
            path=str(path),
        )
        current = winners.get(slot)
        if current is None:
            winners[slot] = candidate
        elif outranks(candidate.type, current.type):
            LOGGER.debug("Asset %s replaces %s in slot %s", candidate.path, current.path, slot)
            winners[slot] = candidate
            attachments.append(
                DesiredAttachment(
                    course_id,
                    chapter,
                    parsed.prefix,
                    _with_extension(current.title, current.path),
                    current.path,
                )
            )
        else:
            attachments.append(
                DesiredAttachment(
                    course_id,
                    chapter,
                    parsed.prefix,
                    _with_extension(candidate.title, candidate.path),
                    candidate.path,
                )
            )

    for slot, winner in winners.items():
        winner.hash = hash_fn(Path(winner.path))
        plan.assets.append(winner)
        plan.attachments.extend(slot_attachments.get(slot, []))

    dropped = sum(len(items) for slot, items in slot_attachments.items() if slot not in winners)
    if dropped:
        LOGGER.debug("Dropped %s attachment(s) without an owning asset", dropped)

    return plan


__all__ = ["DesiredAsset", "DesiredAttachment", "ScanPlan", "outranks", "resolve"]
