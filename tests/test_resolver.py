from __future__ import annotations

import itertools
from pathlib import Path
from typing import List, Tuple

import pytest

from courseshelf.services.classifier import AssetType
from courseshelf.services.resolver import outranks, resolve


ROOT = Path("/courses/Astronomy")


class RecordingHasher:
    def __init__(self) -> None:
        self.calls: List[Path] = []

    def __call__(self, path: Path) -> str:
        self.calls.append(path)
        return f"hash:{path.name}"


def _files(*names: str) -> List[Path]:
    return [ROOT / name for name in names]


def test_asset_and_attachment_share_a_slot() -> None:
    plan = resolve(1, ROOT, _files("01 intro.mp4", "01 intro.txt"), hash_fn=RecordingHasher())

    assert len(plan.assets) == 1
    asset = plan.assets[0]
    assert (asset.chapter, asset.prefix, asset.title, asset.type) == ("", 1, "intro", AssetType.VIDEO)
    assert asset.hash == "hash:01 intro.mp4"
    assert [(item.title, item.slot) for item in plan.attachments] == [("intro.txt", ("", 1))]


@pytest.mark.parametrize(
    "names", list(itertools.permutations(["1 lesson.pdf", "1 lesson.html", "1 lesson.mp4"]))
)
def test_video_wins_the_slot_in_any_order(names: Tuple[str, ...]) -> None:
    plan = resolve(1, ROOT, _files(*names), hash_fn=RecordingHasher())

    assert [(asset.title, asset.type) for asset in plan.assets] == [("lesson", AssetType.VIDEO)]
    assert sorted(item.title for item in plan.attachments) == ["lesson.html", "lesson.pdf"]


def test_priority_sequence_keeps_video_and_demotes_the_rest() -> None:
    files = _files("1 - doc 1.pdf", "1 - index.html", "1 - video.mp4", "1 - doc 2.pdf")

    plan = resolve(1, ROOT, files, hash_fn=RecordingHasher())

    assert [(asset.title, asset.type) for asset in plan.assets] == [("video", AssetType.VIDEO)]
    assert [item.title for item in plan.attachments] == ["doc 1.pdf", "index.html", "doc 2.pdf"]
    assert [item.path for item in plan.attachments] == [str(path) for path in files[:2] + files[3:]]


def test_first_asset_wins_between_equal_types() -> None:
    plan = resolve(1, ROOT, _files("2 first.mp4", "2 second.mkv"), hash_fn=RecordingHasher())

    assert plan.assets[0].title == "first"
    assert [item.title for item in plan.attachments] == ["second.mkv"]


def test_pdf_never_replaces_html() -> None:
    plan = resolve(1, ROOT, _files("3 page.html", "3 page.pdf"), hash_fn=RecordingHasher())

    assert plan.assets[0].type is AssetType.HTML
    assert [item.title for item in plan.attachments] == ["page.pdf"]


def test_outranks_rules() -> None:
    assert outranks(AssetType.VIDEO, AssetType.HTML)
    assert outranks(AssetType.VIDEO, AssetType.PDF)
    assert outranks(AssetType.HTML, AssetType.PDF)
    assert not outranks(AssetType.VIDEO, AssetType.VIDEO)
    assert not outranks(AssetType.PDF, AssetType.HTML)
    assert not outranks(AssetType.HTML, AssetType.VIDEO)


def test_only_final_winners_are_hashed() -> None:
    hasher = RecordingHasher()

    resolve(1, ROOT, _files("1 a.pdf", "1 b.html", "1 c.mp4", "2 d.pdf"), hash_fn=hasher)

    assert sorted(path.name for path in hasher.calls) == ["1 c.mp4", "2 d.pdf"]


def test_chapters_are_separate_slots() -> None:
    files = _files("01 intro.mp4", "Chapter 1/01 intro.mp4", "Chapter 2/01 intro.pdf")

    plan = resolve(1, ROOT, files, hash_fn=RecordingHasher())

    assert [asset.slot for asset in plan.assets] == [("", 1), ("Chapter 1", 1), ("Chapter 2", 1)]


def test_attachments_without_an_asset_are_dropped() -> None:
    plan = resolve(1, ROOT, _files("5 notes.txt", "6 lesson.mp4"), hash_fn=RecordingHasher())

    assert [asset.prefix for asset in plan.assets] == [6]
    assert plan.attachments == []


def test_unprefixed_files_are_ignored() -> None:
    plan = resolve(1, ROOT, _files("readme.md", "notes.pdf"), hash_fn=RecordingHasher())

    assert plan.assets == []
    assert plan.attachments == []
    assert plan.card_path is None


def test_first_root_card_wins_and_chapter_cards_are_ignored() -> None:
    files = _files("Chapter 1/card.png", "card.jpg", "card.webp", "01 intro.mp4")

    plan = resolve(1, ROOT, files, hash_fn=RecordingHasher())

    assert plan.card_path == str(ROOT / "card.jpg")
    assert len(plan.assets) == 1
