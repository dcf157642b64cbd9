"""Filename grammar for course assets, attachments and card images."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Dict, Optional


class AssetType(str, Enum):
    VIDEO = "video"
    HTML = "html"
    PDF = "pdf"

    @classmethod
    def from_extension(cls, extension: str) -> Optional["AssetType"]:
        """Return the asset type for *extension* (without the dot), if any."""

        return _EXTENSION_TYPES.get(extension.lower())

    @property
    def is_video(self) -> bool:
        return self is AssetType.VIDEO

    @property
    def is_html(self) -> bool:
        return self is AssetType.HTML

    @property
    def is_pdf(self) -> bool:
        return self is AssetType.PDF


_EXTENSION_TYPES: Dict[str, AssetType] = {
    **{
        ext: AssetType.VIDEO
        for ext in (
            "avi",
            "mkv",
            "flac",
            "mp4",
            "m4a",
            "mp3",
            "ogv",
            "ogm",
            "ogg",
            "oga",
            "opus",
            "webm",
            "wav",
        )
    },
    "htm": AssetType.HTML,
    "html": AssetType.HTML,
    "pdf": AssetType.PDF,
}

_FILENAME_PATTERN = re.compile(
    r"^\s*(?P<prefix>[0-9]+)"
    r"((?:\s+-+\s+|\s+-+|\s+|-+\s*)(?P<title>[^.][^.]*)?)?"
    r"(?:\.(?P<ext>\w+))?$",
    re.ASCII,
)

CARD_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "tiff"})


@dataclass(frozen=True)
class ParsedFilename:
    """Outcome of :func:`parse_filename`.

    ``asset_type`` is ``None`` when the file is an attachment.
    """

    prefix: int
    title: str
    asset_type: Optional[AssetType] = None

    @property
    def is_asset(self) -> bool:
        return self.asset_type is not None


def parse_filename(filename: str) -> Optional[ParsedFilename]:
    """Classify a bare filename.

    Returns ``None`` when the name does not start with a numeric prefix. A
    numbered file without a title is an attachment named after the whole
    filename, a file with a title but no extension is an attachment with that
    title, and a file whose extension is not an asset type is an attachment
    whose title keeps the extension.
    """

    match = _FILENAME_PATTERN.match(filename)
    if match is None:
        return None

    prefix = int(match.group("prefix"))
    title = match.group("title")
    extension = match.group("ext")

    if not title:
        return ParsedFilename(prefix=prefix, title=filename)
    if not extension:
        return ParsedFilename(prefix=prefix, title=title)

    asset_type = AssetType.from_extension(extension)
    if asset_type is None:
        return ParsedFilename(prefix=prefix, title=f"{title}.{extension}")
    return ParsedFilename(prefix=prefix, title=title, asset_type=asset_type)


def is_card(filename: str) -> bool:
    """Return ``True`` for ``card.<image extension>`` files."""

    candidate = PurePath(filename)
    if candidate.stem != "card" or not candidate.suffix:
        return False
    return candidate.suffix[1:].lower() in CARD_EXTENSIONS


__all__ = ["AssetType", "CARD_EXTENSIONS", "ParsedFilename", "is_card", "parse_filename"]
