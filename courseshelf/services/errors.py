"""Exception types shared by the catalog and the course scanner."""

from __future__ import annotations


class CourseShelfError(RuntimeError):
    """Base class for application level failures."""


class NotFoundError(CourseShelfError):
    """Raised when a course or scan does not exist."""

    def __init__(self, kind: str, identifier: object) -> None:
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class ScanError(CourseShelfError):
    """Raised when a scan job cannot be processed."""


__all__ = ["CourseShelfError", "NotFoundError", "ScanError"]
