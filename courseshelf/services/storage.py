"""Persistence helpers backed by SQLite."""

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ..config import AppConfig
from .classifier import AssetType


LOGGER = logging.getLogger(__name__)


class ScanStatus(str, Enum):
    WAITING = "waiting"
    PROCESSING = "processing"


@dataclass
class CourseRecord:
    id: int
    title: str
    path: str
    available: bool
    card_path: Optional[str]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class ScanRecord:
    id: int
    course_id: int
    status: ScanStatus
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    course_path: Optional[str] = None

    def is_live(self) -> bool:
        return self.status in (ScanStatus.WAITING, ScanStatus.PROCESSING)


@dataclass
class AssetRecord:
    id: Optional[int]
    course_id: int
    chapter: str
    prefix: int
    title: str
    type: AssetType
    path: str
    hash: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class AttachmentRecord:
    id: Optional[int]
    course_id: int
    asset_id: int
    title: str
    path: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


_NOW = "STRFTIME('%Y-%m-%d %H:%M:%f', 'NOW')"

_COURSE_COLUMNS = "id, title, path, available, card_path, created_at, updated_at"
_ASSET_COLUMNS = "id, course_id, chapter, prefix, title, type, path, hash, created_at, updated_at"
_ATTACHMENT_COLUMNS = "id, course_id, asset_id, title, path, created_at, updated_at"
_SCAN_SELECT = """
    SELECT scans.id, scans.course_id, scans.status, scans.created_at, scans.updated_at,
           courses.path AS course_path
    FROM scans
    LEFT JOIN courses ON courses.id = scans.course_id
"""


def _course_from_row(row: sqlite3.Row) -> CourseRecord:
    return CourseRecord(
        id=int(row["id"]),
        title=row["title"],
        path=row["path"],
        available=bool(row["available"]),
        card_path=row["card_path"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _scan_from_row(row: sqlite3.Row) -> ScanRecord:
    return ScanRecord(
        id=int(row["id"]),
        course_id=int(row["course_id"]),
        status=ScanStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        course_path=row["course_path"],
    )


def _asset_from_row(row: sqlite3.Row) -> AssetRecord:
    return AssetRecord(
        id=int(row["id"]),
        course_id=int(row["course_id"]),
        chapter=row["chapter"] or "",
        prefix=int(row["prefix"]),
        title=row["title"],
        type=AssetType(row["type"]),
        path=row["path"],
        hash=row["hash"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _attachment_from_row(row: sqlite3.Row) -> AttachmentRecord:
    return AttachmentRecord(
        id=int(row["id"]),
        course_id=int(row["course_id"]),
        asset_id=int(row["asset_id"]),
        title=row["title"],
        path=row["path"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class CatalogRepository:
    """Typed access to courses, assets, attachments and the scan queue.

    Every method opens (and closes) its own connection unless an open
    ``connection`` is passed in, which lets callers group several operations
    inside :meth:`transaction`.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        event_emitter: Optional[Callable[..., None]] = None,
        busy_timeout: float = 30.0,
    ) -> None:
        self._db_path = config.database_file
        self._busy_timeout = busy_timeout
        self._event_emitter: Optional[Callable[..., None]] = event_emitter

    @property
    def database_file(self) -> Path:
        return self._db_path

    def configure_event_emitter(self, emitter: Optional[Callable[..., None]]) -> None:
        """Register the callable responsible for emitting debug events."""

        self._event_emitter = emitter

    @contextlib.contextmanager
    def _track_db_event(self, action: str, **payload: Any):
        """Emit a structured debug event capturing execution time for a DB action."""

        if self._event_emitter is None:
            yield payload
            return

        start = time.perf_counter()
        event_payload: Dict[str, Any] = dict(payload)
        try:
            yield event_payload
        except Exception as exc:
            event_payload.setdefault("status", "error")
            event_payload.setdefault("error", f"{exc.__class__.__name__}: {exc}")
            raise
        else:
            event_payload.setdefault("status", "ok")
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            filtered = {
                key: value for key, value in event_payload.items() if value is not None
            }
            self._event_emitter(
                "DB_QUERY",
                action,
                payload=filtered,
                duration_ms=duration_ms,
            )

    @staticmethod
    def _summarize_sql(statement: str) -> str:
        collapsed = " ".join(statement.strip().split())
        return collapsed[:180] + ("…" if len(collapsed) > 180 else "")

    def _execute(
        self,
        connection: sqlite3.Connection,
        statement: str,
        parameters: Sequence[Any] | Tuple[Any, ...] | None = None,
        *,
        action: str,
        table: Optional[str] = None,
    ) -> sqlite3.Cursor:
        params: Tuple[Any, ...] = tuple(parameters) if parameters is not None else ()
        with self._track_db_event(
            action,
            table=table,
            sql=self._summarize_sql(statement),
            parameter_count=len(params),
        ) as event:
            cursor = connection.execute(statement, params)
            if cursor.rowcount is not None and cursor.rowcount >= 0:
                event.setdefault("rowcount", int(cursor.rowcount))
            return cursor

    def _connect(self) -> sqlite3.Connection:
        LOGGER.debug("Opening SQLite connection to %s", self._db_path)
        connection = sqlite3.connect(self._db_path, timeout=self._busy_timeout)
        connection.row_factory = sqlite3.Row
        self._execute(
            connection,
            "PRAGMA foreign_keys = ON",
            action="pragma_foreign_keys",
        )
        return connection

    @contextlib.contextmanager
    def _session(
        self, connection: Optional[sqlite3.Connection]
    ) -> Iterator[sqlite3.Connection]:
        """Yield *connection* untouched, or a short-lived autocommitting one."""

        if connection is not None:
            yield connection
            return

        owned = self._connect()
        try:
            yield owned
            owned.commit()
        except BaseException:
            owned.rollback()
            raise
        finally:
            owned.close()

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a unit of work atomically.

        The transaction commits when the block exits normally and rolls back
        on any exception, which is then re-raised.
        """

        with self._track_db_event("transaction") as event:
            connection = self._connect()
            try:
                self._execute(connection, "BEGIN IMMEDIATE", action="transaction.begin")
                yield connection
            except BaseException:
                connection.rollback()
                event["outcome"] = "rolled_back"
                LOGGER.debug("Transaction rolled back")
                raise
            else:
                connection.commit()
                event["outcome"] = "committed"
            finally:
                connection.close()

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    def add_course(
        self,
        path: str,
        title: Optional[str] = None,
        *,
        available: bool = False,
        connection: Optional[sqlite3.Connection] = None,
    ) -> int:
        title = title or Path(path).name or path
        LOGGER.debug("Adding course '%s' at %s", title, path)
        with self._session(connection) as conn:
            cursor = self._execute(
                conn,
                "INSERT INTO courses(title, path, available) VALUES (?, ?, ?)",
                (title, path, int(available)),
                action="courses.insert",
                table="courses",
            )
            course_id = int(cursor.lastrowid)
        LOGGER.debug("Course '%s' inserted with id=%s", title, course_id)
        return course_id

    def get_course(
        self, course_id: int, *, connection: Optional[sqlite3.Connection] = None
    ) -> Optional[CourseRecord]:
        with self._session(connection) as conn:
            row = self._execute(
                conn,
                f"SELECT {_COURSE_COLUMNS} FROM courses WHERE id = ?",
                (course_id,),
                action="courses.get",
                table="courses",
            ).fetchone()
        if row is None:
            LOGGER.debug("Course id=%s not found", course_id)
            return None
        return _course_from_row(row)

    def find_course_by_path(
        self, path: str, *, connection: Optional[sqlite3.Connection] = None
    ) -> Optional[CourseRecord]:
        with self._session(connection) as conn:
            row = self._execute(
                conn,
                f"SELECT {_COURSE_COLUMNS} FROM courses WHERE path = ?",
                (path,),
                action="courses.lookup_by_path",
                table="courses",
            ).fetchone()
        return _course_from_row(row) if row else None

    def list_courses(self, *, connection: Optional[sqlite3.Connection] = None) -> List[CourseRecord]:
        with self._session(connection) as conn:
            rows = self._execute(
                conn,
                f"SELECT {_COURSE_COLUMNS} FROM courses ORDER BY title, id",
                action="courses.list",
                table="courses",
            ).fetchall()
        return [_course_from_row(row) for row in rows]

    def update_course(
        self, course: CourseRecord, *, connection: Optional[sqlite3.Connection] = None
    ) -> None:
        LOGGER.debug(
            "Updating course id=%s (available=%s, card_path=%s)",
            course.id,
            course.available,
            course.card_path,
        )
        with self._session(connection) as conn:
            self._execute(
                conn,
                f"""
                UPDATE courses
                SET title = ?, path = ?, available = ?, card_path = ?, updated_at = {_NOW}
                WHERE id = ?
                """,
                (course.title, course.path, int(course.available), course.card_path, course.id),
                action="courses.update",
                table="courses",
            )

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------
    def list_assets(
        self, course_id: int, *, connection: Optional[sqlite3.Connection] = None
    ) -> List[AssetRecord]:
        with self._session(connection) as conn:
            rows = self._execute(
                conn,
                f"""
                SELECT {_ASSET_COLUMNS} FROM assets
                WHERE course_id = ?
                ORDER BY chapter, prefix, id
                """,
                (course_id,),
                action="assets.list",
                table="assets",
            ).fetchall()
        return [_asset_from_row(row) for row in rows]

    def create_asset(
        self, asset: AssetRecord, *, connection: Optional[sqlite3.Connection] = None
    ) -> int:
        with self._session(connection) as conn:
            cursor = self._execute(
                conn,
                """
                INSERT INTO assets(course_id, chapter, prefix, title, type, path, hash)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    asset.course_id,
                    asset.chapter,
                    asset.prefix,
                    asset.title,
                    asset.type.value,
                    asset.path,
                    asset.hash,
                ),
                action="assets.insert",
                table="assets",
            )
        asset.id = int(cursor.lastrowid)
        return asset.id

    def update_asset(
        self, asset: AssetRecord, *, connection: Optional[sqlite3.Connection] = None
    ) -> None:
        if asset.id is None:
            raise ValueError("Cannot update an asset without an id")
        with self._session(connection) as conn:
            self._execute(
                conn,
                f"""
                UPDATE assets
                SET chapter = ?, prefix = ?, title = ?, type = ?, path = ?, hash = ?,
                    updated_at = {_NOW}
                WHERE id = ?
                """,
                (
                    asset.chapter,
                    asset.prefix,
                    asset.title,
                    asset.type.value,
                    asset.path,
                    asset.hash,
                    asset.id,
                ),
                action="assets.update",
                table="assets",
            )

    def delete_asset(
        self, asset_id: int, *, connection: Optional[sqlite3.Connection] = None
    ) -> None:
        with self._session(connection) as conn:
            self._execute(
                conn,
                "DELETE FROM assets WHERE id = ?",
                (asset_id,),
                action="assets.delete",
                table="assets",
            )

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------
    def list_attachments(
        self,
        asset_ids: Sequence[int],
        *,
        connection: Optional[sqlite3.Connection] = None,
    ) -> List[AttachmentRecord]:
        ids = [int(asset_id) for asset_id in asset_ids]
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        with self._session(connection) as conn:
            rows = self._execute(
                conn,
                f"""
                SELECT {_ATTACHMENT_COLUMNS} FROM attachments
                WHERE asset_id IN ({placeholders})
                ORDER BY id
                """,
                ids,
                action="attachments.list",
                table="attachments",
            ).fetchall()
        return [_attachment_from_row(row) for row in rows]

    def create_attachment(
        self, attachment: AttachmentRecord, *, connection: Optional[sqlite3.Connection] = None
    ) -> int:
        with self._session(connection) as conn:
            cursor = self._execute(
                conn,
                "INSERT INTO attachments(course_id, asset_id, title, path) VALUES (?, ?, ?, ?)",
                (attachment.course_id, attachment.asset_id, attachment.title, attachment.path),
                action="attachments.insert",
                table="attachments",
            )
        attachment.id = int(cursor.lastrowid)
        return attachment.id

    def delete_attachment(
        self, attachment_id: int, *, connection: Optional[sqlite3.Connection] = None
    ) -> None:
        with self._session(connection) as conn:
            self._execute(
                conn,
                "DELETE FROM attachments WHERE id = ?",
                (attachment_id,),
                action="attachments.delete",
                table="attachments",
            )

    # ------------------------------------------------------------------
    # Scans
    # ------------------------------------------------------------------
    def create_scan(
        self, course_id: int, *, connection: Optional[sqlite3.Connection] = None
    ) -> ScanRecord:
        """Insert a waiting scan for *course_id*.

        Raises :class:`sqlite3.IntegrityError` when the course already has a
        scan row.
        """

        with self._session(connection) as conn:
            cursor = self._execute(
                conn,
                "INSERT INTO scans(course_id, status) VALUES (?, ?)",
                (course_id, ScanStatus.WAITING.value),
                action="scans.insert",
                table="scans",
            )
            row = self._execute(
                conn,
                f"{_SCAN_SELECT} WHERE scans.id = ?",
                (cursor.lastrowid,),
                action="scans.get",
                table="scans",
            ).fetchone()
        return _scan_from_row(row)

    def get_scan(
        self, scan_id: int, *, connection: Optional[sqlite3.Connection] = None
    ) -> Optional[ScanRecord]:
        with self._session(connection) as conn:
            row = self._execute(
                conn,
                f"{_SCAN_SELECT} WHERE scans.id = ?",
                (scan_id,),
                action="scans.get",
                table="scans",
            ).fetchone()
        return _scan_from_row(row) if row else None

    def get_scan_by_course(
        self, course_id: int, *, connection: Optional[sqlite3.Connection] = None
    ) -> Optional[ScanRecord]:
        with self._session(connection) as conn:
            row = self._execute(
                conn,
                f"{_SCAN_SELECT} WHERE scans.course_id = ?",
                (course_id,),
                action="scans.lookup_by_course",
                table="scans",
            ).fetchone()
        return _scan_from_row(row) if row else None

    def update_scan(
        self, scan: ScanRecord, *, connection: Optional[sqlite3.Connection] = None
    ) -> None:
        with self._session(connection) as conn:
            self._execute(
                conn,
                f"UPDATE scans SET status = ?, updated_at = {_NOW} WHERE id = ?",
                (scan.status.value, scan.id),
                action="scans.update",
                table="scans",
            )

    def delete_scan(
        self, scan_id: int, *, connection: Optional[sqlite3.Connection] = None
    ) -> None:
        with self._session(connection) as conn:
            self._execute(
                conn,
                "DELETE FROM scans WHERE id = ?",
                (scan_id,),
                action="scans.delete",
                table="scans",
            )

    def next_waiting_scan(
        self, *, connection: Optional[sqlite3.Connection] = None
    ) -> Optional[ScanRecord]:
        """Return the oldest waiting scan, or ``None`` when the queue is empty."""

        with self._session(connection) as conn:
            row = self._execute(
                conn,
                f"""
                {_SCAN_SELECT}
                WHERE scans.status = ?
                ORDER BY scans.created_at ASC, scans.id ASC
                LIMIT 1
                """,
                (ScanStatus.WAITING.value,),
                action="scans.next_waiting",
                table="scans",
            ).fetchone()
        return _scan_from_row(row) if row else None

    def reset_processing_scans(self, *, connection: Optional[sqlite3.Connection] = None) -> int:
        """Move scans left in ``processing`` back to ``waiting``; return how many moved."""

        with self._session(connection) as conn:
            cursor = self._execute(
                conn,
                f"UPDATE scans SET status = ?, updated_at = {_NOW} WHERE status = ?",
                (ScanStatus.WAITING.value, ScanStatus.PROCESSING.value),
                action="scans.reset_processing",
                table="scans",
            )
        return int(cursor.rowcount or 0)

    def count_scans(self, *, connection: Optional[sqlite3.Connection] = None) -> int:
        with self._session(connection) as conn:
            row = self._execute(
                conn,
                "SELECT COUNT(*) FROM scans",
                action="scans.count",
                table="scans",
            ).fetchone()
        return int(row[0]) if row else 0


__all__ = [
    "AssetRecord",
    "AttachmentRecord",
    "CatalogRepository",
    "CourseRecord",
    "ScanRecord",
    "ScanStatus",
]
