"""Durable scan queue, its background worker and the scan processor."""

from __future__ import annotations

import functools
import logging
import sqlite3
import threading
import time
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Optional

from ..config import ScanSettings
from .crawler import read_dir_flat
from .errors import NotFoundError, ScanError
from .events import emit_scan_event
from .hashing import partial_hash
from .reconcile import ReconcileResult, reconcile
from .resolver import resolve
from .storage import CatalogRepository, ScanRecord, ScanStatus

LOGGER = logging.getLogger(__name__)

Processor = Callable[["CourseScanner", Optional[ScanRecord]], object]


class CourseScanner:
    """Queue scans for courses and process them one at a time.

    Scan rows live in the catalog so queued work survives a restart. A
    single worker thread drains the queue oldest first and sleeps on an
    in-memory signal while it is empty.
    """

    def __init__(
        self,
        repository: CatalogRepository,
        *,
        settings: Optional[ScanSettings] = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or ScanSettings()
        self._signal = threading.Event()
        self._stopping = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def repository(self) -> CatalogRepository:
        return self._repository

    @property
    def settings(self) -> ScanSettings:
        return self._settings

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add(self, course_id: int) -> ScanRecord:
        """Queue a scan for *course_id*, or return the one already queued."""

        course = self._repository.get_course(course_id)
        if course is None:
            raise NotFoundError("course", course_id)

        existing = self._repository.get_scan_by_course(course_id)
        if existing is not None and existing.is_live():
            LOGGER.debug(
                "Scan already in progress (course_id=%s, scan_id=%s, status=%s)",
                course_id,
                existing.id,
                existing.status.value,
            )
            return existing

        try:
            scan = self._repository.create_scan(course_id)
        except sqlite3.IntegrityError:
            existing = self._repository.get_scan_by_course(course_id)
            if existing is None:
                raise
            LOGGER.debug(
                "Scan already in progress (course_id=%s, scan_id=%s)", course_id, existing.id
            )
            return existing

        LOGGER.info("Added scan job (course_id=%s, scan_id=%s)", course_id, scan.id)
        emit_scan_event("queued", course_id=course_id, scan_id=scan.id)
        self._signal.set()
        return scan

    def drain(
        self,
        processor: Processor,
        on_drained: Optional[Callable[[], None]] = None,
    ) -> int:
        """Process waiting scans until none are left; return how many ran."""

        processed = 0
        while not self._stopping.is_set():
            try:
                scan = self._repository.next_waiting_scan()
            except sqlite3.Error:
                LOGGER.exception("Failed to look up the next scan job")
                self._signal.clear()
                if on_drained is not None:
                    on_drained()
                return processed

            if scan is None:
                LOGGER.debug("Finished processing all scan jobs")
                if on_drained is not None:
                    on_drained()
                self._signal.clear()
                # A scan added between the lookup and the clear lost its signal.
                try:
                    if self._repository.next_waiting_scan() is not None:
                        self._signal.set()
                except sqlite3.Error:
                    LOGGER.exception("Failed to look up the next scan job")
                return processed

            LOGGER.debug("Processing scan job (scan_id=%s, course_id=%s)", scan.id, scan.course_id)
            start = time.perf_counter()
            try:
                processor(self, scan)
            except Exception:
                LOGGER.exception(
                    "Failed to process scan job (scan_id=%s, course_id=%s)",
                    scan.id,
                    scan.course_id,
                )
                emit_scan_event(
                    "failed",
                    course_id=scan.course_id,
                    scan_id=scan.id,
                    duration_ms=(time.perf_counter() - start) * 1000.0,
                )

            try:
                self._repository.delete_scan(scan.id)
            except sqlite3.Error:
                LOGGER.exception("Failed to delete scan job (scan_id=%s)", scan.id)
                self._signal.clear()
                if on_drained is not None:
                    on_drained()
                return processed
            processed += 1

        return processed

    def recover(self) -> int:
        """Move scans left in ``processing`` by an interrupted run back to ``waiting``."""

        recovered = self._repository.reset_processing_scans()
        if recovered:
            LOGGER.info("Re-queued %s interrupted scan job(s)", recovered)
        return recovered

    def worker(
        self,
        processor: Processor,
        on_drained: Optional[Callable[[], None]] = None,
    ) -> None:
        """Block on the wake signal and drain the queue each time it fires."""

        LOGGER.debug("Scan worker started")
        while True:
            self._signal.wait()
            if self._stopping.is_set():
                break
            self.drain(processor, on_drained)
        LOGGER.debug("Scan worker stopped")

    def start(
        self,
        processor: Optional[Processor] = None,
        on_drained: Optional[Callable[[], None]] = None,
    ) -> threading.Thread:
        """Recover interrupted scans and launch the worker thread."""

        with self._lock:
            if self._thread is not None:
                raise RuntimeError("Scan worker already started")

            self.recover()
            if self._repository.next_waiting_scan() is not None:
                self._signal.set()

            self._stopping.clear()
            thread = threading.Thread(
                target=self.worker,
                args=(processor or process_scan,),
                kwargs={"on_drained": on_drained},
                name="scan-worker",
                daemon=True,
            )
            self._thread = thread
            thread.start()
            return thread

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the worker to exit after the current scan and wait for it."""

        self._stopping.set()
        self._signal.set()
        with self._lock:
            thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                LOGGER.warning("Scan worker did not stop within %s seconds", timeout)


def process_scan(scanner: CourseScanner, scan: Optional[ScanRecord]) -> Optional[ReconcileResult]:
    """Scan one course directory and reconcile it with the catalog.

    Returns the reconciliation summary, or ``None`` when the course is gone
    or its directory is unavailable.
    """

    if scan is None:
        raise ScanError("Scan cannot be None")

    repository = scanner.repository
    settings = scanner.settings
    start = time.perf_counter()

    scan.status = ScanStatus.PROCESSING
    repository.update_scan(scan)
    emit_scan_event("processing", course_id=scan.course_id, scan_id=scan.id)

    course = repository.get_course(scan.course_id)
    if course is None:
        LOGGER.debug("Skipping scan for missing course (course_id=%s)", scan.course_id)
        return None

    root = Path(course.path)
    try:
        root.stat()
    except FileNotFoundError:
        if course.available:
            course.available = False
            repository.update_course(course)
        LOGGER.debug(
            "Skipping as the course is unavailable (course_id=%s, path=%s)", course.id, course.path
        )
        return None

    if not course.available:
        LOGGER.debug(
            "Setting unavailable course as available (course_id=%s, path=%s)",
            course.id,
            course.path,
        )
        course.available = True
        repository.update_course(course)

    files = read_dir_flat(root, settings.max_depth, sort=settings.sort_files)
    plan = resolve(
        course.id,
        root,
        files,
        hash_fn=functools.partial(partial_hash, window=settings.hash_window),
    )
    result = reconcile(repository, course, plan)

    LOGGER.info(
        "Scanned course '%s' (course_id=%s): %s asset(s), %s attachment(s)",
        course.title,
        course.id,
        len(plan.assets),
        len(plan.attachments),
    )
    emit_scan_event(
        "completed",
        course_id=course.id,
        scan_id=scan.id,
        payload=asdict(result),
        duration_ms=(time.perf_counter() - start) * 1000.0,
    )
    return result


__all__ = ["CourseScanner", "Processor", "process_scan"]
