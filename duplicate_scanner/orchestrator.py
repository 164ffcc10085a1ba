"""
Scan orchestration.

Each scan request becomes a job in the :class:`JobStore` and runs on a
bounded worker pool. Within one scan files are processed sequentially in walk
order: every file is fingerprinted, counted into the job's progress and fed to
a live grouping pass. When the walk is done the final grouping, directory
signatures and categories are computed and stored as the job's
:class:`ScanResult`.

Job states move ``STARTED -> SCANNING -> COMPLETED | FAILED``. ``STARTED`` is
recorded before the worker is scheduled, so a poller always finds the job.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .categorizer import Categorizer
from .config import ScannerSettings
from .directories import detect_directory_duplicates
from .exceptions import (
    FingerprintError,
    InvalidScanTargetError,
    JobNotFoundError,
    ScanCancelledError,
)
from .fingerprint import FingerprintEngine
from .grouping import count_duplicates, group_duplicates, wasted_bytes
from .logs import build_context, configure_logger, duration_ms, log_event
from .models import (
    DeletionOutcome,
    DeletionStatus,
    FileRecord,
    ProgressSnapshot,
    ScanJob,
    ScanResult,
    ScanStatus,
)
from .mutation import FileRemover, apply_deletion, files_under
from .store import JobEntry, JobStore

CANCELLED_MESSAGE = "Scan cancelled"


class ScanOrchestrator:
    """Start scans, answer progress and result queries, apply deletions."""

    component = "scanner"

    def __init__(
        self,
        store: Optional[JobStore] = None,
        fingerprinter: Optional[FingerprintEngine] = None,
        categorizer: Optional[Categorizer] = None,
        settings: Optional[ScannerSettings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings or ScannerSettings()
        self.logger = logger or configure_logger(self.settings)
        self.store = store if store is not None else JobStore()
        self.fingerprinter = fingerprinter or FingerprintEngine(self.settings, logger=self.logger)
        self.categorizer = categorizer or Categorizer()
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_concurrent_scans,
            thread_name_prefix="duply-scan",
        )

    def __enter__(self) -> "ScanOrchestrator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    # Scan lifecycle -------------------------------------------------

    def start_scan(self, directory: str) -> str:
        """Register a new job in ``STARTED`` state and schedule it; return its id."""
        if directory is None or not str(directory).strip():
            raise InvalidScanTargetError("Directory path is required")

        scan_id = str(uuid.uuid4())
        entry = self.store.add(ScanJob(scan_id=scan_id, directory=str(directory)))
        log_event(
            self.logger,
            "scan_requested",
            logging.INFO,
            "Scan requested",
            self._context(entry.job),
        )
        entry.future = self._executor.submit(self._run_job, entry)
        return scan_id

    def cancel(self, scan_id: str) -> bool:
        """Request cancellation; False if the job is unknown or already finished."""
        entry = self.store.get(scan_id)
        if entry is None:
            return False
        with entry.lock:
            if entry.job.status.is_terminal:
                return False
            entry.cancel_event.set()
        log_event(
            self.logger,
            "scan_cancel_requested",
            logging.INFO,
            "Scan cancellation requested",
            self._context(entry.job),
        )
        return True

    def wait(self, scan_id: str, timeout: Optional[float] = None) -> Optional[ProgressSnapshot]:
        """Block until the job is terminal or ``timeout`` elapses; return its progress."""
        entry = self.store.get(scan_id)
        if entry is None:
            return None
        entry.finished.wait(timeout)
        return self.get_progress(scan_id)

    # Queries --------------------------------------------------------

    def get_progress(self, scan_id: str) -> Optional[ProgressSnapshot]:
        entry = self.store.get(scan_id)
        if entry is None:
            return None
        with entry.lock:
            return entry.job.snapshot()

    def get_live_duplicates(self, scan_id: str) -> Optional[List[FileRecord]]:
        """Files found to duplicate an earlier file so far, in discovery order."""
        entry = self.store.get(scan_id)
        if entry is None:
            return None
        with entry.lock:
            return list(entry.live.duplicates)

    def get_result(self, scan_id: str) -> Optional[ScanResult]:
        entry = self.store.get(scan_id)
        if entry is None:
            return None
        return entry.result

    def list_results(self) -> List[ScanResult]:
        return self.store.results()

    # Deletion -------------------------------------------------------

    def delete_files(self, scan_id: str, paths: Iterable[str]) -> DeletionOutcome:
        """Delete files of a completed scan and update its result."""
        entry = self._completed_entry(scan_id)
        context = self._context(entry.job, {"operation": "delete_files"})
        remover = FileRemover(self.logger, context)
        outcome = DeletionOutcome(scan_id=scan_id)
        start = time.perf_counter()

        with entry.lock:
            for path_str in _unique_paths(paths):
                path_outcome = remover.delete_file(path_str)
                outcome.outcomes.append(path_outcome)
                if path_outcome.status is DeletionStatus.DELETED:
                    outcome.removed_paths.append(path_str)
            apply_deletion(entry.result, outcome.removed_paths)
            entry.job.duplicate_count = entry.result.duplicate_count

        self._log_deletion(outcome, context, start)
        return outcome

    def delete_directories(self, scan_id: str, paths: Iterable[str]) -> DeletionOutcome:
        """Recursively delete directories of a completed scan and update its result."""
        entry = self._completed_entry(scan_id)
        context = self._context(entry.job, {"operation": "delete_directories"})
        remover = FileRemover(self.logger, context)
        outcome = DeletionOutcome(scan_id=scan_id)
        start = time.perf_counter()

        with entry.lock:
            for path_str in _unique_paths(paths):
                contained = files_under(entry.result.files, path_str)
                path_outcome = remover.delete_directory(path_str)
                outcome.outcomes.append(path_outcome)
                if path_outcome.status is DeletionStatus.DELETED:
                    outcome.removed_paths.extend(contained)
                else:
                    # rmtree may have removed part of the tree before failing.
                    outcome.removed_paths.extend(p for p in contained if not os.path.lexists(p))
            apply_deletion(entry.result, outcome.removed_paths)
            entry.job.duplicate_count = entry.result.duplicate_count

        self._log_deletion(outcome, context, start)
        return outcome

    # Worker ---------------------------------------------------------

    def _run_job(self, entry: JobEntry) -> None:
        context = self._context(entry.job)
        start = time.perf_counter()
        try:
            self._perform_scan(entry, context, start)
        except ScanCancelledError:
            self._fail(entry, CANCELLED_MESSAGE, context, start)
        except Exception as exc:
            self._fail(entry, str(exc) or exc.__class__.__name__, context, start, exc)
        finally:
            entry.finished.set()

    def _perform_scan(self, entry: JobEntry, context: Dict[str, Any], start: float) -> None:
        job = entry.job
        if entry.cancel_event.is_set():
            raise ScanCancelledError(CANCELLED_MESSAGE)

        root = Path(job.directory).expanduser()
        if not root.exists() or not root.is_dir():
            raise InvalidScanTargetError(
                f"Directory does not exist or is not a directory: {job.directory}"
            )
        root = root.resolve()

        with entry.lock:
            job.current_directory = str(root)
            job.transition(ScanStatus.SCANNING)
        log_event(self.logger, "scan_started", logging.INFO, "Scan started", context)

        paths = self._collect_files(entry, root, context)
        with entry.lock:
            job.total_files = len(paths)
            job.touch()
        log_event(
            self.logger,
            "directory_walk_finished",
            logging.INFO,
            "Directory walk finished",
            context,
            total_files=len(paths),
            duration_ms=duration_ms(start),
        )

        files = self._fingerprint_all(entry, paths, context, start)

        groups = group_duplicates(files)
        result = ScanResult(
            scan_id=job.scan_id,
            directory=str(root),
            files=files,
            duplicate_groups=groups,
            directory_duplicates=detect_directory_duplicates(files),
            categorized_files=self.categorizer.categorize_files(files),
            total_files=len(files),
            duplicate_count=count_duplicates(groups),
            wasted_size_bytes=wasted_bytes(groups),
        )

        with entry.lock:
            entry.result = result
            job.duplicate_count = result.duplicate_count
            job.transition(ScanStatus.COMPLETED)

        log_event(
            self.logger,
            "scan_finished",
            logging.INFO,
            "Scan finished",
            context,
            files_processed=len(files),
            groups_found=len(groups),
            directory_groups_found=len(result.directory_duplicates),
            duplicate_count=result.duplicate_count,
            wasted_size_bytes=result.wasted_size_bytes,
            errors=len(job.errors),
            duration_ms=duration_ms(start),
        )

    def _collect_files(self, entry: JobEntry, root: Path, context: Dict[str, Any]) -> List[Path]:
        """Regular files under ``root`` in a stable, name-sorted walk order."""
        found: List[Path] = []

        def _on_walk_error(exc: OSError) -> None:
            target = exc.filename or str(root)
            with entry.lock:
                entry.job.record_error(str(target), f"Cannot read directory: {exc.strerror or exc}")
            log_event(
                self.logger,
                "directory_walk_error",
                logging.WARNING,
                "Cannot read directory",
                context,
                directory=str(target),
                exception_type=exc.__class__.__name__,
            )

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_walk_error):
            dirnames.sort()
            for name in sorted(filenames):
                candidate = Path(dirpath) / name
                if candidate.is_symlink() or not candidate.is_file():
                    log_event(
                        self.logger,
                        "file_skipped_not_file",
                        logging.WARNING,
                        "Skipped non regular file",
                        context,
                        file=str(candidate),
                    )
                    continue
                found.append(candidate)
        return found

    def _fingerprint_all(
        self,
        entry: JobEntry,
        paths: List[Path],
        context: Dict[str, Any],
        start: float,
    ) -> List[FileRecord]:
        job = entry.job
        files: List[FileRecord] = []
        timeout = self.settings.file_timeout_seconds
        helper = ThreadPoolExecutor(max_workers=1) if timeout else None

        try:
            for sequence, path in enumerate(paths):
                if entry.cancel_event.is_set():
                    raise ScanCancelledError(CANCELLED_MESSAGE)

                record: Optional[FileRecord] = None
                error: Optional[str] = None
                try:
                    if helper is not None:
                        future = helper.submit(self._build_record, path, sequence)
                        try:
                            record = future.result(timeout=timeout)
                        except FutureTimeoutError:
                            # The stuck worker cannot be interrupted; continue on a fresh one.
                            helper.shutdown(wait=False)
                            helper = ThreadPoolExecutor(max_workers=1)
                            error = f"Timed out after {timeout}s while fingerprinting"
                    else:
                        record = self._build_record(path, sequence)
                except FingerprintError as exc:
                    error = f"Failed to process: {exc}"
                except Exception as exc:
                    error = f"Unexpected error: {exc}"

                with entry.lock:
                    if record is not None:
                        files.append(record)
                        if entry.live.add(record):
                            job.duplicate_count = entry.live.duplicate_count
                    if error is not None:
                        job.record_error(str(path), error)
                    job.processed_files = sequence + 1
                    job.touch()

                if error is not None:
                    log_event(
                        self.logger,
                        "file_error_fingerprint",
                        logging.WARNING,
                        "Failed to fingerprint file",
                        context,
                        file=str(path),
                        exception_msg=error,
                    )
                elif self.logger.isEnabledFor(logging.DEBUG):
                    log_event(
                        self.logger,
                        "fingerprint_computed",
                        logging.DEBUG,
                        "Fingerprint computed",
                        context,
                        file=str(path),
                        size=record.size,
                        hash_prefix=record.fingerprint[:12],
                    )

                if (sequence + 1) % self.settings.progress_step == 0:
                    log_event(
                        self.logger,
                        "directory_walk_progress",
                        logging.INFO,
                        "Directory walk progress",
                        context,
                        files_processed=sequence + 1,
                        total_files=len(paths),
                        duration_ms=duration_ms(start),
                    )
        finally:
            if helper is not None:
                helper.shutdown(wait=False)

        return files

    def _build_record(self, path: Path, sequence: int) -> FileRecord:
        try:
            stat = path.stat()
        except OSError as exc:
            raise FingerprintError(f"Cannot stat {path}: {exc}") from exc
        fingerprint = self.fingerprinter.fingerprint(path)
        if not fingerprint:
            raise FingerprintError(f"Invalid fingerprint for file: {path}")
        return FileRecord(
            path=str(path),
            name=path.name,
            size=stat.st_size,
            created_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            sequence=sequence,
            fingerprint=fingerprint,
        )

    def _fail(
        self,
        entry: JobEntry,
        message: str,
        context: Dict[str, Any],
        start: float,
        exc: Optional[BaseException] = None,
    ) -> None:
        with entry.lock:
            job = entry.job
            if job.status.is_terminal:
                return
            job.record_error(job.directory, message)
            job.transition(ScanStatus.FAILED)

        fields: Dict[str, Any] = {"duration_ms": duration_ms(start)}
        if exc is not None:
            fields["exception_type"] = exc.__class__.__name__
            fields["exception_msg"] = str(exc)
        log_event(
            self.logger,
            "scan_failed",
            logging.ERROR if exc is not None else logging.WARNING,
            f"Scan failed: {message}",
            context,
            **fields,
        )

    # Helpers --------------------------------------------------------

    def _completed_entry(self, scan_id: str) -> JobEntry:
        entry = self.store.get(scan_id)
        if entry is None or entry.result is None:
            raise JobNotFoundError(f"No completed scan found for id: {scan_id}")
        return entry

    def _context(self, job: ScanJob, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "scan_id": job.scan_id,
            "root_dir": job.directory,
            "hash_method": self.fingerprinter.hash_method,
        }
        if extra:
            payload.update(extra)
        return build_context(self.settings, self.component, payload)

    def _log_deletion(self, outcome: DeletionOutcome, context: Dict[str, Any], start: float) -> None:
        log_event(
            self.logger,
            "deletion_completed",
            logging.INFO if outcome.success else logging.WARNING,
            "Deletion completed",
            context,
            requested=len(outcome.outcomes),
            deleted=outcome.deleted_count,
            failed=outcome.failed_count,
            files_removed=len(outcome.removed_paths),
            duration_ms=duration_ms(start),
        )


def _unique_paths(paths: Iterable[str]) -> List[str]:
    """
    Canonical, de-duplicated paths in request order.

    The parent directory is resolved the same way the scan root is, so paths
    given through a symlinked directory match the recorded ones. The final
    component is never resolved: a symlink target stays a symlink.
    """
    seen: Dict[str, None] = {}
    for raw in paths:
        if raw is None or not str(raw).strip():
            continue
        absolute = os.path.abspath(os.path.expanduser(str(raw)))
        parent, name = os.path.split(absolute)
        canonical = os.path.join(os.path.realpath(parent), name) if name else absolute
        seen.setdefault(canonical, None)
    return list(seen)


__all__ = ["ScanOrchestrator", "CANCELLED_MESSAGE"]
