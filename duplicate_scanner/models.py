"""Data models for scan jobs, file records, scan results and deletion outcomes."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from .exceptions import InvalidTransitionError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScanStatus(str, Enum):
    STARTED = "STARTED"
    SCANNING = "SCANNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.FAILED)


_ALLOWED_TRANSITIONS = {
    ScanStatus.STARTED: {ScanStatus.SCANNING, ScanStatus.FAILED},
    ScanStatus.SCANNING: {ScanStatus.COMPLETED, ScanStatus.FAILED},
    ScanStatus.COMPLETED: set(),
    ScanStatus.FAILED: set(),
}


@dataclass(eq=False)
class FileRecord:
    """
    A regular file discovered during a scan.

    Path, name, size and timestamp are facts observed at walk time. The
    fingerprint is filled in by the fingerprint engine, the category by the
    categorizer, and the duplicate flags by grouping and later by deletion
    handling. ``sequence`` is the walk-order number; the lowest sequence in a
    duplicate group is the canonical (kept) file.

    Two records compare equal when their content matches (fingerprint and
    size), never by path or name.
    """

    path: str
    name: str
    size: int
    created_at: datetime
    sequence: int = 0
    fingerprint: Optional[str] = None
    category: Optional[str] = None
    is_duplicate: bool = False
    marked_for_deletion: bool = False

    @property
    def extension(self) -> str:
        _, ext = os.path.splitext(self.name)
        return ext[1:].lower()

    @property
    def parent(self) -> str:
        return os.path.dirname(self.path)

    def content_equals(self, other: "FileRecord") -> bool:
        """True if ``other`` is a different record with identical content."""
        if other is None or other is self:
            return False
        return self == other

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileRecord):
            return NotImplemented
        return self.fingerprint == other.fingerprint and self.size == other.size

    def __hash__(self) -> int:
        return hash((self.fingerprint, self.size))

    def __repr__(self) -> str:
        prefix = self.fingerprint[:8] + "..." if self.fingerprint else None
        return f"<FileRecord path={self.path}, size={self.size}, fingerprint={prefix}>"


@dataclass(frozen=True)
class ErrorEntry:
    """A non-fatal (or the job-fatal) error recorded against a scan job."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class ScanJob:
    """Lifecycle record of one scan. Mutated only by the thread running it."""

    scan_id: str
    directory: str
    status: ScanStatus = ScanStatus.STARTED
    total_files: int = 0
    processed_files: int = 0
    duplicate_count: int = 0
    errors: List[ErrorEntry] = field(default_factory=list)
    start_time: datetime = field(default_factory=utc_now)
    last_update: datetime = field(default_factory=utc_now)
    current_directory: Optional[str] = None

    def transition(self, status: ScanStatus) -> None:
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Scan {self.scan_id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
        self.touch()

    def touch(self) -> None:
        self.last_update = utc_now()

    def record_error(self, path: str, message: str) -> None:
        self.errors.append(ErrorEntry(path=path, message=message))

    @property
    def progress_percentage(self) -> float:
        if self.total_files == 0:
            return 0.0
        return self.processed_files / self.total_files * 100.0

    def snapshot(self) -> "ProgressSnapshot":
        return ProgressSnapshot(
            scan_id=self.scan_id,
            status=self.status,
            total_files=self.total_files,
            processed_files=self.processed_files,
            duplicate_count=self.duplicate_count,
            progress_percentage=self.progress_percentage,
            start_time=self.start_time,
            last_update=self.last_update,
            current_directory=self.current_directory,
            errors=list(self.errors),
        )


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time copy of a job's progress handed to pollers."""

    scan_id: str
    status: ScanStatus
    total_files: int
    processed_files: int
    duplicate_count: int
    progress_percentage: float
    start_time: datetime
    last_update: datetime
    current_directory: Optional[str]
    errors: List[ErrorEntry]


@dataclass
class ScanResult:
    """Finalized snapshot of a completed scan, updated in place by deletions."""

    scan_id: str
    directory: str
    scan_time: datetime = field(default_factory=utc_now)
    status: ScanStatus = ScanStatus.COMPLETED
    files: List[FileRecord] = field(default_factory=list)
    duplicate_groups: Dict[str, List[FileRecord]] = field(default_factory=dict)
    directory_duplicates: Dict[str, List[FileRecord]] = field(default_factory=dict)
    categorized_files: Dict[str, List[FileRecord]] = field(default_factory=dict)
    total_files: int = 0
    duplicate_count: int = 0
    wasted_size_bytes: int = 0


class DeletionStatus(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    WRONG_TYPE = "wrong_type"
    PERMISSION_DENIED = "permission_denied"
    ERROR = "error"


@dataclass(frozen=True)
class PathOutcome:
    path: str
    status: DeletionStatus
    message: Optional[str] = None


@dataclass
class DeletionOutcome:
    """Per-path results of a deletion batch against one scan."""

    scan_id: str
    outcomes: List[PathOutcome] = field(default_factory=list)
    removed_paths: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if at least one requested target was actually removed."""
        return self.deleted_count > 0

    @property
    def deleted_count(self) -> int:
        return sum(1 for item in self.outcomes if item.status is DeletionStatus.DELETED)

    @property
    def failed_count(self) -> int:
        return len(self.outcomes) - self.deleted_count


__all__ = [
    "ScanStatus",
    "FileRecord",
    "ErrorEntry",
    "ScanJob",
    "ProgressSnapshot",
    "ScanResult",
    "DeletionStatus",
    "PathOutcome",
    "DeletionOutcome",
    "utc_now",
]
