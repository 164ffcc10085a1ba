"""
Deletion of scanned files and directories, and re-derivation of scan results.

Filesystem deletion is best-effort per path and reports one outcome per
requested target. ``apply_deletion`` then brings a ``ScanResult`` in line with
what was actually removed without walking or fingerprinting anything again.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from .directories import detect_directory_duplicates
from .grouping import count_duplicates, wasted_bytes
from .logs import log_event
from .models import DeletionStatus, FileRecord, PathOutcome, ScanResult


def remove_deleted_files(files: List[FileRecord], deleted: Set[str]) -> List[FileRecord]:
    return [record for record in files if record.path not in deleted]


def prune_groups(
    groups: Dict[str, List[FileRecord]],
    deleted: Set[str],
    minimum: int,
) -> Dict[str, List[FileRecord]]:
    """Filter deleted members out of each group; drop groups left under ``minimum``."""
    pruned: Dict[str, List[FileRecord]] = {}
    for key, members in groups.items():
        survivors = [record for record in members if record.path not in deleted]
        if len(survivors) >= minimum:
            pruned[key] = survivors
    return pruned


def refresh_duplicate_flags(
    files: List[FileRecord],
    groups: Dict[str, List[FileRecord]],
) -> None:
    """
    Recompute ``is_duplicate`` from the surviving fingerprint multiplicity.

    A group whose canonical file was deleted gets its next surviving member as
    canonical, so exactly one member per group stays unmarked.
    """
    multiplicity = Counter(record.fingerprint for record in files if record.fingerprint)
    for record in files:
        record.is_duplicate = bool(record.fingerprint) and multiplicity[record.fingerprint] > 1
        if not record.is_duplicate:
            record.marked_for_deletion = False
    for members in groups.values():
        for position, record in enumerate(members):
            record.marked_for_deletion = position > 0


def apply_deletion(result: ScanResult, deleted_paths: Iterable[str]) -> ScanResult:
    """Update ``result`` in place for ``deleted_paths`` and return it."""
    deleted = {str(path) for path in deleted_paths}
    if not deleted:
        return result

    files = remove_deleted_files(result.files, deleted)
    groups = prune_groups(result.duplicate_groups, deleted, minimum=2)
    categories = prune_groups(result.categorized_files, deleted, minimum=1)
    refresh_duplicate_flags(files, groups)

    result.files = files
    result.duplicate_groups = groups
    result.categorized_files = categories
    result.directory_duplicates = detect_directory_duplicates(files)
    result.total_files = len(files)
    result.duplicate_count = count_duplicates(groups)
    result.wasted_size_bytes = wasted_bytes(groups)
    return result


class FileRemover:
    """Remove files and directory trees, one outcome per requested path."""

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None) -> None:
        self.logger = logger
        self.context = context or {}

    def delete_file(self, path_str: str) -> PathOutcome:
        path = Path(path_str)
        if not os.path.lexists(path):
            return self._failed(path_str, DeletionStatus.NOT_FOUND, "File not found")
        if not path.is_file() or path.is_symlink():
            return self._failed(path_str, DeletionStatus.WRONG_TYPE, "Path is not a regular file")
        try:
            path.unlink()
        except PermissionError as exc:
            return self._failed(path_str, DeletionStatus.PERMISSION_DENIED, str(exc))
        except OSError as exc:
            return self._failed(path_str, DeletionStatus.ERROR, str(exc), exc)

        log_event(
            self.logger,
            "file_deleted",
            logging.INFO,
            "File deleted",
            self.context,
            file=path_str,
        )
        return PathOutcome(path=path_str, status=DeletionStatus.DELETED)

    def delete_directory(self, path_str: str) -> PathOutcome:
        path = Path(path_str)
        if not os.path.lexists(path):
            return self._failed(path_str, DeletionStatus.NOT_FOUND, "Directory not found")
        if not path.is_dir() or path.is_symlink():
            return self._failed(path_str, DeletionStatus.WRONG_TYPE, "Path is not a directory")
        try:
            shutil.rmtree(path)
        except PermissionError as exc:
            return self._failed(path_str, DeletionStatus.PERMISSION_DENIED, str(exc))
        except OSError as exc:
            return self._failed(path_str, DeletionStatus.ERROR, str(exc), exc)

        log_event(
            self.logger,
            "directory_deleted",
            logging.INFO,
            "Directory deleted",
            self.context,
            directory=path_str,
        )
        return PathOutcome(path=path_str, status=DeletionStatus.DELETED)

    def _failed(
        self,
        path_str: str,
        status: DeletionStatus,
        message: str,
        exc: Optional[BaseException] = None,
    ) -> PathOutcome:
        fields: Dict[str, Any] = {"target": path_str, "reason": status.value}
        if exc is not None:
            fields["exception_type"] = exc.__class__.__name__
            fields["exception_msg"] = str(exc)
        log_event(
            self.logger,
            "delete_failed",
            logging.WARNING if exc is None else logging.ERROR,
            f"Delete failed: {message}",
            self.context,
            **fields,
        )
        return PathOutcome(path=path_str, status=status, message=message)


def files_under(files: Iterable[FileRecord], directory: str) -> List[str]:
    """Paths of records located anywhere below ``directory``."""
    prefix = os.path.join(os.path.normpath(directory), "")
    return [record.path for record in files if os.path.normpath(record.path).startswith(prefix)]


__all__ = [
    "apply_deletion",
    "remove_deleted_files",
    "prune_groups",
    "refresh_duplicate_flags",
    "FileRemover",
    "files_under",
]
