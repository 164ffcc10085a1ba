"""Fingerprint-based duplicate grouping."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Sequence

from .models import FileRecord


def group_duplicates(files: Sequence[FileRecord]) -> Dict[str, List[FileRecord]]:
    """
    Group records by fingerprint and keep only groups with two or more members.

    Members are ordered by walk sequence, so the first member of each group is
    the canonical file. Flags are rewritten on every input record: group
    members are marked duplicate, every member but the canonical one is marked
    for deletion, and all other records are cleared. Records without a
    fingerprint are left out of grouping.
    """
    buckets: Dict[str, List[FileRecord]] = defaultdict(list)
    for record in sorted(files, key=lambda item: item.sequence):
        record.is_duplicate = False
        record.marked_for_deletion = False
        if not record.fingerprint:
            continue
        buckets[record.fingerprint].append(record)

    groups = {key: members for key, members in buckets.items() if len(members) > 1}
    for members in groups.values():
        for position, record in enumerate(members):
            record.is_duplicate = True
            record.marked_for_deletion = position > 0
    return groups


def count_duplicates(groups: Dict[str, List[FileRecord]]) -> int:
    """Number of redundant copies: the sum of (group size - 1)."""
    return sum(len(members) - 1 for members in groups.values() if len(members) > 1)


def wasted_bytes(groups: Dict[str, List[FileRecord]]) -> int:
    """Bytes held by redundant copies, measured on each group's canonical file."""
    return sum(members[0].size * (len(members) - 1) for members in groups.values() if members)


class LiveGrouping:
    """
    Incremental grouping fed one record at a time while a scan is running.

    Only ``is_duplicate`` is set here and it is advisory; canonical selection
    and deletion marks are made by :func:`group_duplicates` once the scan has
    finished.
    """

    def __init__(self) -> None:
        self._buckets: Dict[str, List[FileRecord]] = {}
        self.duplicates: List[FileRecord] = []

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates)

    def add(self, record: FileRecord) -> bool:
        """Add ``record``; return True if it duplicates an earlier record."""
        if not record.fingerprint:
            return False
        members = self._buckets.setdefault(record.fingerprint, [])
        members.append(record)
        if len(members) < 2:
            return False
        for member in members:
            member.is_duplicate = True
        self.duplicates.append(record)
        return True

    def extend(self, records: Iterable[FileRecord]) -> None:
        for record in records:
            self.add(record)


__all__ = ["group_duplicates", "count_duplicates", "wasted_bytes", "LiveGrouping"]
