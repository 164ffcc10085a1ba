"""Duplicate directory detection through order-independent content signatures."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .models import FileRecord

ENTRY_SEPARATOR = "|"


def directory_signature(files: Iterable[FileRecord]) -> Optional[str]:
    """
    Signature of one directory from its immediate files.

    Files are sorted by name and rendered as ``name:size:fingerprint`` joined
    with ``|``, so enumeration order does not matter but any differing file
    does. Returns None for a directory without fingerprinted files.
    """
    entries = sorted(
        (record for record in files if record.fingerprint),
        key=lambda record: (record.name, record.path),
    )
    if not entries:
        return None
    return ENTRY_SEPARATOR.join(
        f"{record.name}:{record.size}:{record.fingerprint}" for record in entries
    )


def group_by_directory(files: Iterable[FileRecord]) -> Dict[str, List[FileRecord]]:
    by_parent: Dict[str, List[FileRecord]] = defaultdict(list)
    for record in files:
        by_parent[record.parent].append(record)
    return dict(by_parent)


def detect_directory_duplicates(files: Iterable[FileRecord]) -> Dict[str, List[FileRecord]]:
    """
    Map each signature shared by two or more directories to the files of all
    matching directories. Directories are visited in walk order.
    """
    by_parent = group_by_directory(sorted(files, key=lambda record: record.sequence))

    by_signature: Dict[str, List[str]] = defaultdict(list)
    for parent, records in by_parent.items():
        signature = directory_signature(records)
        if signature is not None:
            by_signature[signature].append(parent)

    duplicates: Dict[str, List[FileRecord]] = {}
    for signature, parents in by_signature.items():
        if len(parents) < 2:
            continue
        duplicates[signature] = [record for parent in parents for record in by_parent[parent]]
    return duplicates


__all__ = ["directory_signature", "group_by_directory", "detect_directory_duplicates"]
