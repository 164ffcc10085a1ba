"""In-memory registry of scan jobs and their results."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .grouping import LiveGrouping
from .models import ScanJob, ScanResult


@dataclass
class JobEntry:
    """
    Everything the process knows about one scan.

    ``lock`` guards this entry only: the scan thread holds it while updating
    progress, pollers while taking snapshots, deletions while rewriting the
    result. Unrelated jobs never contend.
    """

    job: ScanJob
    lock: threading.RLock = field(default_factory=threading.RLock)
    result: Optional[ScanResult] = None
    live: LiveGrouping = field(default_factory=LiveGrouping)
    cancel_event: threading.Event = field(default_factory=threading.Event)
    finished: threading.Event = field(default_factory=threading.Event)
    future: Optional[Future] = None


class JobStore:
    """
    Process-lifetime job registry.

    Lookups read the underlying dict without locking; the registry lock is
    held only while inserting a new entry.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, JobEntry] = {}
        self._insert_lock = threading.Lock()

    def add(self, job: ScanJob) -> JobEntry:
        entry = JobEntry(job=job)
        with self._insert_lock:
            if job.scan_id in self._entries:
                raise ValueError(f"Scan id already registered: {job.scan_id}")
            self._entries[job.scan_id] = entry
        return entry

    def get(self, scan_id: str) -> Optional[JobEntry]:
        return self._entries.get(scan_id)

    def entries(self) -> List[JobEntry]:
        return list(self._entries.values())

    def results(self) -> List[ScanResult]:
        return [entry.result for entry in self.entries() if entry.result is not None]

    def __contains__(self, scan_id: object) -> bool:
        return scan_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["JobEntry", "JobStore"]
