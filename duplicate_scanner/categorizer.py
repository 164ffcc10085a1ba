"""Category labels for scanned files, by content with a filename fallback."""

from __future__ import annotations

from typing import Dict, Iterable, List

from .detection import APPLICATIONS, OTHERS, UNKNOWN, detect_category
from .models import FileRecord

TEMPORARY = "Temporary"
BACKUPS = "Backups"
SYSTEM = "System"
LOGS = "Logs"


def categorize_by_filename(file_name: str) -> str:
    name = file_name.lower()

    if any(token in name for token in ("setup", "install")) or name.endswith(".msi"):
        return APPLICATIONS
    if name.startswith(("temp", "tmp", "~")) or name.endswith((".tmp", ".temp")):
        return TEMPORARY
    if "backup" in name or ".bak" in name or name.endswith("~") or "copy" in name:
        return BACKUPS
    if (
        name.startswith(".")
        or "system" in name
        or "config" in name
        or name.endswith((".sys", ".dll"))
    ):
        return SYSTEM
    if "log" in name or name.endswith(".out") or "error" in name:
        return LOGS
    return OTHERS


class Categorizer:
    """Assign a category label to each file record."""

    def categorize(self, record: FileRecord) -> str:
        category = detect_category(record.path)
        if category == UNKNOWN:
            return categorize_by_filename(record.name)
        return category

    def categorize_files(self, records: Iterable[FileRecord]) -> Dict[str, List[FileRecord]]:
        """Label every record in place and return the category index."""
        index: Dict[str, List[FileRecord]] = {}
        for record in records:
            record.category = self.categorize(record)
            index.setdefault(record.category, []).append(record)
        return index


__all__ = ["Categorizer", "categorize_by_filename"]
