"""Command-line entry point: ``python -m duplicate_scanner <directory>``."""

from __future__ import annotations

import sys
from typing import List, Optional

from .config import ScannerSettings
from .models import ScanStatus
from .orchestrator import ScanOrchestrator


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: python -m duplicate_scanner <directory>")
        return 1

    target_dir = args[0]
    print(f"Scanning {target_dir}")

    with ScanOrchestrator(settings=ScannerSettings.from_env()) as orchestrator:
        scan_id = orchestrator.start_scan(target_dir)
        progress = orchestrator.wait(scan_id)
        result = orchestrator.get_result(scan_id)

    if progress is None or progress.status is not ScanStatus.COMPLETED or result is None:
        print("\nScan failed:")
        for error in progress.errors if progress else []:
            print(f"  {error}")
        return 1

    print("\nSummary:")
    print(f"Files scanned: {result.total_files}")
    print(f"Groups: {len(result.duplicate_groups)}")
    print(f"Duplicate files: {result.duplicate_count}")
    print(f"Wasted space: {round(result.wasted_size_bytes / (1024 * 1024), 2)} MB")
    print(f"Duplicate directory groups: {len(result.directory_duplicates)}")
    if progress.errors:
        print(f"Errors: {len(progress.errors)}")
        for error in progress.errors:
            print(f"  {error}")

    for index, members in enumerate(result.duplicate_groups.values(), start=1):
        print(f"\nGroup {index}:")
        for record in members:
            marker = "delete" if record.marked_for_deletion else "keep"
            print(f"  [{marker}] {record.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
