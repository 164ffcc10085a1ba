"""
Content-based duplicate file and directory scanner.

- ScanOrchestrator: background scan jobs with live progress and results
- FingerprintEngine: content fingerprints with cross-format text normalization
- group_duplicates / detect_directory_duplicates: duplicate files and trees
- apply_deletion: re-derives a scan result after files are removed
"""

from .categorizer import Categorizer
from .config import MODULE_VERSION, ScannerSettings
from .directories import detect_directory_duplicates, directory_signature
from .exceptions import (
    ConfigError,
    DuplicateScannerError,
    FingerprintError,
    InvalidScanTargetError,
    InvalidTransitionError,
    JobNotFoundError,
    ScanCancelledError,
)
from .extractors import TextExtractor
from .fingerprint import FingerprintEngine, normalize_text
from .grouping import LiveGrouping, group_duplicates
from .models import (
    DeletionOutcome,
    DeletionStatus,
    ErrorEntry,
    FileRecord,
    PathOutcome,
    ProgressSnapshot,
    ScanJob,
    ScanResult,
    ScanStatus,
)
from .mutation import apply_deletion
from .orchestrator import ScanOrchestrator
from .store import JobStore

__version__ = MODULE_VERSION

__all__ = [
    "ScanOrchestrator",
    "JobStore",
    "ScannerSettings",
    "FingerprintEngine",
    "TextExtractor",
    "Categorizer",
    "normalize_text",
    "group_duplicates",
    "LiveGrouping",
    "detect_directory_duplicates",
    "directory_signature",
    "apply_deletion",
    "FileRecord",
    "ErrorEntry",
    "ScanJob",
    "ScanResult",
    "ScanStatus",
    "ProgressSnapshot",
    "DeletionOutcome",
    "DeletionStatus",
    "PathOutcome",
    "DuplicateScannerError",
    "ConfigError",
    "FingerprintError",
    "InvalidScanTargetError",
    "InvalidTransitionError",
    "JobNotFoundError",
    "ScanCancelledError",
    "__version__",
]
