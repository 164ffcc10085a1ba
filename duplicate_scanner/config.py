"""Runtime settings for the duplicate scanner, resolved from DUPLY_* variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .exceptions import ConfigError

MODULE_VERSION = "1.0.0"
DEFAULT_ENV = "dev"
PROGRESS_STEP = 500
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_SCANS = 4
SUPPORTED_HASH_METHODS = {"sha256", "sha512"}

LOG_DIR_ENV = "DUPLY_LOG_DIR"
DEFAULT_LOG_DIR = Path("~/.duply/logs")
GENERAL_LOG_FILENAME = "duplicate-scanner.log"
API_LOG_FILENAME = "duplicate-scanner.api.log"
GENERAL_TEXT_LOG_FILENAME = "duplicate-scanner.txt"
API_TEXT_LOG_FILENAME = "duplicate-scanner.api.txt"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5
API_LOG_BACKUP_COUNT = 3

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ScannerSettings:
    """Settings shared by the scan orchestrator, fingerprinting and logging."""

    environment: str = DEFAULT_ENV
    hash_method: str = "sha256"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_concurrent_scans: int = DEFAULT_MAX_SCANS
    file_timeout_seconds: Optional[float] = None
    progress_step: int = PROGRESS_STEP
    log_dir: Path = DEFAULT_LOG_DIR
    log_to_file: bool = True
    version: str = MODULE_VERSION

    def __post_init__(self) -> None:
        if self.hash_method.lower() not in SUPPORTED_HASH_METHODS:
            allowed = ", ".join(sorted(SUPPORTED_HASH_METHODS))
            raise ConfigError(f"hash_method must be one of: {allowed}")
        if self.chunk_size <= 0:
            raise ConfigError("chunk_size must be positive")
        if self.max_concurrent_scans < 1:
            raise ConfigError("max_concurrent_scans must be at least 1")
        if self.file_timeout_seconds is not None and self.file_timeout_seconds <= 0:
            raise ConfigError("file_timeout_seconds must be positive when set")
        if self.progress_step < 1:
            raise ConfigError("progress_step must be at least 1")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ScannerSettings":
        """Build settings from ``DUPLY_*`` environment variables."""
        source = os.environ if env is None else env

        timeout_raw = source.get("DUPLY_FILE_TIMEOUT", "").strip()
        log_dir_raw = source.get(LOG_DIR_ENV, "").strip()

        return cls(
            environment=source.get("DUPLY_ENV", DEFAULT_ENV).lower(),
            hash_method=source.get("DUPLY_HASH_METHOD", "sha256").lower(),
            chunk_size=_parse_int(source, "DUPLY_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            max_concurrent_scans=_parse_int(source, "DUPLY_MAX_SCANS", DEFAULT_MAX_SCANS),
            file_timeout_seconds=_parse_float(timeout_raw, "DUPLY_FILE_TIMEOUT") if timeout_raw else None,
            progress_step=_parse_int(source, "DUPLY_PROGRESS_STEP", PROGRESS_STEP),
            log_dir=Path(log_dir_raw) if log_dir_raw else DEFAULT_LOG_DIR,
            log_to_file=_parse_bool(source, "DUPLY_LOG_TO_FILE", True),
        )


def _parse_int(source: Mapping[str, str], key: str, default: int) -> int:
    raw = source.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def _parse_float(raw: str, key: str) -> float:
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc


def _parse_bool(source: Mapping[str, str], key: str, default: bool) -> bool:
    raw = source.get(key, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigError(f"{key} must be a boolean flag, got {raw!r}")


__all__ = [
    "ScannerSettings",
    "MODULE_VERSION",
    "DEFAULT_ENV",
    "PROGRESS_STEP",
    "SUPPORTED_HASH_METHODS",
]
