"""Structured NDJSON logging shared by the scanner engine and the HTTP API."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from .config import (
    API_LOG_BACKUP_COUNT,
    API_LOG_FILENAME,
    API_TEXT_LOG_FILENAME,
    GENERAL_LOG_FILENAME,
    GENERAL_TEXT_LOG_FILENAME,
    LOG_BACKUP_COUNT,
    LOG_MAX_BYTES,
    ScannerSettings,
)

LOGGER_NAME = "duplicate_scanner"


def iso_utc(timestamp: float) -> str:
    """Return ISO-8601 UTC timestamp with Z suffix."""
    dt = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def _record_payload(record: logging.LogRecord) -> Dict[str, Any]:
    """Copy of the record's ``log_payload`` with event, message and level filled in."""
    payload = dict(getattr(record, "log_payload", {}))
    message = record.getMessage()
    payload["message"] = payload.get("message") or message
    payload["event"] = payload.get("event") or getattr(record, "event", message)
    payload.setdefault("level", record.levelname)
    payload.setdefault("timestamp", iso_utc(record.created))
    return payload


class NDJSONFormatter(logging.Formatter):
    """One JSON object per line; non-JSON values are rendered with ``str``."""

    def format(self, record: logging.LogRecord) -> str:
        payload = _record_payload(record)
        if record.exc_info and "exception_trace" not in payload:
            payload["exception_trace"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class PlainTextFormatter(logging.Formatter):
    """``timestamp [LEVEL] event: message | key=value ...`` lines for humans."""

    _HEADLINE_KEYS = frozenset({"event", "message", "level", "timestamp"})

    def format(self, record: logging.LogRecord) -> str:
        payload = _record_payload(record)
        base = f"{payload['timestamp']} [{payload['level']}] {payload['event']}: {payload['message']}"
        extras = sorted((k, v) for k, v in payload.items() if k not in self._HEADLINE_KEYS)
        if not extras:
            return base
        return base + " | " + " ".join(f"{key}={value}" for key, value in extras)


class _ComponentFilter(logging.Filter):
    """Pass only events stamped with one ``component``."""

    def __init__(self, *, component: str) -> None:
        super().__init__()
        self.component = component

    def filter(self, record: logging.LogRecord) -> bool:
        return getattr(record, "log_payload", {}).get("component") == self.component


def _resolve_log_dir(settings: ScannerSettings) -> Optional[Path]:
    candidate = settings.log_dir.expanduser()
    try:
        candidate.mkdir(parents=True, exist_ok=True)
    except OSError:
        return None
    return candidate


def _rotating_handler(
    path: Path,
    formatter: logging.Formatter,
    backup_count: int,
    component: Optional[str] = None,
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=LOG_MAX_BYTES,
        backupCount=backup_count,
        encoding="utf-8",
        delay=True,
    )
    handler.setFormatter(formatter)
    if component is not None:
        handler.addFilter(_ComponentFilter(component=component))
    return handler


def configure_logger(settings: Optional[ScannerSettings] = None) -> logging.Logger:
    """Return the shared scanner logger, installing handlers on first use."""
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    settings = settings or ScannerSettings()
    logger.setLevel(logging.INFO)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(NDJSONFormatter())
    logger.addHandler(stream_handler)

    log_dir = _resolve_log_dir(settings) if settings.log_to_file else None
    if log_dir is not None:
        logger.addHandler(
            _rotating_handler(log_dir / GENERAL_LOG_FILENAME, NDJSONFormatter(), LOG_BACKUP_COUNT)
        )
        logger.addHandler(
            _rotating_handler(log_dir / GENERAL_TEXT_LOG_FILENAME, PlainTextFormatter(), LOG_BACKUP_COUNT)
        )
        logger.addHandler(
            _rotating_handler(
                log_dir / API_LOG_FILENAME, NDJSONFormatter(), API_LOG_BACKUP_COUNT, component="api"
            )
        )
        logger.addHandler(
            _rotating_handler(
                log_dir / API_TEXT_LOG_FILENAME,
                PlainTextFormatter(),
                API_LOG_BACKUP_COUNT,
                component="api",
            )
        )

    return logger


def build_context(
    settings: ScannerSettings,
    component: str,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Return the base payload stamped onto every event of one component."""
    payload: Dict[str, Any] = {
        "component": component,
        "version": settings.version,
        "env": settings.environment,
    }
    if extra:
        payload.update(extra)
    return payload


def log_event(
    logger: logging.Logger,
    event: str,
    level: int,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    **fields: Any,
) -> None:
    payload: Dict[str, Any] = {"event": event, "message": message}
    if context:
        payload.update(context)
    payload.update(fields)
    logger.log(level, message, extra={"log_payload": payload})


def duration_ms(start_time: float) -> int:
    return max(0, int((time.perf_counter() - start_time) * 1000))


__all__ = [
    "LOGGER_NAME",
    "NDJSONFormatter",
    "PlainTextFormatter",
    "configure_logger",
    "build_context",
    "log_event",
    "duration_ms",
    "iso_utc",
]
