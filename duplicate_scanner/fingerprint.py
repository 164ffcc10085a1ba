"""
Content fingerprinting.

A fingerprint is the sole duplicate key. Files are classified by their leading
bytes, not by extension. For categories that support text extraction the
extracted text is normalized (whitespace collapsed, lower-cased) before
hashing, so documents with the same textual content in different formats
share a fingerprint. Everything else is hashed byte for byte.
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import Optional, Union

from .config import ScannerSettings
from .detection import detect_category
from .exceptions import FingerprintError
from .extractors import TextExtractor
from .logs import build_context, configure_logger, log_event

_WHITESPACE_RE = re.compile(r"\s+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n")


def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace and blank lines, trim and lower-case ``text``."""
    if not text:
        return ""
    collapsed = _BLANK_LINES_RE.sub("\n", text)
    collapsed = _WHITESPACE_RE.sub(" ", collapsed)
    return collapsed.strip().lower()


class FingerprintEngine:
    """Produce content fingerprints for files."""

    component = "fingerprint"

    def __init__(
        self,
        settings: Optional[ScannerSettings] = None,
        extractor: Optional[TextExtractor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings or ScannerSettings()
        self.hash_method = self.settings.hash_method.lower()
        self.chunk_size = self.settings.chunk_size
        self.logger = logger or configure_logger(self.settings)
        self.extractor = extractor or TextExtractor(logger=self.logger)
        self._context = build_context(
            self.settings, self.component, {"hash_method": self.hash_method}
        )

    def fingerprint(self, file_path: Union[str, Path]) -> str:
        """
        Return the hex digest identifying the content of ``file_path``.

        Raises:
            FingerprintError: If the file is missing, not a regular file, or
                cannot be read.
        """
        path = Path(file_path)
        if not path.exists():
            raise FingerprintError(f"File not found: {path}")
        if not path.is_file():
            raise FingerprintError(f"Path is not a regular file: {path}")

        category = detect_category(path)
        text_digest = self._text_digest(path, category)
        if text_digest is not None:
            return text_digest
        return self.hash_bytes(path)

    def hash_bytes(self, file_path: Union[str, Path]) -> str:
        """Digest of the raw file bytes."""
        path = Path(file_path)
        hasher = hashlib.new(self.hash_method)
        try:
            with path.open("rb") as handle:
                while chunk := handle.read(self.chunk_size):
                    hasher.update(chunk)
        except OSError as exc:
            raise FingerprintError(f"Cannot read {path}: {exc}") from exc
        return hasher.hexdigest()

    def hash_text(self, text: str) -> str:
        """Digest of ``text`` after normalization."""
        hasher = hashlib.new(self.hash_method)
        hasher.update(normalize_text(text).encode("utf-8"))
        return hasher.hexdigest()

    def _text_digest(self, path: Path, category: str) -> Optional[str]:
        if not self.extractor.supports(category):
            return None

        text = self.extractor.extract(path, category)
        if not normalize_text(text):
            return None

        digest = self.hash_text(text)
        if self.logger.isEnabledFor(logging.DEBUG):
            log_event(
                self.logger,
                "text_fingerprint_computed",
                logging.DEBUG,
                "Fingerprint computed from normalized text",
                self._context,
                file=str(path),
                category=category,
                hash_prefix=digest[:12],
            )
        return digest


__all__ = ["FingerprintEngine", "normalize_text"]
