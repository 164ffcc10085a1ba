"""Content-based file type detection using magic-number signatures."""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Union

IMAGES = "Images"
DOCUMENTS = "Documents"
ARCHIVES = "Archives"
APPLICATIONS = "Applications"
AUDIO = "Audio"
VIDEOS = "Videos"
OTHERS = "Others"
UNKNOWN = "Unknown"

HEADER_BYTES = 512
TEXT_RATIO_THRESHOLD = 0.95


def _read_header(path: Path, size: int = HEADER_BYTES) -> bytes:
    with path.open("rb") as handle:
        return handle.read(size)


def _is_printable(byte: int) -> bool:
    return 32 <= byte <= 126 or byte in (9, 10, 13)


def is_probably_text(data: bytes, threshold: float = TEXT_RATIO_THRESHOLD) -> bool:
    """True if ``data`` is NUL-free and at least ``threshold`` printable ASCII."""
    if not data or b"\x00" in data:
        return False
    printable = sum(1 for byte in data if _is_printable(byte))
    return printable / len(data) >= threshold


def _is_office_zip(path: Path) -> bool:
    try:
        with zipfile.ZipFile(path, "r") as archive:
            names = archive.namelist()
    except (zipfile.BadZipFile, OSError):
        return False
    return any(name.startswith(("word/", "xl/", "ppt/")) for name in names) or "mimetype" in names


def classify_header(header: bytes) -> str:
    """Map leading bytes to a category using magic-number signatures."""
    if not header:
        return UNKNOWN

    if header.startswith(b"\xFF\xD8\xFF"):
        return IMAGES
    if header.startswith(b"\x89PNG"):
        return IMAGES
    if header.startswith(b"GIF"):
        return IMAGES
    if header.startswith(b"BM"):
        return IMAGES

    if header.startswith(b"%PDF"):
        return DOCUMENTS
    if header.startswith(b"\xD0\xCF\x11\xE0"):
        return DOCUMENTS

    if header[:2] == b"PK" and len(header) >= 3 and header[2] in (0x03, 0x05, 0x07):
        return ARCHIVES
    if header.startswith(b"Rar!"):
        return ARCHIVES
    if header.startswith(b"7z\xBC\xAF"):
        return ARCHIVES

    if header.startswith(b"MZ"):
        return APPLICATIONS
    if header.startswith(b"\x7FELF"):
        return APPLICATIONS

    if header[:4] == b"RIFF" and len(header) >= 12:
        if header[8:12] == b"AVI ":
            return VIDEOS
        return AUDIO
    if header.startswith(b"ID3"):
        return AUDIO
    if len(header) >= 2 and header[0] == 0xFF and (header[1] & 0xE0) == 0xE0:
        return AUDIO
    if header.startswith(b"fLaC"):
        return AUDIO

    if len(header) >= 8 and header[4:8] == b"ftyp":
        return VIDEOS

    if is_probably_text(header):
        return DOCUMENTS
    return OTHERS


def detect_category(file_path: Union[str, Path]) -> str:
    """
    Classify a file by content. Returns ``Unknown`` when the file is empty or
    its header cannot be read.
    """
    path = Path(file_path)
    try:
        header = _read_header(path)
    except OSError:
        return UNKNOWN

    category = classify_header(header)
    if category == ARCHIVES and header.startswith(b"PK\x03\x04") and _is_office_zip(path):
        return DOCUMENTS
    return category


__all__ = [
    "classify_header",
    "detect_category",
    "is_probably_text",
    "IMAGES",
    "DOCUMENTS",
    "ARCHIVES",
    "APPLICATIONS",
    "AUDIO",
    "VIDEOS",
    "OTHERS",
    "UNKNOWN",
]
