"""
Shared fixtures for scanner tests.
Builds isolated directory trees and an orchestrator that never writes log files.
"""
import os
import struct
import zipfile
from pathlib import Path
from typing import Dict, Union

import pytest

os.environ.setdefault("DUPLY_LOG_TO_FILE", "0")

from duplicate_scanner import ScannerSettings, ScanOrchestrator  # noqa: E402

DOCX_TEMPLATE = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
    "<w:body>{paragraphs}</w:body></w:document>"
)


def write_docx(path: Path, *paragraphs: str) -> Path:
    """Write a minimal Word document whose body holds ``paragraphs``."""
    body = "".join(f"<w:p><w:r><w:t>{text}</w:t></w:r></w:p>" for text in paragraphs)
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("word/document.xml", DOCX_TEMPLATE.format(paragraphs=body))
        archive.writestr("[Content_Types].xml", "<Types/>")
    return path


def write_pdf(path: Path, text: str) -> Path:
    """Write a one-page PDF showing ``text`` in Helvetica."""
    content = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref,
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(bytes(out))
    return path


OLE_SECTOR = 512
OLE_END = 0xFFFFFFFE
OLE_FREE = 0xFFFFFFFF
OLE_FAT = 0xFFFFFFFD
OLE_NONE = 0xFFFFFFFF


def _ole_entry(name, kind, start=OLE_END, size=0, child=OLE_NONE, right=OLE_NONE):
    entry = bytearray(128)
    encoded = name.encode("utf-16-le") + b"\x00\x00" if name else b""
    entry[: len(encoded)] = encoded
    struct.pack_into("<HBB", entry, 64, len(encoded), kind, 1)
    struct.pack_into("<III", entry, 68, OLE_NONE, right, child)
    struct.pack_into("<IQ", entry, 116, start, size)
    return bytes(entry)


def write_ole(path: Path, streams: Dict[str, bytes]) -> Path:
    """
    Write a compound file holding ``streams`` at the top level.
    Each stream must be at least 4096 bytes so no mini stream is needed.
    """
    fat = [OLE_FAT, OLE_END]
    data = bytearray()
    entries = [_ole_entry("Root Entry", 5, child=1 if streams else OLE_NONE)]
    names = list(streams)
    for index, name in enumerate(names):
        payload = streams[name]
        sectors = -(-len(payload) // OLE_SECTOR)
        start = len(fat)
        fat.extend(range(start + 1, start + sectors))
        fat.append(OLE_END)
        data += payload + b"\x00" * (sectors * OLE_SECTOR - len(payload))
        right = index + 2 if index + 1 < len(names) else OLE_NONE
        entries.append(_ole_entry(name, 2, start=start, size=len(payload), right=right))
    while len(entries) % 4:
        entries.append(_ole_entry("", 0))
    assert len(entries) == 4 and len(fat) <= 128
    fat += [OLE_FREE] * (128 - len(fat))

    header = bytearray(OLE_SECTOR)
    header[:8] = b"\xD0\xCF\x11\xE0\xA1\xB1\x1A\xE1"
    struct.pack_into("<HHHHH", header, 24, 0x3E, 3, 0xFFFE, 9, 6)
    struct.pack_into("<9I", header, 40, 0, 1, 1, 0, 0x1000, OLE_END, 0, OLE_END, 0)
    struct.pack_into("<109I", header, 76, 0, *([OLE_FREE] * 108))

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(bytes(header) + struct.pack("<128I", *fat) + b"".join(entries) + bytes(data))
    return path


def write_doc(path: Path, text: str) -> Path:
    """Write a Word 97-2003 file whose single text piece is ``text``."""
    encoded = text.encode("cp1252") + b"\r"
    text_offset = 2048
    word = bytearray(4096)
    struct.pack_into("<H", word, 0, 0xA5EC)
    word[text_offset : text_offset + len(encoded)] = encoded

    chars = len(encoded)
    clx = (
        b"\x02"
        + struct.pack("<I", 16)
        + struct.pack("<II", 0, chars)
        + struct.pack("<HIH", 0, (text_offset * 2) | 0x40000000, 0)
    )
    struct.pack_into("<II", word, 0x01A2, 0, len(clx))
    table = bytearray(4096)
    table[: len(clx)] = clx
    return write_ole(path, {"WordDocument": bytes(word), "0Table": bytes(table)})


def build_tree(root: Path, layout: Dict[str, Union[str, bytes]]) -> Dict[str, Path]:
    """Create files below ``root`` from a relative-path -> content mapping."""
    created = {}
    for relative, content in layout.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
        created[relative] = target
    return created


@pytest.fixture
def root(tmp_path) -> Path:
    """Resolved temporary directory, so paths match the ones a scan reports."""
    return tmp_path.resolve()


@pytest.fixture
def settings() -> ScannerSettings:
    return ScannerSettings(log_to_file=False)


@pytest.fixture
def orchestrator(settings):
    scanner = ScanOrchestrator(settings=settings)
    yield scanner
    scanner.shutdown(wait=False)


@pytest.fixture
def run_scan(orchestrator):
    """Start a scan and block until it finishes; returns (scan_id, progress)."""

    def _run(directory: Union[str, Path], timeout: float = 10.0):
        scan_id = orchestrator.start_scan(str(directory))
        progress = orchestrator.wait(scan_id, timeout=timeout)
        return scan_id, progress

    return _run
