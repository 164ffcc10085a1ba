"""Text extraction for document formats, used by content fingerprinting."""

from __future__ import annotations

import logging
import re
import struct
import zipfile
from pathlib import Path
from typing import List, Optional
from xml.etree import ElementTree

import olefile
from pypdf import PdfReader

from .detection import DOCUMENTS, is_probably_text

TEXT_SAMPLE_BYTES = 1024
TEXT_SAMPLE_THRESHOLD = 0.9

_WORD_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
_DOCX_BODY = "word/document.xml"

# Word 97-2003 binary layout (FIB offsets into the WordDocument stream).
_FIB_IDENT = 0xA5EC
_FIB_FLAGS_OFFSET = 0x000A
_FIB_CLX_OFFSET = 0x01A2
_FLAG_ENCRYPTED = 0x0100
_FLAG_TABLE_1 = 0x0200
_PCD_SIZE = 8
_FC_COMPRESSED = 0x40000000
_DOC_BREAKS_RE = re.compile(r"[\r\x07\x0b\x0c]")
_DOC_CONTROL_RE = re.compile(r"[\x00-\x08\x0e-\x1f]")


class TextExtractor:
    """
    Extract plain text from documents.

    ``extract`` never raises: an unsupported format, a parse failure or an
    unreadable file all yield ``None`` and the caller falls back to hashing
    raw bytes.
    """

    supported_categories = frozenset({DOCUMENTS})

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("duplicate_scanner")

    def supports(self, category: str) -> bool:
        return category in self.supported_categories

    def extract(self, path: Path, category: str) -> Optional[str]:
        if not self.supports(category):
            return None
        try:
            with path.open("rb") as handle:
                header = handle.read(8)
            if header.startswith(b"%PDF"):
                return self._extract_pdf(path)
            if header.startswith(b"\xD0\xCF\x11\xE0"):
                return self._extract_doc(path)
            if header.startswith(b"PK\x03\x04"):
                return self._extract_docx(path)
            return self._extract_plain(path)
        except Exception as exc:
            self.logger.warning(
                "Text extraction failed",
                extra={
                    "log_payload": {
                        "event": "text_extraction_failed",
                        "component": "extractor",
                        "file": str(path),
                        "exception_type": exc.__class__.__name__,
                        "exception_msg": str(exc),
                    }
                },
            )
            return None

    def _extract_plain(self, path: Path) -> Optional[str]:
        content = path.read_bytes()
        sample = content[:TEXT_SAMPLE_BYTES]
        if not is_probably_text(sample, threshold=TEXT_SAMPLE_THRESHOLD):
            return None
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError:
            # Undecodable bytes carry content; only the raw digest keeps them apart.
            return None

    def _extract_docx(self, path: Path) -> Optional[str]:
        with zipfile.ZipFile(path, "r") as archive:
            if _DOCX_BODY not in archive.namelist():
                return None
            root = ElementTree.fromstring(archive.read(_DOCX_BODY))

        body = root.find(f"{_WORD_NS}body")
        if body is None:
            return None

        lines: List[str] = []
        for paragraph in body.iter(f"{_WORD_NS}p"):
            lines.append("".join(node.text or "" for node in paragraph.iter(f"{_WORD_NS}t")))
        return "\n".join(lines)

    def _extract_pdf(self, path: Path) -> Optional[str]:
        reader = PdfReader(str(path))
        if reader.is_encrypted:
            return None
        text = "\n".join(page.extract_text() or "" for page in reader.pages)
        return text if text.strip() else None

    def _extract_doc(self, path: Path) -> Optional[str]:
        """Read the text of a Word 97-2003 file through its piece table."""
        with olefile.OleFileIO(str(path)) as ole:
            if not ole.exists("WordDocument"):
                return None
            word = ole.openstream("WordDocument").read()
            ident, = struct.unpack_from("<H", word, 0)
            flags, = struct.unpack_from("<H", word, _FIB_FLAGS_OFFSET)
            if ident != _FIB_IDENT or flags & _FLAG_ENCRYPTED:
                return None
            table_name = "1Table" if flags & _FLAG_TABLE_1 else "0Table"
            if not ole.exists(table_name):
                return None
            table = ole.openstream(table_name).read()

        fc_clx, lcb_clx = struct.unpack_from("<II", word, _FIB_CLX_OFFSET)
        pieces = _read_piece_table(table[fc_clx:fc_clx + lcb_clx])

        chunks: List[str] = []
        for start_cp, end_cp, fc in pieces:
            count = end_cp - start_cp
            if fc & _FC_COMPRESSED:
                offset = (fc & ~_FC_COMPRESSED) // 2
                chunks.append(word[offset:offset + count].decode("cp1252"))
            else:
                chunks.append(word[fc:fc + 2 * count].decode("utf-16-le"))
        text = _DOC_BREAKS_RE.sub("\n", "".join(chunks))
        return _DOC_CONTROL_RE.sub("", text)


def _read_piece_table(clx: bytes) -> List[tuple]:
    """Return ``(start_cp, end_cp, fc)`` for each text piece in a CLX blob."""
    position = 0
    while position < len(clx) and clx[position] == 0x01:
        cb_grpprl, = struct.unpack_from("<H", clx, position + 1)
        position += 3 + cb_grpprl
    if position >= len(clx) or clx[position] != 0x02:
        raise ValueError("Piece table not found")

    lcb, = struct.unpack_from("<I", clx, position + 1)
    plc = clx[position + 5:position + 5 + lcb]
    count = (lcb - 4) // (4 + _PCD_SIZE)
    cps = struct.unpack_from(f"<{count + 1}I", plc, 0)
    descriptors = 4 * (count + 1)

    pieces = []
    for index in range(count):
        fc, = struct.unpack_from("<I", plc, descriptors + index * _PCD_SIZE + 2)
        pieces.append((cps[index], cps[index + 1], fc))
    return pieces


__all__ = ["TextExtractor"]
