"""
Unit tests for FingerprintEngine and text normalization.
Verifies byte-level identity for binaries and format-independent text identity.
"""
import hashlib

import pytest

from conftest import write_doc, write_docx, write_pdf
from duplicate_scanner import FingerprintEngine, FingerprintError, ScannerSettings, normalize_text

BINARY = bytes(range(256)) * 8


@pytest.fixture
def engine(settings):
    return FingerprintEngine(settings)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, ""),
        ("", ""),
        ("  Hello   World  ", "hello world"),
        ("Line one\n\n\n  Line two\t", "line one line two"),
        ("MiXeD\r\nCase", "mixed case"),
    ],
)
def test_normalize_text(raw, expected):
    assert normalize_text(raw) == expected


class TestFingerprintEngine:
    def test_identical_binaries_share_fingerprint(self, engine, root):
        first = root / "a.bin"
        second = root / "b.bin"
        first.write_bytes(BINARY)
        second.write_bytes(BINARY)
        assert engine.fingerprint(first) == engine.fingerprint(second)

    def test_single_byte_change_changes_fingerprint(self, engine, root):
        original = root / "a.bin"
        mutated = root / "b.bin"
        original.write_bytes(BINARY)
        changed = bytearray(BINARY)
        changed[1000] ^= 0xFF
        mutated.write_bytes(bytes(changed))
        assert engine.fingerprint(original) != engine.fingerprint(mutated)

    def test_binary_fingerprint_is_raw_digest(self, engine, root):
        target = root / "a.bin"
        target.write_bytes(BINARY)
        assert engine.fingerprint(target) == hashlib.sha256(BINARY).hexdigest()

    def test_text_differing_in_whitespace_and_case_matches(self, engine, root):
        loose = root / "loose.txt"
        tight = root / "tight.md"
        loose.write_text("  Quarterly   REPORT\n\n\nAll good.\n", encoding="utf-8")
        tight.write_text("quarterly report all good.", encoding="utf-8")
        assert engine.fingerprint(loose) == engine.fingerprint(tight)

    def test_text_with_different_words_differs(self, engine, root):
        first = root / "a.txt"
        second = root / "b.txt"
        first.write_text("hello", encoding="utf-8")
        second.write_text("world", encoding="utf-8")
        assert engine.fingerprint(first) != engine.fingerprint(second)

    def test_docx_matches_plain_text_with_same_words(self, engine, root):
        docx = write_docx(root / "memo.docx", "Meeting   notes", "Budget approved")
        text = root / "memo.txt"
        text.write_text("meeting notes\nbudget approved\n", encoding="utf-8")
        assert engine.fingerprint(docx) == engine.fingerprint(text)
        assert engine.fingerprint(docx) == engine.hash_text("meeting notes budget approved")

    def test_pdf_doc_and_docx_with_same_words_match(self, engine, root):
        pdf = write_pdf(root / "minutes.pdf", "Quarterly report approved")
        doc = write_doc(root / "minutes.doc", "Quarterly  Report approved")
        docx = write_docx(root / "minutes.docx", "quarterly report", "APPROVED")

        expected = engine.hash_text("quarterly report approved")
        assert engine.fingerprint(pdf) == expected
        assert engine.fingerprint(doc) == expected
        assert engine.fingerprint(docx) == expected

    def test_non_utf8_text_differing_in_one_byte_differs(self, engine, root):
        first = root / "menu1.txt"
        second = root / "menu2.txt"
        first.write_bytes(b"today we serve caf\xe9 with milk\n")
        second.write_bytes(b"today we serve caf\xe8 with milk\n")

        assert engine.fingerprint(first) != engine.fingerprint(second)
        assert engine.fingerprint(first) == engine.hash_bytes(first)

    def test_empty_files_share_fingerprint(self, engine, root):
        first = root / "empty1"
        second = root / "empty2"
        first.write_bytes(b"")
        second.write_bytes(b"")
        assert engine.fingerprint(first) == engine.fingerprint(second)

    def test_sha512_setting(self, root):
        engine = FingerprintEngine(ScannerSettings(hash_method="sha512", log_to_file=False))
        target = root / "a.bin"
        target.write_bytes(BINARY)
        assert len(engine.fingerprint(target)) == 128

    def test_missing_file_raises(self, engine, root):
        with pytest.raises(FingerprintError):
            engine.fingerprint(root / "missing.bin")

    def test_directory_raises(self, engine, root):
        with pytest.raises(FingerprintError):
            engine.fingerprint(root)

    def test_small_chunks_give_same_digest(self, root):
        engine = FingerprintEngine(ScannerSettings(chunk_size=7, log_to_file=False))
        target = root / "a.bin"
        target.write_bytes(BINARY)
        assert engine.hash_bytes(target) == hashlib.sha256(BINARY).hexdigest()
