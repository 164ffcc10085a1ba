"""
Unit tests for magic-number file type detection.
"""
import zipfile

import pytest

from conftest import write_docx
from duplicate_scanner.detection import (
    APPLICATIONS,
    ARCHIVES,
    AUDIO,
    DOCUMENTS,
    IMAGES,
    OTHERS,
    UNKNOWN,
    VIDEOS,
    classify_header,
    detect_category,
    is_probably_text,
)


@pytest.mark.parametrize(
    "header, expected",
    [
        (b"\xFF\xD8\xFF\xE0\x00\x10JFIF", IMAGES),
        (b"\x89PNG\r\n\x1a\n", IMAGES),
        (b"GIF89a", IMAGES),
        (b"%PDF-1.7\n", DOCUMENTS),
        (b"\xD0\xCF\x11\xE0\xA1\xB1\x1A\xE1", DOCUMENTS),
        (b"PK\x03\x04\x14\x00", ARCHIVES),
        (b"Rar!\x1a\x07\x00", ARCHIVES),
        (b"7z\xBC\xAF\x27\x1C", ARCHIVES),
        (b"MZ\x90\x00", APPLICATIONS),
        (b"\x7FELF\x02\x01", APPLICATIONS),
        (b"RIFF\x24\x00\x00\x00WAVEfmt ", AUDIO),
        (b"RIFF\x24\x00\x00\x00AVI LIST", VIDEOS),
        (b"ID3\x04\x00", AUDIO),
        (b"\xFF\xFB\x90\x00", AUDIO),
        (b"fLaC\x00\x00", AUDIO),
        (b"\x00\x00\x00\x18ftypmp42", VIDEOS),
        (b"plain words on a line\n", DOCUMENTS),
        (b"\x00\x01\x02\x03\x04", OTHERS),
        (b"", UNKNOWN),
    ],
)
def test_classify_header(header, expected):
    assert classify_header(header) == expected


class TestTextHeuristic:
    def test_nul_byte_means_binary(self):
        assert not is_probably_text(b"text\x00text")

    def test_threshold(self):
        sample = b"a" * 95 + b"\x01" * 5
        assert is_probably_text(sample)
        assert not is_probably_text(sample, threshold=0.99)


class TestDetectCategory:
    def test_missing_file_is_unknown(self, root):
        assert detect_category(root / "absent.bin") == UNKNOWN

    def test_empty_file_is_unknown(self, root):
        empty = root / "empty.dat"
        empty.write_bytes(b"")
        assert detect_category(empty) == UNKNOWN

    def test_office_document_is_not_an_archive(self, root):
        assert detect_category(write_docx(root / "report.docx", "Hello")) == DOCUMENTS

    def test_plain_zip_is_archive(self, root):
        target = root / "bundle.zip"
        with zipfile.ZipFile(target, "w") as archive:
            archive.writestr("notes/readme.txt", "hello")
        assert detect_category(target) == ARCHIVES

    def test_extension_is_ignored(self, root):
        disguised = root / "picture.txt"
        disguised.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16)
        assert detect_category(disguised) == IMAGES
