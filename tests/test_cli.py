"""
Tests for the ``python -m duplicate_scanner`` entry point.
"""
from conftest import build_tree
from duplicate_scanner.__main__ import main


def test_usage_error(capsys):
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().out


def test_prints_summary_and_groups(monkeypatch, capsys, root):
    monkeypatch.setenv("DUPLY_LOG_TO_FILE", "0")
    files = build_tree(root, {"a.txt": "hello", "b.txt": "hello", "c.txt": "world"})

    assert main([str(root)]) == 0

    out = capsys.readouterr().out
    assert "Files scanned: 3" in out
    assert "Duplicate files: 1" in out
    assert f"[keep] {files['a.txt']}" in out
    assert f"[delete] {files['b.txt']}" in out


def test_missing_directory_fails(monkeypatch, capsys, root):
    monkeypatch.setenv("DUPLY_LOG_TO_FILE", "0")
    assert main([str(root / "absent")]) == 1
    assert "Scan failed" in capsys.readouterr().out
