"""Tests for the scanner module."""

import os
from datetime import timezone

import pytest

from folder_sync.cancellation import OperationCanceledError
from folder_sync.models import Folder
from folder_sync.scanner import Scanner


class RecordingProgress:
    """Progress sink that keeps every update."""

    def __init__(self):
        self.reports = []
        self.cleared = 0

    def report(self, percentage, label=""):
        self.reports.append((percentage, label))

    def clear(self):
        self.cleared += 1


def scan_by_key(scanner, root):
    return {
        (f.relative_path, f.name): f for f in scanner.scan(Folder(str(root)))
    }


class TestScanner:
    """Scanner tests."""

    def test_scan_empty_directory(self, temp_dirs):
        """Test scanning empty directory."""
        source, _ = temp_dirs
        scanner = Scanner()

        assert list(scanner.scan(Folder(str(source)))) == []

    def test_scan_single_file(self, temp_dirs):
        """Test scanning directory with single file."""
        source, _ = temp_dirs
        (source / "test.txt").write_text("content")

        result = scan_by_key(Scanner(), source)

        file = result[("", "test.txt")]
        assert file.is_discovered
        assert file.metadata.size == 7
        assert file.metadata.hash is None
        assert file.folder.full_path == str(source)

    def test_scan_nested_files(self, temp_dirs):
        """Test scanning nested directory structure."""
        source, _ = temp_dirs
        nested = source / "sub" / "deeper"
        nested.mkdir(parents=True)
        (nested / "file1.txt").write_text("data1")
        (source / "file2.txt").write_text("data2")

        result = scan_by_key(Scanner(), source)

        assert ("", "file2.txt") in result
        assert (os.path.join("sub", "deeper"), "file1.txt") in result
        assert result[(os.path.join("sub", "deeper"), "file1.txt")].folder.full_path == str(nested)

    def test_mtime_is_utc(self, temp_dirs):
        source, _ = temp_dirs
        path = source / "a.txt"
        path.write_text("a")
        os.utime(path, (1_700_000_000, 1_700_000_000))

        file = scan_by_key(Scanner(), source)[("", "a.txt")]

        assert file.metadata.last_modified.tzinfo == timezone.utc
        assert file.metadata.last_modified.timestamp() == 1_700_000_000

    def test_missing_root_yields_nothing(self, temp_dirs):
        source, _ = temp_dirs

        assert list(Scanner().scan(Folder(str(source / "missing")))) == []

    def test_ignore_extensions(self, temp_dirs):
        """Test ignoring files by extension."""
        source, _ = temp_dirs
        (source / "keep.txt").write_text("keep")
        (source / "ignore.tmp").write_text("ignore")
        (source / "ignore.bak").write_text("ignore")

        result = scan_by_key(Scanner(ignore_extensions=[".tmp", ".bak"]), source)

        assert ("", "keep.txt") in result
        assert ("", "ignore.tmp") not in result
        assert ("", "ignore.bak") not in result

    def test_ignore_prefix(self, temp_dirs):
        """Test ignoring files by prefix."""
        source, _ = temp_dirs
        (source / "normal.txt").write_text("keep")
        (source / "~$report.docx").write_text("ignore")

        result = scan_by_key(Scanner(ignore_filenames_prefix=["~$"]), source)

        assert ("", "normal.txt") in result
        assert ("", "~$report.docx") not in result

    def test_ignore_exact(self, temp_dirs):
        """Test ignoring files by exact name."""
        source, _ = temp_dirs
        (source / "keep.txt").write_text("keep")
        (source / "thumbs.db").write_text("ignore")

        result = scan_by_key(Scanner(ignore_filenames_exact=["thumbs.db"]), source)

        assert ("", "keep.txt") in result
        assert ("", "thumbs.db") not in result

    def test_ignore_directories(self, temp_dirs):
        """Ignored directory names are matched case-insensitively."""
        source, _ = temp_dirs
        skipped = source / "System Volume Information"
        skipped.mkdir()
        (skipped / "inner.dat").write_text("x")
        (source / "kept.txt").write_text("x")

        result = scan_by_key(
            Scanner(ignore_directories=["system volume information"]), source
        )

        assert list(result) == [("", "kept.txt")]

    def test_progress_reported_per_entry(self, temp_dirs):
        source, _ = temp_dirs
        for name in ("a.txt", "b.txt", "c.txt", "d.txt"):
            (source / name).write_text(name)
        progress = RecordingProgress()

        list(Scanner(progress=progress).scan(Folder(str(source))))

        percentages = [p for p, _ in progress.reports]
        assert percentages == [25.0, 50.0, 75.0, 100.0]
        assert all(label.startswith("Scanning ") for _, label in progress.reports)
        assert progress.cleared == 1

    def test_cancellation_between_entries(self, temp_dirs, token):
        source, _ = temp_dirs
        (source / "a.txt").write_text("a")
        (source / "b.txt").write_text("b")
        progress = RecordingProgress()

        files = Scanner(progress=progress).scan(Folder(str(source)), token)
        next(files)
        token.cancel()

        with pytest.raises(OperationCanceledError):
            next(files)
        assert progress.cleared == 1

    def test_progress_label_is_relative(self, temp_dirs):
        source, _ = temp_dirs
        (source / "sub").mkdir()
        (source / "sub" / "a.txt").write_text("a")
        progress = RecordingProgress()

        list(Scanner(progress=progress).scan(Folder(str(source))))

        assert progress.reports == [(100.0, f"Scanning {os.path.join('sub', 'a.txt')}")]

    def test_name_with_trailing_space_keeps_on_disk_name(self, temp_dirs):
        """Resolution trims whitespace; the scanned File must not alias another file."""
        source, _ = temp_dirs
        (source / "a.txt").write_bytes(b"plain")
        (source / "a.txt ").write_bytes(b"with space")

        result = scan_by_key(Scanner(), source)

        assert set(result) == {("", "a.txt"), ("", "a.txt ")}
        assert result[("", "a.txt ")].metadata.size == len(b"with space")
        assert result[("", "a.txt")].metadata.size == len(b"plain")
