"""Tests for file operations module."""

import hashlib
import os
import stat

import pytest

from folder_sync import file_ops
from folder_sync.file_ops import FileOpsError


class TestTempNames:
    """Temporary copy file naming."""

    def test_temp_name_is_recognized(self):
        name = file_ops.temp_file_name("report.pdf")

        assert name.startswith("report.pdf.copytmp-")
        assert file_ops.is_temporary_file_name(name)

    def test_temp_names_are_unique(self):
        assert file_ops.temp_file_name("a") != file_ops.temp_file_name("a")

    @pytest.mark.parametrize(
        "name",
        ["report.pdf", "a.copytmp-", "a.copytmp-xyz", ".copytmp-" + "0" * 32, "a.copytmp-" + "G" * 32],
    )
    def test_ordinary_names_are_not_temporary(self, name):
        assert not file_ops.is_temporary_file_name(name)


class TestHashing:
    """Content hashing."""

    def test_md5_hash(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"hello world")

        assert file_ops.calculate_file_hash(str(path)) == hashlib.md5(b"hello world").hexdigest()

    def test_small_chunks(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"x" * 1000)

        digest = file_ops.calculate_file_hash(str(path), "sha256", chunk_size=7)

        assert digest == hashlib.sha256(b"x" * 1000).hexdigest()

    def test_unsupported_algorithm(self, tmp_path):
        path = tmp_path / "data.bin"
        path.write_bytes(b"x")

        with pytest.raises(ValueError):
            file_ops.calculate_file_hash(str(path), "not-a-hash")

    def test_same_content(self, temp_dirs):
        source, target = temp_dirs
        (source / "a").write_bytes(b"same")
        (target / "a").write_bytes(b"same")
        (target / "b").write_bytes(b"diff")

        assert file_ops.files_have_same_content(str(source / "a"), str(target / "a"))
        assert not file_ops.files_have_same_content(str(source / "a"), str(target / "b"))

    def test_unreadable_file_counts_as_different(self, temp_dirs):
        source, target = temp_dirs
        (source / "a").write_bytes(b"same")

        assert not file_ops.files_have_same_content(str(source / "a"), str(target / "missing"))


class TestCopyPrimitives:
    """Temp copy, commit and metadata."""

    def test_copy_to_temp_and_commit(self, temp_dirs):
        source, target = temp_dirs
        src = source / "a.txt"
        src.write_bytes(b"payload")
        temp = target / file_ops.temp_file_name("a.txt")

        file_ops.copy_to_temp(str(src), str(temp))
        file_ops.atomic_commit(str(temp), str(target / "a.txt"))

        assert (target / "a.txt").read_bytes() == b"payload"
        assert not temp.exists()

    def test_copy_to_temp_refuses_existing(self, temp_dirs):
        source, target = temp_dirs
        src = source / "a.txt"
        src.write_bytes(b"new")
        temp = target / "existing.tmp"
        temp.write_bytes(b"old")

        with pytest.raises(FileExistsError):
            file_ops.copy_to_temp(str(src), str(temp))
        assert temp.read_bytes() == b"old"

    def test_atomic_commit_replaces(self, temp_dirs):
        _, target = temp_dirs
        (target / "tmp").write_bytes(b"new")
        (target / "dest").write_bytes(b"old")

        file_ops.atomic_commit(str(target / "tmp"), str(target / "dest"))

        assert (target / "dest").read_bytes() == b"new"

    def test_preserve_metadata(self, temp_dirs):
        source, target = temp_dirs
        src = source / "a"
        dst = target / "a"
        src.write_bytes(b"a")
        dst.write_bytes(b"a")
        os.utime(src, (1_600_000_000, 1_600_000_000))

        assert file_ops.preserve_metadata(str(src), str(dst))
        assert os.stat(dst).st_mtime == 1_600_000_000

    def test_preserve_metadata_failure_is_reported(self, temp_dirs):
        source, target = temp_dirs

        assert not file_ops.preserve_metadata(str(source / "missing"), str(target / "missing"))

    def test_ensure_directory(self, temp_dirs):
        _, target = temp_dirs
        nested = target / "a" / "b"

        file_ops.ensure_directory(str(nested))
        file_ops.ensure_directory(str(nested))

        assert nested.is_dir()

    def test_ensure_directory_over_file_fails(self, temp_dirs):
        _, target = temp_dirs
        (target / "blocker").write_text("x")

        with pytest.raises(FileOpsError):
            file_ops.ensure_directory(str(target / "blocker" / "sub"))

    def test_clear_read_only(self, temp_dirs):
        _, target = temp_dirs
        path = target / "ro.txt"
        path.write_text("x")
        os.chmod(path, stat.S_IREAD)

        file_ops.clear_read_only(str(path))

        assert os.stat(path).st_mode & stat.S_IWRITE

    def test_remove_if_exists(self, temp_dirs):
        _, target = temp_dirs
        path = target / "gone.txt"
        path.write_text("x")

        file_ops.remove_if_exists(str(path))
        file_ops.remove_if_exists(str(path))

        assert not path.exists()


class TestRootBoundary:
    """Root containment and pruning."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/data/target/a.txt", True),
            ("/data/target/sub/a.txt", True),
            ("/data/target", False),
            ("/data/target-other/a.txt", False),
            ("/data/a.txt", False),
        ],
    )
    def test_is_within_root(self, path, expected):
        assert file_ops.is_within_root(path, "/data/target") is expected

    def test_trailing_separator_on_root(self):
        assert file_ops.is_within_root("/data/target/a.txt", "/data/target/")

    def test_prune_removes_empty_chain(self, temp_dirs):
        _, target = temp_dirs
        deep = target / "a" / "b" / "c"
        deep.mkdir(parents=True)

        removed = file_ops.prune_empty_directories(str(deep), str(target))

        assert removed == 3
        assert not (target / "a").exists()
        assert target.is_dir()

    def test_prune_stops_at_non_empty_directory(self, temp_dirs):
        _, target = temp_dirs
        deep = target / "a" / "b"
        deep.mkdir(parents=True)
        (target / "a" / "keep.txt").write_text("x")

        removed = file_ops.prune_empty_directories(str(deep), str(target))

        assert removed == 1
        assert (target / "a").is_dir()
        assert not deep.exists()

    def test_prune_never_removes_root(self, temp_dirs):
        _, target = temp_dirs

        assert file_ops.prune_empty_directories(str(target), str(target)) == 0
        assert target.is_dir()
