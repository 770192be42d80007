"""Tests for the read-only helpers."""

from __future__ import annotations

import logging

import pytest
from conftest import OpenOnlyFS, PlainFileFS

from capfs import core
from capfs.errors import ErrorKind, PathError
from capfs.memfs import MemFS


class GlobRecorder(OpenOnlyFS):
    """A filesystem with a native glob."""

    def glob(self, pattern: str) -> list[str]:
        return [f"native:{pattern}"]


class BrokenClose:
    """A handle whose close always fails."""

    def __init__(self) -> None:
        self.close_calls = 0

    def read(self, size: int = -1) -> bytes:
        return b""

    def close(self) -> None:
        self.close_calls += 1
        raise PathError("close", "f", ErrorKind.INVALID)

    def stat(self):
        raise NotImplementedError


class TestClosing:
    """Tests for the closing context manager."""

    def test_close_error_raised_on_success(self) -> None:
        """Test a close failure surfaces when the block succeeded."""
        file = BrokenClose()

        with pytest.raises(PathError) as exc_info, core.closing(file, "f"):
            pass

        assert exc_info.value.op == "close"
        assert file.close_calls == 1

    def test_block_error_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test the block's error is kept and the close failure only logged."""
        file = BrokenClose()

        with caplog.at_level(logging.DEBUG, logger="capfs.core"):
            with pytest.raises(KeyError), core.closing(file, "f"):
                raise KeyError("boom")

        assert file.close_calls == 1
        assert "Close of f failed" in caplog.text


class TestStat:
    """Tests for stat."""

    def test_stat_fallback(self, mem_fs: MemFS) -> None:
        """Test stat opens the file when the filesystem cannot stat paths."""
        info = core.stat(OpenOnlyFS(mem_fs), "hello.txt")

        assert info.name == "hello.txt"
        assert info.size == 13
        assert info.perm == 0o666
        assert not info.is_dir

    def test_stat_missing(self, mem_fs: MemFS) -> None:
        """Test stat of a missing file."""
        with pytest.raises(PathError) as exc_info:
            core.stat(mem_fs, "missing")

        assert exc_info.value.kind is ErrorKind.NOT_EXIST

    def test_stat_root(self, mem_fs: MemFS) -> None:
        """Test the root is a directory."""
        assert core.stat(OpenOnlyFS(mem_fs), ".").is_dir


class TestReadDir:
    """Tests for read_dir."""

    def test_read_dir_fallback_sorted(self, tree_fs: MemFS) -> None:
        """Test listing through an open directory handle."""
        entries = core.read_dir(OpenOnlyFS(tree_fs), "a")

        assert [e.name for e in entries] == ["b", "e.md", "empty"]
        assert [e.is_dir for e in entries] == [True, False, True]

    def test_read_dir_of_file(self, tree_fs: MemFS) -> None:
        """Test listing a file is not-a-directory."""
        with pytest.raises(PathError) as exc_info:
            core.read_dir(OpenOnlyFS(tree_fs), "top.txt")

        assert exc_info.value.kind is ErrorKind.NOT_DIR

    def test_read_dir_unsupported_handle(self, tree_fs: MemFS) -> None:
        """Test a directory handle that cannot list entries."""
        with pytest.raises(PathError) as exc_info:
            core.read_dir(PlainFileFS(tree_fs), "a")

        assert exc_info.value.op == "readdir"
        assert exc_info.value.kind is ErrorKind.UNSUPPORTED


class TestReadFile:
    """Tests for read_file."""

    def test_read_file_fallback(self, mem_fs: MemFS) -> None:
        """Test reading through an open handle."""
        assert core.read_file(OpenOnlyFS(mem_fs), "hello.txt") == b"hello, world\n"

    def test_read_file_invalid(self, mem_fs: MemFS) -> None:
        """Test malformed paths."""
        with pytest.raises(PathError) as exc_info:
            core.read_file(mem_fs, "./hello.txt")

        assert exc_info.value.kind is ErrorKind.INVALID


class TestGlob:
    """Tests for glob."""

    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            ("*.txt", ["top.txt"]),
            ("a/*", ["a/b", "a/e.md", "a/empty"]),
            ("a/b/?.txt", ["a/b/c.txt", "a/b/d.txt"]),
            ("a/b/[c].txt", ["a/b/c.txt"]),
            ("*/*/*.txt", ["a/b/c.txt", "a/b/d.txt"]),
            ("a/*.txt", []),
            ("top.txt", ["top.txt"]),
            ("missing", []),
        ],
    )
    def test_glob(self, tree_fs: MemFS, pattern: str, expected: list[str]) -> None:
        """Test pattern elements match single path elements."""
        assert core.glob(OpenOnlyFS(tree_fs), pattern) == expected

    def test_star_does_not_cross_separator(self, tree_fs: MemFS) -> None:
        """Test * never matches a slash."""
        assert core.glob(tree_fs, "*.txt") == ["top.txt"]
        assert "a/b/c.txt" not in core.glob(tree_fs, "a/*.txt")

    def test_skips_unreadable_directories(self, tree_fs: MemFS) -> None:
        """Test files matched by a directory pattern are skipped."""
        assert core.glob(OpenOnlyFS(tree_fs), "*/x") == []

    def test_native_glob(self, tree_fs: MemFS) -> None:
        """Test GlobFS is used when available."""
        assert core.glob(GlobRecorder(tree_fs), "*") == ["native:*"]

    def test_invalid_pattern_path(self, tree_fs: MemFS) -> None:
        """Test patterns must be valid paths."""
        with pytest.raises(PathError) as exc_info:
            core.glob(tree_fs, "/a/*")

        assert exc_info.value.op == "glob"


class TestWalk:
    """Tests for walk."""

    def test_walk_top_down(self, tree_fs: MemFS) -> None:
        """Test directories are visited parent first, in name order."""
        result = list(core.walk(OpenOnlyFS(tree_fs)))

        assert result == [
            (".", ["a"], ["top.txt"]),
            ("a", ["b", "empty"], ["e.md"]),
            ("a/b", [], ["c.txt", "d.txt"]),
            ("a/empty", [], []),
        ]

    def test_walk_prune(self, tree_fs: MemFS) -> None:
        """Test removing a name from the directory list skips it."""
        visited = []
        for dirpath, dirs, _files in core.walk(tree_fs, "a"):
            visited.append(dirpath)
            if "b" in dirs:
                dirs.remove("b")

        assert visited == ["a", "a/empty"]
