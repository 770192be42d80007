"""Tests for the host filesystem binding."""

from __future__ import annotations

import errno
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from capfs import core, ops, tree
from capfs.dirfs import DirFS
from capfs.errors import ErrorKind, LinkError, PathError
from capfs.sub import sub
from capfs.types import O_CREAT, O_EXCL, O_RDWR, O_WRONLY


@pytest.fixture
def populated(tmp_path: Path) -> DirFS:
    """A DirFS over a small host tree."""
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "readme.md").write_text("# Readme\n")
    (tmp_path / "docs" / "notes.txt").write_text("notes")
    (tmp_path / "hello.txt").write_text("hello, world\n")
    return DirFS(tmp_path)


class TestDirFSRead:
    """Tests for reading host files."""

    def test_read_file(self, populated: DirFS) -> None:
        """Test reading a whole file."""
        assert populated.read_file("docs/readme.md") == b"# Readme\n"

    def test_open_read(self, populated: DirFS) -> None:
        """Test reading through a handle."""
        with populated.open("hello.txt") as file:
            assert file.read(5) == b"hello"
            assert file.read() == b", world\n"

    def test_stat(self, populated: DirFS, tmp_path: Path) -> None:
        """Test stat reports size, mode and base name."""
        os.chmod(tmp_path / "hello.txt", 0o640)

        info = populated.stat("hello.txt")

        assert info.name == "hello.txt"
        assert info.size == 13
        assert info.perm == 0o640
        assert not info.is_dir

    def test_stat_root(self, populated: DirFS) -> None:
        """Test "." is the root directory."""
        assert populated.stat(".").is_dir

    def test_read_dir_sorted(self, populated: DirFS) -> None:
        """Test directory entries are sorted by name."""
        assert [e.name for e in populated.read_dir("docs")] == ["notes.txt", "readme.md"]
        assert [e.name for e in populated.read_dir(".")] == ["docs", "hello.txt"]

    def test_read_dir_through_handle(self, populated: DirFS) -> None:
        """Test directory handles list entries in pieces."""
        with populated.open("docs") as file:
            assert [e.name for e in file.read_dir(1)] == ["notes.txt"]
            assert [e.name for e in file.read_dir(-1)] == ["readme.md"]
            assert file.read_dir(-1) == []

    def test_read_dir_of_file(self, populated: DirFS) -> None:
        """Test listing a file."""
        with pytest.raises(PathError) as exc_info:
            populated.read_dir("hello.txt")

        assert exc_info.value.kind is ErrorKind.NOT_DIR

    def test_missing_reports_relative_path(self, populated: DirFS) -> None:
        """Test errors name paths in the DirFS namespace."""
        with pytest.raises(PathError) as exc_info:
            populated.open("docs/missing.md")

        assert exc_info.value.path == "docs/missing.md"
        assert exc_info.value.kind is ErrorKind.NOT_EXIST
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    @pytest.mark.parametrize("name", ["/etc/passwd", "../x", "docs/", ""])
    def test_invalid_path(self, populated: DirFS, name: str) -> None:
        """Test paths that could escape the root are rejected."""
        with pytest.raises(PathError) as exc_info:
            populated.open(name)

        assert exc_info.value.kind is ErrorKind.INVALID

    def test_unmapped_error_propagates(self, populated: DirFS) -> None:
        """Test host errors outside the taxonomy are raised unchanged."""
        with pytest.raises(OSError) as exc_info:
            populated.open("x" * 300)

        assert exc_info.value.errno == errno.ENAMETOOLONG

    def test_glob(self, populated: DirFS) -> None:
        """Test glob through the generic directory walk."""
        assert core.glob(populated, "docs/*.md") == ["docs/readme.md"]


class TestDirFSOpenFile:
    """Tests for opening host files with flags."""

    def test_create_and_write(self, dir_fs: DirFS, tmp_path: Path) -> None:
        """Test creating a file and writing to it."""
        with dir_fs.open_file("new.txt", O_WRONLY | O_CREAT, 0o644) as file:
            ops.write(file, b"content")

        assert (tmp_path / "new.txt").read_bytes() == b"content"

    def test_exclusive(self, populated: DirFS) -> None:
        """Test O_EXCL on an existing file."""
        with pytest.raises(PathError) as exc_info:
            populated.open_file("hello.txt", O_WRONLY | O_CREAT | O_EXCL, 0o644)

        assert exc_info.value.kind is ErrorKind.EXIST

    def test_directory_for_write(self, populated: DirFS) -> None:
        """Test opening a directory for writing is not-a-directory."""
        with pytest.raises(PathError) as exc_info:
            populated.open_file("docs", O_RDWR, 0)

        assert exc_info.value.kind is ErrorKind.NOT_DIR

    def test_handle_truncate_and_seek(self, populated: DirFS, tmp_path: Path) -> None:
        """Test handle truncate and seek."""
        with populated.open_file("hello.txt", O_RDWR, 0) as file:
            file.truncate(5)
            file.seek(0, os.SEEK_END)
            file.write(b"!")

        assert (tmp_path / "hello.txt").read_bytes() == b"hello!"

    def test_double_close(self, populated: DirFS) -> None:
        """Test closing a handle twice."""
        file = populated.open("hello.txt")
        file.close()

        with pytest.raises(PathError) as exc_info:
            file.close()

        assert exc_info.value.kind is ErrorKind.INVALID


class TestDirFSWrite:
    """Tests for modifying host files."""

    def test_mkdir(self, dir_fs: DirFS, tmp_path: Path) -> None:
        """Test creating a directory."""
        dir_fs.mkdir("sub", 0o755)

        assert (tmp_path / "sub").is_dir()

    def test_mkdir_existing(self, populated: DirFS) -> None:
        """Test creating an existing directory."""
        with pytest.raises(PathError) as exc_info:
            populated.mkdir("docs", 0o755)

        assert exc_info.value.kind is ErrorKind.EXIST

    def test_mkdir_all(self, dir_fs: DirFS, tmp_path: Path) -> None:
        """Test creating nested directories through the dispatch layer."""
        tree.mkdir_all(dir_fs, "a/b/c/.", 0o755)
        tree.mkdir_all(dir_fs, "a/b", 0o755)

        assert (tmp_path / "a" / "b" / "c").is_dir()

    def test_mkdir_all_over_file(self, populated: DirFS) -> None:
        """Test a file in the way is reported as not a directory."""
        with pytest.raises(PathError) as exc_info:
            populated.mkdir_all("hello.txt", 0o755)

        assert exc_info.value.kind is ErrorKind.NOT_DIR

    def test_remove(self, populated: DirFS, tmp_path: Path) -> None:
        """Test removing a file."""
        populated.remove("hello.txt")

        assert not (tmp_path / "hello.txt").exists()

    def test_remove_non_empty(self, populated: DirFS) -> None:
        """Test removing a non-empty directory."""
        with pytest.raises(PathError) as exc_info:
            populated.remove("docs")

        assert exc_info.value.kind is ErrorKind.NOT_EMPTY

    def test_remove_all(self, populated: DirFS, tmp_path: Path) -> None:
        """Test removing a tree."""
        tree.remove_all(populated, "docs")

        assert not (tmp_path / "docs").exists()
        assert (tmp_path / "hello.txt").exists()

    def test_remove_all_missing(self, populated: DirFS) -> None:
        """Test removing a missing tree is an error."""
        with pytest.raises(PathError) as exc_info:
            tree.remove_all(populated, "missing")

        assert exc_info.value.kind is ErrorKind.NOT_EXIST

    def test_remove_all_does_not_follow_links(self, populated: DirFS, tmp_path: Path) -> None:
        """Test a symbolic link to a directory is removed, not its target."""
        populated.symlink("docs", "docs-link")

        tree.remove_all(populated, "docs-link")

        assert not (tmp_path / "docs-link").is_symlink()
        assert (tmp_path / "docs" / "readme.md").exists()

    def test_rename(self, populated: DirFS, tmp_path: Path) -> None:
        """Test renaming a file."""
        ops.rename(populated, "hello.txt", "docs/hello.txt")

        assert (tmp_path / "docs" / "hello.txt").read_text() == "hello, world\n"

    def test_rename_missing(self, populated: DirFS) -> None:
        """Test renaming a missing file reports both paths."""
        with pytest.raises(LinkError) as exc_info:
            ops.rename(populated, "missing", "other")

        assert (exc_info.value.old, exc_info.value.new) == ("missing", "other")
        assert exc_info.value.kind is ErrorKind.NOT_EXIST

    def test_truncate(self, populated: DirFS, tmp_path: Path) -> None:
        """Test truncating by path."""
        ops.truncate(populated, "hello.txt", 5)

        assert (tmp_path / "hello.txt").read_bytes() == b"hello"

    def test_chmod(self, populated: DirFS) -> None:
        """Test changing permissions."""
        ops.chmod(populated, "hello.txt", 0o600)

        assert populated.stat("hello.txt").perm == 0o600

    def test_chown_to_self(self, populated: DirFS) -> None:
        """Test changing ownership to the current owner."""
        ops.chown(populated, "hello.txt", os.getuid(), -1)

        assert populated.stat("hello.txt").sys.st_uid == os.getuid()

    def test_chtimes(self, populated: DirFS) -> None:
        """Test setting modification time."""
        moment = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        ops.chtimes(populated, "hello.txt", moment, moment)

        assert populated.stat("hello.txt").mod_time == moment


class TestDirFSLinks:
    """Tests for symbolic and hard links."""

    def test_symlink_and_readlink(self, populated: DirFS) -> None:
        """Test link targets inside the root are reported relative to it."""
        ops.symlink(populated, "docs/readme.md", "link.md")

        assert ops.readlink(populated, "link.md") == "docs/readme.md"
        assert ops.lstat(populated, "link.md").is_symlink
        assert populated.read_file("link.md") == b"# Readme\n"

    def test_readlink_through_sub(self, populated: DirFS) -> None:
        """Test link targets are shortened again by a sub-view."""
        populated.symlink("docs/readme.md", "docs/link.md")

        assert ops.readlink(sub(populated, "docs"), "link.md") == "readme.md"

    def test_hard_link_same_file(self, populated: DirFS) -> None:
        """Test hard links describe the same file."""
        ops.link(populated, "hello.txt", "again.txt")

        first = populated.stat("hello.txt")
        second = populated.stat("again.txt")

        assert ops.same_file(populated, first, second) is True
        assert ops.same_file(populated, first, populated.stat("docs")) is False

    def test_lchown_link_to_self(self, populated: DirFS) -> None:
        """Test changing the owner of a link itself."""
        populated.symlink("hello.txt", "link.txt")

        ops.lchown(populated, "link.txt", -1, os.getgid())

        assert populated.lstat("link.txt").sys.st_gid == os.getgid()
