"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from capfs.dirfs import DirFS
from capfs.memfs import MemFile, MemFS
from capfs.protocols import FS, File
from capfs.types import FileInfo

FIXED_TIME = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def mem_fs() -> MemFS:
    """In-memory filesystem holding hello.txt (mode 0666, owner 1:1)."""
    return MemFS(
        {
            "hello.txt": MemFile(
                data=b"hello, world\n", mode=0o666, mod_time=FIXED_TIME, uid=1, gid=1
            ),
        }
    )


@pytest.fixture
def tree_fs() -> MemFS:
    """In-memory filesystem with a small nested tree."""
    return MemFS(
        {
            "a/b/c.txt": MemFile(data=b"c"),
            "a/b/d.txt": MemFile(data=b"dd"),
            "a/e.md": MemFile(data=b"e"),
            "a/empty": MemFile.directory(),
            "top.txt": MemFile(data=b"top"),
        }
    )


@pytest.fixture
def dir_fs(tmp_path: Path) -> DirFS:
    """Host filesystem rooted at a temporary directory."""
    return DirFS(tmp_path)


# ============================================================================
# Capability-hiding Wrappers
# ============================================================================


class OpenOnlyFS:
    """Exposes only ``open`` of the wrapped filesystem."""

    def __init__(self, fsys: FS) -> None:
        self.fsys = fsys

    def open(self, name: str) -> File:
        return self.fsys.open(name)


class MkdirOnlyFS(OpenOnlyFS):
    """Exposes ``open`` and single-level ``mkdir``, recording mkdir calls."""

    def __init__(self, fsys: MemFS) -> None:
        super().__init__(fsys)
        self.created: list[str] = []

    def mkdir(self, name: str, perm: int) -> None:
        self.fsys.mkdir(name, perm)
        self.created.append(name)


class RemoveOnlyFS(OpenOnlyFS):
    """Exposes ``open`` and single-entry ``remove``, recording remove calls."""

    def __init__(self, fsys: MemFS) -> None:
        super().__init__(fsys)
        self.removed: list[str] = []

    def remove(self, name: str) -> None:
        self.fsys.remove(name)
        self.removed.append(name)


class PlainFile:
    """A handle exposing only read, close and stat."""

    def __init__(self, file: File) -> None:
        self.file = file
        self.name = getattr(file, "name", "")

    def read(self, size: int = -1) -> bytes:
        return self.file.read(size)

    def close(self) -> None:
        self.file.close()

    def stat(self) -> FileInfo:
        return self.file.stat()


class PlainFileFS:
    """A filesystem whose handles have no optional capabilities."""

    def __init__(self, fsys: FS) -> None:
        self.fsys = fsys
        self.opened: list[PlainFile] = []

    def open(self, name: str) -> File:
        file = PlainFile(self.fsys.open(name))
        self.opened.append(file)
        return file
