"""Read-only helpers built on the core filesystem contract.

Each helper prefers a native capability (``StatFS``, ``ReadDirFS``, ...)
and otherwise falls back to opening the file through ``FS.open``.
"""

from __future__ import annotations

import fnmatch
import logging
import posixpath
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager

from capfs.errors import ErrorKind, FSError, PathError
from capfs.protocols import (
    FS,
    File,
    GlobFS,
    ReadDirFile,
    ReadDirFS,
    ReadFileFS,
    StatFS,
)
from capfs.types import FileInfo
from capfs.validation import check_path, join_path

__all__ = ["closing", "glob", "opened", "read_dir", "read_file", "stat", "walk"]

logger = logging.getLogger(__name__)

_GLOB_META = "*?["


@contextmanager
def closing(file: File, name: str) -> Iterator[File]:
    """Guarantee an open file is closed on every exit path.

    A close failure is raised when the block completed normally. When the
    block raised, the block's error is kept and the close failure is only
    logged.

    Args:
        file: The open file.
        name: Path the file was opened with, used in log records.

    Yields:
        file
    """
    try:
        yield file
    except BaseException:
        try:
            file.close()
        except Exception:
            logger.debug("Close of %s failed after an earlier error", name, exc_info=True)
        raise
    file.close()


def opened(fsys: FS, name: str) -> AbstractContextManager[File]:
    """Open name for reading, closing it when the block exits (see ``closing``)."""
    return closing(fsys.open(name), name)


def stat(fsys: FS, name: str) -> FileInfo:
    """Describe the named file.

    Uses ``StatFS`` when available, otherwise opens the file and stats the handle.
    """
    check_path("stat", name)
    if isinstance(fsys, StatFS):
        return fsys.stat(name)
    with opened(fsys, name) as file:
        return file.stat()


def read_dir(fsys: FS, name: str) -> list[FileInfo]:
    """List the named directory, sorted by name.

    Args:
        fsys: Filesystem to read from.
        name: Path of the directory.

    Returns:
        Directory entries sorted by name.

    Raises:
        PathError: NOT_DIR if name is not a directory, UNSUPPORTED if the
            directory handle cannot be listed.
    """
    check_path("readdir", name)
    if isinstance(fsys, ReadDirFS):
        return fsys.read_dir(name)
    with opened(fsys, name) as file:
        if not isinstance(file, ReadDirFile):
            kind = ErrorKind.UNSUPPORTED if file.stat().is_dir else ErrorKind.NOT_DIR
            raise PathError("readdir", name, kind)
        entries = file.read_dir(-1)
    return sorted(entries, key=lambda entry: entry.name)


def read_file(fsys: FS, name: str) -> bytes:
    """Return the whole contents of the named file."""
    check_path("read", name)
    if isinstance(fsys, ReadFileFS):
        return fsys.read_file(name)
    with opened(fsys, name) as file:
        return file.read(-1)


def glob(fsys: FS, pattern: str) -> list[str]:
    """Return the names of all files matching pattern.

    Pattern elements use ``fnmatch`` syntax matched against single path
    elements, so ``*`` never crosses a separator: "usr/*/bin/ed" is a valid
    pattern. Unreadable directories are skipped rather than reported.

    Args:
        fsys: Filesystem to search.
        pattern: Slash-separated pattern.

    Returns:
        Matching names, in directory order.
    """
    check_path("glob", pattern)
    if isinstance(fsys, GlobFS):
        return fsys.glob(pattern)

    if not _has_meta(pattern):
        try:
            stat(fsys, pattern)
        except FSError:
            return []
        return [pattern]

    dir_part, file_part = posixpath.split(pattern)
    dir_part = dir_part or "."
    if not _has_meta(dir_part):
        return _glob_dir(fsys, dir_part, file_part)

    matches: list[str] = []
    for parent in glob(fsys, dir_part):
        matches.extend(_glob_dir(fsys, parent, file_part))
    return matches


def _has_meta(pattern: str) -> bool:
    return any(c in _GLOB_META for c in pattern)


def _glob_dir(fsys: FS, dir_name: str, pattern: str) -> list[str]:
    try:
        entries = read_dir(fsys, dir_name)
    except FSError as e:
        logger.debug("glob skipping %s: %s", dir_name, e)
        return []
    return [
        join_path(dir_name, entry.name)
        for entry in entries
        if fnmatch.fnmatchcase(entry.name, pattern)
    ]


def walk(fsys: FS, top: str = ".") -> Iterator[tuple[str, list[str], list[str]]]:
    """Walk the tree rooted at top, like ``os.walk`` in top-down order.

    Entries are visited in name order. Errors are raised, not skipped.
    Removing names from the yielded directory list prunes the walk.

    Yields:
        (dirpath, dirnames, filenames) for each directory.
    """
    entries = read_dir(fsys, top)
    dirs = [entry.name for entry in entries if entry.is_dir]
    files = [entry.name for entry in entries if not entry.is_dir]
    yield top, dirs, files
    for name in dirs:
        yield from walk(fsys, join_path(top, name))
