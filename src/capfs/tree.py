"""Recursive directory creation and removal.

``mkdir_all`` and ``remove_all`` use a native capability when the
filesystem has one. Otherwise they synthesize the operation from the
single-step dispatch functions in ``capfs.ops`` and ``capfs.core``, never
from raw methods, so wrappers such as sub-views take part in every step.

Neither algorithm rolls back: a failure part way through leaves the
directories created or removed so far as they are.
"""

from __future__ import annotations

import logging

from capfs.core import read_dir, stat
from capfs.errors import ErrorKind, FSError, PathError
from capfs.ops import lstat, mkdir, remove
from capfs.protocols import FS, LstatFS, MkdirAllFS, MkdirFS, RemoveAllFS, RemoveFS
from capfs.types import FileInfo
from capfs.validation import check_path, clean_dir_path, join_path

__all__ = ["mkdir_all", "remove_all"]

logger = logging.getLogger(__name__)


def mkdir_all(fsys: FS, path: str, perm: int) -> None:
    """Create a directory named path, along with any necessary parents.

    The permission bits are used for every directory this call creates;
    directories that already exist keep their mode. If path is already a
    directory, nothing happens. Trailing separators and "." elements are
    accepted, so "foo/bar/." creates "foo/bar".

    Args:
        fsys: Filesystem to create the directories in.
        path: Directory to create.
        perm: Permission bits for new directories.

    Raises:
        PathError: NOT_DIR if path or a parent exists as a non-directory,
            UNSUPPORTED if fsys can create neither trees nor directories,
            or the first error raised by a single-level mkdir.
    """
    path = clean_dir_path("mkdir", path)
    if isinstance(fsys, MkdirAllFS):
        fsys.mkdir_all(path, perm)
        return
    if not isinstance(fsys, MkdirFS):
        raise PathError("mkdir", path, ErrorKind.UNSUPPORTED)
    _mkdir_all(fsys, path, perm)


def _mkdir_all(fsys: FS, path: str, perm: int) -> None:
    # Fast path: path already exists
    try:
        info = stat(fsys, path)
    except FSError:
        pass
    else:
        if info.is_dir:
            return
        raise PathError("mkdir", path, ErrorKind.NOT_DIR)

    # Slow path: make sure the parent exists, then create path itself
    end = len(path)
    while end > 0 and path[end - 1] == "/":
        end -= 1
    sep = path.rfind("/", 0, end)
    if sep > 0:
        logger.debug("mkdir_all %s: creating parent %s", path, path[:sep])
        _mkdir_all(fsys, path[:sep], perm)

    try:
        mkdir(fsys, path, perm)
    except FSError:
        # Lost a race with a concurrent create, or path ended in "."
        if _is_dir(fsys, path):
            logger.debug("mkdir_all %s: mkdir failed but directory exists", path)
            return
        raise


def _is_dir(fsys: FS, path: str) -> bool:
    try:
        return stat(fsys, path).is_dir
    except FSError:
        return False


def remove_all(fsys: FS, path: str) -> None:
    """Remove path and any children it contains.

    Children are removed depth first, before their parent. The order of
    siblings is not guaranteed. Symbolic links are removed, not followed,
    when the filesystem can tell them apart (``LstatFS``).

    Unlike ``shutil.rmtree(ignore_errors=True)`` or ``rm -f``, removing a
    path that does not exist is an error.

    Args:
        fsys: Filesystem to remove from.
        path: File or directory to remove.

    Raises:
        PathError: NOT_EXIST if path does not exist, UNSUPPORTED if fsys
            can remove neither trees nor single entries, or the first error
            raised while removing a child.
    """
    check_path("remove", path)
    if isinstance(fsys, RemoveAllFS):
        fsys.remove_all(path)
        return
    info = _stat_no_follow(fsys, path)
    if not isinstance(fsys, RemoveFS):
        raise PathError("remove", path, ErrorKind.UNSUPPORTED)
    if not info.is_dir:
        remove(fsys, path)
        return

    for entry in read_dir(fsys, path):
        child = join_path(path, entry.name)
        if entry.is_dir:
            remove_all(fsys, child)
        else:
            remove(fsys, child)

    logger.debug("remove_all %s: children removed", path)
    remove(fsys, path)


def _stat_no_follow(fsys: FS, path: str) -> FileInfo:
    if isinstance(fsys, LstatFS):
        try:
            return lstat(fsys, path)
        except PathError as e:
            # Adapters expose lstat even when what they wrap cannot
            if e.kind is not ErrorKind.UNSUPPORTED:
                raise
    return stat(fsys, path)
