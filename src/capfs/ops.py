"""Dispatch functions for optional filesystem operations.

Each function probes ``fsys`` for capabilities in a fixed order:

1. The whole-filesystem capability (e.g. ``ChmodFS``). Its result and its
   errors are passed through untouched.
2. For operations that make sense on an open handle, the file is opened
   and the handle capability (e.g. ``ChmodFile``) is used. The handle is
   closed on every exit path.
3. Otherwise an UNSUPPORTED error naming the operation and path is raised.

Paths are validated before the filesystem is touched. The recursive
operations and their fallback algorithms live in ``capfs.tree``.
"""

from __future__ import annotations

import logging
from datetime import datetime

from capfs.core import closing, opened
from capfs.errors import ErrorKind, LinkError, PathError
from capfs.protocols import (
    FS,
    ChmodFile,
    ChmodFS,
    ChownFile,
    ChownFS,
    ChtimesFile,
    ChtimesFS,
    File,
    LchownFS,
    LinkFS,
    LstatFS,
    MkdirFS,
    OpenFileFS,
    ReadlinkFS,
    RemoveFS,
    RenameFS,
    SameFileFS,
    SymlinkFS,
    TruncateFile,
    TruncateFS,
    WriterFile,
)
from capfs.types import O_RDONLY, O_WRONLY, FileInfo
from capfs.validation import check_path

__all__ = [
    "chmod",
    "chown",
    "chtimes",
    "lchown",
    "link",
    "lstat",
    "mkdir",
    "open_file",
    "readlink",
    "remove",
    "rename",
    "same_file",
    "symlink",
    "truncate",
    "write",
]

logger = logging.getLogger(__name__)


def _check_pair(op: str, old: str, new: str) -> None:
    """Raise a LinkError if either path of a two-path operation is invalid."""
    try:
        check_path(op, old)
        check_path(op, new)
    except PathError as e:
        raise LinkError(op, old, new, e.kind) from e


# ============================================================================
# Open / Write
# ============================================================================


def open_file(fsys: FS, name: str, flag: int, perm: int = 0o666) -> File:
    """Open the named file with os.O_* flags.

    Without ``OpenFileFS`` only a plain read-only open can be honoured.

    Args:
        fsys: Filesystem to open the file in.
        name: Path of the file.
        flag: Combination of os.O_* flags.
        perm: Permission bits used when O_CREAT creates the file.

    Returns:
        The open File.

    Raises:
        PathError: UNSUPPORTED when the flags cannot be honoured.
    """
    check_path("open", name)
    if isinstance(fsys, OpenFileFS):
        return fsys.open_file(name, flag, perm)
    if flag == O_RDONLY:
        return fsys.open(name)
    raise PathError("open", name, ErrorKind.UNSUPPORTED)


def write(file: File, data: bytes) -> int:
    """Write data to an open file.

    Returns:
        Number of bytes written.

    Raises:
        PathError: UNSUPPORTED when the handle is not writable.
    """
    if isinstance(file, WriterFile):
        return file.write(data)
    raise PathError("write", getattr(file, "name", ""), ErrorKind.UNSUPPORTED)


# ============================================================================
# Single-step Mutations
# ============================================================================


def mkdir(fsys: FS, name: str, perm: int) -> None:
    """Create a new directory with the given permission bits."""
    check_path("mkdir", name)
    if isinstance(fsys, MkdirFS):
        fsys.mkdir(name, perm)
        return
    raise PathError("mkdir", name, ErrorKind.UNSUPPORTED)


def remove(fsys: FS, name: str) -> None:
    """Remove the named file or empty directory."""
    check_path("remove", name)
    if isinstance(fsys, RemoveFS):
        fsys.remove(name)
        return
    raise PathError("remove", name, ErrorKind.UNSUPPORTED)


def rename(fsys: FS, oldpath: str, newpath: str) -> None:
    """Rename (move) oldpath to newpath.

    If newpath already exists and is not a directory, it is replaced.
    """
    _check_pair("rename", oldpath, newpath)
    if isinstance(fsys, RenameFS):
        fsys.rename(oldpath, newpath)
        return
    raise LinkError("rename", oldpath, newpath, ErrorKind.UNSUPPORTED)


def symlink(fsys: FS, oldname: str, newname: str) -> None:
    """Create newname as a symbolic link to oldname."""
    _check_pair("symlink", oldname, newname)
    if isinstance(fsys, SymlinkFS):
        fsys.symlink(oldname, newname)
        return
    raise LinkError("symlink", oldname, newname, ErrorKind.UNSUPPORTED)


def link(fsys: FS, oldname: str, newname: str) -> None:
    """Create newname as a hard link to the oldname file."""
    _check_pair("link", oldname, newname)
    if isinstance(fsys, LinkFS):
        fsys.link(oldname, newname)
        return
    raise LinkError("link", oldname, newname, ErrorKind.UNSUPPORTED)


# ============================================================================
# Links and Identity
# ============================================================================


def lstat(fsys: FS, name: str) -> FileInfo:
    """Describe the named file without following a final symbolic link."""
    check_path("lstat", name)
    if isinstance(fsys, LstatFS):
        return fsys.lstat(name)
    raise PathError("lstat", name, ErrorKind.UNSUPPORTED)


def readlink(fsys: FS, name: str) -> str:
    """Return the destination of the named symbolic link."""
    check_path("readlink", name)
    if isinstance(fsys, ReadlinkFS):
        return fsys.readlink(name)
    raise PathError("readlink", name, ErrorKind.UNSUPPORTED)


def same_file(fsys: FS, fi1: FileInfo, fi2: FileInfo) -> bool:
    """Report whether fi1 and fi2 describe the same file.

    Returns False, rather than failing, when fsys cannot tell.
    """
    if isinstance(fsys, SameFileFS):
        return fsys.same_file(fi1, fi2)
    return False


# ============================================================================
# Metadata (path-scoped, then handle-scoped)
# ============================================================================


def chmod(fsys: FS, name: str, mode: int) -> None:
    """Change the mode of the named file, following symbolic links."""
    check_path("chmod", name)
    if isinstance(fsys, ChmodFS):
        fsys.chmod(name, mode)
        return

    logger.debug("chmod %s: no ChmodFS capability, trying open file", name)
    with opened(fsys, name) as file:
        if not isinstance(file, ChmodFile):
            raise PathError("chmod", name, ErrorKind.UNSUPPORTED)
        file.chmod(mode)


def chown(fsys: FS, name: str, uid: int, gid: int) -> None:
    """Change the numeric owner of the named file, following symbolic links.

    A uid or gid of -1 leaves that value unchanged.
    """
    check_path("chown", name)
    if isinstance(fsys, ChownFS):
        fsys.chown(name, uid, gid)
        return

    logger.debug("chown %s: no ChownFS capability, trying open file", name)
    with opened(fsys, name) as file:
        if not isinstance(file, ChownFile):
            raise PathError("chown", name, ErrorKind.UNSUPPORTED)
        file.chown(uid, gid)


def lchown(fsys: FS, name: str, uid: int, gid: int) -> None:
    """Change the numeric owner of the named file, never following a final link.

    There is no handle-scoped form: opening the name would follow the link.
    """
    check_path("lchown", name)
    if isinstance(fsys, LchownFS):
        fsys.lchown(name, uid, gid)
        return
    raise PathError("lchown", name, ErrorKind.UNSUPPORTED)


def chtimes(fsys: FS, name: str, atime: datetime, mtime: datetime) -> None:
    """Change the access and modification times of the named file."""
    check_path("chtimes", name)
    if isinstance(fsys, ChtimesFS):
        fsys.chtimes(name, atime, mtime)
        return

    logger.debug("chtimes %s: no ChtimesFS capability, trying open file", name)
    with opened(fsys, name) as file:
        if not isinstance(file, ChtimesFile):
            raise PathError("chtimes", name, ErrorKind.UNSUPPORTED)
        file.chtimes(atime, mtime)


def truncate(fsys: FS, name: str, size: int) -> None:
    """Change the size of the named file.

    Without ``TruncateFS`` the file is opened write-only, which needs
    ``OpenFileFS``; the handle must then provide ``TruncateFile``.
    """
    check_path("truncate", name)
    if isinstance(fsys, TruncateFS):
        fsys.truncate(name, size)
        return
    if not isinstance(fsys, OpenFileFS):
        raise PathError("truncate", name, ErrorKind.UNSUPPORTED)

    logger.debug("truncate %s: no TruncateFS capability, trying open file", name)
    with closing(fsys.open_file(name, O_WRONLY, 0), name) as file:
        if not isinstance(file, TruncateFile):
            raise PathError("truncate", name, ErrorKind.UNSUPPORTED)
        file.truncate(size)
