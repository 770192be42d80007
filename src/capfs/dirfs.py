"""Host filesystem binding rooted at a directory.

``DirFS("/prefix").open("file")`` is the same as opening "/prefix/file"
with the operating system. It only guarantees that the paths it hands to
the OS begin with "/prefix": symbolic links inside the tree that point
elsewhere are followed as usual, so DirFS is not a chroot-style sandbox.

Host ``OSError``s are translated into ``PathError``/``LinkError`` values
reporting paths in the DirFS namespace. Errno values outside the capfs
taxonomy propagate as the original ``OSError``.
"""

from __future__ import annotations

import errno
import logging
import os
import posixpath
import shutil
import stat as statmod
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from types import TracebackType

from capfs.errors import ErrorKind, LinkError, PathError
from capfs.types import O_RDONLY, FileInfo
from capfs.validation import valid_path

__all__ = ["DirFS", "DirFile"]

logger = logging.getLogger(__name__)

_ERRNO_KINDS: dict[int, ErrorKind] = {
    errno.ENOENT: ErrorKind.NOT_EXIST,
    errno.EEXIST: ErrorKind.EXIST,
    errno.EACCES: ErrorKind.PERMISSION,
    errno.EPERM: ErrorKind.PERMISSION,
    errno.EINVAL: ErrorKind.INVALID,
    errno.EBADF: ErrorKind.INVALID,
    errno.EISDIR: ErrorKind.INVALID,
    errno.ENOTDIR: ErrorKind.NOT_DIR,
    errno.ENOTEMPTY: ErrorKind.NOT_EMPTY,
    errno.ENOTSUP: ErrorKind.UNSUPPORTED,
    errno.EOPNOTSUPP: ErrorKind.UNSUPPORTED,
    errno.ENOSYS: ErrorKind.UNSUPPORTED,
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_READ_CHUNK = 64 * 1024


def _kind_for(exc: OSError, overrides: dict[int, ErrorKind] | None) -> ErrorKind | None:
    if overrides and exc.errno in overrides:
        return overrides[exc.errno]
    return _ERRNO_KINDS.get(exc.errno) if exc.errno is not None else None


@contextmanager
def _translated(
    op: str, name: str, overrides: dict[int, ErrorKind] | None = None
) -> Iterator[None]:
    """Translate host OSErrors raised in the block into PathErrors for name."""
    try:
        yield
    except OSError as e:
        kind = _kind_for(e, overrides)
        if kind is None:
            raise
        raise PathError(op, name, kind) from e


@contextmanager
def _translated_pair(op: str, old: str, new: str) -> Iterator[None]:
    """Translate host OSErrors raised in the block into LinkErrors."""
    try:
        yield
    except OSError as e:
        kind = _kind_for(e, None)
        if kind is None:
            raise
        raise LinkError(op, old, new, kind) from e


def _to_ns(moment: datetime) -> int:
    """Convert a datetime (naive values are local time) to epoch nanoseconds."""
    return (moment.astimezone(timezone.utc) - _EPOCH) // timedelta(microseconds=1) * 1000


def _file_info(name: str, st: os.stat_result) -> FileInfo:
    return FileInfo(
        name=posixpath.basename(name) or name,
        size=st.st_size,
        mode=st.st_mode,
        mod_time=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        sys=st,
    )


class DirFile:
    """An open host file or directory, backed by a raw file descriptor."""

    def __init__(self, fd: int, name: str, path: str) -> None:
        """Initialize the handle.

        Args:
            fd: Open OS file descriptor; the handle takes ownership.
            name: Path in the DirFS namespace, used in errors.
            path: Host path, used to list directories.
        """
        self._fd = fd
        self._name = name
        self._path = path
        self._closed = False
        self._entries: list[FileInfo] | None = None
        self._dir_offset = 0

    def __enter__(self) -> DirFile:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def name(self) -> str:
        """Path the file was opened with."""
        return self._name

    def _check_open(self, op: str) -> None:
        if self._closed:
            raise PathError(op, self._name, ErrorKind.INVALID)

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes, or to end of file when size is negative."""
        self._check_open("read")
        with _translated("read", self._name):
            if size >= 0:
                return os.read(self._fd, size)
            chunks = []
            while chunk := os.read(self._fd, _READ_CHUNK):
                chunks.append(chunk)
            return b"".join(chunks)

    def write(self, data: bytes) -> int:
        """Write all of data at the current offset."""
        self._check_open("write")
        view = memoryview(data)
        with _translated("write", self._name):
            while view:
                written = os.write(self._fd, view)
                view = view[written:]
        return len(data)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the file offset; returns the new absolute offset."""
        self._check_open("seek")
        with _translated("seek", self._name):
            return os.lseek(self._fd, offset, whence)

    def close(self) -> None:
        """Close the descriptor. Closing twice is an error."""
        self._check_open("close")
        self._closed = True
        with _translated("close", self._name):
            os.close(self._fd)

    def stat(self) -> FileInfo:
        """Describe the open file."""
        self._check_open("stat")
        with _translated("stat", self._name):
            return _file_info(self._name, os.fstat(self._fd))

    def read_dir(self, n: int = -1) -> list[FileInfo]:
        """Read up to n directory entries (all remaining when n <= 0), in name order."""
        self._check_open("readdir")
        if self._entries is None:
            if not self.stat().is_dir:
                raise PathError("readdir", self._name, ErrorKind.NOT_DIR)
            self._entries = _scan(self._name, self._path)
        remaining = self._entries[self._dir_offset :]
        if n > 0:
            remaining = remaining[:n]
        self._dir_offset += len(remaining)
        return remaining

    def chmod(self, mode: int) -> None:
        """Change the mode of the open file."""
        self._check_open("chmod")
        with _translated("chmod", self._name):
            os.fchmod(self._fd, mode)

    def chown(self, uid: int, gid: int) -> None:
        """Change the owner of the open file; -1 leaves a value unchanged."""
        self._check_open("chown")
        with _translated("chown", self._name):
            os.fchown(self._fd, uid, gid)

    def chtimes(self, atime: datetime, mtime: datetime) -> None:
        """Change the access and modification times of the open file."""
        self._check_open("chtimes")
        with _translated("chtimes", self._name):
            os.utime(self._fd, ns=(_to_ns(atime), _to_ns(mtime)))

    def truncate(self, size: int) -> None:
        """Change the size of the open file."""
        self._check_open("truncate")
        with _translated("truncate", self._name):
            os.ftruncate(self._fd, size)


def _scan(name: str, path: str) -> list[FileInfo]:
    """List a host directory without following symbolic links in it."""
    with _translated("readdir", name), os.scandir(path) as it:
        entries = [
            _file_info(entry.name, entry.stat(follow_symlinks=False)) for entry in it
        ]
    return sorted(entries, key=lambda entry: entry.name)


class DirFS:
    """Filesystem for the tree of host files rooted at a directory.

    Provides every capability Protocol natively through ``os`` and ``shutil``.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        """Initialize the filesystem.

        Args:
            root: Host directory that becomes ".".
        """
        self._root = os.fspath(root)

    def __repr__(self) -> str:
        return f"DirFS({self._root!r})"

    @property
    def root(self) -> str:
        """Host directory of the filesystem root."""
        return self._root

    def _full(self, op: str, name: str) -> str:
        if not valid_path(name) or (os.name == "nt" and any(c in name for c in "\\:")):
            raise PathError(op, name, ErrorKind.INVALID)
        return os.path.join(self._root, name)

    def _full_pair(self, op: str, old: str, new: str) -> tuple[str, str]:
        try:
            return self._full(op, old), self._full(op, new)
        except PathError as e:
            raise LinkError(op, old, new, e.kind) from e

    # ------------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------------

    def open(self, name: str) -> DirFile:
        """Open name for reading."""
        return self.open_file(name, O_RDONLY, 0)

    def open_file(self, name: str, flag: int, perm: int = 0o666) -> DirFile:
        """Open name with os.O_* flags.

        Opening a directory for writing raises NOT_DIR.
        """
        full = self._full("open", name)
        with _translated("open", name, {errno.EISDIR: ErrorKind.NOT_DIR}):
            fd = os.open(full, flag | getattr(os, "O_CLOEXEC", 0), perm)
        return DirFile(fd, name, full)

    def stat(self, name: str) -> FileInfo:
        """Describe name, following symbolic links."""
        full = self._full("stat", name)
        with _translated("stat", name):
            return _file_info(name, os.stat(full))

    def lstat(self, name: str) -> FileInfo:
        """Describe name without following a final symbolic link."""
        full = self._full("lstat", name)
        with _translated("lstat", name):
            return _file_info(name, os.lstat(full))

    def read_dir(self, name: str) -> list[FileInfo]:
        """List the directory name, sorted by name."""
        return _scan(name, self._full("readdir", name))

    def read_file(self, name: str) -> bytes:
        """Return the contents of name."""
        full = self._full("read", name)
        with _translated("read", name), open(full, "rb") as f:
            return f.read()

    def readlink(self, name: str) -> str:
        """Return the destination of a symbolic link.

        Destinations inside the root are returned in the DirFS namespace.
        """
        full = self._full("readlink", name)
        with _translated("readlink", name):
            target = os.readlink(full)
        prefix = self._root.rstrip(os.sep) + os.sep
        if target.startswith(prefix):
            return target[len(prefix) :].replace(os.sep, "/")
        return target

    def same_file(self, fi1: FileInfo, fi2: FileInfo) -> bool:
        """Report whether fi1 and fi2 describe the same host file (device and inode)."""
        if not isinstance(fi1.sys, os.stat_result) or not isinstance(fi2.sys, os.stat_result):
            return False
        return os.path.samestat(fi1.sys, fi2.sys)

    # ------------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------------

    def mkdir(self, name: str, perm: int) -> None:
        """Create the directory name (perm is subject to the umask)."""
        full = self._full("mkdir", name)
        with _translated("mkdir", name):
            os.mkdir(full, perm)

    def mkdir_all(self, path: str, perm: int) -> None:
        """Create path and any missing parents (perm is subject to the umask)."""
        full = self._full("mkdir", path)
        try:
            with _translated("mkdir", path):
                os.makedirs(full, perm, exist_ok=True)
        except PathError as e:
            if e.kind is ErrorKind.EXIST:
                # makedirs(exist_ok=True) only complains when path is not a directory
                raise PathError("mkdir", path, ErrorKind.NOT_DIR) from e
            raise

    def remove(self, name: str) -> None:
        """Remove the file or empty directory name."""
        full = self._full("remove", name)
        with _translated("remove", name):
            if statmod.S_ISDIR(os.lstat(full).st_mode):
                os.rmdir(full)
            else:
                os.unlink(full)

    def remove_all(self, path: str) -> None:
        """Remove path and its children. A missing path is NOT_EXIST."""
        full = self._full("remove", path)
        with _translated("remove", path):
            if statmod.S_ISDIR(os.lstat(full).st_mode):
                logger.debug("remove_all %s: removing host tree %s", path, full)
                shutil.rmtree(full)
            else:
                os.unlink(full)

    def rename(self, oldpath: str, newpath: str) -> None:
        """Rename oldpath to newpath, replacing a non-directory target."""
        old_full, new_full = self._full_pair("rename", oldpath, newpath)
        with _translated_pair("rename", oldpath, newpath):
            os.replace(old_full, new_full)

    def symlink(self, oldname: str, newname: str) -> None:
        """Create newname as a symbolic link to oldname.

        The link stores the host path of oldname.
        """
        old_full, new_full = self._full_pair("symlink", oldname, newname)
        with _translated_pair("symlink", oldname, newname):
            os.symlink(old_full, new_full)

    def link(self, oldname: str, newname: str) -> None:
        """Create newname as a hard link to oldname."""
        old_full, new_full = self._full_pair("link", oldname, newname)
        with _translated_pair("link", oldname, newname):
            os.link(old_full, new_full, follow_symlinks=False)

    def truncate(self, name: str, size: int) -> None:
        """Change the size of name."""
        full = self._full("truncate", name)
        with _translated("truncate", name):
            os.truncate(full, size)

    def chmod(self, name: str, mode: int) -> None:
        """Change the mode of name, following symbolic links."""
        full = self._full("chmod", name)
        with _translated("chmod", name):
            os.chmod(full, mode)

    def chown(self, name: str, uid: int, gid: int) -> None:
        """Change the owner of name, following symbolic links."""
        full = self._full("chown", name)
        with _translated("chown", name):
            os.chown(full, uid, gid)

    def lchown(self, name: str, uid: int, gid: int) -> None:
        """Change the owner of name itself, never following a final link."""
        full = self._full("lchown", name)
        with _translated("lchown", name):
            os.lchown(full, uid, gid)

    def chtimes(self, name: str, atime: datetime, mtime: datetime) -> None:
        """Change the access and modification times of name."""
        full = self._full("chtimes", name)
        with _translated("chtimes", name):
            os.utime(full, ns=(_to_ns(atime), _to_ns(mtime)))
