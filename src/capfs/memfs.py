"""A simple in-memory filesystem for tests and examples.

A ``MemFS`` is a dict mapping path names (arguments to ``open``) to
``MemFile`` entries. Parent directories need not be present in the map:
they are synthesized when a path has children. When the last child of such a
directory is removed or renamed away, the directory is kept as an explicit
entry. Otherwise an explicit directory entry (``MemFile.directory()``) is
only needed for empty directories or to control a directory's metadata.

Operations read the dict directly, so tests can seed or inspect the
filesystem by editing the mapping. Mutating the mapping while an operation
is running is a caller error. Listing a directory scans every key, so a
MemFS is meant for at most a few hundred entries.

Some capabilities (chmod, chown, chtimes, mkdir_all, glob) are deliberately
implemented through the dispatch layer over a reduced view of the MemFS so
that the handle-scoped and fallback code paths get exercised.
"""

from __future__ import annotations

import os
import posixpath
import stat as statmod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import TracebackType

from capfs import core, ops, tree
from capfs.errors import ErrorKind, LinkError, PathError
from capfs.protocols import FS, File
from capfs.sub import SubView
from capfs.types import O_ACCMODE, O_APPEND, O_CREAT, O_EXCL, O_RDONLY, O_TRUNC, O_WRONLY, FileInfo
from capfs.validation import valid_path

__all__ = ["MemFS", "MemFile"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MemFile:
    """A file or directory stored in a MemFS.

    Attributes:
        data: File contents.
        mode: st_mode style value; directories carry ``stat.S_IFDIR``.
        mod_time: Modification time.
        atime: Access time, None until set by chtimes.
        uid: Owner user id.
        gid: Owner group id.
    """

    data: bytes = b""
    mode: int = 0o644
    mod_time: datetime = field(default_factory=_now)
    atime: datetime | None = None
    uid: int = 0
    gid: int = 0

    @classmethod
    def directory(cls, perm: int = 0o755) -> MemFile:
        """Create a directory entry with the given permission bits."""
        return cls(mode=statmod.S_IFDIR | (perm & 0o7777))

    @property
    def is_dir(self) -> bool:
        """Report whether this entry is a directory."""
        return statmod.S_ISDIR(self.mode)

    def info(self, name: str) -> FileInfo:
        """Describe this entry under the given path."""
        return FileInfo(
            name=posixpath.basename(name) or name,
            size=len(self.data),
            mode=self.mode,
            mod_time=self.mod_time,
            sys=self,
        )


class _OpenOnly:
    """Exposes only ``open`` of a MemFS, hiding every other capability."""

    def __init__(self, fsys: MemFS) -> None:
        self._fsys = fsys

    def open(self, name: str) -> File:
        return self._fsys.open(name)


class _MkdirOnly(_OpenOnly):
    """Exposes ``open`` and ``mkdir`` of a MemFS."""

    def mkdir(self, name: str, perm: int) -> None:
        self._fsys.mkdir(name, perm)


class MemFS(dict[str, MemFile]):
    """An in-memory filesystem backed by a dict of path -> MemFile."""

    def _synthesized(self, name: str) -> MemFile | None:
        if name == "." or self._has_children(name):
            return MemFile.directory()
        return None

    def _has_children(self, name: str) -> bool:
        prefix = name + "/"
        return any(key.startswith(prefix) for key in self)

    def _resolve(self, op: str, name: str) -> MemFile:
        """Return the entry for name, synthesizing implicit directories."""
        if not valid_path(name):
            raise PathError(op, name, ErrorKind.INVALID)
        entry = self.get(name)
        if entry is None:
            entry = self._synthesized(name)
        if entry is None:
            raise PathError(op, name, ErrorKind.NOT_EXIST)
        return entry

    def _check_parent(self, op: str, name: str) -> None:
        parent = posixpath.dirname(name) or "."
        try:
            entry = self._resolve(op, parent)
        except PathError as e:
            raise PathError(op, name, e.kind) from e
        if not entry.is_dir:
            raise PathError(op, name, ErrorKind.NOT_DIR)

    def _children(self, name: str) -> list[FileInfo]:
        prefix = "" if name == "." else name + "/"
        found: dict[str, FileInfo] = {}
        for key, entry in self.items():
            if key == "." or not key.startswith(prefix):
                continue
            head, sep, _ = key[len(prefix) :].partition("/")
            if sep:
                found.setdefault(head, MemFile.directory().info(head))
            else:
                found[head] = entry.info(head)
        return [found[child] for child in sorted(found)]

    def _keep_parent(self, name: str) -> None:
        """Store an implicit parent directory before its last child goes away."""
        parent = posixpath.dirname(name)
        if parent and parent not in self:
            self[parent] = MemFile.directory()

    def _materialize(self, name: str, entry: MemFile) -> None:
        """Store a synthesized directory so metadata changes to it persist."""
        if name not in self:
            self[name] = entry

    # ------------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------------

    def open(self, name: str) -> File:
        """Open name for reading."""
        entry = self._resolve("open", name)
        if entry.is_dir:
            return _MemDirHandle(self, name, entry, self._children(name))
        return _MemFileHandle(self, name, entry, readable=True, writable=False)

    def stat(self, name: str) -> FileInfo:
        """Describe name."""
        return self._resolve("stat", name).info(name)

    def read_dir(self, name: str) -> list[FileInfo]:
        """List the directory name, sorted by name."""
        if not self._resolve("readdir", name).is_dir:
            raise PathError("readdir", name, ErrorKind.NOT_DIR)
        return self._children(name)

    def read_file(self, name: str) -> bytes:
        """Return the contents of name."""
        entry = self._resolve("read", name)
        if entry.is_dir:
            raise PathError("read", name, ErrorKind.INVALID)
        return entry.data

    def glob(self, pattern: str) -> list[str]:
        """Return the names matching pattern."""
        return core.glob(_OpenOnly(self), pattern)

    def sub(self, root: str) -> FS:
        """Return a sub-view rooted at root."""
        if root in ("", "."):
            return self
        if not valid_path(root):
            raise PathError("sub", root, ErrorKind.INVALID)
        return SubView(self, root)

    def same_file(self, fi1: FileInfo, fi2: FileInfo) -> bool:
        """Report whether fi1 and fi2 describe the same stored entry."""
        return fi1.sys is not None and fi1.sys is fi2.sys

    # ------------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------------

    def open_file(self, name: str, flag: int, perm: int = 0o666) -> File:
        """Open name with os.O_* flags.

        Supports O_CREAT, O_EXCL, O_TRUNC and O_APPEND. Opening a directory
        for writing raises NOT_DIR.
        """
        if flag == O_RDONLY:
            return self.open(name)

        access = flag & O_ACCMODE
        try:
            entry: MemFile | None = self._resolve("open", name)
        except PathError as e:
            if e.kind is not ErrorKind.NOT_EXIST:
                raise
            entry = None

        if entry is not None and flag & O_CREAT and flag & O_EXCL:
            raise PathError("open", name, ErrorKind.EXIST)
        if entry is not None and entry.is_dir:
            if access != O_RDONLY or flag & O_TRUNC:
                raise PathError("open", name, ErrorKind.NOT_DIR)
            return self.open(name)

        if entry is None:
            if not flag & O_CREAT:
                raise PathError("open", name, ErrorKind.NOT_EXIST)
            self._check_parent("open", name)
            entry = MemFile(mode=perm & 0o7777)
            self[name] = entry

        if flag & O_TRUNC:
            entry.data = b""
            entry.mod_time = _now()

        return _MemFileHandle(
            self,
            name,
            entry,
            readable=access != O_WRONLY,
            writable=access != O_RDONLY,
            append=bool(flag & O_APPEND),
        )

    def mkdir(self, name: str, perm: int) -> None:
        """Create the directory name. Its parent must already exist."""
        try:
            self._resolve("mkdir", name)
        except PathError as e:
            if e.kind is not ErrorKind.NOT_EXIST:
                raise
        else:
            raise PathError("mkdir", name, ErrorKind.EXIST)
        self._check_parent("mkdir", name)
        self[name] = MemFile.directory(perm)

    def mkdir_all(self, path: str, perm: int) -> None:
        """Create path and any missing parents."""
        tree.mkdir_all(_MkdirOnly(self), path, perm)

    def remove(self, name: str) -> None:
        """Remove the file or empty directory name."""
        if name == ".":
            raise PathError("remove", name, ErrorKind.INVALID)
        entry = self._resolve("remove", name)
        if entry.is_dir and self._has_children(name):
            raise PathError("remove", name, ErrorKind.NOT_EMPTY)
        self._keep_parent(name)
        self.pop(name, None)

    def rename(self, oldpath: str, newpath: str) -> None:
        """Rename oldpath, and everything below it, to newpath."""
        try:
            src = self._resolve("rename", oldpath)
            self._check_rename_target(oldpath, newpath, src)
        except PathError as e:
            raise LinkError("rename", oldpath, newpath, e.kind) from e
        if oldpath == newpath:
            return

        self._keep_parent(oldpath)
        self.pop(newpath, None)
        prefix = oldpath + "/"
        for key in [k for k in self if k == oldpath or k.startswith(prefix)]:
            self[newpath + key[len(oldpath) :]] = self.pop(key)

    def _check_rename_target(self, oldpath: str, newpath: str, src: MemFile) -> None:
        if not valid_path(newpath) or oldpath == "." or newpath.startswith(oldpath + "/"):
            raise PathError("rename", newpath, ErrorKind.INVALID)
        try:
            dst = self._resolve("rename", newpath)
        except PathError as e:
            if e.kind is not ErrorKind.NOT_EXIST:
                raise
            self._check_parent("rename", newpath)
            return
        if dst.is_dir and not src.is_dir:
            raise PathError("rename", newpath, ErrorKind.EXIST)
        if src.is_dir and not dst.is_dir:
            raise PathError("rename", newpath, ErrorKind.NOT_DIR)
        if dst.is_dir and oldpath != newpath and self._has_children(newpath):
            raise PathError("rename", newpath, ErrorKind.NOT_EMPTY)

    def chmod(self, name: str, mode: int) -> None:
        """Change the mode of name through an open handle."""
        ops.chmod(_OpenOnly(self), name, mode)

    def chown(self, name: str, uid: int, gid: int) -> None:
        """Change the owner of name through an open handle."""
        ops.chown(_OpenOnly(self), name, uid, gid)

    def chtimes(self, name: str, atime: datetime, mtime: datetime) -> None:
        """Change the times of name through an open handle."""
        ops.chtimes(_OpenOnly(self), name, atime, mtime)


class _MemHandle:
    """State and metadata operations shared by open files and directories."""

    def __init__(self, fsys: MemFS, name: str, entry: MemFile) -> None:
        self._fsys = fsys
        self._name = name
        self._entry = entry
        self._closed = False

    def __enter__(self) -> _MemHandle:
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

    def close(self) -> None:
        """Close the handle. Closing twice is an error."""
        self._check_open("close")
        self._closed = True

    def stat(self) -> FileInfo:
        """Describe the open file."""
        self._check_open("stat")
        return self._entry.info(self._name)

    def chmod(self, mode: int) -> None:
        """Change the permission bits, keeping the file type."""
        self._check_open("chmod")
        self._entry.mode = statmod.S_IFMT(self._entry.mode) | (mode & 0o7777)
        self._fsys._materialize(self._name, self._entry)

    def chown(self, uid: int, gid: int) -> None:
        """Change the owner; -1 leaves a value unchanged."""
        self._check_open("chown")
        if uid != -1:
            self._entry.uid = uid
        if gid != -1:
            self._entry.gid = gid
        self._fsys._materialize(self._name, self._entry)

    def chtimes(self, atime: datetime, mtime: datetime) -> None:
        """Change the access and modification times."""
        self._check_open("chtimes")
        self._entry.atime = atime
        self._entry.mod_time = mtime
        self._fsys._materialize(self._name, self._entry)


class _MemFileHandle(_MemHandle):
    """An open regular file."""

    def __init__(
        self,
        fsys: MemFS,
        name: str,
        entry: MemFile,
        *,
        readable: bool,
        writable: bool,
        append: bool = False,
    ) -> None:
        super().__init__(fsys, name, entry)
        self._readable = readable
        self._writable = writable
        self._append = append
        self._offset = 0

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes from the current offset."""
        self._check_open("read")
        if not self._readable:
            raise PathError("read", self._name, ErrorKind.PERMISSION)
        data = self._entry.data
        end = len(data) if size < 0 else min(len(data), self._offset + size)
        chunk = data[self._offset : end]
        self._offset += len(chunk)
        return chunk

    def write(self, data: bytes) -> int:
        """Write data at the current offset, zero-filling any gap past the end."""
        self._check_open("write")
        if not self._writable:
            raise PathError("write", self._name, ErrorKind.PERMISSION)
        buf = bytearray(self._entry.data)
        if self._append:
            self._offset = len(buf)
        if self._offset > len(buf):
            buf.extend(bytes(self._offset - len(buf)))
        buf[self._offset : self._offset + len(data)] = data
        self._entry.data = bytes(buf)
        self._entry.mod_time = _now()
        self._offset += len(data)
        return len(data)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the offset; seeking past the end is allowed."""
        self._check_open("seek")
        if whence == os.SEEK_CUR:
            offset += self._offset
        elif whence == os.SEEK_END:
            offset += len(self._entry.data)
        elif whence != os.SEEK_SET:
            raise PathError("seek", self._name, ErrorKind.INVALID)
        if offset < 0:
            raise PathError("seek", self._name, ErrorKind.INVALID)
        self._offset = offset
        return offset

    def truncate(self, size: int) -> None:
        """Cut or zero-extend the file to size bytes."""
        self._check_open("truncate")
        if not self._writable or size < 0:
            raise PathError("truncate", self._name, ErrorKind.INVALID)
        data = self._entry.data[:size]
        self._entry.data = data + bytes(size - len(data))
        self._entry.mod_time = _now()


class _MemDirHandle(_MemHandle):
    """An open directory."""

    def __init__(self, fsys: MemFS, name: str, entry: MemFile, entries: list[FileInfo]) -> None:
        super().__init__(fsys, name, entry)
        self._entries = entries
        self._dir_offset = 0

    def read(self, size: int = -1) -> bytes:
        """Directories cannot be read as bytes."""
        self._check_open("read")
        raise PathError("read", self._name, ErrorKind.INVALID)

    def read_dir(self, n: int = -1) -> list[FileInfo]:
        """Read up to n entries (all remaining when n <= 0), in name order."""
        self._check_open("readdir")
        remaining = self._entries[self._dir_offset :]
        if n > 0:
            remaining = remaining[:n]
        self._dir_offset += len(remaining)
        return remaining
