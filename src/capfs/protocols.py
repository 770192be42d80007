"""Protocol definitions for filesystems, files and their capabilities.

The core contracts are ``FS`` (open by path) and ``File`` (read, close,
stat). Every optional operation gets its own small Protocol with exactly
one method, extending ``FS`` for path-scoped operations or ``File`` for
operations on an already-open handle.

All Protocols are runtime checkable, so probing for a capability is a plain
``isinstance`` check and implementations opt in simply by defining the
matching method (duck typing). No registration is involved.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from capfs.types import FileInfo

__all__ = [
    "FS",
    "ChmodFS",
    "ChmodFile",
    "ChownFS",
    "ChownFile",
    "ChtimesFS",
    "ChtimesFile",
    "File",
    "GlobFS",
    "LchownFS",
    "LinkFS",
    "LstatFS",
    "MkdirAllFS",
    "MkdirFS",
    "OpenFileFS",
    "ReadDirFS",
    "ReadDirFile",
    "ReadFileFS",
    "ReadlinkFS",
    "RemoveAllFS",
    "RemoveFS",
    "RenameFS",
    "SameFileFS",
    "StatFS",
    "SubFS",
    "SymlinkFS",
    "TruncateFS",
    "TruncateFile",
    "WriterFile",
]


# ============================================================================
# Core Contracts
# ============================================================================


@runtime_checkable
class File(Protocol):
    """Protocol for an open file or directory.

    This is the minimum a file handle must provide.
    """

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes, or everything remaining when size is negative.

        Args:
            size: Maximum number of bytes to read.

        Returns:
            The bytes read; empty at end of file.
        """
        ...

    def close(self) -> None:
        """Close the file."""
        ...

    def stat(self) -> FileInfo:
        """Describe the open file.

        Returns:
            FileInfo for the file.
        """
        ...


@runtime_checkable
class FS(Protocol):
    """Protocol for a hierarchical, read-only filesystem.

    This is the minimum a filesystem must provide. Implementations may
    satisfy any number of the capability Protocols below as well.
    """

    def open(self, name: str) -> File:
        """Open the named file for reading.

        Args:
            name: Valid path of the file.

        Returns:
            An open File.

        Raises:
            PathError: NOT_EXIST, PERMISSION or INVALID on failure.
        """
        ...


@runtime_checkable
class ReadDirFile(File, Protocol):
    """A directory file whose entries can be listed."""

    def read_dir(self, n: int = -1) -> list[FileInfo]:
        """Read directory entries.

        Args:
            n: Maximum number of entries; all remaining entries when n <= 0.

        Returns:
            Entries in directory order.
        """
        ...


@runtime_checkable
class WriterFile(File, Protocol):
    """A file that accepts writes."""

    def write(self, data: bytes) -> int:
        """Write data at the current offset.

        Returns:
            Number of bytes written.
        """
        ...


# ============================================================================
# Read Capabilities
# ============================================================================


@runtime_checkable
class StatFS(FS, Protocol):
    """A filesystem with a native stat."""

    def stat(self, name: str) -> FileInfo:
        """Describe the named file, following symbolic links."""
        ...


@runtime_checkable
class LstatFS(FS, Protocol):
    """A filesystem that can describe symbolic links themselves."""

    def lstat(self, name: str) -> FileInfo:
        """Describe the named file without following a final symbolic link."""
        ...


@runtime_checkable
class ReadDirFS(FS, Protocol):
    """A filesystem with a native directory listing."""

    def read_dir(self, name: str) -> list[FileInfo]:
        """List the named directory, sorted by name."""
        ...


@runtime_checkable
class ReadFileFS(FS, Protocol):
    """A filesystem with a native whole-file read."""

    def read_file(self, name: str) -> bytes:
        """Return the contents of the named file."""
        ...


@runtime_checkable
class GlobFS(FS, Protocol):
    """A filesystem with a native glob."""

    def glob(self, pattern: str) -> list[str]:
        """Return the names of all files matching pattern."""
        ...


@runtime_checkable
class SubFS(FS, Protocol):
    """A filesystem that builds its own sub-views."""

    def sub(self, root: str) -> FS:
        """Return a filesystem rooted at root."""
        ...


@runtime_checkable
class ReadlinkFS(FS, Protocol):
    """A filesystem that can read symbolic links."""

    def readlink(self, name: str) -> str:
        """Return the destination of the named symbolic link."""
        ...


@runtime_checkable
class SameFileFS(FS, Protocol):
    """A filesystem that can compare file identities."""

    def same_file(self, fi1: FileInfo, fi2: FileInfo) -> bool:
        """Report whether fi1 and fi2 describe the same file."""
        ...


# ============================================================================
# Write Capabilities
# ============================================================================


@runtime_checkable
class OpenFileFS(FS, Protocol):
    """A filesystem that can open files with flags."""

    def open_file(self, name: str, flag: int, perm: int) -> File:
        """Open the named file with the given os.O_* flags.

        Args:
            name: Valid path of the file.
            flag: Combination of os.O_* flags.
            perm: Permission bits used when O_CREAT creates the file.

        Returns:
            An open File; writable when the flags request write access.
        """
        ...


@runtime_checkable
class MkdirFS(FS, Protocol):
    """A filesystem that can create a single directory."""

    def mkdir(self, name: str, perm: int) -> None:
        """Create the named directory with the given permission bits."""
        ...


@runtime_checkable
class MkdirAllFS(FS, Protocol):
    """A filesystem that can create a directory along with its parents."""

    def mkdir_all(self, path: str, perm: int) -> None:
        """Create path and any missing parents; do nothing if it is a directory."""
        ...


@runtime_checkable
class RemoveFS(FS, Protocol):
    """A filesystem that can remove a file or an empty directory."""

    def remove(self, name: str) -> None:
        """Remove the named file or empty directory."""
        ...


@runtime_checkable
class RemoveAllFS(FS, Protocol):
    """A filesystem that can remove a whole tree."""

    def remove_all(self, path: str) -> None:
        """Remove path and any children it contains."""
        ...


@runtime_checkable
class RenameFS(FS, Protocol):
    """A filesystem that can rename files."""

    def rename(self, oldpath: str, newpath: str) -> None:
        """Rename (move) oldpath to newpath, replacing a non-directory target."""
        ...


@runtime_checkable
class SymlinkFS(FS, Protocol):
    """A filesystem that can create symbolic links."""

    def symlink(self, oldname: str, newname: str) -> None:
        """Create newname as a symbolic link to oldname."""
        ...


@runtime_checkable
class LinkFS(FS, Protocol):
    """A filesystem that can create hard links."""

    def link(self, oldname: str, newname: str) -> None:
        """Create newname as a hard link to oldname."""
        ...


# ============================================================================
# Metadata Capabilities (path-scoped and handle-scoped)
# ============================================================================


@runtime_checkable
class TruncateFS(FS, Protocol):
    """A filesystem that can resize files by name."""

    def truncate(self, name: str, size: int) -> None:
        """Change the size of the named file."""
        ...


@runtime_checkable
class TruncateFile(File, Protocol):
    """An open file that can be resized."""

    def truncate(self, size: int) -> None:
        """Change the size of the file."""
        ...


@runtime_checkable
class ChmodFS(FS, Protocol):
    """A filesystem that can change modes by name."""

    def chmod(self, name: str, mode: int) -> None:
        """Change the mode of the named file, following symbolic links."""
        ...


@runtime_checkable
class ChmodFile(File, Protocol):
    """An open file whose mode can be changed."""

    def chmod(self, mode: int) -> None:
        """Change the mode of the file."""
        ...


@runtime_checkable
class ChownFS(FS, Protocol):
    """A filesystem that can change ownership by name."""

    def chown(self, name: str, uid: int, gid: int) -> None:
        """Change the owner of the named file; -1 leaves a value unchanged."""
        ...


@runtime_checkable
class ChownFile(File, Protocol):
    """An open file whose ownership can be changed."""

    def chown(self, uid: int, gid: int) -> None:
        """Change the owner of the file; -1 leaves a value unchanged."""
        ...


@runtime_checkable
class LchownFS(FS, Protocol):
    """A filesystem that can change the ownership of a link itself."""

    def lchown(self, name: str, uid: int, gid: int) -> None:
        """Change the owner of the named file without following a final link."""
        ...


@runtime_checkable
class ChtimesFS(FS, Protocol):
    """A filesystem that can change file times by name."""

    def chtimes(self, name: str, atime: datetime, mtime: datetime) -> None:
        """Change the access and modification times of the named file."""
        ...


@runtime_checkable
class ChtimesFile(File, Protocol):
    """An open file whose times can be changed."""

    def chtimes(self, atime: datetime, mtime: datetime) -> None:
        """Change the access and modification times of the file."""
        ...
