"""Sub-views: a filesystem restricted to a subtree of another filesystem.

A ``SubView`` rewrites every incoming path ``name`` to ``root/name`` in the
parent's namespace, forwards the call to the parent through the dispatch
functions (so the parent gets the same capability probing and fallbacks),
and rewrites any path reported in an error back into its own namespace.

Note that ``sub(DirFS("/"), "prefix")`` does not stop the host from
following symbolic links that point outside "prefix". A sub-view is not a
chroot-style security boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from capfs import core, ops, tree
from capfs.errors import ErrorKind, LinkError, PathError
from capfs.protocols import FS, File, SubFS
from capfs.types import FileInfo
from capfs.validation import check_path, clean_dir_path, join_path, valid_path

__all__ = ["SubView", "shorten", "sub"]

logger = logging.getLogger(__name__)


def sub(fsys: FS, root: str) -> FS:
    """Return a filesystem corresponding to the subtree rooted at root.

    If root is "" or ".", fsys is returned unchanged. If fsys provides
    ``SubFS`` its own implementation is used. Otherwise fsys is wrapped in
    a ``SubView``.

    Args:
        fsys: Parent filesystem.
        root: Valid path of the subtree within fsys.

    Returns:
        A filesystem whose "." is fsys's root.

    Raises:
        PathError: INVALID if root is not a valid path.
    """
    if root in ("", "."):
        return fsys
    if not valid_path(root):
        raise PathError("sub", root, ErrorKind.INVALID)
    if isinstance(fsys, SubFS):
        return fsys.sub(root)
    return SubView(fsys, root)


def shorten(root: str, name: str) -> str | None:
    """Map name, which should lie under root, back to the part after root.

    Args:
        root: Root of the sub-view in the parent's namespace.
        name: Path reported by the parent.

    Returns:
        The path relative to root ("." for root itself), or None when name
        is not under root.

    Example:
        >>> shorten("a/b", "a/b/c")
        'c'
        >>> shorten("a/b", "a/bc") is None
        True
    """
    if name == root:
        return "."
    prefix = root + "/"
    if len(name) > len(prefix) and name.startswith(prefix):
        return name[len(prefix) :]
    return None


class SubView:
    """A filesystem rooted at a subdirectory of a parent filesystem.

    Provides every capability Protocol; whether an operation actually works
    depends on what the parent supports.
    """

    def __init__(self, fsys: FS, root: str) -> None:
        """Initialize the sub-view.

        Args:
            fsys: Parent filesystem.
            root: Valid path of the subtree within fsys.

        Note:
            Prefer ``sub()``, which validates root and honours ``SubFS``.
        """
        self._fsys = fsys
        self._root = root

    def __repr__(self) -> str:
        return f"SubView({self._fsys!r}, {self._root!r})"

    @property
    def parent(self) -> FS:
        """The wrapped filesystem."""
        return self._fsys

    @property
    def root(self) -> str:
        """Root of this view in the parent's namespace."""
        return self._root

    # ------------------------------------------------------------------------
    # Path and error rewriting
    # ------------------------------------------------------------------------

    def _full_name(self, op: str, name: str) -> str:
        check_path(op, name)
        return join_path(self._root, name)

    def _full_pair(self, op: str, old: str, new: str) -> tuple[str, str]:
        try:
            return self._full_name(op, old), self._full_name(op, new)
        except PathError as e:
            raise LinkError(op, old, new, e.kind) from e

    def _shorten_reported(self, name: str) -> str:
        short = shorten(self._root, name)
        if short is None:
            logger.debug("Error path %s is outside sub-view root %s", name, self._root)
            return name
        return short

    @contextmanager
    def _fixed_errors(self) -> Iterator[None]:
        """Rewrite paths in errors raised by the parent into this view's namespace."""
        try:
            yield
        except PathError as e:
            e.path = self._shorten_reported(e.path)
            raise
        except LinkError as e:
            e.old = self._shorten_reported(e.old)
            e.new = self._shorten_reported(e.new)
            raise

    # ------------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------------

    def open(self, name: str) -> File:
        """Open name within the sub-view."""
        full = self._full_name("open", name)
        with self._fixed_errors():
            return self._fsys.open(full)

    def stat(self, name: str) -> FileInfo:
        """Describe name within the sub-view."""
        full = self._full_name("stat", name)
        with self._fixed_errors():
            return core.stat(self._fsys, full)

    def lstat(self, name: str) -> FileInfo:
        """Describe name without following a final symbolic link."""
        full = self._full_name("lstat", name)
        with self._fixed_errors():
            return ops.lstat(self._fsys, full)

    def read_dir(self, name: str) -> list[FileInfo]:
        """List the directory name within the sub-view."""
        full = self._full_name("read", name)
        with self._fixed_errors():
            return core.read_dir(self._fsys, full)

    def read_file(self, name: str) -> bytes:
        """Return the contents of name within the sub-view."""
        full = self._full_name("read", name)
        with self._fixed_errors():
            return core.read_file(self._fsys, full)

    def glob(self, pattern: str) -> list[str]:
        """Return the names within the sub-view matching pattern.

        Raises:
            PathError: INVALID naming the offending result when the parent
                returns a name outside this view's root.
        """
        check_path("glob", pattern)
        if pattern == ".":
            return ["."]

        with self._fixed_errors():
            names = core.glob(self._fsys, f"{self._root}/{pattern}")

        shortened = []
        for name in names:
            short = shorten(self._root, name)
            if short is None:
                raise PathError("glob", name, ErrorKind.INVALID)
            shortened.append(short)
        return shortened

    def readlink(self, name: str) -> str:
        """Return the destination of a symbolic link, relative to this view when possible."""
        full = self._full_name("readlink", name)
        with self._fixed_errors():
            target = ops.readlink(self._fsys, full)
        short = shorten(self._root, target)
        return target if short is None else short

    def same_file(self, fi1: FileInfo, fi2: FileInfo) -> bool:
        """Report whether fi1 and fi2 describe the same file."""
        return ops.same_file(self._fsys, fi1, fi2)

    def sub(self, root: str) -> FS:
        """Return a view of a subtree of this view, rooted directly on the parent."""
        if root in ("", "."):
            return self
        if not valid_path(root):
            raise PathError("sub", root, ErrorKind.INVALID)
        return SubView(self._fsys, join_path(self._root, root))

    # ------------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------------

    def open_file(self, name: str, flag: int, perm: int) -> File:
        """Open name within the sub-view with os.O_* flags."""
        full = self._full_name("open", name)
        with self._fixed_errors():
            return ops.open_file(self._fsys, full, flag, perm)

    def mkdir(self, name: str, perm: int) -> None:
        """Create the directory name within the sub-view."""
        full = self._full_name("mkdir", name)
        with self._fixed_errors():
            ops.mkdir(self._fsys, full, perm)

    def mkdir_all(self, path: str, perm: int) -> None:
        """Create path and any missing parents within the sub-view."""
        full = join_path(self._root, clean_dir_path("mkdir", path))
        with self._fixed_errors():
            tree.mkdir_all(self._fsys, full, perm)

    def remove(self, name: str) -> None:
        """Remove name within the sub-view."""
        full = self._full_name("remove", name)
        with self._fixed_errors():
            ops.remove(self._fsys, full)

    def remove_all(self, path: str) -> None:
        """Remove path and its children within the sub-view."""
        full = self._full_name("remove", path)
        with self._fixed_errors():
            tree.remove_all(self._fsys, full)

    def rename(self, oldpath: str, newpath: str) -> None:
        """Rename oldpath to newpath, both within the sub-view."""
        old_full, new_full = self._full_pair("rename", oldpath, newpath)
        with self._fixed_errors():
            ops.rename(self._fsys, old_full, new_full)

    def symlink(self, oldname: str, newname: str) -> None:
        """Create newname as a symbolic link to oldname, both within the sub-view."""
        old_full, new_full = self._full_pair("symlink", oldname, newname)
        with self._fixed_errors():
            ops.symlink(self._fsys, old_full, new_full)

    def link(self, oldname: str, newname: str) -> None:
        """Create newname as a hard link to oldname, both within the sub-view."""
        old_full, new_full = self._full_pair("link", oldname, newname)
        with self._fixed_errors():
            ops.link(self._fsys, old_full, new_full)

    def truncate(self, name: str, size: int) -> None:
        """Change the size of name within the sub-view."""
        full = self._full_name("truncate", name)
        with self._fixed_errors():
            ops.truncate(self._fsys, full, size)

    def chmod(self, name: str, mode: int) -> None:
        """Change the mode of name within the sub-view."""
        full = self._full_name("chmod", name)
        with self._fixed_errors():
            ops.chmod(self._fsys, full, mode)

    def chown(self, name: str, uid: int, gid: int) -> None:
        """Change the owner of name within the sub-view."""
        full = self._full_name("chown", name)
        with self._fixed_errors():
            ops.chown(self._fsys, full, uid, gid)

    def lchown(self, name: str, uid: int, gid: int) -> None:
        """Change the owner of name within the sub-view, not following a final link."""
        full = self._full_name("lchown", name)
        with self._fixed_errors():
            ops.lchown(self._fsys, full, uid, gid)

    def chtimes(self, name: str, atime: datetime, mtime: datetime) -> None:
        """Change the access and modification times of name within the sub-view."""
        full = self._full_name("chtimes", name)
        with self._fixed_errors():
            ops.chtimes(self._fsys, full, atime, mtime)
