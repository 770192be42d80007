"""Path validation shared by every dispatch function.

Paths are UTF-8, slash-separated and unrooted, like "x/y/z". They must not
contain an element that is ".", ".." or the empty string, except that the
root directory itself is named ".". Paths must not start or end with a
slash. Backslashes and colons are ordinary characters and never act as
separators.
"""

from __future__ import annotations

import posixpath

from capfs.errors import ErrorKind, PathError

__all__ = ["check_path", "clean_dir_path", "join_path", "valid_path"]


def valid_path(name: str) -> bool:
    """Report whether name is a valid path.

    Args:
        name: Candidate path.

    Returns:
        True if name may be passed to a filesystem operation.

    Example:
        >>> valid_path("x/y/z")
        True
        >>> valid_path("x/../y")
        False
    """
    if name == ".":
        return True
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return all(elem not in ("", ".", "..") for elem in name.split("/"))


def check_path(op: str, name: str) -> None:
    """Raise a PathError if name is not a valid path.

    Args:
        op: Operation name reported in the error.
        name: Path to check.

    Raises:
        PathError: With kind INVALID when the path is malformed.
    """
    if not valid_path(name):
        raise PathError(op, name, ErrorKind.INVALID)


def clean_dir_path(op: str, name: str) -> str:
    """Normalise a directory path for recursive creation.

    Trailing separators, repeated separators and "." elements are tolerated
    and removed, so "foo/bar/." names "foo/bar". ".." elements and rooted
    paths are still rejected.

    Args:
        op: Operation name reported in the error.
        name: Directory path to clean.

    Returns:
        The equivalent valid path.

    Raises:
        PathError: With kind INVALID when the path cannot be cleaned.
    """
    if not name or name.startswith("/") or ".." in name.split("/"):
        raise PathError(op, name, ErrorKind.INVALID)
    cleaned = posixpath.normpath(name)
    if not valid_path(cleaned):
        raise PathError(op, name, ErrorKind.INVALID)
    return cleaned


def join_path(*elems: str) -> str:
    """Join path elements and clean the result.

    Example:
        >>> join_path("sub", ".")
        'sub'
        >>> join_path(".", "x/y")
        'x/y'
    """
    return posixpath.normpath(posixpath.join(*elems))
