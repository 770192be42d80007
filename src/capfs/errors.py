"""Error types for filesystem operations.

Every failure raised by the dispatch layer carries the operation name, the
path(s) involved and a cause drawn from the closed ``ErrorKind`` set, so
callers can test ``err.kind`` without caring whether a native capability
or a synthesized fallback produced the error.
"""

from __future__ import annotations

from enum import Enum

__all__ = ["ErrorKind", "FSError", "LinkError", "PathError"]


class ErrorKind(str, Enum):
    """Closed set of filesystem error causes."""

    NOT_EXIST = "file does not exist"
    EXIST = "file already exists"
    PERMISSION = "permission denied"
    INVALID = "invalid argument"
    NOT_DIR = "not a directory"
    NOT_EMPTY = "directory not empty"
    UNSUPPORTED = "operation not supported"


class FSError(Exception):
    """Base error for filesystem operations.

    Attributes:
        op: Name of the attempted operation (e.g. "mkdir").
        kind: Cause of the failure.
    """

    def __init__(self, op: str, kind: ErrorKind) -> None:
        super().__init__(op, kind)
        self.op = op
        self.kind = kind


class PathError(FSError):
    """An error tied to a single path."""

    def __init__(self, op: str, path: str, kind: ErrorKind) -> None:
        super().__init__(op, kind)
        self.path = path

    def __str__(self) -> str:
        return f"{self.op} {self.path}: {self.kind.value}"

    def __repr__(self) -> str:
        return f"PathError(op={self.op!r}, path={self.path!r}, kind={self.kind.name})"


class LinkError(FSError):
    """An error tied to a pair of paths (rename, link, symlink)."""

    def __init__(self, op: str, old: str, new: str, kind: ErrorKind) -> None:
        super().__init__(op, kind)
        self.old = old
        self.new = new

    def __str__(self) -> str:
        return f"{self.op} {self.old} {self.new}: {self.kind.value}"

    def __repr__(self) -> str:
        return (
            f"LinkError(op={self.op!r}, old={self.old!r}, new={self.new!r}, "
            f"kind={self.kind.name})"
        )
