"""Shared data types for capfs."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from datetime import datetime
from typing import Any

__all__ = [
    "FileInfo",
    "MODE_PERM",
    "O_ACCMODE",
    "O_APPEND",
    "O_CREAT",
    "O_EXCL",
    "O_RDONLY",
    "O_RDWR",
    "O_TRUNC",
    "O_WRONLY",
]

# Unix rwxrwxrwx permission bits
MODE_PERM = 0o777

O_RDONLY = os.O_RDONLY
O_WRONLY = os.O_WRONLY
O_RDWR = os.O_RDWR
O_CREAT = os.O_CREAT
O_EXCL = os.O_EXCL
O_TRUNC = os.O_TRUNC
O_APPEND = os.O_APPEND
O_ACCMODE = O_RDONLY | O_WRONLY | O_RDWR


@dataclass(frozen=True)
class FileInfo:
    """Metadata describing a file, as returned by stat and directory listings.

    Attributes:
        name: Base name of the file ("." for a filesystem root).
        size: Length in bytes for regular files; implementation-defined otherwise.
        mode: st_mode style value: file type bits plus permission bits.
        mod_time: Modification time.
        sys: Implementation-specific payload (e.g. os.stat_result).
    """

    name: str
    size: int
    mode: int
    mod_time: datetime
    sys: Any = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.name:
            raise ValueError("name cannot be empty")
        if self.size < 0:
            raise ValueError("size cannot be negative")

    @property
    def is_dir(self) -> bool:
        """Report whether this describes a directory."""
        return stat.S_ISDIR(self.mode)

    @property
    def is_symlink(self) -> bool:
        """Report whether this describes a symbolic link."""
        return stat.S_ISLNK(self.mode)

    @property
    def perm(self) -> int:
        """Return the Unix permission bits."""
        return self.mode & MODE_PERM

    @property
    def type(self) -> int:
        """Return the file type bits."""
        return stat.S_IFMT(self.mode)
