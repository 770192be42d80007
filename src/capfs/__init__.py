"""Capability-based filesystem abstraction.

A filesystem only has to implement ``open``. Every other operation is an
optional capability Protocol, reached through a dispatch function that uses
the capability when present and a generic fallback otherwise.
"""

__version__ = "0.1.0"

from capfs.core import glob, read_dir, read_file, stat, walk
from capfs.dirfs import DirFS
from capfs.errors import ErrorKind, FSError, LinkError, PathError
from capfs.memfs import MemFile, MemFS
from capfs.ops import (
    chmod,
    chown,
    chtimes,
    lchown,
    link,
    lstat,
    mkdir,
    open_file,
    readlink,
    remove,
    rename,
    same_file,
    symlink,
    truncate,
    write,
)
from capfs.protocols import FS, File
from capfs.sub import SubView, sub
from capfs.tree import mkdir_all, remove_all
from capfs.types import FileInfo
from capfs.validation import valid_path

__all__ = [
    "__version__",
    "DirFS",
    "ErrorKind",
    "FS",
    "FSError",
    "File",
    "FileInfo",
    "LinkError",
    "MemFS",
    "MemFile",
    "PathError",
    "SubView",
    "chmod",
    "chown",
    "chtimes",
    "glob",
    "lchown",
    "link",
    "lstat",
    "mkdir",
    "mkdir_all",
    "open_file",
    "read_dir",
    "read_file",
    "readlink",
    "remove",
    "remove_all",
    "rename",
    "same_file",
    "stat",
    "sub",
    "symlink",
    "truncate",
    "valid_path",
    "walk",
    "write",
]
