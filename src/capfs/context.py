"""Application context for dependency injection.

This module separates object creation from object use, so CLI commands can
be driven against an in-memory filesystem in tests.

The filesystem is typed with the ``FS`` Protocol rather than a concrete
class; commands reach optional capabilities through the dispatch functions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from capfs.config import ConfigManager, Settings
from capfs.protocols import FS


@dataclass
class AppContext:
    """Container for the services used by CLI commands.

    Tests construct AppContext directly, typically with a MemFS.
    """

    fsys: FS
    settings: Settings = field(default_factory=Settings)
    config: ConfigManager | None = None
    location: str = "."


def create_context(
    root: Path | None = None,
    sub_dir: str | None = None,
    config_file: Path | None = None,
) -> AppContext:
    """Factory for application dependencies.

    Args:
        root: Host directory to operate on. Defaults to the ``root`` setting,
            then the current directory.
        sub_dir: Optional directory inside root to operate through a sub-view.
        config_file: Override the settings file (for testing).

    Returns:
        Configured AppContext.

    Raises:
        ValueError: If the settings file is invalid.
        PathError: If sub_dir is not a valid path.
    """
    from capfs.dirfs import DirFS
    from capfs.sub import sub

    config = ConfigManager.create(config_file) if config_file else ConfigManager.create_default()
    settings = config.load()

    host_root = root or Path(settings.root or ".")
    fsys: FS = DirFS(host_root.expanduser().resolve())
    location = str(host_root)
    if sub_dir:
        fsys = sub(fsys, sub_dir)
        location = f"{location} [{sub_dir}]"

    return AppContext(fsys=fsys, settings=settings, config=config, location=location)
