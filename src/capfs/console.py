"""Rich-based output for the command-line interface."""

from __future__ import annotations

import stat as statmod

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from capfs.config import Settings
from capfs.types import FileInfo


def format_mode(mode: int) -> str:
    """Render a st_mode value like ``ls -l`` does, e.g. "drwxr-xr-x"."""
    return statmod.filemode(mode)


def format_size(size: int) -> str:
    """Render a byte count with a binary unit suffix."""
    if size < 1024:
        return f"{size}B"
    value = size / 1024
    for unit in ("K", "M", "G"):
        if value < 1024:
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{value:.1f}T"


class Reporter:
    """Terminal output for capfs commands."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the reporter.

        Args:
            console: Console to print to. Defaults to a new stdout console.
        """
        self.console = console or Console()

    def show_listing(self, name: str, entries: list[FileInfo], long: bool = False) -> None:
        """Display directory entries.

        Args:
            name: Directory that was listed.
            entries: Entries sorted by name.
            long: Show mode, size and modification time as a table.
        """
        if not entries:
            self.console.print(f"[yellow]{escape(name)} is empty[/yellow]")
            return

        if not long:
            for entry in entries:
                style = "bold blue" if entry.is_dir else "cyan" if entry.is_symlink else ""
                label = escape(entry.name) + ("/" if entry.is_dir else "")
                self.console.print(f"[{style}]{label}[/{style}]" if style else label)
            return

        table = Table(title=name)
        table.add_column("Mode")
        table.add_column("Size", justify="right")
        table.add_column("Modified")
        table.add_column("Name", style="cyan")
        for entry in entries:
            table.add_row(
                format_mode(entry.mode),
                format_size(entry.size),
                entry.mod_time.strftime("%Y-%m-%d %H:%M"),
                escape(entry.name),
            )
        self.console.print(table)

    def show_stat(self, name: str, info: FileInfo) -> None:
        """Display file metadata.

        Args:
            name: Path that was described.
            info: Its metadata.
        """
        table = Table(title=name, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Name", escape(info.name))
        table.add_row("Size", str(info.size))
        table.add_row("Mode", f"{format_mode(info.mode)} ({info.perm:04o})")
        table.add_row("Modified", info.mod_time.isoformat())
        uid = getattr(info.sys, "st_uid", getattr(info.sys, "uid", None))
        gid = getattr(info.sys, "st_gid", getattr(info.sys, "gid", None))
        if uid is not None:
            table.add_row("Owner", f"{uid}:{gid}")
        self.console.print(table)

    def show_names(self, names: list[str]) -> None:
        """Print one path per line."""
        for name in names:
            self.console.print(escape(name), highlight=False)

    def show_settings(self, settings: Settings, source: str) -> None:
        """Display the effective settings.

        Args:
            settings: Loaded settings.
            source: Where the settings were read from.
        """
        self.console.print("\n[bold]Configuration[/bold]")
        self.console.print(f"  Settings file: {escape(source)}")
        self.console.print(f"  Root: {escape(settings.root or '(current directory)')}")
        self.console.print(f"  Directory permissions: {settings.dir_perm:04o}")
        self.console.print(f"  File permissions: {settings.file_perm:04o}")
        self.console.print(f"  Log level: {settings.log_level}")

    def show_success(self, message: str) -> None:
        """Show success message.

        Args:
            message: Success message.
        """
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def show_error(self, message: str) -> None:
        """Show error message.

        Args:
            message: Error message.
        """
        self.console.print(f"[red]✗[/red] {escape(message)}")

    def show_warning(self, message: str) -> None:
        """Show warning message."""
        self.console.print(f"[yellow]![/yellow] {escape(message)}")

    def show_info(self, message: str) -> None:
        """Show info message."""
        self.console.print(f"[blue]i[/blue] {escape(message)}")
