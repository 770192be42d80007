"""CLI commands using Typer."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from capfs import __version__, core, ops, tree
from capfs.config import ConfigManager, parse_mode
from capfs.console import Reporter
from capfs.context import AppContext, create_context
from capfs.errors import ErrorKind, FSError, PathError
from capfs.types import O_CREAT, O_WRONLY

app = typer.Typer(
    name="capfs",
    help="Inspect and modify a directory tree through the capfs dispatch layer",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Configuration commands")

app.add_typer(config_app, name="config")

console = Console()
err_console = Console(stderr=True)
reporter = Reporter(console)

logger = logging.getLogger(__name__)


@dataclass
class GlobalOptions:
    """Options given before the command name."""

    root: Path | None = None
    sub_dir: str | None = None
    log_level: str | None = None


options = GlobalOptions()


def setup_logging(level: str) -> None:
    """Route capfs log records to stderr through rich at the given level."""
    package_logger = logging.getLogger("capfs")
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        handler = RichHandler(console=err_console, show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        package_logger.addHandler(handler)
    package_logger.setLevel(level.upper())


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"capfs v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    root: Annotated[
        Path | None,
        typer.Option("--root", "-C", help="Directory to operate on (default: settings root or cwd)"),
    ] = None,
    sub_dir: Annotated[
        str | None, typer.Option("--sub", help="Operate through a sub-view of this directory")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Inspect and modify a directory tree through the capfs dispatch layer."""
    options.root = root
    options.sub_dir = sub_dir
    options.log_level = log_level
    if log_level:
        setup_logging(log_level)


@contextmanager
def _reported() -> Iterator[None]:
    """Render filesystem and settings errors as one line and exit with status 1."""
    try:
        yield
    except (FSError, ValueError) as e:
        reporter.show_error(str(e))
        raise typer.Exit(1) from e
    except OSError as e:
        logger.debug("Unmapped host error", exc_info=True)
        reporter.show_error(f"{e.filename or ''}: {e.strerror or e}")
        raise typer.Exit(1) from e


def _get_context(context: AppContext | None) -> AppContext:
    """Return the injected context or build one from the global options."""
    if context is not None:
        return context
    with _reported():
        ctx = create_context(options.root, options.sub_dir)
    if not options.log_level:
        setup_logging(ctx.settings.log_level)
    return ctx


# ============================================================================
# Read Commands
# ============================================================================


@app.command("ls")
def ls(
    path: Annotated[str, typer.Argument(help="Directory to list")] = ".",
    long: Annotated[bool, typer.Option("--long", "-l", help="Show mode, size and time")] = False,
    _context=None,
) -> None:
    """List a directory."""
    ctx = _get_context(_context)
    with _reported():
        entries = core.read_dir(ctx.fsys, path)
    reporter.show_listing(path, entries, long=long)


@app.command("cat")
def cat(
    paths: Annotated[list[str], typer.Argument(help="Files to print")],
    _context=None,
) -> None:
    """Print file contents."""
    ctx = _get_context(_context)
    with _reported():
        for path in paths:
            typer.echo(core.read_file(ctx.fsys, path), nl=False)


@app.command("stat")
def stat(
    path: Annotated[str, typer.Argument(help="File to describe")],
    no_follow: Annotated[
        bool, typer.Option("--no-follow", "-L", help="Describe a symbolic link itself")
    ] = False,
    _context=None,
) -> None:
    """Show file metadata."""
    ctx = _get_context(_context)
    with _reported():
        info = ops.lstat(ctx.fsys, path) if no_follow else core.stat(ctx.fsys, path)
    reporter.show_stat(path, info)


@app.command("glob")
def glob(
    pattern: Annotated[str, typer.Argument(help="Slash-separated pattern, e.g. 'src/*.py'")],
    _context=None,
) -> None:
    """List the names matching a pattern."""
    ctx = _get_context(_context)
    with _reported():
        names = core.glob(ctx.fsys, pattern)
    if not names:
        reporter.show_warning(f"No matches for '{pattern}'")
        return
    reporter.show_names(names)


@app.command("readlink")
def readlink(
    path: Annotated[str, typer.Argument(help="Symbolic link")],
    _context=None,
) -> None:
    """Print the destination of a symbolic link."""
    ctx = _get_context(_context)
    with _reported():
        target = ops.readlink(ctx.fsys, path)
    reporter.show_names([target])


# ============================================================================
# Write Commands
# ============================================================================


@app.command("mkdir")
def mkdir(
    paths: Annotated[list[str], typer.Argument(help="Directories to create")],
    parents: Annotated[
        bool, typer.Option("--parents", "-p", help="Create missing parents, no error if existing")
    ] = False,
    mode: Annotated[
        str | None, typer.Option("--mode", "-m", help="Octal permissions (default: settings)")
    ] = None,
    _context=None,
) -> None:
    """Create directories."""
    ctx = _get_context(_context)
    with _reported():
        perm = parse_mode(mode) if mode is not None else ctx.settings.dir_perm
        for path in paths:
            if parents:
                tree.mkdir_all(ctx.fsys, path, perm)
            else:
                ops.mkdir(ctx.fsys, path, perm)
            reporter.show_success(f"Created {path}")


@app.command("rm")
def rm(
    paths: Annotated[list[str], typer.Argument(help="Files or directories to remove")],
    recursive: Annotated[
        bool, typer.Option("--recursive", "-r", help="Remove directories and their contents")
    ] = False,
    _context=None,
) -> None:
    """Remove files or directories."""
    ctx = _get_context(_context)
    with _reported():
        for path in paths:
            if recursive:
                tree.remove_all(ctx.fsys, path)
            else:
                ops.remove(ctx.fsys, path)
            reporter.show_success(f"Removed {path}")


@app.command("mv")
def mv(
    source: Annotated[str, typer.Argument(help="Existing path")],
    dest: Annotated[str, typer.Argument(help="New path")],
    _context=None,
) -> None:
    """Rename a file or directory."""
    ctx = _get_context(_context)
    with _reported():
        ops.rename(ctx.fsys, source, dest)
    reporter.show_success(f"Renamed {source} to {dest}")


@app.command("ln")
def ln(
    target: Annotated[str, typer.Argument(help="Existing path")],
    link_name: Annotated[str, typer.Argument(help="Link to create")],
    symbolic: Annotated[
        bool, typer.Option("--symbolic", "-s", help="Create a symbolic link")
    ] = False,
    _context=None,
) -> None:
    """Create a hard or symbolic link."""
    ctx = _get_context(_context)
    with _reported():
        if symbolic:
            ops.symlink(ctx.fsys, target, link_name)
        else:
            ops.link(ctx.fsys, target, link_name)
    reporter.show_success(f"Linked {link_name} -> {target}")


@app.command("chmod")
def chmod(
    mode: Annotated[str, typer.Argument(help="Octal permissions, e.g. 0644")],
    paths: Annotated[list[str], typer.Argument(help="Files to change")],
    _context=None,
) -> None:
    """Change file permissions."""
    ctx = _get_context(_context)
    with _reported():
        perm = parse_mode(mode)
        for path in paths:
            ops.chmod(ctx.fsys, path, perm)
            reporter.show_success(f"Changed mode of {path} to {perm:04o}")


@app.command("chown")
def chown(
    paths: Annotated[list[str], typer.Argument(help="Files to change")],
    uid: Annotated[int, typer.Option("--uid", "-u", help="New user id (-1 keeps it)")] = -1,
    gid: Annotated[int, typer.Option("--gid", "-g", help="New group id (-1 keeps it)")] = -1,
    no_follow: Annotated[
        bool, typer.Option("--no-follow", "-h", help="Change a symbolic link itself")
    ] = False,
    _context=None,
) -> None:
    """Change file owner and group."""
    ctx = _get_context(_context)
    with _reported():
        for path in paths:
            if no_follow:
                ops.lchown(ctx.fsys, path, uid, gid)
            else:
                ops.chown(ctx.fsys, path, uid, gid)
            reporter.show_success(f"Changed owner of {path} to {uid}:{gid}")


def _exists(ctx: AppContext, path: str) -> bool:
    try:
        core.stat(ctx.fsys, path)
    except PathError as e:
        if e.kind is not ErrorKind.NOT_EXIST:
            raise
        return False
    return True


@app.command("touch")
def touch(
    paths: Annotated[list[str], typer.Argument(help="Files to create or update")],
    _context=None,
) -> None:
    """Create empty files or update their times."""
    ctx = _get_context(_context)
    now = datetime.now(timezone.utc)
    with _reported():
        for path in paths:
            if not _exists(ctx, path):
                flag = O_WRONLY | O_CREAT
                with core.closing(ops.open_file(ctx.fsys, path, flag, ctx.settings.file_perm), path):
                    pass
            try:
                ops.chtimes(ctx.fsys, path, now, now)
            except PathError as e:
                if e.kind is not ErrorKind.UNSUPPORTED:
                    raise
                logger.debug("touch %s: times not updated: %s", path, e)


@app.command("truncate")
def truncate(
    paths: Annotated[list[str], typer.Argument(help="Files to resize")],
    size: Annotated[int, typer.Option("--size", "-s", help="New size in bytes")] = 0,
    _context=None,
) -> None:
    """Shrink or extend files to a size."""
    ctx = _get_context(_context)
    with _reported():
        for path in paths:
            ops.truncate(ctx.fsys, path, size)
            reporter.show_success(f"Truncated {path} to {size} bytes")


# ============================================================================
# Config Commands
# ============================================================================


@config_app.command("show")
def config_show(
    _context=None,
) -> None:
    """Show current configuration."""
    ctx = _get_context(_context)
    config = ctx.config or ConfigManager.create_default()
    reporter.show_settings(ctx.settings, str(config.config_file))
    reporter.show_info(f"Operating on {ctx.location}")


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Configuration key")],
    value: Annotated[str, typer.Argument(help="Configuration value")],
    _context=None,
) -> None:
    """Set a configuration value."""
    ctx = _get_context(_context)
    config = ctx.config or ConfigManager.create_default()
    with _reported():
        ctx.settings = config.set_value(key, value)
    reporter.show_success(f"Set {key} to {value}")


if __name__ == "__main__":
    app()
