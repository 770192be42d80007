"""Tests for context module."""

from __future__ import annotations

from pathlib import Path

import pytest

from capfs.config import ConfigManager, Settings
from capfs.context import AppContext, create_context
from capfs.dirfs import DirFS
from capfs.errors import PathError
from capfs.memfs import MemFS
from capfs.sub import SubView


class TestAppContext:
    """Tests for AppContext dataclass."""

    def test_create_with_filesystem(self) -> None:
        """Test creating context with only a filesystem."""
        fsys = MemFS()

        ctx = AppContext(fsys=fsys)

        assert ctx.fsys is fsys
        assert ctx.settings == Settings()
        assert ctx.config is None
        assert ctx.location == "."


class TestCreateContext:
    """Tests for create_context factory function."""

    def test_explicit_root(self, tmp_path: Path) -> None:
        """Test the given root becomes the DirFS root."""
        ctx = create_context(root=tmp_path, config_file=tmp_path / "config.yaml")

        assert isinstance(ctx.fsys, DirFS)
        assert ctx.fsys.root == str(tmp_path.resolve())
        assert isinstance(ctx.config, ConfigManager)

    def test_root_from_settings(self, tmp_path: Path) -> None:
        """Test the settings root is used when no root is given."""
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        config_file = tmp_path / "config.yaml"
        ConfigManager.create(config_file).save(Settings(root=str(data_dir), dir_perm=0o700))

        ctx = create_context(config_file=config_file)

        assert isinstance(ctx.fsys, DirFS)
        assert ctx.fsys.root == str(data_dir.resolve())
        assert ctx.settings.dir_perm == 0o700

    def test_sub_dir(self, tmp_path: Path) -> None:
        """Test a sub directory wraps the root in a sub-view."""
        (tmp_path / "inner").mkdir()
        (tmp_path / "inner" / "f.txt").write_text("x")

        ctx = create_context(root=tmp_path, sub_dir="inner", config_file=tmp_path / "c.yaml")

        assert isinstance(ctx.fsys, SubView)
        assert ctx.fsys.read_file("f.txt") == b"x"
        assert ctx.location.endswith("[inner]")

    def test_invalid_sub_dir(self, tmp_path: Path) -> None:
        """Test invalid sub directories are rejected."""
        with pytest.raises(PathError):
            create_context(root=tmp_path, sub_dir="../up", config_file=tmp_path / "c.yaml")
