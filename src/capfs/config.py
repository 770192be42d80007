"""User settings persisted as YAML."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# Default settings location
CONFIG_DIR = Path.home() / ".capfs"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
CONFIG_ENV = "CAPFS_CONFIG"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def parse_mode(value: Any) -> int:
    """Parse a permission value given as an int or an octal string.

    Args:
        value: An int, or a string such as "0755", "755" or "0o755".

    Returns:
        The permission bits.

    Raises:
        ValueError: If the value is not octal or has bits outside 0o7777.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid mode: {value!r}")
    if isinstance(value, str):
        text = value.strip().lower().removeprefix("0o")
        try:
            value = int(text, 8)
        except ValueError:
            raise ValueError(f"Invalid octal mode: {value!r}") from None
    if not isinstance(value, int) or not 0 <= value <= 0o7777:
        raise ValueError(f"Mode out of range: {value!r}")
    return value


class Settings(BaseModel):
    """CLI settings."""

    model_config = ConfigDict(validate_assignment=True)

    dir_perm: int = Field(default=0o755, description="Permission bits for new directories")
    file_perm: int = Field(default=0o644, description="Permission bits for new files")
    log_level: LogLevel = "WARNING"
    root: str | None = None

    @field_validator("dir_perm", "file_perm", mode="before")
    @classmethod
    def _octal(cls, value: Any) -> int:
        return parse_mode(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class ConfigManager:
    """Loads and saves Settings."""

    def __init__(self, config_file: Path | None = None) -> None:
        """Initialize the config manager.

        Args:
            config_file: Settings file. Defaults to $CAPFS_CONFIG, then
                ~/.capfs/config.yaml.

        Note:
            Prefer using factory methods `create()` or `create_default()` for construction.
        """
        env_file = os.environ.get(CONFIG_ENV)
        self.config_file = config_file or (Path(env_file) if env_file else CONFIG_FILE)

    @classmethod
    def create(cls, config_file: Path) -> ConfigManager:
        """Create a config manager for a specific settings file."""
        return cls(config_file=config_file)

    @classmethod
    def create_default(cls) -> ConfigManager:
        """Create a config manager for the default settings file."""
        return cls()

    def load(self) -> Settings:
        """Load settings from disk.

        Returns:
            Stored settings, or defaults when the file does not exist.

        Raises:
            ValueError: If the file is not valid YAML or holds invalid settings.
        """
        if not self.config_file.exists():
            return Settings()

        try:
            data = yaml.safe_load(self.config_file.read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid settings file {self.config_file}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid settings file {self.config_file}: expected a mapping")
        return Settings.model_validate(data)

    def save(self, settings: Settings) -> None:
        """Save settings to disk.

        Permission values are written as octal strings.
        """
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        data = settings.model_dump(exclude_none=True)
        data["dir_perm"] = f"{settings.dir_perm:04o}"
        data["file_perm"] = f"{settings.file_perm:04o}"
        self.config_file.write_text(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))
        logger.debug("Saved settings to %s", self.config_file)

    def set_value(self, key: str, value: str) -> Settings:
        """Validate and store a single setting.

        Args:
            key: Setting name; dashes are accepted in place of underscores.
            value: New value as text. An empty value clears ``root``.

        Returns:
            The updated settings.

        Raises:
            ValueError: If the key is unknown or the value is invalid.
        """
        field = key.replace("-", "_")
        if field not in Settings.model_fields:
            raise ValueError(f"Unknown configuration key: {key}")

        settings = self.load()
        new_value: str | None = value
        if field == "root" and not value:
            new_value = None
        try:
            setattr(settings, field, new_value)
        except ValidationError as e:
            raise ValueError(f"Invalid value for {key}: {value!r}") from e
        self.save(settings)
        return settings
