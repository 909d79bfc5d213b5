"""
Engine settings.

Settings live in a YAML file (config/settings.yaml by default) under a
top-level `settings:` key. Anything not given there keeps its default.

Example:
    settings:
      strict_validation: false
      max_message_length: null
      log_preview_length: 100
      batch_workers: 4
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from loguru import logger

from .exceptions import ConfigError


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "settings.yaml"


@dataclass(frozen=True)
class EngineSettings:
    """Tunable parser behaviour."""

    # Treat every validator finding on a catalog match as blocking
    strict_validation: bool = False

    # Longer messages skip the templates and go straight to basic extraction.
    # None disables the limit.
    max_message_length: Optional[int] = None

    # How much of a message is echoed into log lines
    log_preview_length: int = 100

    # Threads used by parse_batch
    batch_workers: int = 4

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> 'EngineSettings':
        """Build settings from a mapping, ignoring unknown keys."""
        data = data or {}
        known = {f.name: f for f in fields(cls)}

        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown setting: {key}")
                continue
            values[key] = value

        settings = cls(**values)
        settings._check()
        return settings

    def _check(self) -> None:
        if not isinstance(self.strict_validation, bool):
            raise ConfigError("strict_validation must be true or false")
        for name in ('max_message_length', 'log_preview_length', 'batch_workers'):
            value = getattr(self, name)
            if value is None and name == 'max_message_length':
                continue
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")


class ConfigLoader:
    """
    Loads engine settings from YAML files.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config loader.

        Args:
            config_path: Path to settings.yaml
        """
        self.config_path = config_path
        self.config: dict = {}
        self.settings = EngineSettings()

        if config_path:
            self.load(config_path)

    def load(self, config_path: Path) -> EngineSettings:
        """
        Load settings from a YAML file.

        Raises:
            ConfigError: file cannot be read or holds invalid values
        """
        logger.info(f"Loading configuration from: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                self.config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config: {e}")
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

        if not isinstance(self.config, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

        section = self.config.get('settings', {})
        if not isinstance(section, dict):
            raise ConfigError("'settings' must be a mapping")

        try:
            self.settings = EngineSettings.from_dict(section)
        except TypeError as e:
            raise ConfigError(f"Invalid settings in {config_path}: {e}") from e

        self.config_path = config_path
        return self.settings


def load_settings(config_path: Optional[Path] = None) -> EngineSettings:
    """Load settings from a file, or the bundled defaults if none is given."""
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return EngineSettings()
        config_path = DEFAULT_CONFIG_PATH
    return ConfigLoader(config_path).settings
