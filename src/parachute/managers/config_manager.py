"""
Config Manager

Loads ShutdownConfig from the `shutdown:` section of a YAML file, falling
back to the packaged factory defaults when the file is missing or broken.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional, Union

from parachute.lifecycle.errors import ConfigError
from parachute.models.config import ShutdownConfig
from parachute.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.CONFIG)

FACTORY_DEFAULTS = Path(__file__).parent.parent / "config" / "factory_defaults.yaml"

PathLike = Union[str, Path]


class ConfigManager:
    """
    Shutdown configuration loader

    Example:
        config = ConfigManager("config/service.yaml").load()
        coordinator = ShutdownCoordinator(config)

    YAML layout:
        shutdown:
          timeout: 20
          signals: [SIGTERM, SIGINT, SIGHUP]
    """

    SECTION = "shutdown"

    def __init__(
        self,
        config_path: Optional[PathLike] = None,
        defaults_path: PathLike = FACTORY_DEFAULTS
    ):
        """
        Initialize ConfigManager

        Args:
            config_path: Path to YAML config (None = factory defaults only)
            defaults_path: Path to factory defaults fallback
        """
        self.config_path = Path(config_path) if config_path else None
        self.factory_defaults_path = Path(defaults_path)
        self.data: Dict[str, Any] = {}
        self.config: Optional[ShutdownConfig] = None

    def load(self) -> ShutdownConfig:
        """
        Load YAML configuration

        Process:
        1. Load config file, if one was given
        2. Fallback to factory defaults on failure
        3. Validate into ShutdownConfig

        Returns:
            Validated ShutdownConfig

        Raises:
            ConfigError: Factory defaults themselves are unusable
        """
        if self.config_path is not None:
            try:
                self.data = self._read_section(self.config_path)
                self.config = ShutdownConfig.from_dict(self.data)
                log.info(f"Loaded {self.config_path}", timeout=self.config.timeout)
                return self.config
            except Exception as ex:
                log.error(
                    f"Failed to load {self.config_path}",
                    error=str(ex),
                    error_type=type(ex).__name__
                )
                log.warn("Falling back to factory defaults")

        self.data = self._read_section(self.factory_defaults_path)
        self.config = ShutdownConfig.from_dict(self.data)
        return self.config

    def _read_section(self, path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f) or {}

        if not isinstance(document, dict):
            raise ConfigError(f"{path}: top level must be a mapping")

        section = document.get(self.SECTION, {}) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"{path}: '{self.SECTION}' must be a mapping", self.SECTION)
        return section


def load_config(path: Optional[PathLike] = None) -> ShutdownConfig:
    """Shortcut for ConfigManager(path).load()."""
    return ConfigManager(path).load()
