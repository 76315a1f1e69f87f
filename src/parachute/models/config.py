"""
Shutdown configuration model.

Loaded from the `shutdown:` section of a YAML file by ConfigManager, or
built directly in code.
"""

import signal
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Tuple

from parachute.lifecycle.errors import ConfigError
from parachute.models.enums import LogLevel
from parachute.runtime.runtime_info import RuntimeInfo

DEFAULT_TIMEOUT = 20.0
DEFAULT_SIGNALS = ("SIGTERM", "SIGINT", "SIGHUP")


@dataclass
class ShutdownConfig:
    """Configuration for graceful shutdown."""

    timeout: float = DEFAULT_TIMEOUT
    """Seconds to wait for exit tasks before forcing the exit"""

    signals: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_SIGNALS)
    """Signal names that start the shutdown sequence"""

    catch_uncaught_exceptions: bool = True
    catch_unhandled_rejections: bool = True
    catch_fatal_logs: bool = True

    log_level: str = "INFO"

    def __post_init__(self):
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            raise ConfigError(f"timeout must be a number, got {self.timeout!r}", "timeout")
        if self.timeout < 0:
            raise ConfigError(f"timeout must be >= 0, got {self.timeout}", "timeout")
        self.timeout = float(self.timeout)

        if isinstance(self.signals, str):
            self.signals = (self.signals,)
        self.signals = tuple(s.upper() for s in self.signals)
        for name in self.signals:
            if not name.startswith("SIG") or name.startswith("SIG_"):
                raise ConfigError(f"Unknown signal name: {name}", "signals")

        if self.log_level.upper() not in LogLevel.__members__:
            raise ConfigError(f"Unknown log level: {self.log_level}", "log_level")
        self.log_level = self.log_level.upper()

    @property
    def signal_numbers(self) -> List[signal.Signals]:
        """Configured signals available on this platform."""
        return RuntimeInfo.available_signals(self.signals)

    @property
    def level(self) -> LogLevel:
        return LogLevel[self.log_level]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShutdownConfig":
        """
        Build config from a plain dict (e.g. a parsed YAML section).

        Raises:
            ConfigError: Unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown shutdown option(s): {', '.join(sorted(unknown))}")

        values = dict(data)
        if "signals" in values and isinstance(values["signals"], list):
            values["signals"] = tuple(values["signals"])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["signals"] = list(self.signals)
        return data
