import sys
import traceback
from datetime import datetime
from typing import Callable, List, Optional, TextIO
from parachute.models.enums import LogLevel, LogCategory

# === ANSI COLORS ===
class Colors:
    """ANSI escape codes for colored terminal output"""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'
    WHITE = '\033[37m'

    BRIGHT_RED = '\033[91m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'
    BRIGHT_WHITE = '\033[97m'


CATEGORY_COLORS = {
    LogCategory.CONFIG: Colors.CYAN,
    LogCategory.SYSTEM: Colors.BRIGHT_WHITE,
    LogCategory.SIGNAL: Colors.BRIGHT_YELLOW,
    LogCategory.SHUTDOWN: Colors.BRIGHT_RED,
    LogCategory.LIFECYCLE: Colors.BRIGHT_CYAN,
    LogCategory.TASK: Colors.BRIGHT_BLUE,
    LogCategory.EVENT: Colors.BRIGHT_MAGENTA,
}

LEVEL_SYMBOLS = {
    LogLevel.DEBUG: '·',
    LogLevel.INFO: '✓',
    LogLevel.WARN: '⚠',
    LogLevel.ERROR: '✗',
    LogLevel.FATAL: '☠',
}

LEVEL_COLORS = {
    LogLevel.DEBUG: Colors.DIM,
    LogLevel.INFO: Colors.GREEN,
    LogLevel.WARN: Colors.YELLOW,
    LogLevel.ERROR: Colors.RED,
    LogLevel.FATAL: Colors.BOLD + Colors.RED,
}

FatalListener = Callable[[str, Optional[BaseException]], None]


# === CORE LOGGER ===
class Logger:
    """
    Structured logger with compact output format

    Format:
    [HH:MM:SS] CATEGORY · Message
               └─ Detail 1
               └─ Detail 2

    Example:
    [14:23:45] SHUTDOWN  ⚠ Finishing application execution
               └─ timeout: 20.0
    """

    def __init__(
        self,
        min_level: LogLevel = LogLevel.INFO,
        use_colors: bool = True,
        stream: Optional[TextIO] = None
    ):
        """
        Initialize logger

        Args:
            min_level: Minimum log level to display
            use_colors: Enable ANSI color codes (disable for file output)
            stream: Output stream (default: sys.stdout at write time)
        """
        self.min_level = min_level
        self.use_colors = use_colors
        self.stream = stream
        self._level_priority = {
            LogLevel.DEBUG: 0,
            LogLevel.INFO: 1,
            LogLevel.WARN: 2,
            LogLevel.ERROR: 3,
            LogLevel.FATAL: 4,
        }
        self._fatal_listeners: List[FatalListener] = []

    def _should_log(self, level: LogLevel) -> bool:
        """Check if message should be logged based on level"""
        return self._level_priority[level] >= self._level_priority[self.min_level]

    def _colorize(self, text: str, color: str) -> str:
        """Apply color to text if colors enabled"""
        if not self.use_colors:
            return text
        return f"{color}{text}{Colors.RESET}"

    def _format_timestamp(self) -> str:
        """Format current time as [HH:MM:SS]"""
        return datetime.now().strftime('[%H:%M:%S]')

    def _format_category(self, category: LogCategory) -> str:
        """Format category name with color"""
        color = CATEGORY_COLORS.get(category, Colors.WHITE)
        return self._colorize(category.name.ljust(9), color)

    def _format_level_symbol(self, level: LogLevel) -> str:
        """Format level symbol with color"""
        symbol = LEVEL_SYMBOLS.get(level, '·')
        return self._colorize(symbol, LEVEL_COLORS.get(level, Colors.WHITE))

    def _write(self, line: str) -> None:
        stream = self.stream or sys.stdout
        print(line, file=stream)

    def add_fatal_listener(self, listener: FatalListener) -> None:
        """
        Register a callback invoked after every FATAL log line.

        Args:
            listener: Called with (message, exception or None)
        """
        self._fatal_listeners.append(listener)

    def remove_fatal_listener(self, listener: FatalListener) -> None:
        if listener in self._fatal_listeners:
            self._fatal_listeners.remove(listener)

    def log(
        self,
        category: LogCategory,
        message: str,
        level: LogLevel = LogLevel.INFO,
        details: Optional[list] = None,
        exc_info: bool = False,
        **kwargs
    ):
        """
        Log a structured message

        Args:
            category: Log category (SHUTDOWN, TASK, etc.)
            message: Main message text
            level: Log level (DEBUG, INFO, WARN, ERROR, FATAL)
            details: List of detail strings to show below message
            exc_info: Append traceback of the exception being handled
            **kwargs: Additional key-value pairs to show as details

        Example:
            logger.log(
                LogCategory.TASK,
                "Running closing task",
                title="close database"
            )

            Output:
            [14:23:45] TASK      ✓ Running closing task
                       └─ title: close database
        """
        if not self._should_log(level):
            return

        # Build main line
        timestamp = self._format_timestamp()
        cat = self._format_category(category)
        sym = self._format_level_symbol(level)
        msg = self._colorize(message, LEVEL_COLORS.get(level, Colors.WHITE))

        self._write(f"{timestamp} {cat} {sym} {msg}")

        # Add kwargs as details
        all_details = list(details or [])
        for k, v in kwargs.items():
            all_details.append(f"{k}: {v}")

        if exc_info:
            exc = sys.exc_info()[1]
            if exc is not None:
                for line in traceback.format_exception(type(exc), exc, exc.__traceback__):
                    all_details.extend(line.rstrip().splitlines())

        # Print details with tree structure
        if all_details:
            indent = " " * 11
            for i, d in enumerate(all_details):
                # Last item gets different tree character
                tree = "└─" if i == len(all_details) - 1 else "├─"
                self._write(f"{indent}{self._colorize(tree, Colors.DIM)} {d}")

    # === Level helpers ===
    def debug(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.DEBUG, **kw)
    def info(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.INFO, **kw)
    def warn(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.WARN, **kw)
    def error(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.ERROR, **kw)

    def fatal(
        self,
        category: LogCategory,
        message: str,
        exception: Optional[BaseException] = None,
        **kw
    ):
        """
        Log an unrecoverable condition and notify fatal listeners.

        The shutdown coordinator listens here and starts a graceful exit.
        Fatal lines are always written, whatever the configured level.
        """
        if exception is not None:
            kw["exception"] = repr(exception)
        self.log(category, message, LogLevel.FATAL, **kw)

        for listener in list(self._fatal_listeners):
            listener(message, exception)

    # === Contextual logger creation ===
    def for_category(self, category: LogCategory) -> 'BoundLogger':
        """Return a contextual logger bound to a specific category."""
        return BoundLogger(self, category)


class BoundLogger:
    """Logger bound to a default category, with ability to override if needed."""

    def __init__(self, base: Logger, category: LogCategory):
        self._base = base
        self._category = category

    def log(self, message: str, level: LogLevel = LogLevel.INFO, category: Optional[LogCategory] = None, **kw):
        """Allows overriding category if necessary."""
        self._base.log(category or self._category, message, level, **kw)

    # Shortcut methods
    def debug(self, message: str, **kw): self.log(message, LogLevel.DEBUG, **kw)
    def info(self, message: str, **kw): self.log(message, LogLevel.INFO, **kw)
    def warn(self, message: str, **kw): self.log(message, LogLevel.WARN, **kw)
    def error(self, message: str, **kw): self.log(message, LogLevel.ERROR, **kw)

    def fatal(self, message: str, exception: Optional[BaseException] = None, **kw):
        self._base.fatal(self._category, message, exception=exception, **kw)

    def with_category(self, category: LogCategory) -> 'BoundLogger':
        """Create another bound logger from this one."""
        return BoundLogger(self._base, category)


# === Global instance helpers ===
_logger = Logger()

def get_logger() -> Logger:
    return _logger

def get_category_logger(category: LogCategory) -> BoundLogger:
    """Compatibility function: returns a logger bound to a specific category"""
    return _logger.for_category(category)

def configure_logger(
    min_level: LogLevel = LogLevel.INFO,
    use_colors: bool = True,
    stream: Optional[TextIO] = None
):
    """
    Configure the logger singleton (modify in-place, don't create new instance).

    Bound loggers and fatal listeners keep pointing at the same instance.
    """
    _logger.min_level = min_level
    _logger.use_colors = use_colors
    _logger.stream = stream
