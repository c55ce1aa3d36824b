"""Hierarchical console loggers with level inheritance.

Each run owns a ``LoggingContext``: a private ``logging.Manager`` with its own
root logger. Loggers created through it resolve their effective level the
standard-library way (own explicit level, else the nearest ancestor's), and
configuring one context never touches the process-global logging tree.
"""

from __future__ import annotations

import logging
import sys
from enum import IntEnum

DEFAULT_ROOT_NAME = "taskrun"
CONSOLE_FORMAT = "[%(level_label)s] %(name)s - %(message)s"


class LogLevel(IntEnum):
    """Supported log levels, mapped onto stdlib numeric levels."""

    TRACE = 5
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR
    FATAL = logging.CRITICAL
    OFF = logging.CRITICAL + 10


LEVEL_NAMES: tuple[str, ...] = tuple(level.name.lower() for level in LogLevel)

_LEVEL_LABELS = {
    LogLevel.TRACE: "TRACE",
    LogLevel.DEBUG: "DEBUG",
    LogLevel.INFO: " INFO",
    LogLevel.WARN: " WARN",
    LogLevel.ERROR: "ERROR",
    LogLevel.FATAL: "FATAL",
}


def parse_level(
    value: str | LogLevel | None,
    default: LogLevel = LogLevel.INFO,
) -> LogLevel:
    """Map a case-insensitive level name to ``LogLevel``; unknown names give ``default``."""

    if isinstance(value, LogLevel):
        return value
    name = (value or "").strip().upper()
    if name == "WARNING":
        name = "WARN"
    return LogLevel.__members__.get(name, default)


class TaskLogger(logging.Logger):
    """Logger with a ``trace`` level and child-logger helper."""

    def trace(self, msg: object, *args: object, **kwargs) -> None:
        if self.isEnabledFor(LogLevel.TRACE):
            self._log(LogLevel.TRACE, msg, args, **kwargs)

    @property
    def effective_level(self) -> LogLevel:
        return LogLevel(self.getEffectiveLevel())

    def get_logger(self, child_name: str, relative: bool = True) -> TaskLogger:
        """Return a logger below this one (``relative``) or a bare-named one in the same tree."""

        name = f"{self.name}.{child_name}" if relative else child_name
        return self.manager.getLogger(name)


class _ConsoleHandler(logging.StreamHandler):
    """Write below-ERROR records to stdout and the rest to stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        # Streams are looked up per record so redirected sys.stdout/sys.stderr are honoured.
        self.stream = sys.stderr if record.levelno >= LogLevel.ERROR else sys.stdout
        super().emit(record)


class _LevelLabelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.level_label = _LEVEL_LABELS.get(record.levelno, record.levelname)
        return super().format(record)


class LoggingContext:
    """Explicit logging configuration for one run."""

    def __init__(
        self,
        root_name: str = DEFAULT_ROOT_NAME,
        level: str | LogLevel = LogLevel.INFO,
        handler: logging.Handler | None = None,
    ) -> None:
        self.root_name = root_name
        self._root = TaskLogger(root_name, parse_level(level))
        self._manager = logging.Manager(self._root)
        self._manager.setLoggerClass(TaskLogger)
        # Cache invalidation on setLevel goes through the logger's manager.
        self._root.manager = self._manager

        if handler is None:
            handler = _ConsoleHandler()
            handler.setFormatter(_LevelLabelFormatter(CONSOLE_FORMAT))
        self._root.addHandler(handler)

    @property
    def root(self) -> TaskLogger:
        return self._root

    @property
    def level(self) -> LogLevel:
        return self._root.effective_level

    @level.setter
    def level(self, value: str | LogLevel | None) -> None:
        self._root.setLevel(parse_level(value))

    def get_logger(self, name: str, relative: bool = True) -> TaskLogger:
        """Return ``<root_name>.<name>``, or the bare ``name`` when ``relative`` is false."""

        if name.endswith(".py"):
            name = name[: -len(".py")]
        return self._root.get_logger(name, relative=relative)

    def script_logger(self) -> TaskLogger:
        return self.get_logger("script")
