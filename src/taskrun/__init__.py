"""Minimal task runner for shell-style build scripts."""

from taskrun.__about__ import __version__
from taskrun.config import MissingTaskPolicy, RunOptions, Settings
from taskrun.errors import (
    CommandFailedError,
    ConfigError,
    ExecError,
    TaskError,
    TaskNotFoundError,
    TaskRunError,
)
from taskrun.executor import ExecRequest, SingleCommand, execute
from taskrun.logger import LoggingContext, LogLevel, TaskLogger
from taskrun.runner import RunReport, RunState, get_task_context, run
from taskrun.tasks import TaskContext, task

__all__ = [
    "CommandFailedError",
    "ConfigError",
    "ExecError",
    "ExecRequest",
    "LogLevel",
    "LoggingContext",
    "MissingTaskPolicy",
    "RunOptions",
    "RunReport",
    "RunState",
    "Settings",
    "SingleCommand",
    "TaskContext",
    "TaskError",
    "TaskLogger",
    "TaskNotFoundError",
    "TaskRunError",
    "__version__",
    "execute",
    "get_task_context",
    "run",
    "task",
]
