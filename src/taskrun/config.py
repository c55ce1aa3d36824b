"""Run options and environment-backed settings."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from taskrun.tasks import Task

HELP_TASK = "_help"
CACHE_CLEAR_TASK = "_cache_clear"
DEFAULT_TOOL_NAME = "taskrun"


class MissingTaskPolicy(str, Enum):
    """What to do when a requested task name cannot be resolved."""

    WARN = "warn"
    FAIL = "fail"


@dataclass(slots=True)
class Settings:
    """Process-level defaults read from the environment."""

    home: Path = field(default_factory=Path.home)
    tool_name: str = DEFAULT_TOOL_NAME
    log_level: str | None = None

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local use."""

        home = os.getenv("HOME")
        return cls(
            home=Path(home) if home else Path.home(),
            tool_name=os.getenv("TASKRUN_TOOL_NAME", DEFAULT_TOOL_NAME),
            log_level=os.getenv("TASKRUN_LOG_LEVEL") or None,
        )

    @property
    def cache_dir(self) -> Path:
        return self.home / ".cache" / self.tool_name


@dataclass(slots=True)
class RunOptions:
    """Options a build script passes to ``taskrun.run``."""

    tasks: Mapping[str, Task] = field(default_factory=dict)
    meta: str | os.PathLike[str] | None = None
    dir: str | os.PathLike[str] | None = None
    default: str | None = None
    log_level: str | None = None
    on_missing: MissingTaskPolicy = MissingTaskPolicy.WARN

    @property
    def default_task(self) -> str:
        return self.default or HELP_TASK
