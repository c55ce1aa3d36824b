"""Top-level entry point for build scripts."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from taskrun.builtin_tasks import build_builtin_tasks
from taskrun.cli_args import TaskArgs, parse_task_args
from taskrun.config import HELP_TASK, RunOptions, Settings
from taskrun.logger import LoggingContext, LogLevel
from taskrun.tasks import DispatchReport, Dispatcher, TaskContext, TaskRegistry
from taskrun.workdir import resolve_base_dir


class RunState(str, Enum):
    """Lifecycle of one ``run`` call."""

    INIT = "init"
    RESOLVING = "resolving"
    DISPATCHING = "dispatching"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class RunReport:
    """Summary returned by ``run``."""

    tasks: list[str]
    state: RunState
    dispatch: DispatchReport = field(default_factory=DispatchReport)

    @property
    def completed(self) -> list[str]:
        return self.dispatch.completed

    @property
    def missing(self) -> str | None:
        return self.dispatch.missing


def effective_level(task_args: TaskArgs, options: RunOptions, settings: Settings) -> str:
    """Command-line level wins, then the script's default, then the environment."""

    return task_args.level or options.log_level or settings.log_level or LogLevel.INFO.name.lower()


def select_tasks(task_args: TaskArgs, options: RunOptions) -> list[str]:
    if task_args.help:
        return [HELP_TASK]
    return list(task_args.tasks) or [options.default_task]


class TaskRunner:
    """Parses the command line once, scopes the working directory and dispatches tasks."""

    def __init__(
        self,
        options: RunOptions,
        *,
        logging_context: LoggingContext | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.options = options
        self.settings = settings or Settings.from_env()
        self.logging = logging_context or LoggingContext()
        self.state = RunState.INIT
        self._log = self.logging.get_logger("run")

    def run(self, argv: Sequence[str] | None = None) -> RunReport:
        self._transition(RunState.INIT)
        initial_cwd = Path.cwd()
        final_state = RunState.FAILED
        try:
            task_args = parse_task_args(argv)
            self.logging.level = effective_level(task_args, self.options, self.settings)

            self._transition(RunState.RESOLVING)
            names = select_tasks(task_args, self.options)
            base_dir = resolve_base_dir(self.options.meta, self.options.dir, log=self._log)
            registry = TaskRegistry(
                self.options.tasks,
                build_builtin_tasks(self.options, self.settings),
            )
            dispatcher = Dispatcher(registry, self.logging, on_missing=self.options.on_missing)

            self._transition(RunState.DISPATCHING)
            if base_dir is not None:
                os.chdir(base_dir)
            dispatched = dispatcher.dispatch(names, task_args.flags)
            final_state = RunState.DONE
        finally:
            self._transition(RunState.CLEANUP)
            os.chdir(initial_cwd)
            self._transition(final_state)

        return RunReport(tasks=names, state=final_state, dispatch=dispatched)

    def _transition(self, state: RunState) -> None:
        self.state = state
        self._log.trace("run state: %s", state.value)


def run(
    options: RunOptions,
    argv: Sequence[str] | None = None,
    *,
    logging_context: LoggingContext | None = None,
    settings: Settings | None = None,
) -> RunReport:
    """Run the tasks named on the command line (``sys.argv[1:]`` by default).

    Returns normally when every task succeeded or when a task name could not
    be resolved (logged, remaining tasks skipped). A failing task raises
    ``TaskError``; the working directory is restored either way.
    """

    runner = TaskRunner(options, logging_context=logging_context, settings=settings)
    return runner.run(argv)


def get_task_context(
    task_name: str = "default",
    argv: Sequence[str] | None = None,
    *,
    logging_context: LoggingContext | None = None,
) -> TaskContext:
    """Build a ``TaskContext`` for code that runs outside ``run``."""

    context = logging_context or LoggingContext()
    task_args = parse_task_args(argv)
    if task_args.level:
        context.level = task_args.level
    return TaskContext(
        name=task_name,
        args=task_args.flags,
        log=context.get_logger(f"task.{task_name}", relative=False),
        logging=context,
    )
