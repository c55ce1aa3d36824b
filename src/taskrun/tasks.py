"""Task registry and sequential dispatcher."""

from __future__ import annotations

import asyncio
import inspect
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar, overload

from taskrun.config import MissingTaskPolicy
from taskrun.errors import TaskError, TaskNotFoundError
from taskrun.executor import CommandInput, ExecRequest, complete, execute
from taskrun.logger import LoggingContext, TaskLogger

TASK_PREFIX = "task_"
DESCRIPTION_ATTR = "__task_description__"

Task = Callable[["TaskContext"], Any] | Callable[[], Any]
NamedTasks = Mapping[str, Task]
F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True, slots=True)
class TaskContext:
    """Per-invocation arguments and logger handed to a task."""

    name: str
    args: dict[str, object]
    log: TaskLogger
    logging: LoggingContext

    def sh(  # noqa: PLR0913
        self,
        cmd: CommandInput | ExecRequest,
        *,
        dir: str | os.PathLike[str] | None = None,
        env: Mapping[str, str] | None = None,
        silent: bool | None = None,
        log_error: bool = True,
    ) -> str:
        """Run ``cmd`` through ``taskrun.executor.execute`` with this run's loggers."""

        return execute(
            cmd,
            dir=dir,
            env=env,
            silent=silent,
            log_error=log_error,
            log=self.logging.get_logger("exec"),
        )

    async def sh_async(  # noqa: PLR0913
        self,
        cmd: CommandInput | ExecRequest,
        *,
        dir: str | os.PathLike[str] | None = None,
        env: Mapping[str, str] | None = None,
        silent: bool | None = None,
        log_error: bool = True,
    ) -> str:
        """Awaitable ``sh`` for async tasks; the command runs off the event loop."""

        return await asyncio.to_thread(
            self.sh,
            cmd,
            dir=dir,
            env=env,
            silent=silent,
            log_error=log_error,
        )


@overload
def task(fn: F, /) -> F: ...


@overload
def task(*, description: str | None = None) -> Callable[[F], F]: ...


def task(fn: F | None = None, /, *, description: str | None = None) -> F | Callable[[F], F]:
    """Mark a function as a task, optionally with a help description.

    Without ``description`` the first docstring line is shown by ``_help``.
    """

    def decorate(func: F) -> F:
        if description is not None:
            setattr(func, DESCRIPTION_ATTR, description)
        return func

    if fn is not None:
        return decorate(fn)
    return decorate


def describe_task(fn: Task) -> str:
    """Explicit description if set, else the first docstring line, else empty."""

    description = getattr(fn, DESCRIPTION_ATTR, None)
    if description is not None:
        return str(description)
    doc = inspect.getdoc(fn)
    if not doc:
        return ""
    return doc.strip().splitlines()[0]


def display_name(key: str) -> str:
    return key.removeprefix(TASK_PREFIX)


def normalize_task_name(name: str) -> str:
    """CLI-style dashes map onto Python-style underscores."""

    return name.replace("-", "_")


def accepts_context(fn: Task) -> bool:
    """True when ``fn`` takes a positional argument for the ``TaskContext``."""

    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return True
    return any(
        param.kind
        in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        )
        for param in params
    )


@dataclass(frozen=True, slots=True)
class ResolvedTask:
    """A requested name bound to the registry entry that serves it."""

    name: str
    key: str
    fn: Task
    builtin: bool


@dataclass(slots=True)
class TaskOutcome:
    """Result of one task invocation."""

    name: str
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class DispatchReport:
    """What a dispatch batch did before it finished or stopped."""

    requested: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    missing: str | None = None


class TaskRegistry:
    """User and builtin tasks with fixed lookup precedence."""

    def __init__(self, user_tasks: NamedTasks, builtin_tasks: NamedTasks | None = None) -> None:
        self.user_tasks = user_tasks
        self.builtin_tasks = builtin_tasks or {}

    def resolve(self, name: str) -> ResolvedTask | None:
        """Look up ``name``: exact user key, ``task_<name>`` user key, then builtins."""

        name = normalize_task_name(name)
        for key in (name, f"{TASK_PREFIX}{name}"):
            fn = self.user_tasks.get(key)
            if fn is not None:
                return ResolvedTask(name=name, key=key, fn=fn, builtin=False)
        fn = self.builtin_tasks.get(name)
        if fn is not None:
            return ResolvedTask(name=name, key=name, fn=fn, builtin=True)
        return None


class Dispatcher:
    """Runs requested tasks one at a time and stops at the first failure."""

    def __init__(
        self,
        registry: TaskRegistry,
        logging_context: LoggingContext,
        *,
        on_missing: MissingTaskPolicy = MissingTaskPolicy.WARN,
    ) -> None:
        self.registry = registry
        self.logging = logging_context
        self.on_missing = on_missing
        self._log = logging_context.get_logger("run")

    def dispatch(self, names: Sequence[str], args: Mapping[str, object]) -> DispatchReport:
        report = DispatchReport(requested=list(names))
        for requested in names:
            resolved = self.registry.resolve(requested)
            if resolved is None:
                name = normalize_task_name(requested)
                report.missing = name
                self._log.error(
                    "could not find task function '%s'. Run '_help' to show available tasks",
                    name,
                )
                if self.on_missing is MissingTaskPolicy.FAIL:
                    raise TaskNotFoundError(name)
                return report

            self._log.debug("running task: '%s'", resolved.name)
            outcome = self.invoke(resolved, args)
            if not outcome.ok:
                self._log.error(
                    "Task '%s' threw an error: %s",
                    resolved.name,
                    outcome.error,
                    exc_info=outcome.error,
                )
                raise TaskError(resolved.name) from outcome.error
            report.completed.append(resolved.name)
        return report

    def context_for(self, name: str, args: Mapping[str, object]) -> TaskContext:
        return TaskContext(
            name=name,
            args=dict(args),
            log=self.logging.get_logger(f"task.{name}", relative=False),
            logging=self.logging,
        )

    def invoke(self, resolved: ResolvedTask, args: Mapping[str, object]) -> TaskOutcome:
        """Call one task and wait for it, including any awaitable it returns."""

        context = self.context_for(resolved.name, args)
        try:
            if accepts_context(resolved.fn):
                result = resolved.fn(context)  # type: ignore[call-arg]
            else:
                result = resolved.fn()  # type: ignore[call-arg]
            complete(result)
        except Exception as error:  # noqa: BLE001
            return TaskOutcome(name=resolved.name, error=error)
        return TaskOutcome(name=resolved.name)
