"""Exception types raised by taskrun."""

from __future__ import annotations


class TaskRunError(RuntimeError):
    """Base class for taskrun failures."""


class ConfigError(TaskRunError):
    """Invalid run options."""


class CommandFailedError(TaskRunError):
    """External command exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr: str) -> None:
        super().__init__(
            f"error while running '{command}', status code '{exit_code}', error '{stderr}'",
        )
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


class ExecError(TaskRunError):
    """Command execution failure with the original request attached."""

    def __init__(
        self,
        message: str,
        *,
        request: dict[str, object] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.cause = cause


class TaskError(TaskRunError):
    """A task raised; the original error is chained as ``__cause__``."""

    def __init__(self, task_name: str) -> None:
        super().__init__(f"Task '{task_name}' threw an error")
        self.task_name = task_name


class TaskNotFoundError(TaskRunError):
    """Requested task name is not registered (fail-fast policy only)."""

    def __init__(self, task_name: str) -> None:
        super().__init__(
            f"could not find task function '{task_name}'. Run '_help' to show available tasks",
        )
        self.task_name = task_name
