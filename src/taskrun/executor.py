"""Run external commands or functions with optional working-directory scoping."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import os
import subprocess
from collections.abc import Awaitable, Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any

import click

from taskrun.errors import CommandFailedError, ExecError
from taskrun.logger import LogLevel
from taskrun.workdir import pushd

logger = logging.getLogger(__name__)

# Exit code reported when the executable cannot be found, as POSIX shells do.
COMMAND_NOT_FOUND_EXIT_CODE = 127


@dataclass(frozen=True, slots=True)
class SingleCommand:
    """One external process, given as an argv vector."""

    argv: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.argv:
            raise ValueError("Command is empty.")

    def __str__(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True, slots=True)
class CommandSequence:
    """External processes run one after another, stopping at the first failure."""

    commands: tuple[SingleCommand, ...]


@dataclass(frozen=True, slots=True)
class FunctionCommand:
    """In-process zero-argument callable; coroutine results are awaited."""

    fn: Callable[[], Any]


Command = SingleCommand | CommandSequence | FunctionCommand
CommandInput = str | Sequence[str | Sequence[str]] | Callable[[], Any] | Command


@dataclass(frozen=True, slots=True)
class ExecRequest:
    """A command plus its execution options."""

    cmd: CommandInput
    dir: str | os.PathLike[str] | None = None
    env: Mapping[str, str] | None = None
    silent: bool | None = None
    log_error: bool = True

    def describe(self) -> dict[str, object]:
        """JSON-friendly view used in error messages."""

        return {
            "cmd": describe_command(normalize_command(self.cmd)),
            "dir": os.fspath(self.dir) if self.dir is not None else None,
            "env": dict(self.env) if self.env is not None else None,
            "silent": self.silent,
            "log_error": self.log_error,
        }


@dataclass(slots=True)
class CommandResult:
    """Outcome of one external process."""

    command: SingleCommand
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def split_command(text: str) -> tuple[str, ...]:
    """Split on the space character only; quotes are not interpreted."""

    return tuple(part for part in text.split(" ") if part)


def normalize_command(cmd: CommandInput) -> Command:
    """Decide the command variant once.

    A string is one command split on spaces, a list or tuple is a sequence whose
    items are command strings or argv vectors, and a callable is a function
    command. Build ``SingleCommand`` directly for an explicit argv.
    """

    if isinstance(cmd, SingleCommand | CommandSequence | FunctionCommand):
        return cmd
    if isinstance(cmd, str):
        return SingleCommand(split_command(cmd))
    if callable(cmd):
        return FunctionCommand(cmd)
    if isinstance(cmd, Sequence):
        return CommandSequence(tuple(_normalize_sequence_item(item) for item in cmd))
    raise TypeError(f"Unsupported command specification: {cmd!r}")


def _normalize_sequence_item(item: str | Sequence[str] | SingleCommand) -> SingleCommand:
    if isinstance(item, SingleCommand):
        return item
    if isinstance(item, str):
        return SingleCommand(split_command(item))
    if isinstance(item, Sequence) and all(isinstance(part, str) for part in item):
        return SingleCommand(tuple(item))
    raise TypeError(f"Unsupported command in sequence: {item!r}")


def describe_command(command: Command) -> object:
    if isinstance(command, SingleCommand):
        return str(command)
    if isinstance(command, CommandSequence):
        return [str(item) for item in command.commands]
    return getattr(command.fn, "__qualname__", repr(command.fn))


def complete(result: object) -> object:
    """Drive an awaitable result to completion; plain values pass through.

    Inside a running event loop (an async task calling ``ctx.sh``) the
    awaitable is finished on a private loop in a worker thread, so the caller
    still gets the finished result back synchronously.
    """

    if not inspect.isawaitable(result):
        return result
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_await(result))
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="taskrun-await") as pool:
        return pool.submit(asyncio.run, _await(result)).result()


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


def execute(  # noqa: PLR0913
    request: CommandInput | ExecRequest,
    *,
    dir: str | os.PathLike[str] | None = None,
    env: Mapping[str, str] | None = None,
    silent: bool | None = None,
    log_error: bool = True,
    log: logging.Logger | None = None,
) -> str:
    """Run a command, a command sequence or a function and return captured stdout.

    Keyword options apply when ``request`` is not already an ``ExecRequest``.
    Output of external commands is echoed to the console unless ``silent`` is
    explicitly ``False``. Every failure, including an invalid command, is
    raised as ``ExecError`` with the underlying error as its cause. A ``dir``
    override is always reverted before returning.
    """

    if not isinstance(request, ExecRequest):
        request = ExecRequest(cmd=request, dir=dir, env=env, silent=silent, log_error=log_error)
    log = log or logger
    try:
        command = normalize_command(request.cmd)
    except (TypeError, ValueError) as error:
        if request.log_error:
            log.error("invalid command %r: %s", request.cmd, error)
        raise ExecError(f"Invalid command {request.cmd!r}, error {error}", cause=error) from error

    with ExitStack() as stack:
        try:
            stack.enter_context(pushd(request.dir))
        except OSError as error:
            raise ExecError(
                f"Error changing working dir. Dir='{os.fspath(request.dir)}', "
                f"cmd='{describe_command(command)}', err={error}",
                request=request.describe(),
                cause=error,
            ) from error

        try:
            return _run(command, request, log)
        except Exception as error:
            payload = json.dumps(request.describe(), default=str)
            if request.log_error:
                log.error("error while executing %s: %s", payload, error)
            raise ExecError(
                f"Error executing {payload}, error {error}",
                request=request.describe(),
                cause=error,
            ) from error


def _run(command: Command, request: ExecRequest, log: logging.Logger) -> str:
    if isinstance(command, FunctionCommand):
        log.log(LogLevel.TRACE, "exec (function) %s", describe_command(command))
        complete(command.fn())
        return ""

    env = {**os.environ, **request.env} if request.env else None
    if isinstance(command, SingleCommand):
        log.log(LogLevel.TRACE, "exec (string) %s", command)
        commands: Sequence[SingleCommand] = (command,)
    else:
        log.log(LogLevel.TRACE, "exec (sequence) %s", describe_command(command))
        commands = command.commands

    outputs: list[str] = []
    for item in commands:
        result = _spawn(item, env, log)
        if not result.ok:
            raise CommandFailedError(str(item), result.exit_code, result.stderr)
        outputs.append(result.stdout)

    output = "\n".join(outputs)
    if output and request.silent is not False:
        click.echo(output)
    return output


def _spawn(
    command: SingleCommand,
    env: Mapping[str, str] | None,
    log: logging.Logger,
) -> CommandResult:
    log.log(LogLevel.TRACE, "cmd=%s", list(command.argv))
    try:
        completed = subprocess.run(  # noqa: S603
            list(command.argv),
            env=env,
            capture_output=True,
            check=False,
        )
    except FileNotFoundError as error:
        return CommandResult(
            command=command,
            exit_code=COMMAND_NOT_FOUND_EXIT_CODE,
            stdout="",
            stderr=f"command not found: {command.argv[0]} ({error.strerror})",
        )
    return CommandResult(
        command=command,
        exit_code=completed.returncode,
        stdout=_decode(completed.stdout).rstrip("\r\n"),
        stderr=_decode(completed.stderr).rstrip("\r\n"),
    )


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")
