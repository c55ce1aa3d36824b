from __future__ import annotations

import asyncio
import logging
import os
import shutil
import sys
from pathlib import Path

import allure
import pytest

from taskrun.errors import CommandFailedError, ExecError
from taskrun.executor import (
    CommandSequence,
    ExecRequest,
    FunctionCommand,
    SingleCommand,
    execute,
    normalize_command,
    split_command,
)

pytestmark = [
    allure.epic("Task Runner"),
    allure.feature("Command Execution"),
]

needs_echo = pytest.mark.skipif(shutil.which("echo") is None, reason="echo not on PATH")


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def test_split_command_splits_on_spaces_only() -> None:
    assert split_command("git  commit -m 'a b'") == ("git", "commit", "-m", "'a", "b'")


def test_normalize_command_decides_variant_once() -> None:
    def fn() -> None:
        return None

    assert normalize_command("make all") == SingleCommand(("make", "all"))
    assert normalize_command(["make", ["git", "status"]]) == CommandSequence(
        (SingleCommand(("make",)), SingleCommand(("git", "status"))),
    )
    assert normalize_command(fn) == FunctionCommand(fn)
    explicit = SingleCommand(("git", "commit", "-m", "a b"))
    assert normalize_command(explicit) is explicit


def test_normalize_command_rejects_unknown_shapes() -> None:
    with pytest.raises(TypeError):
        normalize_command(42)  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="empty"):
        normalize_command("   ")


@needs_echo
def test_echo_returns_output_without_trailing_newline(capsys) -> None:
    assert execute("echo hello") == "hello"
    assert capsys.readouterr().out == "hello\n"


@needs_echo
@pytest.mark.parametrize(
    ("silent", "echoed"),
    [
        (None, "quiet\n"),
        (True, "quiet\n"),
        (False, ""),
    ],
)
def test_output_is_echoed_unless_silent_is_explicitly_false(silent, echoed, capsys) -> None:
    assert execute("echo quiet", silent=silent) == "quiet"
    assert capsys.readouterr().out == echoed


def test_empty_output_is_not_echoed(capsys) -> None:
    assert execute([_python("pass")]) == ""
    assert capsys.readouterr().out == ""


@pytest.mark.parametrize("cmd", ["", "   ", 42])
def test_invalid_command_is_raised_as_exec_error(cmd, logging_context, recorder) -> None:
    with pytest.raises(ExecError, match="Invalid command") as exc_info:
        execute(cmd, log=logging_context.get_logger("exec"))

    assert isinstance(exc_info.value.cause, TypeError | ValueError)
    assert exc_info.value.__cause__ is exc_info.value.cause
    assert len(recorder.messages(logging.ERROR)) == 1


def test_explicit_argv_keeps_spaces_inside_arguments() -> None:
    command = SingleCommand((sys.executable, "-c", "print('a b')"))

    assert execute(command) == "a b"


def test_env_augments_process_environment() -> None:
    code = "import os; print(os.environ['TASKRUN_TEST_VAR'], 'PATH' in os.environ)"

    output = execute([_python(code)], env={"TASKRUN_TEST_VAR": "42"})

    assert output == "42 True"
    assert "TASKRUN_TEST_VAR" not in os.environ


def test_sequence_joins_outputs_with_newlines() -> None:
    output = execute([_python("print('one')"), _python("print('two')")])

    assert output == "one\ntwo"


def test_sequence_stops_at_first_failure(tmp_path: Path, logging_context, recorder) -> None:
    first = tmp_path / "a.txt"
    last = tmp_path / "c.txt"
    commands = [
        _python(f"open({str(first)!r}, 'w').write('a'); print('a')"),
        _python("import sys; sys.stderr.write('boom'); sys.exit(3)"),
        _python(f"open({str(last)!r}, 'w').write('c')"),
    ]

    with pytest.raises(ExecError) as exc_info:
        execute(commands, log=logging_context.get_logger("exec"))

    cause = exc_info.value.cause
    assert isinstance(cause, CommandFailedError)
    assert exc_info.value.__cause__ is cause
    assert cause.exit_code == 3
    assert cause.stderr == "boom"
    assert "status code '3'" in str(exc_info.value)
    assert "boom" in str(exc_info.value)
    assert first.read_text() == "a"
    assert not last.exists()
    assert len(recorder.messages(logging.ERROR)) == 1


def test_log_error_false_skips_error_log(logging_context, recorder) -> None:
    with pytest.raises(ExecError):
        execute(
            ExecRequest(cmd=[_python("raise SystemExit(1)")], log_error=False),
            log=logging_context.get_logger("exec"),
        )

    assert recorder.messages(logging.ERROR) == []


def test_missing_executable_reports_not_found() -> None:
    with pytest.raises(ExecError) as exc_info:
        execute("taskrun-definitely-missing-binary --flag", log_error=False)

    cause = exc_info.value.cause
    assert isinstance(cause, CommandFailedError)
    assert cause.exit_code == 127
    assert "taskrun-definitely-missing-binary" in cause.stderr


def test_function_runs_in_dir_and_cwd_is_restored(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    target = tmp_path / "sub"
    target.mkdir()
    seen: list[Path] = []

    assert execute(lambda: seen.append(Path.cwd()), dir="sub") == ""

    assert seen == [target.resolve()]
    assert Path.cwd() == tmp_path.resolve()


def test_cwd_is_restored_after_failing_command(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "sub").mkdir()

    with pytest.raises(ExecError):
        execute([_python("raise SystemExit(2)")], dir="sub", log_error=False)

    assert Path.cwd() == tmp_path.resolve()


def test_command_runs_inside_dir_override(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    target = tmp_path / "work"
    target.mkdir()

    output = execute([_python("import os; print(os.getcwd())")], dir=target)

    assert Path(output) == target.resolve()
    assert Path.cwd() == tmp_path.resolve()


def test_bad_dir_fails_before_running(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    calls: list[str] = []

    with pytest.raises(ExecError, match="Error changing working dir") as exc_info:
        execute(lambda: calls.append("ran"), dir="missing")

    message = str(exc_info.value)
    assert "Dir='missing'" in message
    assert "cmd=" in message
    assert isinstance(exc_info.value.cause, OSError)
    assert calls == []
    assert Path.cwd() == tmp_path.resolve()


def test_function_failure_is_wrapped_with_request(logging_context, recorder) -> None:
    def explode() -> None:
        raise RuntimeError("kaput")

    with pytest.raises(ExecError, match="kaput") as exc_info:
        execute(explode, log=logging_context.get_logger("exec"))

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert exc_info.value.request is not None
    assert exc_info.value.request["cmd"].endswith("explode")
    assert len(recorder.messages(logging.ERROR)) == 1


def test_async_function_is_awaited() -> None:
    finished: list[str] = []

    async def work() -> None:
        await asyncio.sleep(0)
        finished.append("done")

    assert execute(work) == ""
    assert finished == ["done"]
