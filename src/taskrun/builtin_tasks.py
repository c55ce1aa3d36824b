"""Builtin tasks available to every build script."""

from __future__ import annotations

import shutil

import click

from taskrun.config import CACHE_CLEAR_TASK, HELP_TASK, RunOptions, Settings
from taskrun.tasks import NamedTasks, Task, TaskContext, describe_task, display_name, task

NAME_COLUMN_WIDTH = 25


def task_lines(tasks: NamedTasks) -> list[str]:
    """One padded ``name : description`` line per task, sorted by displayed name."""

    return [
        f"     {display_name(key):<{NAME_COLUMN_WIDTH}} : {describe_task(tasks[key])}"
        for key in sorted(tasks, key=lambda key: (display_name(key), key))
    ]


def build_builtin_tasks(options: RunOptions, settings: Settings) -> dict[str, Task]:
    """Create builtins bound to this run's options so ``_help`` can report them."""

    builtins: dict[str, Task] = {}

    @task(description=f"Clear the script cache in {settings.cache_dir}")
    def cache_clear(ctx: TaskContext) -> None:
        cache_dir = settings.cache_dir
        ctx.log.info("Deleting cache dir: '%s'", cache_dir)
        shutil.rmtree(cache_dir)

    @task(description="Print this help")
    def show_help(ctx: TaskContext) -> None:
        lines = ["Help:", "  User Tasks:"]
        lines.extend(task_lines(options.tasks))
        lines.append("  Builtin Tasks:")
        lines.extend(task_lines(builtins))
        lines.extend(
            [
                "  User supplied options:",
                f"      defaultTask: {options.default}",
                f"      dir: {options.dir}",
                f"      logLevel: {options.log_level}",
            ],
        )
        click.echo("\n".join(lines))

    builtins[CACHE_CLEAR_TASK] = cache_clear
    builtins[HELP_TASK] = show_help
    return builtins
