"""Command-line parsing for build scripts.

Recognized flags (``--log``, the level shorthands and ``--help``) are parsed
by a ``click`` command that ignores everything else. The remaining tokens are
split into positional task names and a pass-through flag mapping.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass, field

import click

from taskrun.errors import ConfigError
from taskrun.logger import LEVEL_NAMES

# Least to most verbose; when several are given the most verbose wins.
SHORTHAND_LEVELS: tuple[str, ...] = ("error", "warn", "info", "debug", "trace")


@dataclass(slots=True)
class TaskArgs:
    """Parsed command line for one run."""

    tasks: list[str] = field(default_factory=list)
    flags: dict[str, object] = field(default_factory=dict)
    level: str | None = None
    help: bool = False


def _flag_parser() -> click.Command:
    params: list[click.Parameter] = [
        click.Option(
            ["--log"],
            type=click.Choice(LEVEL_NAMES, case_sensitive=False),
            default=None,
        ),
        click.Option(["--help"], is_flag=True, default=False),
    ]
    params.extend(
        click.Option([f"--{name}"], is_flag=True, default=False) for name in SHORTHAND_LEVELS
    )
    return click.Command(
        "taskrun",
        params=params,
        add_help_option=False,
        context_settings={
            "ignore_unknown_options": True,
            "allow_extra_args": True,
            "allow_interspersed_args": True,
        },
    )


def parse_task_args(argv: Sequence[str] | None = None) -> TaskArgs:
    """Parse ``argv`` (default ``sys.argv[1:]``) into task names and flags."""

    tokens = list(sys.argv[1:] if argv is None else argv)
    trailing: list[str] = []
    if "--" in tokens:
        split_at = tokens.index("--")
        tokens, trailing = tokens[:split_at], tokens[split_at + 1 :]

    try:
        ctx = _flag_parser().make_context("taskrun", tokens)
    except click.ClickException as error:
        raise ConfigError(error.format_message()) from error

    positional, flags = _split_extras(ctx.args)
    positional.extend(trailing)

    level: str | None = None
    for name in SHORTHAND_LEVELS:
        if ctx.params[name]:
            flags[name] = True
            level = name
    if ctx.params["log"]:
        level = ctx.params["log"].lower()
        flags["log"] = level
    if ctx.params["help"]:
        flags["help"] = True

    return TaskArgs(tasks=positional, flags=flags, level=level, help=ctx.params["help"])


def _split_extras(tokens: Sequence[str]) -> tuple[list[str], dict[str, object]]:
    positional: list[str] = []
    flags: dict[str, object] = {}
    pending = list(tokens)
    pending.reverse()
    while pending:
        token = pending.pop()
        if token.startswith("--") and len(token) > 2:
            key, sep, value = token[2:].partition("=")
            if sep:
                flags[key] = value
            elif key.startswith("no-"):
                flags[key[3:]] = False
            elif pending and not pending[-1].startswith("-"):
                # `--key value` takes the next token unless it is another flag.
                flags[key] = pending.pop()
            else:
                flags[key] = True
        elif token.startswith("-") and token[1:2].isalpha():
            for letter in token[1:]:
                flags[letter] = True
        else:
            positional.append(token)
    return positional, flags
