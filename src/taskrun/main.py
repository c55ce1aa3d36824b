"""CLI entrypoint: run a build script's tasks."""

import runpy
import sys
from pathlib import Path

import rich_click as click

from taskrun import __version__
from taskrun.errors import TaskRunError

click.rich_click.USE_MARKDOWN = True


@click.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.version_option(version=__version__, prog_name="taskrun")
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("script_args", nargs=-1, type=click.UNPROCESSED)
def taskrun(script: Path, script_args: tuple[str, ...]) -> None:
    """Run a build **SCRIPT** as `__main__`.

    Everything after SCRIPT (task names and flags such as `--debug`) is passed
    to the script unchanged, e.g. `taskrun build.py clean build --log=debug`.
    """

    script_path = script.resolve()
    saved_argv = sys.argv
    saved_path = list(sys.path)
    sys.argv = [str(script_path), *script_args]
    sys.path.insert(0, str(script_path.parent))
    try:
        runpy.run_path(str(script_path), run_name="__main__")
    except TaskRunError as error:
        raise click.ClickException(str(error)) from error
    finally:
        sys.argv = saved_argv
        sys.path[:] = saved_path


if __name__ == "__main__":  # pragma: no cover
    taskrun()
