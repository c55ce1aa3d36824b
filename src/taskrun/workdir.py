"""Working-directory scoping helpers."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import unquote, urlparse

from taskrun.errors import ConfigError

logger = logging.getLogger(__name__)


@contextmanager
def pushd(path: str | os.PathLike[str] | None) -> Iterator[Path]:
    """Change into ``path`` for the duration of the block; ``None`` keeps the current dir.

    The previous working directory is restored on every exit path. Errors from
    the initial ``chdir`` propagate before the block runs.
    """

    original = Path.cwd()
    if path is None:
        yield original
        return

    os.chdir(path)
    try:
        yield Path.cwd()
    finally:
        os.chdir(original)


def script_dir(meta: str | os.PathLike[str]) -> Path:
    """Directory containing the calling script (``meta`` is usually its ``__file__``)."""

    text = os.fspath(meta)
    if text.startswith("file://"):
        text = unquote(urlparse(text).path)
    return Path(text).resolve().parent


def resolve_base_dir(
    meta: str | os.PathLike[str] | None,
    run_dir: str | os.PathLike[str] | None,
    log: logging.Logger | None = None,
) -> Path | None:
    """Resolve ``run_dir`` relative to the calling script; ``None`` when no dir is configured."""

    if not run_dir:
        return None
    if not meta:
        raise ConfigError(
            "No 'meta' (the calling script's __file__) set on RunOptions. "
            "It is required to resolve 'dir' for all path related operations.",
        )

    log = log or logger
    entry_dir = script_dir(meta)
    log.debug("entry script dir: %s", entry_dir)
    base_dir = entry_dir / run_dir
    log.debug("base dir: %s", base_dir)
    return base_dir
