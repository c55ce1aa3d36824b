"""Shared test fixtures."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from taskrun.config import Settings
from taskrun.logger import LoggingContext


class RecordingHandler(logging.Handler):
    """Collects records emitted through a ``LoggingContext``."""

    def __init__(self) -> None:
        super().__init__(level=logging.NOTSET)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self, levelno: int | None = None) -> list[str]:
        return [
            record.getMessage()
            for record in self.records
            if levelno is None or record.levelno == levelno
        ]


@pytest.fixture()
def recorder() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture()
def logging_context(recorder: RecordingHandler) -> LoggingContext:
    return LoggingContext(level="trace", handler=recorder)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the real home directory and environment."""
    return Settings(home=tmp_path / "home", tool_name="taskrun", log_level=None)
