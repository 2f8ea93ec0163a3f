from __future__ import annotations

import logging
from pathlib import Path

import pytest

from network_troubleshooter.config.settings import (
    LOG_FORMAT_TEXT,
    LoggingSettings,
    RuntimeSettings,
)
from network_troubleshooter.infrastructure.logging import configure_logging
from tests.support import make_settings


@pytest.fixture(autouse=True)
def _configure_structured_logging() -> None:
    """Install deterministic structured logging for every test."""

    configure_logging(
        LoggingSettings(
            level=logging.DEBUG,
            format=LOG_FORMAT_TEXT,
            file_path=None,
            max_bytes=1024,
            backup_count=1,
        )
    )


@pytest.fixture
def runtime_settings(tmp_path: Path) -> RuntimeSettings:
    return make_settings(tmp_path)
