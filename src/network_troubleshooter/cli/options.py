"""Typer option declarations and normalization helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Final

import typer

LOG_FORMAT_CHOICES: Final[set[str]] = {"text", "json"}
OUTPUT_FORMAT_CHOICES: Final[set[str]] = {"text", "json"}
LOG_LEVEL_SET: Final[set[str]] = {
    name.upper()
    for name in logging.getLevelNamesMapping()
    if isinstance(name, str) and not name.isdigit()
}

FullOption = Annotated[
    bool | None,
    typer.Option(
        "--full/--quick",
        help="Run the complete diagnostic battery even when update content is reachable",
        envvar="NETTROUBLE_FULL",
        show_envvar=True,
        rich_help_panel="Diagnostics",
    ),
]

SelfTestOption = Annotated[
    bool | None,
    typer.Option(
        "--self-test/--no-self-test",
        help=(
            "Exit successfully even when errors are found "
            "(for checking that required programs are installed)"
        ),
        envvar="NETTROUBLE_SELF_TEST",
        show_envvar=True,
        rich_help_panel="Diagnostics",
    ),
]

DebugOption = Annotated[
    bool | None,
    typer.Option(
        "--debug/--no-debug",
        help="Enable verbose logging of every probe",
        envvar="NETTROUBLE_DEBUG",
        show_envvar=True,
        rich_help_panel="Diagnostics",
    ),
]

OutputFormatOption = Annotated[
    str,
    typer.Option(
        "--output",
        help="Summary format (text or json)",
        rich_help_panel="Output",
    ),
]

ConfigPathOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="Path to a configuration TOML file to load",
        envvar="NETTROUBLE_CONFIG",
        show_envvar=True,
        rich_help_panel="Configuration",
    ),
]

LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Logging level (e.g. INFO, DEBUG)",
        envvar="NETTROUBLE_LOG_LEVEL",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogFormatOption = Annotated[
    str | None,
    typer.Option(
        "--log-format",
        help="Logging format (text or json)",
        envvar="NETTROUBLE_LOG_FORMAT",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogFileOption = Annotated[
    str | None,
    typer.Option(
        "--log-file",
        help="Path to a log file (use '-', none, stderr to disable)",
        envvar="NETTROUBLE_LOG_FILE",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]


def clean_string(value: str | None) -> str | None:
    """Normalize optional string input."""

    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def normalize_choice(value: str | None, *, choices: set[str], option: str) -> str | None:
    """Normalize a choice option, ensuring it is one of the allowed values."""

    cleaned = clean_string(value)
    if cleaned is None:
        return None
    normalized = cleaned.lower()
    if normalized not in choices:
        allowed = ", ".join(sorted(choices))
        raise typer.BadParameter(f"must be one of: {allowed}", param_hint=option)
    return normalized


def normalize_log_level(value: str | None) -> str | None:
    """Normalize the log level option."""

    cleaned = clean_string(value)
    if cleaned is None:
        return None
    upper = cleaned.upper()
    if (upper.isascii() and upper.isdigit()) or upper in LOG_LEVEL_SET:
        return upper
    raise typer.BadParameter(f"unknown log level {cleaned!r}", param_hint="--log-level")


__all__ = [
    "LOG_FORMAT_CHOICES",
    "OUTPUT_FORMAT_CHOICES",
    "LOG_LEVEL_SET",
    "FullOption",
    "SelfTestOption",
    "DebugOption",
    "OutputFormatOption",
    "ConfigPathOption",
    "LogLevelOption",
    "LogFormatOption",
    "LogFileOption",
    "clean_string",
    "normalize_choice",
    "normalize_log_level",
]
