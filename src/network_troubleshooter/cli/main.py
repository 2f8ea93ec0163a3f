"""CLI entry point.

A bare invocation, or one that starts with an option, runs the
troubleshooter; ``--help`` and explicit subcommands pass through.
"""

from __future__ import annotations

import sys

from typer.main import get_command

from network_troubleshooter.cli.app import app

PROG_NAME = "network-troubleshooter"
_PASSTHROUGH = {"--help", "-h", "--install-completion", "--show-completion"}


def _route_arguments(argv: list[str]) -> list[str]:
    if not argv:
        return ["run"]
    first = argv[0]
    if first in _PASSTHROUGH:
        return argv
    if first.startswith("-"):
        return ["run", *argv]
    return argv


def main(argv: list[str] | None = None) -> None:
    """Invoke the Typer application.

    Parameters
    ----------
    argv:
        Optional list of arguments. When ``None`` the process arguments are used.
    """

    arguments = list(sys.argv[1:] if argv is None else argv)
    command = get_command(app)
    command.main(args=_route_arguments(arguments), prog_name=PROG_NAME)


__all__ = ["main"]
