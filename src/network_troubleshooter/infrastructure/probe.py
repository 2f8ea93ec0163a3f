"""Probe execution: run an external command with a bounded wait.

The checks never talk to the network themselves. They hand an argv to a
:class:`ProbeExecutor` and interpret the :class:`ProbeResult` that comes back.
A nonzero exit status is an ordinary, expected outcome; only a command that
cannot be started at all raises (:class:`ProbeLaunchError`).
"""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from typing import Final, Protocol, Sequence

from network_troubleshooter.infrastructure.errors import ProbeLaunchError
from network_troubleshooter.infrastructure.logging import get_logger, log_probe_event

TIMEOUT_EXIT_CODE: Final = 124
# Probes carry their own timeout flags; the executor only steps in if they ignore them.
TIMEOUT_GRACE_SECONDS: Final = 5

_logger = get_logger("network_troubleshooter.probe")


@dataclass(frozen=True)
class ProbeResult:
    exit_code: int
    output: str
    timed_out: bool = False
    signaled: bool = False
    command: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.signaled


class ProbeExecutor(Protocol):
    def execute(self, command: Sequence[str], timeout: float) -> ProbeResult: ...


def format_command(command: Sequence[str]) -> str:
    return shlex.join(command)


def _decode(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class SubprocessProbeExecutor:
    """Run probes with :func:`subprocess.run`, stdout and stderr merged."""

    def __init__(self, *, grace_seconds: float = TIMEOUT_GRACE_SECONDS) -> None:
        self._grace_seconds = grace_seconds

    def execute(self, command: Sequence[str], timeout: float) -> ProbeResult:
        argv = tuple(command)
        rendered = format_command(argv)
        log_probe_event(_logger, "execute", command=rendered, timeout=timeout)
        try:
            completed = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=timeout + self._grace_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            log_probe_event(_logger, "timeout", command=rendered, timeout=timeout)
            return ProbeResult(
                exit_code=TIMEOUT_EXIT_CODE,
                output=_decode(exc.output),
                timed_out=True,
                command=argv,
            )
        except OSError as exc:
            raise ProbeLaunchError(argv, exc) from exc

        returncode = completed.returncode
        signaled = returncode < 0
        log_probe_event(
            _logger,
            "result",
            command=rendered,
            exit_code=returncode,
            signaled=signaled or None,
        )
        return ProbeResult(
            exit_code=returncode,
            output=completed.stdout or "",
            signaled=signaled,
            command=argv,
        )


__all__ = [
    "TIMEOUT_EXIT_CODE",
    "ProbeResult",
    "ProbeExecutor",
    "SubprocessProbeExecutor",
    "format_command",
]
