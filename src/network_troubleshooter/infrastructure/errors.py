"""Domain error types raised across the troubleshooter boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence


class ErrorCode(str, Enum):
    PROBE_LAUNCH_FAILED = "NETTROUBLE_PROBE_LAUNCH_FAILED"
    CONFIG_INVALID = "NETTROUBLE_CONFIG_INVALID"


@dataclass(frozen=True)
class ErrorContext:
    code: str
    command: tuple[str, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)


class TroubleshooterError(Exception):
    """Base class for errors that abort a troubleshooting run."""

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        user_message: str | None = None,
        hints: Sequence[str] = (),
        command: Sequence[str] = (),
        **details: Any,
    ) -> None:
        super().__init__(message)
        self.context = ErrorContext(code=code.value, command=tuple(command), details=dict(details))
        self.user_message = user_message or message
        self.hints = tuple(hints)

    @property
    def code(self) -> str:
        return self.context.code

    def log_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {"code": self.code}
        if self.context.command:
            fields["command"] = " ".join(self.context.command)
        fields.update(self.context.details)
        return fields


class ProbeLaunchError(TroubleshooterError):
    """A probe command could not be started at all (missing binary, no permission)."""

    def __init__(self, command: Sequence[str], reason: BaseException) -> None:
        program = command[0] if command else "<empty command>"
        super().__init__(
            f"Unable to launch probe command {program!r}: {reason}",
            code=ErrorCode.PROBE_LAUNCH_FAILED,
            user_message=(
                f"Required program '{program}' could not be executed; "
                "install it or fix its permissions and re-run the troubleshooter"
            ),
            hints=(f"Verify that '{program}' is installed and on PATH",),
            command=command,
            reason=str(reason),
        )
        self.program = program


class ConfigurationError(TroubleshooterError, ValueError):
    """Configuration that cannot be used even after falling back to defaults."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=ErrorCode.CONFIG_INVALID)


__all__ = [
    "ErrorCode",
    "ErrorContext",
    "TroubleshooterError",
    "ProbeLaunchError",
    "ConfigurationError",
]
