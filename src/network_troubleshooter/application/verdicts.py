"""Verdict collection, deduplication and overall pass/fail classification."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class VerdictKind(str, Enum):
    INFO = "info"
    PASS = "pass"
    WARNING = "warning"
    ERROR = "error"
    ACTION = "action"


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    message: str


VerdictListener = Callable[[Verdict], None]


class FailureRegistry:
    """Failure counts per protocol or category (``https``, ``http``, ``dns``)."""

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()

    def record(self, category: str) -> None:
        self._counts[category] += 1

    def count(self, category: str) -> int:
        return self._counts[category]

    def has_failures(self, category: str) -> bool:
        return self._counts[category] > 0

    def snapshot(self) -> dict[str, int]:
        return dict(self._counts)


class VerdictAggregator:
    """Collects verdicts from every check.

    Warnings, errors and actions are deduplicated by exact message text and
    kept in first-seen order. The listener sees each distinct verdict once,
    plus every pass and narrative line.
    """

    def __init__(self, listener: VerdictListener | None = None) -> None:
        self._listener = listener
        self._passes: list[str] = []
        self._sets: dict[VerdictKind, dict[str, None]] = {
            VerdictKind.WARNING: {},
            VerdictKind.ERROR: {},
            VerdictKind.ACTION: {},
        }

    def _emit(self, verdict: Verdict) -> None:
        if self._listener is not None:
            self._listener(verdict)

    def _record_unique(self, kind: VerdictKind, message: str) -> bool:
        bucket = self._sets[kind]
        if message in bucket:
            return False
        bucket[message] = None
        self._emit(Verdict(kind, message))
        return True

    def info(self, message: str) -> None:
        self._emit(Verdict(VerdictKind.INFO, message))

    def record_pass(self, message: str) -> None:
        self._passes.append(message)
        self._emit(Verdict(VerdictKind.PASS, message))

    def log_warning(self, message: str) -> bool:
        return self._record_unique(VerdictKind.WARNING, message)

    def log_error(self, message: str) -> bool:
        return self._record_unique(VerdictKind.ERROR, message)

    def add_action(self, message: str) -> bool:
        return self._record_unique(VerdictKind.ACTION, message)

    @property
    def passes(self) -> tuple[str, ...]:
        return tuple(self._passes)

    @property
    def warnings(self) -> tuple[str, ...]:
        return tuple(self._sets[VerdictKind.WARNING])

    @property
    def errors(self) -> tuple[str, ...]:
        return tuple(self._sets[VerdictKind.ERROR])

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(self._sets[VerdictKind.ACTION])

    @property
    def passed(self) -> bool:
        return not self._sets[VerdictKind.ERROR]


__all__ = [
    "FailureRegistry",
    "Verdict",
    "VerdictAggregator",
    "VerdictKind",
    "VerdictListener",
]
