"""Rich rendering of the live transcript and the final summary."""

from __future__ import annotations

import json

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from network_troubleshooter.application.orchestrator import TroubleshootReport
from network_troubleshooter.application.verdicts import Verdict, VerdictKind


class RichStyles:
    INFO = "dim"
    PASS = "green"
    WARNING = "yellow"
    ERROR = "bold red"
    ACTION = "cyan"


_LABELS: dict[VerdictKind, tuple[str, str]] = {
    VerdictKind.INFO: ("....", RichStyles.INFO),
    VerdictKind.PASS: ("PASS", RichStyles.PASS),
    VerdictKind.WARNING: ("WARN", RichStyles.WARNING),
    VerdictKind.ERROR: ("FAIL", RichStyles.ERROR),
    VerdictKind.ACTION: ("TODO", RichStyles.ACTION),
}


class TranscriptPrinter:
    """Verdict listener that prints each verdict as it is recorded."""

    def __init__(self, console: Console) -> None:
        self._console = console

    def __call__(self, verdict: Verdict) -> None:
        label, style = _LABELS[verdict.kind]
        line = Text()
        line.append(f"[{label}] ", style=style)
        line.append(verdict.message, style=RichStyles.INFO if verdict.kind is VerdictKind.INFO else None)
        self._console.print(line)


def _print_section(console: Console, title: str, messages: tuple[str, ...], style: str) -> None:
    if not messages:
        return
    console.print(Text(title, style=f"bold {style}"))
    for index, message in enumerate(messages, start=1):
        console.print(Text(f"  {index}. {message}"))


def render_summary(console: Console, report: TroubleshootReport) -> None:
    console.print()
    _print_section(console, "Recommended actions", report.actions, RichStyles.ACTION)
    _print_section(console, "Warnings", report.warnings, RichStyles.WARNING)
    _print_section(console, "Errors", report.errors, RichStyles.ERROR)

    if report.passed:
        banner = Text("PASS: update content is reachable", style=f"bold {RichStyles.PASS}")
        border = RichStyles.PASS
    else:
        banner = Text("FAIL: problems were found", style=RichStyles.ERROR)
        border = "red"
    if report.self_test and not report.passed:
        banner.append("  (self-test: exiting successfully)", style=RichStyles.INFO)
    console.print(Panel(banner, border_style=border, expand=False))


def render_json(console: Console, report: TroubleshootReport) -> None:
    console.print_json(json.dumps(report.to_dict()))


__all__ = ["RichStyles", "TranscriptPrinter", "render_json", "render_summary"]
