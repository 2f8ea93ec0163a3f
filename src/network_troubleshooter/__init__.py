"""Top-level network troubleshooter package API."""

from network_troubleshooter.application.orchestrator import (
    RunState,
    TroubleshootReport,
    Troubleshooter,
    run_troubleshooter,
)

__all__ = [
    "RunState",
    "TroubleshootReport",
    "Troubleshooter",
    "run_troubleshooter",
]
