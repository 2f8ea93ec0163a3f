"""Sequencing of a troubleshooting run.

``Start -> RunEndpointChecks -> {Summarize | RunTroubleshooting} -> Summarize -> Done``

The endpoint checks always all run. The troubleshooting battery runs when
any of them failed or when full diagnostics were requested.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from network_troubleshooter.application.checks import EndpointChecks
from network_troubleshooter.application.context import Clock, RunContext, create_run_context, utc_now
from network_troubleshooter.application.derived import DerivedChecks
from network_troubleshooter.application.verdicts import VerdictAggregator, VerdictListener
from network_troubleshooter.config.settings import RuntimeSettings
from network_troubleshooter.infrastructure.logging import BoundLogger
from network_troubleshooter.infrastructure.probe import ProbeExecutor, SubprocessProbeExecutor


class RunState(str, Enum):
    START = "start"
    RUN_ENDPOINT_CHECKS = "run_endpoint_checks"
    RUN_TROUBLESHOOTING = "run_troubleshooting"
    SUMMARIZE = "summarize"
    DONE = "done"


@dataclass
class TroubleshootReport:
    """Outcome of a troubleshooting run."""

    passed: bool
    self_test: bool
    actions: tuple[str, ...]
    warnings: tuple[str, ...]
    errors: tuple[str, ...]
    endpoint_results: dict[str, bool]
    troubleshooting_results: dict[str, Any] = field(default_factory=dict)
    failure_counts: dict[str, int] = field(default_factory=dict)
    states: tuple[RunState, ...] = ()
    latest_release: int | None = None
    installed_release: int | None = None
    clock_skew_seconds: float | None = None

    @property
    def troubleshooting_ran(self) -> bool:
        return RunState.RUN_TROUBLESHOOTING in self.states

    def exit_code(self) -> int:
        if self.passed or self.self_test:
            return 0
        return 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "pass" if self.passed else "fail",
            "self_test": self.self_test,
            "actions": list(self.actions),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "endpoint_checks": dict(self.endpoint_results),
            "troubleshooting": dict(self.troubleshooting_results),
            "failure_counts": dict(self.failure_counts),
            "latest_release": self.latest_release,
            "installed_release": self.installed_release,
            "clock_skew_seconds": self.clock_skew_seconds,
        }


class Troubleshooter:
    """Run the endpoint checks and, when needed, the troubleshooting battery."""

    def __init__(
        self,
        *,
        settings: RuntimeSettings,
        logger: BoundLogger,
        executor: ProbeExecutor | None = None,
        listener: VerdictListener | None = None,
        environ: Mapping[str, str] | None = None,
        clock: Clock = utc_now,
        context: RunContext | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._executor = executor or SubprocessProbeExecutor()
        self._listener = listener
        self._environ = environ
        self._clock = clock
        self._context = context
        self._states: list[RunState] = []

    def _enter(self, state: RunState) -> None:
        self._states.append(state)
        self._logger.debug("troubleshooter.state", state=state.value)

    def run(self) -> TroubleshootReport:
        self._states = []
        self._enter(RunState.START)
        context = self._context or create_run_context(self._settings, self._logger, clock=self._clock)
        aggregator = VerdictAggregator(self._listener)
        endpoints = EndpointChecks(
            context=context,
            aggregator=aggregator,
            executor=self._executor,
            logger=self._logger,
            environ=self._environ,
        )
        derived = DerivedChecks(
            endpoints=endpoints,
            context=context,
            aggregator=aggregator,
            logger=self._logger,
        )

        self._enter(RunState.RUN_ENDPOINT_CHECKS)
        endpoint_results: dict[str, bool] = {}
        for name, check in endpoints.primary_checks().items():
            endpoint_results[name] = check()

        all_passed = all(endpoint_results.values())
        troubleshooting: dict[str, Any] = {}
        if context.full or not all_passed:
            self._enter(RunState.RUN_TROUBLESHOOTING)
            troubleshooting = self._troubleshoot(endpoints, derived, endpoint_results)
        else:
            aggregator.info("Update content is reachable; skipping further troubleshooting")

        self._enter(RunState.SUMMARIZE)
        skew = context.clock_skew()
        report = TroubleshootReport(
            passed=aggregator.passed,
            self_test=context.self_test,
            actions=aggregator.actions,
            warnings=aggregator.warnings,
            errors=aggregator.errors,
            endpoint_results=endpoint_results,
            troubleshooting_results=troubleshooting,
            failure_counts=context.registry.snapshot(),
            latest_release=context.latest_release,
            installed_release=context.identity.installed_release,
            clock_skew_seconds=skew.total_seconds() if skew is not None else None,
        )
        self._enter(RunState.DONE)
        report.states = tuple(self._states)
        self._logger.info(
            "troubleshooter.finished",
            status="pass" if report.passed else "fail",
            errors=len(report.errors),
            warnings=len(report.warnings),
            actions=len(report.actions),
        )
        return report

    def _troubleshoot(
        self,
        endpoints: EndpointChecks,
        derived: DerivedChecks,
        endpoint_results: Mapping[str, bool],
    ) -> dict[str, Any]:
        results: dict[str, Any] = {
            "gateway": endpoints.gateway(),
            "dns": endpoints.dns(),
            "proxy_environment": endpoints.proxy_environment(),
            "proxy_necessity": derived.proxy_necessity(endpoint_results),
            "captive_portal": endpoints.captive_portal(),
            "wpad": endpoints.wpad(),
        }
        results["system_time"] = derived.system_time(
            https_ok=endpoint_results.get("primary_release", False),
            http_ok=endpoint_results.get("plain_http", False),
        )
        return results


def run_troubleshooter(
    settings: RuntimeSettings,
    logger: BoundLogger,
    *,
    executor: ProbeExecutor | None = None,
    listener: VerdictListener | None = None,
) -> TroubleshootReport:
    return Troubleshooter(
        settings=settings,
        logger=logger,
        executor=executor,
        listener=listener,
    ).run()


__all__ = [
    "RunState",
    "TroubleshootReport",
    "Troubleshooter",
    "run_troubleshooter",
]
