"""Scripted probe executor and canned probe outputs shared by the tests."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path

from network_troubleshooter.application.checks import EndpointChecks
from network_troubleshooter.application.context import InstallIdentity, RunContext
from network_troubleshooter.application.derived import DerivedChecks
from network_troubleshooter.application.verdicts import VerdictAggregator
from network_troubleshooter.config.constants import (
    DEFAULT_CAPTIVE_PORTAL_URL,
    DEFAULT_HTTP_REFERENCE_URL,
    DEFAULT_RELEASE_URL,
    DEFAULT_WPAD_URL,
)
from network_troubleshooter.config.settings import (
    PathSettings,
    RuntimeSettings,
)
from network_troubleshooter.infrastructure.logging import get_logger
from network_troubleshooter.infrastructure.probe import ProbeResult

HTTP_DATE = "Sun, 18 Oct 2026 12:00:00 GMT"


def http_output(
    status: int = 200,
    body: str = "",
    *,
    reason: str = "OK",
    headers: dict[str, str] | None = None,
) -> str:
    lines = [f"HTTP/1.1 {status} {reason}"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    return "\r\n".join(lines) + "\r\n\r\n" + body


def http_result(status: int = 200, body: str = "", **kwargs) -> ProbeResult:
    return ProbeResult(exit_code=0, output=http_output(status, body, **kwargs))


def exit_result(code: int, output: str = "") -> ProbeResult:
    return ProbeResult(exit_code=code, output=output)


def timeout_result() -> ProbeResult:
    return ProbeResult(exit_code=124, output="", timed_out=True)


def probe_key(command: Sequence[str], *, with_proxy: bool = False) -> str:
    """Stable lookup key for a probe: program plus target, optionally proxy mode."""

    argv = tuple(command)
    if argv[0] == "systemctl":
        return f"systemctl {argv[1]} {argv[-1]}"
    key = f"{argv[0]} {argv[-1]}"
    if with_proxy and argv[0] == "curl":
        if "--noproxy" in argv:
            key += " [noproxy]"
        elif "--proxy" in argv:
            key += f" [proxy={argv[argv.index('--proxy') + 1]}]"
    return key


class FakeProbeExecutor:
    """Scripted executor recording every command it is asked to run.

    ``responses`` maps a :func:`probe_key` (with or without the proxy suffix)
    to a result or a list of results consumed in order, the last one sticking.
    """

    def __init__(
        self,
        responses: dict[str, ProbeResult | list[ProbeResult]] | None = None,
        *,
        default: ProbeResult | None = None,
    ) -> None:
        self.responses: dict[str, ProbeResult | list[ProbeResult]] = dict(responses or {})
        self.default = default or ProbeResult(exit_code=0, output="")
        self.calls: list[tuple[str, ...]] = []
        self.timeouts: list[float] = []

    def execute(self, command: Sequence[str], timeout: float) -> ProbeResult:
        argv = tuple(command)
        self.calls.append(argv)
        self.timeouts.append(timeout)
        for key in (probe_key(argv, with_proxy=True), probe_key(argv)):
            if key not in self.responses:
                continue
            value = self.responses[key]
            if isinstance(value, list):
                result = value.pop(0) if len(value) > 1 else value[0]
            else:
                result = value
            return replace(result, command=argv)
        return replace(self.default, command=argv)

    def count(self, key: str) -> int:
        return sum(
            1
            for call in self.calls
            if key in (probe_key(call), probe_key(call, with_proxy=True))
        )


def healthy_responses(release: int = 12345) -> dict[str, ProbeResult | list[ProbeResult]]:
    return {
        f"curl {DEFAULT_RELEASE_URL}": http_result(
            200, f"{release}\n", headers={"Date": HTTP_DATE}
        ),
        f"curl {DEFAULT_HTTP_REFERENCE_URL}": http_result(
            200, "<html>hello</html>", headers={"Date": HTTP_DATE}
        ),
        f"curl {DEFAULT_CAPTIVE_PORTAL_URL}": http_result(204, reason="No Content"),
        f"curl {DEFAULT_WPAD_URL}": exit_result(6, "curl: (6) Could not resolve host: wpad"),
        "ping _gateway": exit_result(0, "1 packets transmitted, 1 received"),
        "dig cdn.download.clearlinux.org": exit_result(0, ";; ANSWER SECTION:"),
    }


def make_settings(tmp_path: Path, **overrides) -> RuntimeSettings:
    paths = PathSettings(
        os_release=tmp_path / "os-release",
        mirror_config=tmp_path / "mirror_versionurl",
        install_timestamp=tmp_path / "versionstamp",
        pac_cache=tmp_path / "wpad.dat",
    )
    return replace(RuntimeSettings(paths=paths), **overrides)


FIXED_NOW = datetime(2026, 10, 18, 12, 0, 30, tzinfo=timezone.utc)


@dataclass
class CheckHarness:
    checks: EndpointChecks
    derived: DerivedChecks
    context: RunContext
    aggregator: VerdictAggregator
    executor: FakeProbeExecutor


def build_checks(
    settings: RuntimeSettings,
    executor: FakeProbeExecutor,
    *,
    identity: InstallIdentity | None = None,
    environ: dict[str, str] | None = None,
    now: datetime = FIXED_NOW,
) -> CheckHarness:
    context = RunContext(
        settings=settings,
        identity=identity or InstallIdentity(),
        clock=lambda: now,
    )
    aggregator = VerdictAggregator()
    logger = get_logger("network_troubleshooter.test")
    checks = EndpointChecks(
        context=context,
        aggregator=aggregator,
        executor=executor,
        logger=logger,
        environ=environ or {},
    )
    derived = DerivedChecks(
        endpoints=checks, context=context, aggregator=aggregator, logger=logger
    )
    return CheckHarness(checks, derived, context, aggregator, executor)
