from __future__ import annotations

from datetime import datetime, timezone

import pytest

from network_troubleshooter.application.checks import MSG_CHECK_TRUST_CHAIN
from network_troubleshooter.application.context import InstallIdentity
from network_troubleshooter.config.constants import (
    DEFAULT_HTTP_REFERENCE_URL,
    DEFAULT_MIRROR_URL,
    DEFAULT_RELEASE_URL,
    MIRROR_VERSION_SUFFIX,
)
from network_troubleshooter.config.settings import RuntimeSettings
from tests.support import (
    FIXED_NOW,
    HTTP_DATE,
    FakeProbeExecutor,
    build_checks,
    exit_result,
    http_result,
    timeout_result,
)

RELEASE_KEY = f"curl {DEFAULT_RELEASE_URL}"
HTTP_KEY = f"curl {DEFAULT_HTTP_REFERENCE_URL}"
MIRROR_URL = "https://mirror.example.net/update"
MIRROR_KEY = f"curl {MIRROR_URL}{MIRROR_VERSION_SUFFIX}"


def test_release_body_and_date_header_are_captured(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor(
        {RELEASE_KEY: http_result(200, "12345", headers={"Date": HTTP_DATE})}
    )
    harness = build_checks(runtime_settings, executor)

    assert harness.checks.primary_release() is True

    context = harness.context
    assert context.latest_release == 12345
    assert context.network_time == datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
    assert context.local_time == FIXED_NOW
    assert context.clock_skew().total_seconds() == 30
    assert harness.aggregator.errors == ()


def test_existing_network_time_is_not_replaced(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor(
        {RELEASE_KEY: http_result(200, "12345", headers={"Date": "Mon, 19 Oct 2026 08:00:00 GMT"})}
    )
    harness = build_checks(runtime_settings, executor)
    earlier = datetime(2026, 10, 18, 11, 0, 0, tzinfo=timezone.utc)
    harness.context.capture_network_time(earlier)

    harness.checks.primary_release()

    assert harness.context.network_time == earlier


def test_tls_verification_failure_reports_trust_chain(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor(
        {RELEASE_KEY: exit_result(60, "curl: (60) SSL certificate problem")}
    )
    harness = build_checks(runtime_settings, executor)

    assert harness.checks.primary_release() is False

    aggregator = harness.aggregator
    assert any("trust chain" in message for message in aggregator.errors)
    assert MSG_CHECK_TRUST_CHAIN in aggregator.actions
    assert any("man-in-the-middle" in message for message in aggregator.warnings)
    assert aggregator.passed is False
    assert harness.context.registry.count("https") == 0


def test_timeout_is_an_error_without_registry_increment(runtime_settings: RuntimeSettings) -> None:
    harness = build_checks(runtime_settings, FakeProbeExecutor({RELEASE_KEY: timeout_result()}))

    assert harness.checks.primary_release() is False
    assert harness.aggregator.errors == (f"Timed out connecting to {DEFAULT_RELEASE_URL}",)
    assert harness.context.registry.snapshot() == {}


def test_curl_operation_timeout_counts_as_timeout(runtime_settings: RuntimeSettings) -> None:
    harness = build_checks(runtime_settings, FakeProbeExecutor({HTTP_KEY: exit_result(28)}))

    assert harness.checks.plain_http() is False
    assert harness.aggregator.errors[0].startswith("Timed out")


def test_other_failure_increments_https_registry(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor({RELEASE_KEY: exit_result(7, "curl: (7) Failed to connect")})
    harness = build_checks(runtime_settings, executor)

    assert harness.checks.primary_release() is False
    assert harness.context.registry.count("https") == 1
    assert "curl exit code 7" in harness.aggregator.errors[0]


def test_plain_http_failure_increments_http_registry(runtime_settings: RuntimeSettings) -> None:
    harness = build_checks(runtime_settings, FakeProbeExecutor({HTTP_KEY: exit_result(6)}))

    assert harness.checks.plain_http() is False
    assert harness.context.registry.count("http") == 1


@pytest.mark.parametrize("body", ["<html>login</html>", "\u00b2\u00b3"])
def test_non_numeric_release_body_fails(runtime_settings: RuntimeSettings, body: str) -> None:
    executor = FakeProbeExecutor({RELEASE_KEY: http_result(200, body)})
    harness = build_checks(runtime_settings, executor)

    assert harness.checks.primary_release() is False
    assert harness.context.latest_release is None
    assert harness.aggregator.errors == (f"{DEFAULT_RELEASE_URL} did not return a release number",)


def test_http_error_status_fails(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor({HTTP_KEY: http_result(503, "down", reason="Service Unavailable")})
    harness = build_checks(runtime_settings, executor)

    assert harness.checks.plain_http() is False
    assert harness.aggregator.errors == (
        f"{DEFAULT_HTTP_REFERENCE_URL} returned HTTP 503 Service Unavailable",
    )


def test_plain_http_passes_on_any_success(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor({HTTP_KEY: http_result(301, reason="Moved Permanently")})
    harness = build_checks(runtime_settings, executor)

    assert harness.checks.plain_http() is True
    assert harness.aggregator.warnings == ()


def test_successful_bypass_warns_about_proxy_config(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor({f"{RELEASE_KEY} [noproxy]": http_result(200, "12345")})
    harness = build_checks(runtime_settings, executor)

    assert harness.checks.primary_release(proxy="") is True
    assert harness.aggregator.warnings == (f"Bypassing the proxy for {DEFAULT_RELEASE_URL} succeeded",)
    assert harness.aggregator.actions == (
        f"Check your proxy/noproxy configuration for {DEFAULT_RELEASE_URL}",
    )


def test_default_proxy_success_does_not_warn(runtime_settings: RuntimeSettings) -> None:
    harness = build_checks(
        runtime_settings, FakeProbeExecutor({RELEASE_KEY: http_result(200, "12345")})
    )

    harness.checks.primary_release()

    assert harness.aggregator.warnings == ()
    assert harness.aggregator.actions == ()


def test_mirror_equal_to_default_passes_without_probe(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor()
    identity = InstallIdentity(recognized=True, mirror_url=DEFAULT_MIRROR_URL + "/")
    harness = build_checks(runtime_settings, executor, identity=identity)

    assert harness.checks.mirror() is True
    assert executor.calls == []


def test_mirror_skipped_on_unrecognized_install(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor()
    identity = InstallIdentity(recognized=False, mirror_url=MIRROR_URL)
    harness = build_checks(runtime_settings, executor, identity=identity)

    assert harness.checks.mirror() is True
    assert executor.calls == []


def test_mirror_skipped_without_configured_mirror(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor()
    harness = build_checks(runtime_settings, executor, identity=InstallIdentity(recognized=True))

    assert harness.checks.mirror() is True
    assert executor.calls == []


def test_mirror_release_mismatch_is_only_a_warning(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor(
        {
            RELEASE_KEY: http_result(200, "12345"),
            MIRROR_KEY: http_result(200, "12300"),
        }
    )
    identity = InstallIdentity(recognized=True, mirror_url=MIRROR_URL)
    harness = build_checks(runtime_settings, executor, identity=identity)

    harness.checks.primary_release()

    assert harness.checks.mirror() is True
    assert harness.aggregator.warnings == (
        f"Mirror {MIRROR_URL} reports release 12300, but the latest release is 12345",
    )
    assert harness.aggregator.passed is True


def test_mirror_failure_uses_same_interpretation(runtime_settings: RuntimeSettings) -> None:
    executor = FakeProbeExecutor({MIRROR_KEY: exit_result(60)})
    identity = InstallIdentity(recognized=True, mirror_url=MIRROR_URL)
    harness = build_checks(runtime_settings, executor, identity=identity)

    assert harness.checks.mirror() is False
    assert MSG_CHECK_TRUST_CHAIN in harness.aggregator.actions


def test_primary_checks_are_in_execution_order(runtime_settings: RuntimeSettings) -> None:
    harness = build_checks(runtime_settings, FakeProbeExecutor())

    assert list(harness.checks.primary_checks()) == ["primary_release", "mirror", "plain_http"]
