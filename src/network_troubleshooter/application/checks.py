"""Endpoint checks: probes against network targets and local proxy facilities.

Every check reports through the :class:`VerdictAggregator` held by
:class:`EndpointChecks` and returns ``True`` only when it fully passed.
Ordinary probe failures never raise; a :class:`ProbeLaunchError` from the
executor is the only exception that crosses this boundary.

HTTP checks accept a ``proxy`` override: ``None`` keeps the environment's
proxy settings, ``""`` bypasses every proxy, any other value is used as the
proxy URL.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping, Sequence
from typing import Final, Optional
from urllib.parse import urlsplit

from network_troubleshooter.application.context import RunContext
from network_troubleshooter.application.parsing import (
    HttpResponse,
    ResponseParseError,
    parse_http_date,
    parse_http_response,
    parse_release_number,
)
from network_troubleshooter.application.verdicts import VerdictAggregator
from network_troubleshooter.config.constants import (
    MIRROR_VERSION_SUFFIX,
    PAC_MIME_TYPES,
    PROXY_ENVIRONMENT_VARIABLES,
    PROXY_SERVICES,
)
from network_troubleshooter.infrastructure import commands
from network_troubleshooter.infrastructure.logging import BoundLogger, log_check_event
from network_troubleshooter.infrastructure.probe import (
    ProbeExecutor,
    ProbeResult,
    format_command,
)

CURL_OPERATION_TIMEDOUT: Final = 28
CURL_PEER_VERIFY_FAILED: Final = 60
PING_NO_REPLY: Final = 1
PING_RESOLVE_FAILED: Final = 2
DIG_NO_SERVER_REPLY: Final = 9
SERVICE_QUERY_TIMEOUT: Final = 10

MSG_CHECK_CONNECTIVITY: Final = (
    "Check that the network cable is plugged in or Wi-Fi is associated, "
    "and that this host has been assigned an IP address"
)
MSG_CONTACT_ADMIN_WPAD: Final = (
    "Contact your network administrator about the autoproxy (WPAD) configuration"
)
MSG_CHECK_TRUST_CHAIN: Final = (
    "Verify the system certificate trust store and any TLS-intercepting proxy "
    "in the certificate chain"
)

CheckFn = Callable[..., bool]


def _is_timeout(result: ProbeResult) -> bool:
    return result.timed_out or result.exit_code == CURL_OPERATION_TIMEDOUT


def _protocol_of(url: str) -> str:
    return urlsplit(url).scheme.lower() or "http"


def _normalize_url(url: str) -> str:
    return url.strip().rstrip("/")


class EndpointChecks:
    def __init__(
        self,
        *,
        context: RunContext,
        aggregator: VerdictAggregator,
        executor: ProbeExecutor,
        logger: BoundLogger,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._context = context
        self._aggregator = aggregator
        self._executor = executor
        self._logger = logger
        self._environ = os.environ if environ is None else environ

    @property
    def context(self) -> RunContext:
        return self._context

    def primary_checks(self) -> dict[str, CheckFn]:
        """The three checks that always run, in execution order."""
        return {
            "primary_release": self.primary_release,
            "mirror": self.mirror,
            "plain_http": self.plain_http,
        }

    # -- probe plumbing ---------------------------------------------------

    def _run(self, command: Sequence[str], timeout: float) -> ProbeResult:
        self._aggregator.info(f"Running: {format_command(command)}")
        return self._executor.execute(command, timeout)

    def _fetch(self, url: str, proxy: Optional[str]) -> ProbeResult:
        timeouts = self._context.settings.timeouts
        command = commands.curl_command(
            url,
            max_time=timeouts.http,
            connect_timeout=timeouts.connect,
            proxy=proxy,
        )
        return self._run(command, timeouts.http)

    def _capture_date(self, response: HttpResponse) -> None:
        raw = response.header("date")
        if raw is None or self._context.network_time is not None:
            return
        parsed = parse_http_date(raw)
        if parsed is None:
            self._logger.debug("http.date.unparseable", value=raw)
            return
        self._context.capture_network_time(parsed)
        self._logger.debug(
            "http.date.captured",
            network_time=parsed.isoformat(),
            local_time=self._context.local_time.isoformat() if self._context.local_time else None,
        )

    def _transfer(self, check: str, url: str, proxy: Optional[str]) -> Optional[HttpResponse]:
        """Fetch ``url`` and classify the transfer; ``None`` means it failed."""

        result = self._fetch(url, proxy)
        protocol = _protocol_of(url)

        if result.exit_code == CURL_PEER_VERIFY_FAILED and not result.timed_out:
            self._aggregator.log_error(f"Unable to verify the certificate trust chain for {url}")
            self._aggregator.add_action(MSG_CHECK_TRUST_CHAIN)
            self._aggregator.log_warning(
                f"Certificate verification for {url} failed; the connection may be "
                "intercepted (possible man-in-the-middle)"
            )
            log_check_event(self._logger, check, "tls_failure", level=logging.ERROR, url=url)
            return None

        if _is_timeout(result):
            self._aggregator.log_error(f"Timed out connecting to {url}")
            log_check_event(self._logger, check, "timeout", level=logging.ERROR, url=url)
            return None

        if result.exit_code != 0 or result.signaled:
            self._aggregator.log_error(f"Unable to reach {url} (curl exit code {result.exit_code})")
            self._context.registry.record(protocol)
            log_check_event(
                self._logger,
                check,
                "unreachable",
                level=logging.ERROR,
                url=url,
                exit_code=result.exit_code,
            )
            return None

        try:
            response = parse_http_response(result.output)
        except ResponseParseError as exc:
            self._aggregator.log_error(f"Unexpected response from {url}: {exc}")
            log_check_event(self._logger, check, "unparseable", level=logging.ERROR, url=url)
            return None

        self._capture_date(response)

        if response.status_code >= 400:
            self._aggregator.log_error(
                f"{url} returned HTTP {response.status_code} {response.reason}".rstrip()
            )
            log_check_event(
                self._logger,
                check,
                "http_error",
                level=logging.ERROR,
                url=url,
                status=response.status_code,
            )
            return None

        return response

    def _report_bypass(self, url: str, proxy: Optional[str]) -> None:
        if proxy != "":
            return
        self._aggregator.log_warning(f"Bypassing the proxy for {url} succeeded")
        self._aggregator.add_action(f"Check your proxy/noproxy configuration for {url}")

    def _fetch_release(self, check: str, url: str, proxy: Optional[str]) -> Optional[int]:
        response = self._transfer(check, url, proxy)
        if response is None:
            return None
        release = parse_release_number(response.body)
        if release is None:
            self._aggregator.log_error(f"{url} did not return a release number")
            log_check_event(self._logger, check, "bad_body", level=logging.ERROR, url=url)
            return None
        return release

    # -- checks that always run ---------------------------------------------

    def primary_release(self, proxy: Optional[str] = None) -> bool:
        url = self._context.settings.endpoints.release_url
        release = self._fetch_release("primary_release", url, proxy)
        if release is None:
            return False
        self._context.latest_release = release
        self._aggregator.record_pass(f"{url} is reachable (latest release {release})")
        log_check_event(self._logger, "primary_release", "pass", release=release)
        self._report_bypass(url, proxy)
        return True

    def mirror(self, proxy: Optional[str] = None) -> bool:
        identity = self._context.identity
        default_mirror = self._context.settings.endpoints.default_mirror_url
        if not identity.recognized or not identity.mirror_url:
            log_check_event(self._logger, "mirror", "skipped", level=logging.DEBUG)
            return True
        if _normalize_url(identity.mirror_url) == _normalize_url(default_mirror):
            log_check_event(self._logger, "mirror", "skipped_default", level=logging.DEBUG)
            return True

        url = _normalize_url(identity.mirror_url) + MIRROR_VERSION_SUFFIX
        release = self._fetch_release("mirror", url, proxy)
        if release is None:
            return False

        latest = self._context.latest_release
        if latest is not None and release != latest:
            self._aggregator.log_warning(
                f"Mirror {identity.mirror_url} reports release {release}, "
                f"but the latest release is {latest}"
            )
        self._aggregator.record_pass(f"Mirror {url} is reachable (release {release})")
        log_check_event(self._logger, "mirror", "pass", release=release)
        self._report_bypass(url, proxy)
        return True

    def plain_http(self, proxy: Optional[str] = None) -> bool:
        url = self._context.settings.endpoints.http_reference_url
        response = self._transfer("plain_http", url, proxy)
        if response is None:
            return False
        self._aggregator.record_pass(f"{url} is reachable over plain HTTP")
        log_check_event(self._logger, "plain_http", "pass", status=response.status_code)
        self._report_bypass(url, proxy)
        return True

    # -- troubleshooting checks ---------------------------------------------

    def gateway(self) -> bool:
        host = self._context.settings.endpoints.gateway_host
        wait = self._context.settings.timeouts.ping
        result = self._run(commands.ping_command(host, wait=wait), wait)

        if result.ok:
            self._aggregator.record_pass(f"The default gateway ({host}) answered ping")
            log_check_event(self._logger, "gateway", "pass")
            return True

        if result.exit_code == PING_RESOLVE_FAILED:
            self._aggregator.log_error(f"Unable to resolve the default gateway ({host})")
            self._aggregator.add_action(MSG_CHECK_CONNECTIVITY)
        elif result.exit_code == PING_NO_REPLY:
            self._aggregator.log_warning(
                f"The default gateway ({host}) did not answer ping; "
                "some gateways ignore ping requests"
            )
            self._aggregator.add_action(MSG_CHECK_CONNECTIVITY)
        elif result.timed_out:
            self._aggregator.log_error(f"Pinging the default gateway ({host}) timed out")
        else:
            self._aggregator.log_error(
                f"Pinging the default gateway failed (exit code {result.exit_code}): "
                f"{result.output.strip()}"
            )
        log_check_event(
            self._logger, "gateway", "fail", level=logging.WARNING, exit_code=result.exit_code
        )
        return False

    def dns(self) -> bool:
        hostname = self._context.settings.endpoints.dns_hostname
        timeout = self._context.settings.timeouts.dns
        result = self._run(commands.dig_command(hostname, timeout=timeout), timeout)

        if result.ok:
            self._aggregator.record_pass(f"DNS servers answered a query for {hostname}")
            log_check_event(self._logger, "dns", "pass")
            return True

        if result.exit_code == DIG_NO_SERVER_REPLY:
            self._aggregator.log_error(
                f"No response from the configured DNS servers when resolving {hostname}"
            )
            self._aggregator.add_action(
                "Check the DNS resolver configuration (/etc/resolv.conf or systemd-resolved)"
            )
            self._aggregator.add_action(
                "Check whether your DNS provider or network is experiencing an outage"
            )
        else:
            self._aggregator.log_error(
                f"DNS lookup for {hostname} failed (dig exit code {result.exit_code})"
            )
            self._context.registry.record("dns")
            self._aggregator.add_action("Check your DNS configuration")
        log_check_event(
            self._logger, "dns", "fail", level=logging.ERROR, exit_code=result.exit_code
        )
        return False

    def captive_portal(self) -> bool:
        url = self._context.settings.endpoints.captive_portal_url
        result = self._fetch(url, None)

        if _is_timeout(result):
            self._aggregator.log_error(f"Timed out checking for a captive portal at {url}")
            return False
        if result.exit_code != 0 or result.signaled:
            self._aggregator.log_error(
                f"Unable to check for a captive portal at {url} "
                f"(curl exit code {result.exit_code})"
            )
            return False

        try:
            response = parse_http_response(result.output)
        except ResponseParseError:
            self._aggregator.log_error(f"Unparseable response from captive portal probe {url}")
            return False

        status = response.status_code
        log_check_event(self._logger, "captive_portal", "status", status=status)
        if status == 204:
            self._aggregator.record_pass("No captive portal detected")
            return True
        if response.is_redirect:
            self._aggregator.add_action(
                f"Open a web browser and sign in to the network: {url} was redirected "
                f"(HTTP {status}), most likely to a captive portal"
            )
            return False
        if response.is_success:
            self._aggregator.add_action(
                f"Open a web browser and sign in to the network: {url} returned a "
                f"substituted page (HTTP {status})"
            )
            return False
        self._aggregator.log_error(f"Unexpected HTTP status {status} from captive portal probe {url}")
        return False

    def wpad(self) -> bool:
        url = self._context.settings.endpoints.wpad_url
        result = self._fetch(url, "")

        if _is_timeout(result):
            self._aggregator.log_error(f"Timed out fetching the autoproxy configuration from {url}")
            return False
        if result.exit_code != 0 or result.signaled:
            self._aggregator.log_warning("No autoproxy (WPAD) configuration found on this network")
            log_check_event(self._logger, "wpad", "absent", exit_code=result.exit_code)
            return False

        try:
            response = parse_http_response(result.output)
        except ResponseParseError:
            self._aggregator.log_error(f"Unparseable autoproxy response from {url}")
            self._aggregator.add_action(MSG_CONTACT_ADMIN_WPAD)
            return False

        content_type = response.content_type
        if content_type not in PAC_MIME_TYPES:
            self._aggregator.log_error(
                f"{url} served Content-Type {content_type or 'none'} instead of a "
                "proxy auto-config file"
            )
            self._aggregator.add_action(MSG_CONTACT_ADMIN_WPAD)
            return False

        self._aggregator.record_pass(f"Autoproxy configuration found at {url}")
        return self._proxy_services_healthy()

    def _proxy_services_healthy(self) -> bool:
        healthy = True
        pac_cache = self._context.settings.paths.pac_cache
        try:
            pac_size = pac_cache.stat().st_size
        except OSError:
            pac_size = 0
        if pac_size > 0:
            self._aggregator.record_pass(f"Cached PAC file {pac_cache} is present")
        else:
            healthy = False
            self._aggregator.log_error(f"Cached PAC file {pac_cache} is missing or empty")
            self._aggregator.add_action(
                f"Restart {PROXY_SERVICES[0]} to refresh the cached PAC file: "
                f"systemctl restart {PROXY_SERVICES[0]}"
            )

        for service in PROXY_SERVICES:
            active = self._run(commands.service_active_command(service), SERVICE_QUERY_TIMEOUT)
            if active.ok:
                self._aggregator.record_pass(f"{service} service is active")
                continue
            healthy = False
            self._aggregator.log_error(f"{service} service is not active")
            enabled = self._run(commands.service_enabled_command(service), SERVICE_QUERY_TIMEOUT)
            if "masked" in enabled.output:
                self._aggregator.add_action(
                    f"Unmask and restart {service}: "
                    f"systemctl unmask {service} && systemctl restart {service}"
                )
            else:
                self._aggregator.add_action(f"Restart {service}: systemctl restart {service}")

        log_check_event(self._logger, "wpad", "services", healthy=healthy)
        return healthy

    def proxy_environment(self) -> bool:
        all_ok = True
        for variable, protocol in PROXY_ENVIRONMENT_VARIABLES:
            value = (self._environ.get(variable) or "").strip()
            if not value:
                if self._context.registry.has_failures(protocol):
                    all_ok = False
                    self._aggregator.add_action(
                        f"Set {protocol}_proxy if this network requires a proxy for "
                        f"{protocol.upper()} traffic"
                    )
                continue
            if not self._proxy_reachable(variable, value):
                all_ok = False
        return all_ok

    def _proxy_reachable(self, variable: str, proxy_url: str) -> bool:
        result = self._fetch(proxy_url, "")
        if result.exit_code == 0 and not result.timed_out and not result.signaled:
            self._aggregator.record_pass(f"Proxy {proxy_url} from {variable} is reachable")
            log_check_event(self._logger, "proxy_environment", "pass", variable=variable)
            return True

        if _is_timeout(result):
            self._aggregator.log_error(f"Timed out reaching proxy {proxy_url} from {variable}")
        else:
            self._aggregator.log_error(
                f"Unable to reach proxy {proxy_url} from {variable} "
                f"(curl exit code {result.exit_code})"
            )
        log_check_event(
            self._logger,
            "proxy_environment",
            "unreachable",
            level=logging.ERROR,
            variable=variable,
            exit_code=result.exit_code,
        )

        if urlsplit(proxy_url).scheme.lower() == "https":
            self._aggregator.log_warning(
                f"{variable} uses an https:// proxy URL; proxies are rarely reached over HTTPS"
            )
            corrected = "http://" + proxy_url[len("https://"):]
            self._aggregator.info(f"Retrying with {variable}={corrected}")
            if self.primary_release(proxy=corrected):
                self._aggregator.add_action(f"Set {variable}={corrected}")
                return False

        self._aggregator.add_action(f"Double-check the {variable} setting ({proxy_url})")
        return False


__all__ = [
    "CURL_OPERATION_TIMEDOUT",
    "CURL_PEER_VERIFY_FAILED",
    "DIG_NO_SERVER_REPLY",
    "PING_NO_REPLY",
    "PING_RESOLVE_FAILED",
    "EndpointChecks",
]
