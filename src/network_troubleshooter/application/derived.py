"""Checks that depend on the outcome of the endpoint checks."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Final, Optional

from network_troubleshooter.application.checks import EndpointChecks
from network_troubleshooter.application.context import RunContext, read_install_timestamp
from network_troubleshooter.application.verdicts import VerdictAggregator
from network_troubleshooter.config.constants import CLOCK_SKEW_TOLERANCE_SECONDS
from network_troubleshooter.infrastructure.logging import BoundLogger, log_check_event

TIMESTAMP_FORMAT: Final = "%a %d %b %Y %H:%M:%S UTC"

MSG_CLOCK_BREAKS_TLS: Final = (
    "An incorrect system clock makes TLS certificate validation fail"
)
MSG_FIX_CLOCK: Final = "Correct the system time, e.g. enable NTP with: timedatectl set-ntp true"
MSG_FIX_VM_CLOCK: Final = (
    "On a virtual machine, also make sure the host clock is correct and guest time "
    "synchronization is enabled"
)


def _render(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _describe_duration(delta: timedelta) -> str:
    seconds = int(abs(delta.total_seconds()))
    if seconds < 120:
        return f"{seconds} seconds"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 120:
        return f"{minutes} minutes {seconds} seconds"
    hours, minutes = divmod(minutes, 60)
    if hours < 48:
        return f"{hours} hours {minutes} minutes"
    return f"{hours // 24} days {hours % 24} hours"


class DerivedChecks:
    def __init__(
        self,
        *,
        endpoints: EndpointChecks,
        context: RunContext,
        aggregator: VerdictAggregator,
        logger: BoundLogger,
    ) -> None:
        self._endpoints = endpoints
        self._context = context
        self._aggregator = aggregator
        self._logger = logger

    def proxy_necessity(self, outcomes: Mapping[str, bool]) -> dict[str, bool]:
        """Re-run failed endpoint checks (all of them in full mode) bypassing proxies.

        A bypassed run that succeeds reports its own warning and action from
        inside the endpoint check; the returned mapping only records which
        retries passed.
        """

        checks = self._endpoints.primary_checks()
        retried: dict[str, bool] = {}
        for name, passed in outcomes.items():
            if passed and not self._context.full:
                continue
            check = checks.get(name)
            if check is None:
                continue
            self._aggregator.info(f"Retrying {name.replace('_', ' ')} check with proxies bypassed")
            retried[name] = check(proxy="")
        log_check_event(self._logger, "proxy_necessity", "done", retried=retried or None)
        return retried

    def system_time(self, *, https_ok: bool, http_ok: bool) -> Optional[bool]:
        """Compare the local clock with network time or the install timestamp.

        Returns ``None`` when the check did not run.
        """

        triggered = self._context.full or (not https_ok and http_ok)
        if not triggered:
            return None

        network_time = self._context.network_time
        local_time = self._context.local_time
        if network_time is not None and local_time is not None:
            return self._check_network_skew(network_time, local_time)

        install_time = read_install_timestamp(self._context.settings.paths.install_timestamp)
        if install_time is None:
            log_check_event(
                self._logger, "system_time", "skipped", level=logging.DEBUG,
                reason="no reference time available",
            )
            return None
        return self._check_against_install(install_time)

    def _check_network_skew(self, network_time: datetime, local_time: datetime) -> bool:
        skew = local_time - network_time
        if abs(skew.total_seconds()) <= CLOCK_SKEW_TOLERANCE_SECONDS:
            self._aggregator.record_pass("System clock agrees with network time")
            log_check_event(self._logger, "system_time", "pass", skew=skew.total_seconds())
            return True

        direction = "ahead of" if skew > timedelta(0) else "behind"
        self._report_clock_failure(
            f"System clock is wrong: local time is {_render(local_time)}, "
            f"network time is {_render(network_time)}",
            f"The local clock is {_describe_duration(skew)} {direction} network time",
        )
        log_check_event(
            self._logger, "system_time", "skew", level=logging.ERROR, skew=skew.total_seconds()
        )
        return False

    def _check_against_install(self, install_time: datetime) -> bool:
        now = self._context.clock()
        if now >= install_time:
            self._aggregator.record_pass("System clock is later than the installed release")
            log_check_event(self._logger, "system_time", "pass", reference="install")
            return True

        self._report_clock_failure(
            f"System clock is wrong: local time is {_render(now)}, "
            f"the installed release was built at {_render(install_time)}",
            f"The local clock is {_describe_duration(install_time - now)} earlier than "
            "the installed release",
        )
        log_check_event(self._logger, "system_time", "before_install", level=logging.ERROR)
        return False

    def _report_clock_failure(self, summary: str, detail: str) -> None:
        self._aggregator.log_error(summary)
        self._aggregator.log_error(detail)
        self._aggregator.log_warning(MSG_CLOCK_BREAKS_TLS)
        self._aggregator.add_action(MSG_FIX_CLOCK)
        self._aggregator.add_action(MSG_FIX_VM_CLOCK)


__all__ = ["DerivedChecks", "TIMESTAMP_FORMAT"]
