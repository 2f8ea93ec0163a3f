"""Run-wide state shared by every check."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from network_troubleshooter.application.parsing import parse_decimal, parse_os_release
from network_troubleshooter.application.verdicts import FailureRegistry
from network_troubleshooter.config.constants import RECOGNIZED_OS_ID
from network_troubleshooter.config.settings import PathSettings, RuntimeSettings
from network_troubleshooter.infrastructure.logging import BoundLogger

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class InstallIdentity:
    recognized: bool = False
    os_id: Optional[str] = None
    installed_release: Optional[int] = None
    mirror_url: Optional[str] = None


@dataclass
class RunContext:
    settings: RuntimeSettings
    identity: InstallIdentity = field(default_factory=InstallIdentity)
    registry: FailureRegistry = field(default_factory=FailureRegistry)
    clock: Clock = utc_now
    latest_release: Optional[int] = None
    network_time: Optional[datetime] = None
    local_time: Optional[datetime] = None

    @property
    def full(self) -> bool:
        return self.settings.full

    @property
    def self_test(self) -> bool:
        return self.settings.self_test

    def capture_network_time(self, network_time: datetime) -> bool:
        """Store the network/local timestamp pair unless one is already held."""
        if self.network_time is not None:
            return False
        self.network_time = network_time
        self.local_time = self.clock()
        return True

    def clock_skew(self) -> Optional[timedelta]:
        """Local clock minus network time, measured when the pair was captured."""
        if self.network_time is None or self.local_time is None:
            return None
        return self.local_time - self.network_time


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def detect_install_identity(paths: PathSettings, logger: BoundLogger) -> InstallIdentity:
    """Best-effort detection of the installed distribution and its mirror."""

    os_release_text = _read_text(paths.os_release)
    if os_release_text is None:
        logger.warning(
            "install.identity.unavailable",
            path=str(paths.os_release),
            reason="os-release file could not be read; mirror check disabled",
        )
        return InstallIdentity()

    values = parse_os_release(os_release_text)
    os_id = values.get("ID")
    recognized = os_id == RECOGNIZED_OS_ID
    installed_release = parse_decimal(values.get("VERSION_ID", ""))

    mirror_url: Optional[str] = None
    if recognized:
        mirror_text = _read_text(paths.mirror_config)
        if mirror_text is not None:
            mirror_url = mirror_text.strip() or None
    else:
        logger.warning(
            "install.identity.unrecognized",
            os_id=os_id,
            reason="host is not a recognized install; mirror check disabled",
        )

    logger.debug(
        "install.identity.detected",
        os_id=os_id,
        recognized=recognized,
        installed_release=installed_release,
        mirror_url=mirror_url,
    )
    return InstallIdentity(
        recognized=recognized,
        os_id=os_id,
        installed_release=installed_release,
        mirror_url=mirror_url,
    )


def read_install_timestamp(path: Path) -> Optional[datetime]:
    """Read the install timestamp file (seconds since the epoch)."""

    text = _read_text(path)
    if text is None:
        return None
    seconds = parse_decimal(text)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def create_run_context(
    settings: RuntimeSettings,
    logger: BoundLogger,
    *,
    clock: Clock = utc_now,
) -> RunContext:
    return RunContext(
        settings=settings,
        identity=detect_install_identity(settings.paths, logger),
        clock=clock,
    )


__all__ = [
    "Clock",
    "InstallIdentity",
    "RunContext",
    "create_run_context",
    "detect_install_identity",
    "read_install_timestamp",
    "utc_now",
]
