"""Default endpoints, file locations and boolean coercion helpers."""

from __future__ import annotations

from typing import Final, Optional

TRUTHY_STRINGS = {"1", "true", "yes", "on"}
FALSY_STRINGS = {"0", "false", "no", "off"}


CONFIG_BASENAME = "config"
DEFAULT_CONFIG_FILENAME = f"{CONFIG_BASENAME}.toml"
LOCAL_CONFIG_FILENAME = f"{CONFIG_BASENAME}.local.toml"
ENVVAR_PREFIX: Final = "NETTROUBLE"

DEFAULT_RELEASE_URL: Final = "https://cdn.download.clearlinux.org/latest"
DEFAULT_MIRROR_URL: Final = "https://cdn.download.clearlinux.org/update"
DEFAULT_HTTP_REFERENCE_URL: Final = "http://neverssl.com/"
DEFAULT_CAPTIVE_PORTAL_URL: Final = "http://connectivitycheck.gstatic.com/generate_204"
DEFAULT_WPAD_URL: Final = "http://wpad/wpad.dat"
DEFAULT_GATEWAY_HOST: Final = "_gateway"
DEFAULT_DNS_HOSTNAME: Final = "cdn.download.clearlinux.org"

DEFAULT_OS_RELEASE_PATH: Final = "/usr/lib/os-release"
DEFAULT_MIRROR_CONFIG_PATH: Final = "/etc/swupd/mirror_versionurl"
DEFAULT_INSTALL_TIMESTAMP_PATH: Final = "/usr/share/clear/versionstamp"
DEFAULT_PAC_CACHE_PATH: Final = "/run/pacrunner/wpad.dat"

RECOGNIZED_OS_ID: Final = "clear-linux-os"
MIRROR_VERSION_SUFFIX: Final = "/version/latest_version"

DEFAULT_HTTP_TIMEOUT: Final = 15
DEFAULT_CONNECT_TIMEOUT: Final = 10
DEFAULT_PING_TIMEOUT: Final = 5
DEFAULT_DNS_TIMEOUT: Final = 5

CLOCK_SKEW_TOLERANCE_SECONDS: Final = 120

PAC_MIME_TYPES: Final[frozenset[str]] = frozenset(
    {"application/x-ns-proxy-autoconfig", "application/x-javascript-config"}
)
PROXY_SERVICES: Final[tuple[str, ...]] = ("pacdiscovery", "pacrunner")

# Checked in this order; the value is the failure-registry key for the protocol.
PROXY_ENVIRONMENT_VARIABLES: Final[tuple[tuple[str, str], ...]] = (
    ("http_proxy", "http"),
    ("HTTP_PROXY", "http"),
    ("https_proxy", "https"),
    ("HTTPS_PROXY", "https"),
)


def coerce_bool(value: Optional[object], *, default: bool = False) -> bool:
    """Convert common truthy/falsey string markers into booleans.

    Falls back to ``default`` when the value is ``None`` or ambiguous.
    """

    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if not normalized:
            return default
        if normalized in TRUTHY_STRINGS:
            return True
        if normalized in FALSY_STRINGS:
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def coerce_positive_int(
    candidate: Optional[object], *, default: Optional[int] = None
) -> int:
    """Coerce ``candidate`` into a positive integer, enforcing strict validation."""

    if candidate is None:
        if default is None:
            raise ValueError("No integer value provided and no default specified")
        return default

    try:
        value = int(candidate)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer value: {candidate}") from exc

    if value <= 0:
        raise ValueError(f"Value must be positive: {candidate}")

    return value


__all__ = [
    "coerce_bool",
    "coerce_positive_int",
    "TRUTHY_STRINGS",
    "FALSY_STRINGS",
    "CONFIG_BASENAME",
    "DEFAULT_CONFIG_FILENAME",
    "LOCAL_CONFIG_FILENAME",
    "ENVVAR_PREFIX",
    "DEFAULT_RELEASE_URL",
    "DEFAULT_MIRROR_URL",
    "DEFAULT_HTTP_REFERENCE_URL",
    "DEFAULT_CAPTIVE_PORTAL_URL",
    "DEFAULT_WPAD_URL",
    "DEFAULT_GATEWAY_HOST",
    "DEFAULT_DNS_HOSTNAME",
    "DEFAULT_OS_RELEASE_PATH",
    "DEFAULT_MIRROR_CONFIG_PATH",
    "DEFAULT_INSTALL_TIMESTAMP_PATH",
    "DEFAULT_PAC_CACHE_PATH",
    "RECOGNIZED_OS_ID",
    "MIRROR_VERSION_SUFFIX",
    "DEFAULT_HTTP_TIMEOUT",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_PING_TIMEOUT",
    "DEFAULT_DNS_TIMEOUT",
    "CLOCK_SKEW_TOLERANCE_SECONDS",
    "PAC_MIME_TYPES",
    "PROXY_SERVICES",
    "PROXY_ENVIRONMENT_VARIABLES",
]
