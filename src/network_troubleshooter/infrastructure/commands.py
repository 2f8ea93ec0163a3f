"""argv builders for the external programs the probes rely on."""

from __future__ import annotations

from typing import Optional


def curl_command(
    url: str,
    *,
    max_time: int,
    connect_timeout: int,
    proxy: Optional[str] = None,
) -> list[str]:
    """Fetch ``url`` printing status line, headers and body.

    ``proxy=None`` leaves curl's environment handling alone, ``""`` bypasses
    every proxy and any other value is passed to ``--proxy``.
    """

    command = [
        "curl",
        "--silent",
        "--show-error",
        "--include",
        "--max-time",
        str(max_time),
        "--connect-timeout",
        str(connect_timeout),
    ]
    if proxy == "":
        command.extend(["--noproxy", "*"])
    elif proxy is not None:
        command.extend(["--proxy", proxy])
    command.append(url)
    return command


def ping_command(host: str, *, wait: int) -> list[str]:
    return ["ping", "-c", "1", "-W", str(wait), host]


def dig_command(hostname: str, *, timeout: int) -> list[str]:
    return ["dig", f"+time={timeout}", "+tries=1", hostname]


def service_active_command(service: str) -> list[str]:
    return ["systemctl", "is-active", "--quiet", service]


def service_enabled_command(service: str) -> list[str]:
    return ["systemctl", "is-enabled", service]


__all__ = [
    "curl_command",
    "ping_command",
    "dig_command",
    "service_active_command",
    "service_enabled_command",
]
