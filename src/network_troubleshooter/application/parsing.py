"""Parsing of raw probe output into structured values.

``curl --include`` prints one header block per response it sees (a proxy
``CONNECT`` reply or ``100 Continue`` comes before the real one), a blank
line, then the body. Everything that scrapes that text lives here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

_STATUS_LINE = re.compile(r"^HTTP/(?P<version>\d(?:\.\d)?)\s+(?P<code>\d{3})(?:\s+(?P<reason>.*))?$")
_BLOCK_SEPARATOR = re.compile(r"\r?\n\r?\n")
_DECIMAL = re.compile(r"[0-9]+")


class ResponseParseError(ValueError):
    """Raised when probe output does not look like an HTTP response."""


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    reason: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def content_type(self) -> Optional[str]:
        raw = self.header("content-type")
        if raw is None:
            return None
        return raw.split(";", 1)[0].strip().lower() or None


def _split_block(text: str) -> tuple[str, str]:
    parts = _BLOCK_SEPARATOR.split(text, maxsplit=1)
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


def parse_http_response(output: str) -> HttpResponse:
    """Parse ``curl --include`` output into an :class:`HttpResponse`."""

    remaining = output.lstrip("\r\n")
    if not remaining.startswith("HTTP/"):
        raise ResponseParseError("output does not start with an HTTP status line")

    head, body = _split_block(remaining)
    while body.startswith("HTTP/"):
        head, body = _split_block(body)

    lines = head.splitlines()
    match = _STATUS_LINE.match(lines[0].strip())
    if match is None:
        raise ResponseParseError(f"malformed status line: {lines[0].strip()!r}")

    headers: dict[str, str] = {}
    for line in lines[1:]:
        name, sep, value = line.partition(":")
        if not sep:
            continue
        headers[name.strip().lower()] = value.strip()

    return HttpResponse(
        status_code=int(match.group("code")),
        reason=(match.group("reason") or "").strip(),
        headers=headers,
        body=body,
    )


def parse_decimal(text: str) -> Optional[int]:
    """Return ``text`` as an integer when it is only ASCII digits (surrounding whitespace allowed)."""

    stripped = text.strip()
    if _DECIMAL.fullmatch(stripped) is None:
        return None
    return int(stripped)


def parse_release_number(body: str) -> Optional[int]:
    """Return the release identifier when ``body`` is a bare number."""

    return parse_decimal(body)


def parse_http_date(value: str) -> Optional[datetime]:
    """Parse an RFC 7231 ``Date`` header value into an aware UTC datetime."""

    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``os-release`` style ``KEY=value`` lines."""

    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        values[key.strip()] = value.strip().strip("\"'")
    return values


__all__ = [
    "HttpResponse",
    "ResponseParseError",
    "parse_http_response",
    "parse_decimal",
    "parse_release_number",
    "parse_http_date",
    "parse_os_release",
]
