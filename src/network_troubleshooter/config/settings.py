"""Dynaconf-backed configuration helpers for the network troubleshooter."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple

from dynaconf import Dynaconf

from network_troubleshooter.infrastructure.errors import ConfigurationError

from .constants import (
    DEFAULT_CAPTIVE_PORTAL_URL,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DNS_HOSTNAME,
    DEFAULT_DNS_TIMEOUT,
    DEFAULT_GATEWAY_HOST,
    DEFAULT_HTTP_REFERENCE_URL,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_INSTALL_TIMESTAMP_PATH,
    DEFAULT_MIRROR_CONFIG_PATH,
    DEFAULT_MIRROR_URL,
    DEFAULT_OS_RELEASE_PATH,
    DEFAULT_PAC_CACHE_PATH,
    DEFAULT_PING_TIMEOUT,
    DEFAULT_RELEASE_URL,
    DEFAULT_WPAD_URL,
    ENVVAR_PREFIX,
    LOCAL_CONFIG_FILENAME,
    coerce_bool,
    coerce_positive_int,
)

LOG_FORMAT_TEXT = "text"
LOG_FORMAT_JSON = "json"
DEFAULT_LOG_FORMAT = LOG_FORMAT_TEXT
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_MAX_BYTES = 10_000_000
DEFAULT_BACKUP_COUNT = 5

ENDPOINT_RELEASE_URL_KEY = "endpoints.release_url"
ENDPOINT_DEFAULT_MIRROR_URL_KEY = "endpoints.default_mirror_url"
ENDPOINT_HTTP_REFERENCE_URL_KEY = "endpoints.http_reference_url"
ENDPOINT_CAPTIVE_PORTAL_URL_KEY = "endpoints.captive_portal_url"
ENDPOINT_WPAD_URL_KEY = "endpoints.wpad_url"
ENDPOINT_GATEWAY_HOST_KEY = "endpoints.gateway_host"
ENDPOINT_DNS_HOSTNAME_KEY = "endpoints.dns_hostname"

PATH_OS_RELEASE_KEY = "paths.os_release"
PATH_MIRROR_CONFIG_KEY = "paths.mirror_config"
PATH_INSTALL_TIMESTAMP_KEY = "paths.install_timestamp"
PATH_PAC_CACHE_KEY = "paths.pac_cache"

TIMEOUT_HTTP_KEY = "timeouts.http"
TIMEOUT_CONNECT_KEY = "timeouts.connect"
TIMEOUT_PING_KEY = "timeouts.ping"
TIMEOUT_DNS_KEY = "timeouts.dns"

RUNTIME_FULL_KEY = "runtime.full"
RUNTIME_SELF_TEST_KEY = "runtime.self_test"
RUNTIME_DEBUG_KEY = "runtime.debug"

LOGGING_LEVEL_KEY = "logging.level"
LOGGING_FORMAT_KEY = "logging.format"
LOGGING_FILE_KEY = "logging.file"
LOGGING_MAX_BYTES_KEY = "logging.max_bytes"
LOGGING_BACKUP_COUNT_KEY = "logging.backup_count"

_ENVIRONMENT_MAP = {
    "NETTROUBLE_RELEASE_URL": ENDPOINT_RELEASE_URL_KEY,
    "NETTROUBLE_DEFAULT_MIRROR_URL": ENDPOINT_DEFAULT_MIRROR_URL_KEY,
    "NETTROUBLE_HTTP_REFERENCE_URL": ENDPOINT_HTTP_REFERENCE_URL_KEY,
    "NETTROUBLE_CAPTIVE_PORTAL_URL": ENDPOINT_CAPTIVE_PORTAL_URL_KEY,
    "NETTROUBLE_WPAD_URL": ENDPOINT_WPAD_URL_KEY,
    "NETTROUBLE_GATEWAY_HOST": ENDPOINT_GATEWAY_HOST_KEY,
    "NETTROUBLE_DNS_HOSTNAME": ENDPOINT_DNS_HOSTNAME_KEY,
    "NETTROUBLE_FULL": RUNTIME_FULL_KEY,
    "NETTROUBLE_SELF_TEST": RUNTIME_SELF_TEST_KEY,
    "NETTROUBLE_DEBUG": RUNTIME_DEBUG_KEY,
    "NETTROUBLE_LOG_LEVEL": LOGGING_LEVEL_KEY,
    "NETTROUBLE_LOG_FORMAT": LOGGING_FORMAT_KEY,
    "NETTROUBLE_LOG_FILE": LOGGING_FILE_KEY,
    "NETTROUBLE_LOG_MAX_BYTES": LOGGING_MAX_BYTES_KEY,
    "NETTROUBLE_LOG_BACKUP_COUNT": LOGGING_BACKUP_COUNT_KEY,
}

_LOGFILE_DISABLED_VALUES = {"-", "none", "stderr", "off"}


@dataclass(frozen=True)
class RuntimeInputs:
    full: Optional[bool] = None
    self_test: Optional[bool] = None
    debug: Optional[bool] = None


@dataclass(frozen=True)
class LoggingInputs:
    level: Optional[str] = None
    format: Optional[str] = None
    file_path: Optional[str] = None
    max_bytes: Optional[int] = None
    backup_count: Optional[int] = None


@dataclass(frozen=True)
class EndpointSettings:
    release_url: str = DEFAULT_RELEASE_URL
    default_mirror_url: str = DEFAULT_MIRROR_URL
    http_reference_url: str = DEFAULT_HTTP_REFERENCE_URL
    captive_portal_url: str = DEFAULT_CAPTIVE_PORTAL_URL
    wpad_url: str = DEFAULT_WPAD_URL
    gateway_host: str = DEFAULT_GATEWAY_HOST
    dns_hostname: str = DEFAULT_DNS_HOSTNAME


@dataclass(frozen=True)
class PathSettings:
    os_release: Path = Path(DEFAULT_OS_RELEASE_PATH)
    mirror_config: Path = Path(DEFAULT_MIRROR_CONFIG_PATH)
    install_timestamp: Path = Path(DEFAULT_INSTALL_TIMESTAMP_PATH)
    pac_cache: Path = Path(DEFAULT_PAC_CACHE_PATH)


@dataclass(frozen=True)
class TimeoutSettings:
    http: int = DEFAULT_HTTP_TIMEOUT
    connect: int = DEFAULT_CONNECT_TIMEOUT
    ping: int = DEFAULT_PING_TIMEOUT
    dns: int = DEFAULT_DNS_TIMEOUT


@dataclass(frozen=True)
class RuntimeSettings:
    full: bool = False
    self_test: bool = False
    debug: bool = False
    endpoints: EndpointSettings = field(default_factory=EndpointSettings)
    paths: PathSettings = field(default_factory=PathSettings)
    timeouts: TimeoutSettings = field(default_factory=TimeoutSettings)
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class LoggingSettings:
    level: int
    format: str
    file_path: Optional[str]
    max_bytes: int
    backup_count: int

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level)


def is_logfile_disabled_value(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in _LOGFILE_DISABLED_VALUES


def _default_settings_files(config_path: Optional[str]) -> Tuple[Sequence[str], Optional[str]]:
    if config_path:
        config_file = Path(config_path)
        local_file = config_file.with_name(f"{config_file.stem}.local{config_file.suffix}")
        files: list[str] = []
        if config_file.exists():
            files.append(str(config_file))
        if local_file.exists():
            files.append(str(local_file))
        return files or [str(config_file)], None
    return [DEFAULT_CONFIG_FILENAME, LOCAL_CONFIG_FILENAME], None


def _coerce_str(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        candidate = value.strip()
        return candidate or None
    return str(value)


def _coerce_int(value: Optional[Any]) -> Optional[int]:
    if value is None:
        return None
    try:
        coerced = int(value)
    except (TypeError, ValueError):
        return None
    return coerced


def _apply_environment_overrides(settings: Dynaconf) -> None:
    for env_var, key in _ENVIRONMENT_MAP.items():
        raw = os.getenv(env_var)
        if raw is None:
            continue
        if isinstance(raw, str) and not raw.strip():
            continue
        settings.set(key, raw)


def _apply_runtime_inputs(settings: Dynaconf, runtime_inputs: Optional[RuntimeInputs]) -> None:
    if runtime_inputs is None:
        return

    if runtime_inputs.full is not None:
        settings.set(RUNTIME_FULL_KEY, runtime_inputs.full)
    if runtime_inputs.self_test is not None:
        settings.set(RUNTIME_SELF_TEST_KEY, runtime_inputs.self_test)
    if runtime_inputs.debug is not None:
        settings.set(RUNTIME_DEBUG_KEY, runtime_inputs.debug)


def _apply_logging_inputs(settings: Dynaconf, logging_inputs: Optional[LoggingInputs]) -> None:
    if logging_inputs is None:
        return

    if logging_inputs.level is not None:
        settings.set(LOGGING_LEVEL_KEY, logging_inputs.level.strip())
    if logging_inputs.format is not None:
        settings.set(LOGGING_FORMAT_KEY, logging_inputs.format.strip())
    if logging_inputs.file_path is not None:
        settings.set(LOGGING_FILE_KEY, logging_inputs.file_path.strip())
    if logging_inputs.max_bytes is not None:
        settings.set(LOGGING_MAX_BYTES_KEY, logging_inputs.max_bytes)
    if logging_inputs.backup_count is not None:
        settings.set(LOGGING_BACKUP_COUNT_KEY, logging_inputs.backup_count)


def _build_dynaconf(config_path: Optional[str]) -> Dynaconf:
    files, root_path = _default_settings_files(config_path)
    settings = Dynaconf(
        settings_files=list(files),
        envvar_prefix=ENVVAR_PREFIX,
        environments=False,
        load_dotenv=True,
        merge_enabled=True,
        root_path=root_path,
    )
    _apply_environment_overrides(settings)
    return settings


def load_settings(config_path: Optional[str] = None) -> Dynaconf:
    """Create a Dynaconf instance configured for the supplied path."""

    return _build_dynaconf(config_path)


def apply_cli_overrides(
    settings: Dynaconf,
    *,
    runtime_inputs: Optional[RuntimeInputs] = None,
    logging_inputs: Optional[LoggingInputs] = None,
) -> None:
    """Apply CLI overrides to the provided settings instance."""

    _apply_runtime_inputs(settings, runtime_inputs)
    _apply_logging_inputs(settings, logging_inputs)


def _resolve_url(settings: Dynaconf, key: str, default: str, warnings: list[str]) -> str:
    value = _coerce_str(settings.get(key))
    if value is None:
        return default
    if "://" not in value:
        warnings.append(f"Ignoring {key}={value!r}: not an absolute URL; using {default}")
        return default
    return value


def _resolve_text(settings: Dynaconf, key: str, default: str) -> str:
    return _coerce_str(settings.get(key)) or default


def _resolve_path(settings: Dynaconf, key: str, default: str) -> Path:
    return Path(_coerce_str(settings.get(key)) or default).expanduser()


def _resolve_timeout(settings: Dynaconf, key: str, default: int, warnings: list[str]) -> int:
    raw = settings.get(key)
    try:
        return coerce_positive_int(raw, default=default)
    except ValueError:
        warnings.append(f"Invalid {key} override {raw!r}; using {default} seconds")
        return default


def runtime_from_settings(settings: Dynaconf) -> RuntimeSettings:
    """Extract runtime settings and validation messages from Dynaconf."""

    warnings: list[str] = []

    endpoints = EndpointSettings(
        release_url=_resolve_url(
            settings, ENDPOINT_RELEASE_URL_KEY, DEFAULT_RELEASE_URL, warnings
        ),
        default_mirror_url=_resolve_url(
            settings, ENDPOINT_DEFAULT_MIRROR_URL_KEY, DEFAULT_MIRROR_URL, warnings
        ),
        http_reference_url=_resolve_url(
            settings, ENDPOINT_HTTP_REFERENCE_URL_KEY, DEFAULT_HTTP_REFERENCE_URL, warnings
        ),
        captive_portal_url=_resolve_url(
            settings, ENDPOINT_CAPTIVE_PORTAL_URL_KEY, DEFAULT_CAPTIVE_PORTAL_URL, warnings
        ),
        wpad_url=_resolve_url(settings, ENDPOINT_WPAD_URL_KEY, DEFAULT_WPAD_URL, warnings),
        gateway_host=_resolve_text(settings, ENDPOINT_GATEWAY_HOST_KEY, DEFAULT_GATEWAY_HOST),
        dns_hostname=_resolve_text(settings, ENDPOINT_DNS_HOSTNAME_KEY, DEFAULT_DNS_HOSTNAME),
    )

    paths = PathSettings(
        os_release=_resolve_path(settings, PATH_OS_RELEASE_KEY, DEFAULT_OS_RELEASE_PATH),
        mirror_config=_resolve_path(
            settings, PATH_MIRROR_CONFIG_KEY, DEFAULT_MIRROR_CONFIG_PATH
        ),
        install_timestamp=_resolve_path(
            settings, PATH_INSTALL_TIMESTAMP_KEY, DEFAULT_INSTALL_TIMESTAMP_PATH
        ),
        pac_cache=_resolve_path(settings, PATH_PAC_CACHE_KEY, DEFAULT_PAC_CACHE_PATH),
    )

    timeouts = TimeoutSettings(
        http=_resolve_timeout(settings, TIMEOUT_HTTP_KEY, DEFAULT_HTTP_TIMEOUT, warnings),
        connect=_resolve_timeout(
            settings, TIMEOUT_CONNECT_KEY, DEFAULT_CONNECT_TIMEOUT, warnings
        ),
        ping=_resolve_timeout(settings, TIMEOUT_PING_KEY, DEFAULT_PING_TIMEOUT, warnings),
        dns=_resolve_timeout(settings, TIMEOUT_DNS_KEY, DEFAULT_DNS_TIMEOUT, warnings),
    )

    return RuntimeSettings(
        full=coerce_bool(settings.get(RUNTIME_FULL_KEY), default=False),
        self_test=coerce_bool(settings.get(RUNTIME_SELF_TEST_KEY), default=False),
        debug=coerce_bool(settings.get(RUNTIME_DEBUG_KEY), default=False),
        endpoints=endpoints,
        paths=paths,
        timeouts=timeouts,
        warnings=tuple(warnings),
    )


def logging_from_settings(settings: Dynaconf) -> LoggingSettings:
    """Extract logging configuration from Dynaconf."""

    level_value = _coerce_str(settings.get(LOGGING_LEVEL_KEY)) or DEFAULT_LOG_LEVEL
    format_value = (_coerce_str(settings.get(LOGGING_FORMAT_KEY)) or DEFAULT_LOG_FORMAT).lower()
    if format_value not in {LOG_FORMAT_TEXT, LOG_FORMAT_JSON}:
        raise ConfigurationError(f"Unsupported log format: {format_value}")

    file_path = _coerce_str(settings.get(LOGGING_FILE_KEY))
    if is_logfile_disabled_value(file_path):
        file_path = None

    max_bytes_value = _coerce_int(settings.get(LOGGING_MAX_BYTES_KEY))
    if max_bytes_value is None or max_bytes_value <= 0:
        max_bytes_value = DEFAULT_MAX_BYTES

    backup_count_value = _coerce_int(settings.get(LOGGING_BACKUP_COUNT_KEY))
    if backup_count_value is None or backup_count_value <= 0:
        backup_count_value = DEFAULT_BACKUP_COUNT

    mapping = logging.getLevelNamesMapping()
    level_upper = level_value.upper()
    if level_upper.isascii() and level_upper.isdigit():
        resolved_level = int(level_upper)
    else:
        resolved_level = mapping.get(level_upper, logging.WARNING)

    return LoggingSettings(
        level=resolved_level,
        format=format_value,
        file_path=file_path,
        max_bytes=max_bytes_value,
        backup_count=backup_count_value,
    )


def resolve_application_settings(
    *,
    config_path: Optional[str] = None,
    runtime_inputs: Optional[RuntimeInputs] = None,
    logging_inputs: Optional[LoggingInputs] = None,
) -> Tuple[RuntimeSettings, LoggingSettings]:
    """Load configuration, apply CLI overrides and return both settings objects."""

    settings = load_settings(config_path)
    apply_cli_overrides(
        settings,
        runtime_inputs=runtime_inputs,
        logging_inputs=logging_inputs,
    )
    runtime_settings = runtime_from_settings(settings)
    logging_settings = logging_from_settings(settings)

    if runtime_settings.debug and logging_settings.level > logging.DEBUG:
        logging_settings = replace(logging_settings, level=logging.DEBUG)

    return runtime_settings, logging_settings


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_BYTES",
    "DEFAULT_BACKUP_COUNT",
    "LOG_FORMAT_TEXT",
    "LOG_FORMAT_JSON",
    "EndpointSettings",
    "PathSettings",
    "TimeoutSettings",
    "RuntimeSettings",
    "RuntimeInputs",
    "LoggingInputs",
    "LoggingSettings",
    "is_logfile_disabled_value",
    "load_settings",
    "apply_cli_overrides",
    "runtime_from_settings",
    "logging_from_settings",
    "resolve_application_settings",
]
