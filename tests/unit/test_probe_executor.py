from __future__ import annotations

import subprocess
from typing import Any

import pytest

from network_troubleshooter.infrastructure import probe as probe_module
from network_troubleshooter.infrastructure.commands import curl_command, dig_command, ping_command
from network_troubleshooter.infrastructure.errors import ErrorCode, ProbeLaunchError
from network_troubleshooter.infrastructure.probe import (
    TIMEOUT_EXIT_CODE,
    SubprocessProbeExecutor,
    format_command,
)


class _Completed:
    def __init__(self, returncode: int, stdout: str) -> None:
        self.returncode = returncode
        self.stdout = stdout


def test_nonzero_exit_is_returned_not_raised(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    def fake_run(argv, **kwargs):
        captured["argv"] = argv
        captured.update(kwargs)
        return _Completed(7, "curl: (7) Failed to connect\n")

    monkeypatch.setattr(probe_module.subprocess, "run", fake_run)

    result = SubprocessProbeExecutor(grace_seconds=2).execute(["curl", "http://x"], 10)

    assert result.exit_code == 7
    assert result.output.startswith("curl: (7)")
    assert result.timed_out is False
    assert result.ok is False
    assert result.command == ("curl", "http://x")
    assert captured["timeout"] == 12
    assert captured["stderr"] is subprocess.STDOUT


def test_timeout_yields_sentinel(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(argv, **kwargs):
        raise subprocess.TimeoutExpired(argv, kwargs["timeout"], output=b"partial")

    monkeypatch.setattr(probe_module.subprocess, "run", fake_run)

    result = SubprocessProbeExecutor().execute(["ping", "-c", "1", "_gateway"], 5)

    assert result.timed_out is True
    assert result.exit_code == TIMEOUT_EXIT_CODE
    assert result.output == "partial"


def test_signal_termination_is_flagged(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(probe_module.subprocess, "run", lambda argv, **kwargs: _Completed(-9, ""))

    result = SubprocessProbeExecutor().execute(["dig", "example.org"], 5)

    assert result.signaled is True
    assert result.ok is False


def test_missing_binary_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(argv, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", argv[0])

    monkeypatch.setattr(probe_module.subprocess, "run", fake_run)

    with pytest.raises(ProbeLaunchError) as exc_info:
        SubprocessProbeExecutor().execute(["curl", "https://example.org"], 5)

    error = exc_info.value
    assert error.code == ErrorCode.PROBE_LAUNCH_FAILED.value
    assert error.program == "curl"
    assert "curl" in error.user_message
    assert error.log_fields()["command"] == "curl https://example.org"


def test_curl_command_proxy_modes() -> None:
    default = curl_command("https://example.org", max_time=15, connect_timeout=10)
    bypass = curl_command("https://example.org", max_time=15, connect_timeout=10, proxy="")
    explicit = curl_command(
        "https://example.org", max_time=15, connect_timeout=10, proxy="http://proxy:3128"
    )

    assert "--noproxy" not in default and "--proxy" not in default
    assert bypass[-3:] == ["--noproxy", "*", "https://example.org"]
    assert explicit[-3:] == ["--proxy", "http://proxy:3128", "https://example.org"]
    assert "--include" in default


def test_ping_and_dig_commands_carry_timeouts() -> None:
    assert ping_command("_gateway", wait=5) == ["ping", "-c", "1", "-W", "5", "_gateway"]
    assert dig_command("example.org", timeout=3) == ["dig", "+time=3", "+tries=1", "example.org"]
    assert format_command(["curl", "--noproxy", "*", "http://x"]) == "curl --noproxy '*' http://x"
