from __future__ import annotations

import importlib
from types import SimpleNamespace

import pytest


def _capture_main(monkeypatch: pytest.MonkeyPatch) -> tuple[object, list[dict]]:
    calls: list[dict] = []

    def fake_main(*, args: list[str], prog_name: str) -> None:  # click.Command.main signature
        calls.append({"args": args, "prog": prog_name})

    fake_get_command = lambda app: SimpleNamespace(main=fake_main)  # noqa: E731

    mod = importlib.import_module("network_troubleshooter.cli.main")
    monkeypatch.setattr(mod, "get_command", fake_get_command)
    return mod, calls


def test_main_defaults_to_run(monkeypatch: pytest.MonkeyPatch) -> None:
    mod, calls = _capture_main(monkeypatch)

    mod.main([])

    assert calls and calls[0]["args"] == ["run"]
    assert calls[0]["prog"] == "network-troubleshooter"


def test_main_passes_help_through(monkeypatch: pytest.MonkeyPatch) -> None:
    mod, calls = _capture_main(monkeypatch)

    mod.main(["--help"])

    assert calls and calls[0]["args"] == ["--help"]


def test_main_treats_leading_flags_as_run_args(monkeypatch: pytest.MonkeyPatch) -> None:
    mod, calls = _capture_main(monkeypatch)

    mod.main(["--full", "--self-test"])  # leading flag → routed to run

    assert calls and calls[0]["args"] == ["run", "--full", "--self-test"]


def test_main_passes_through_subcommand(monkeypatch: pytest.MonkeyPatch) -> None:
    mod, calls = _capture_main(monkeypatch)

    mod.main(["version"])

    assert calls and calls[0]["args"] == ["version"]


def test_main_reads_process_arguments(monkeypatch: pytest.MonkeyPatch) -> None:
    mod, calls = _capture_main(monkeypatch)
    monkeypatch.setattr(mod.sys, "argv", ["network-troubleshooter", "--debug"])

    mod.main()

    assert calls and calls[0]["args"] == ["run", "--debug"]
