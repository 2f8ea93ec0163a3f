"""Network troubleshooter Typer CLI."""

from __future__ import annotations

import logging
import typer
from rich.console import Console
from rich.text import Text

from network_troubleshooter.application.orchestrator import run_troubleshooter
from network_troubleshooter.cli import options as cli_options
from network_troubleshooter.cli.formatting import TranscriptPrinter, render_json, render_summary
from network_troubleshooter.config.settings import (
    LoggingInputs,
    RuntimeInputs,
    resolve_application_settings,
)
from network_troubleshooter.infrastructure.errors import TroubleshooterError
from network_troubleshooter.infrastructure.logging import configure_logging, get_logger
from network_troubleshooter.infrastructure.probe import ProbeExecutor, SubprocessProbeExecutor

stderr_console = Console(stderr=True)
stdout_console = Console(stderr=False)

app = typer.Typer(
    help="Diagnose why this host cannot reach its software update content",
    rich_markup_mode="rich",
    no_args_is_help=False,
)


def build_probe_executor() -> ProbeExecutor:
    """Return the executor that launches the diagnostic programs."""
    return SubprocessProbeExecutor()


def _fatal_banner(error: TroubleshooterError) -> Text:
    text = Text("Troubleshooting aborted: ", style="bold red")
    text.append(error.user_message)
    for hint in error.hints:
        text.append(f"\nHint: {hint}", style="dim")
    return text


@app.command(help="Probe the update service and local network, then report likely causes.")
def run(
    full: cli_options.FullOption = None,
    self_test: cli_options.SelfTestOption = None,
    debug: cli_options.DebugOption = None,
    output: cli_options.OutputFormatOption = "text",
    config_path: cli_options.ConfigPathOption = None,
    log_level: cli_options.LogLevelOption = None,
    log_format: cli_options.LogFormatOption = None,
    log_file: cli_options.LogFileOption = None,
) -> None:
    """Run the troubleshooter and exit with its status."""

    output_format = cli_options.normalize_choice(
        output, choices=cli_options.OUTPUT_FORMAT_CHOICES, option="--output"
    )
    try:
        runtime_settings, logging_settings = resolve_application_settings(
            config_path=str(config_path) if config_path else None,
            runtime_inputs=RuntimeInputs(full=full, self_test=self_test, debug=debug),
            logging_inputs=LoggingInputs(
                level=cli_options.normalize_log_level(log_level),
                format=cli_options.normalize_choice(
                    log_format, choices=cli_options.LOG_FORMAT_CHOICES, option="--log-format"
                ),
                file_path=cli_options.clean_string(log_file),
            ),
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    configure_logging(logging_settings)
    logger = get_logger("network_troubleshooter")
    for message in runtime_settings.warnings:
        logger.warning(message)

    transcript_console = stderr_console if output_format == "json" else stdout_console
    try:
        report = run_troubleshooter(
            runtime_settings,
            logger,
            executor=build_probe_executor(),
            listener=TranscriptPrinter(transcript_console),
        )
    except TroubleshooterError as exc:
        logger.log(logging.CRITICAL, "troubleshooter.aborted", **exc.log_fields())
        stderr_console.print(_fatal_banner(exc))
        raise typer.Exit(code=1) from exc

    if output_format == "json":
        render_json(stdout_console, report)
    else:
        render_summary(stdout_console, report)
    raise typer.Exit(code=report.exit_code())


@app.command(help="Show the installed network troubleshooter version.")
def version() -> None:
    """Print the version discovered from the package metadata."""
    from importlib import metadata

    try:
        resolved_version = metadata.version("network-troubleshooter")
    except metadata.PackageNotFoundError:
        resolved_version = "unknown"
    stdout_console.print(resolved_version)


__all__ = ["app", "run", "version"]
