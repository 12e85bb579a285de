"""Conformance harness CLI implemented with Typer."""

from __future__ import annotations

import dataclasses
import json
import sys
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import typer

from packages.conformance_shared.config import ConformanceSettings, load_settings
from packages.conformance_shared.errors import TransportFailure
from packages.conformance_shared.logging import configure_logging
from resources.substrates.postgres import create_postgres_engine, ping, run_scope
from services.conformance.runner import ConformanceRunner
from services.conformance.verdicts import ConformanceReport

SUCCESS_EXIT_CODE = 0
VERDICT_FAILURE_EXIT_CODE = 1
CONFIG_ERROR_EXIT_CODE = 2
TRANSPORT_ERROR_EXIT_CODE = 4


class LogLevel(str, Enum):
    """Log levels accepted on the command line."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class CliConfig:
    """Global CLI runtime options propagated to commands."""

    settings: ConformanceSettings
    as_json: bool


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""

    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, Path)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _serialize(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize(item) for item in value]
    if hasattr(value, "model_dump"):
        return _serialize(value.model_dump(mode="python"))
    return str(value)


def _report_payload(report: ConformanceReport) -> dict[str, Any]:
    """Return the JSON shape of one report."""
    return {
        "table": report.table_name,
        "passed": report.passed,
        "verdicts": _serialize(list(report.verdicts)),
    }


def _render_report(report: ConformanceReport) -> str:
    """Render a report for human scanning."""
    lines: list[str] = []
    for verdict in report.verdicts:
        if verdict.passed:
            lines.append(f"PASS {verdict.scenario}")
            continue
        line = (
            f"FAIL {verdict.scenario} "
            f"(expected={verdict.expected} observed={verdict.observed})"
        )
        if verdict.detail:
            line = f"{line}: {verdict.detail}"
        lines.append(line)
    total = len(report.verdicts)
    passed = total - len(report.failures())
    lines.append(f"{report.table_name}: {passed}/{total} passed")
    return "\n".join(lines)


def _emit_report(report: ConformanceReport, as_json: bool) -> None:
    """Render command output in requested format."""
    if as_json:
        typer.echo(
            json.dumps(_report_payload(report), sort_keys=True, separators=(",", ":"))
        )
        return
    typer.echo(_render_report(report))


def _emit_error(exc: Exception, as_json: bool) -> None:
    """Render harness errors to stderr."""

    if as_json:
        typer.echo(json.dumps({"error": str(exc)}), err=True)
        return
    typer.echo(f"error: {exc}", err=True)


def _run_report(
    cfg: CliConfig, invoke: Callable[[ConformanceRunner], ConformanceReport]
) -> None:
    """Run one suite on a scoped connection and map results to exit codes.

    Only connection setup and runner construction map ``ValueError`` to the
    configuration exit code; errors raised by the suite itself propagate.
    """
    with ExitStack() as stack:
        try:
            connection = stack.enter_context(run_scope(cfg.settings.postgres))
            runner = ConformanceRunner.from_settings(connection, cfg.settings)
        except TransportFailure as exc:
            _emit_error(exc, cfg.as_json)
            raise typer.Exit(code=TRANSPORT_ERROR_EXIT_CODE) from exc
        except ValueError as exc:
            _emit_error(exc, cfg.as_json)
            raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE) from exc

        try:
            report = invoke(runner)
        except TransportFailure as exc:
            _emit_error(exc, cfg.as_json)
            raise typer.Exit(code=TRANSPORT_ERROR_EXIT_CODE) from exc

    _emit_report(report, cfg.as_json)
    if not report.passed:
        raise typer.Exit(code=VERDICT_FAILURE_EXIT_CODE)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""

    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


app = typer.Typer(
    no_args_is_help=True, help="Users-table schema and constraint conformance"
)


@app.callback()
def main(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
    config_path: Path | None = typer.Option(
        None, "--config", help="YAML settings file"
    ),
    database_url: str | None = typer.Option(
        None, "--database-url", help="Override the store connection URL"
    ),
    log_level: LogLevel | None = typer.Option(
        None, "--log-level", case_sensitive=False, help="Override the log level"
    ),
) -> None:
    """Resolve settings and logging for all commands."""

    cli_params: dict[str, Any] = {}
    if database_url:
        cli_params["postgres"] = {"url": database_url}
    if log_level is not None:
        cli_params["logging"] = {"level": log_level.value}
    try:
        settings = load_settings(cli_params=cli_params, config_path=config_path)
    except ValueError as exc:
        _emit_error(exc, as_json)
        raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE) from exc
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
        stream=sys.stderr,
    )
    ctx.obj = CliConfig(settings=settings, as_json=as_json)


@app.command("schema")
def schema_command(ctx: typer.Context) -> None:
    """Reconcile the declared schema against the live catalog."""
    _run_report(_require_config(ctx), lambda runner: runner.check_schema())


@app.command("probes")
def probes_command(ctx: typer.Context) -> None:
    """Run the constraint probe scenarios."""
    _run_report(_require_config(ctx), lambda runner: runner.check_probes())


@app.command("run")
def run_command(ctx: typer.Context) -> None:
    """Run schema checks followed by every probe scenario."""
    _run_report(_require_config(ctx), lambda runner: runner.run())


@app.command("health")
def health_command(ctx: typer.Context) -> None:
    """Check that the store answers a trivial query."""
    cfg = _require_config(ctx)
    try:
        engine = create_postgres_engine(cfg.settings.postgres)
    except ValueError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE) from exc
    try:
        ready = ping(
            engine, timeout_seconds=cfg.settings.postgres.health_timeout_seconds
        )
    finally:
        engine.dispose()

    if cfg.as_json:
        typer.echo(json.dumps({"ready": ready}))
    else:
        typer.echo("Store: ready" if ready else "Store: unavailable")
    raise typer.Exit(code=SUCCESS_EXIT_CODE if ready else TRANSPORT_ERROR_EXIT_CODE)


if __name__ == "__main__":
    app()
