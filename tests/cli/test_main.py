"""CLI tests for the conformance Typer commands."""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from actors.cli import main as cli_module
from packages.conformance_shared.errors import StoreUnavailable
from services.conformance.verdicts import ConformanceReport, Verdict

PASSING = ConformanceReport(
    "users",
    (
        Verdict("field id present", True, "present", "present"),
        Verdict("insert valid user", True, "accepted", "accepted"),
    ),
)
FAILING = ConformanceReport(
    "users",
    (
        Verdict("field id present", True, "present", "present"),
        Verdict(
            "insert user with invalid email",
            False,
            "rejected:format_violation",
            "accepted",
            detail="store accepted input built to violate a constraint",
        ),
    ),
)


class FakeRunner:
    """Runner double recording which suite the command invoked."""

    calls: list[tuple[str, Any]] = []
    report: ConformanceReport | Exception = PASSING

    def __init__(self, settings: Any) -> None:
        self.settings = settings

    @classmethod
    def from_settings(cls, connection: Any, settings: Any) -> "FakeRunner":
        cls.calls.append(("from_settings", connection))
        return cls(settings)

    def _result(self, suite: str) -> ConformanceReport:
        self.calls.append((suite, self.settings.table.name))
        if isinstance(self.report, Exception):
            raise self.report
        return self.report

    def check_schema(self) -> ConformanceReport:
        return self._result("schema")

    def check_probes(self) -> ConformanceReport:
        return self._result("probes")

    def run(self) -> ConformanceReport:
        return self._result("run")


@pytest.fixture
def cli(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> type[FakeRunner]:
    """Patch store access and logging out of the CLI module."""
    for name in list(os.environ):
        if name.startswith("CONFORMANCE_") or name == "DATABASE_URL":
            monkeypatch.delenv(name)

    scopes: list[str] = []

    @contextmanager
    def fake_run_scope(config: Any):
        scopes.append(config.require_url())
        yield "connection"

    FakeRunner.calls = scopes  # type: ignore[assignment]
    FakeRunner.report = PASSING
    monkeypatch.setattr(cli_module, "run_scope", fake_run_scope)
    monkeypatch.setattr(cli_module, "ConformanceRunner", FakeRunner)
    monkeypatch.setattr(cli_module, "configure_logging", lambda **_: None)
    return FakeRunner


def _args(tmp_path: Path, *extra: str) -> list[str]:
    return [
        "--config",
        str(tmp_path / "missing.yaml"),
        "--database-url",
        "postgresql://tester@localhost/users",
        *extra,
    ]


def test_run_prints_human_report_and_exits_zero(
    cli: type[FakeRunner], tmp_path: Path
) -> None:
    """A passing report should print one line per verdict and a summary."""
    result = CliRunner().invoke(cli_module.app, _args(tmp_path, "run"))

    assert result.exit_code == 0
    assert "PASS field id present" in result.stdout
    assert "users: 2/2 passed" in result.stdout
    assert cli.calls == [
        "postgresql+psycopg://tester@localhost/users",
        ("from_settings", "connection"),
        ("run", "users"),
    ]


def test_schema_and_probes_commands_select_their_suite(
    cli: type[FakeRunner], tmp_path: Path
) -> None:
    """Each subcommand should run only its own suite."""
    CliRunner().invoke(cli_module.app, _args(tmp_path, "schema"))
    CliRunner().invoke(cli_module.app, _args(tmp_path, "probes"))

    suites = [call[0] for call in cli.calls if isinstance(call, tuple)]
    assert suites == ["from_settings", "schema", "from_settings", "probes"]


def test_failed_verdict_maps_to_exit_code_1(
    cli: type[FakeRunner], tmp_path: Path
) -> None:
    """Any failed verdict should fail the process."""
    cli.report = FAILING

    result = CliRunner().invoke(cli_module.app, _args(tmp_path, "probes"))

    assert result.exit_code == 1
    assert (
        "FAIL insert user with invalid email "
        "(expected=rejected:format_violation observed=accepted)"
    ) in result.stdout
    assert "users: 1/2 passed" in result.stdout


def test_json_output_is_a_single_parseable_document(
    cli: type[FakeRunner], tmp_path: Path
) -> None:
    """`--json` should emit compact JSON on stdout."""
    cli.report = FAILING

    result = CliRunner().invoke(cli_module.app, ["--json", *_args(tmp_path, "run")])

    payload = json.loads(result.stdout)
    assert result.exit_code == 1
    assert payload["table"] == "users"
    assert payload["passed"] is False
    assert payload["verdicts"][1]["observed"] == "accepted"


def test_transport_failure_maps_to_exit_code_4(
    cli: type[FakeRunner], tmp_path: Path
) -> None:
    """Losing the store mid-run should abort with a transport exit code."""
    cli.report = StoreUnavailable("server closed the connection unexpectedly")

    result = CliRunner().invoke(cli_module.app, _args(tmp_path, "run"))

    assert result.exit_code == 4
    assert "server closed the connection unexpectedly" in result.stderr


def test_missing_database_url_maps_to_exit_code_2(
    cli: type[FakeRunner], tmp_path: Path
) -> None:
    """Running without a URL is a configuration error."""
    result = CliRunner().invoke(
        cli_module.app, ["--config", str(tmp_path / "missing.yaml"), "run"]
    )

    assert result.exit_code == 2
    assert "DATABASE_URL" in result.stderr


def test_invalid_settings_map_to_exit_code_2(
    cli: type[FakeRunner], tmp_path: Path
) -> None:
    """Invalid YAML values are reported before any store access."""
    config_file = tmp_path / "conformance.yaml"
    config_file.write_text("table:\n  type_policy: loose\n", encoding="utf-8")

    result = CliRunner().invoke(
        cli_module.app, ["--config", str(config_file), "run"]
    )

    assert result.exit_code == 2
    assert "type_policy" in result.stderr
    assert cli.calls == []


def test_health_reports_ready_store(
    cli: type[FakeRunner], tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Health should ping the store and dispose the engine."""
    disposed: list[bool] = []

    class FakeEngine:
        def dispose(self) -> None:
            disposed.append(True)

    monkeypatch.setattr(cli_module, "create_postgres_engine", lambda _: FakeEngine())
    monkeypatch.setattr(cli_module, "ping", lambda engine, timeout_seconds: True)

    result = CliRunner().invoke(cli_module.app, _args(tmp_path, "--json", "health"))

    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"ready": True}
    assert disposed == [True]


def test_health_unavailable_store_maps_to_exit_code_4(
    cli: type[FakeRunner], tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    class FakeEngine:
        def dispose(self) -> None:
            return None

    monkeypatch.setattr(cli_module, "create_postgres_engine", lambda _: FakeEngine())
    monkeypatch.setattr(cli_module, "ping", lambda engine, timeout_seconds: False)

    result = CliRunner().invoke(cli_module.app, _args(tmp_path, "health"))

    assert result.exit_code == 4
    assert "Store: unavailable" in result.stdout


def test_errors_raised_by_the_suite_are_not_reported_as_config_errors(
    cli: type[FakeRunner], tmp_path: Path
) -> None:
    """A ValueError from inside the suite should propagate, not exit 2."""
    cli.report = ValueError("record has no value for field: nickname")

    result = CliRunner().invoke(cli_module.app, _args(tmp_path, "run"))

    assert result.exit_code != 2
    assert isinstance(result.exception, ValueError)
    assert "nickname" in str(result.exception)


def test_malformed_unique_field_maps_to_exit_code_2(
    cli: type[FakeRunner], tmp_path: Path
) -> None:
    """Unique fields must be plain column identifiers."""
    config_file = tmp_path / "conformance.yaml"
    config_file.write_text("table:\n  unique_fields: [Email]\n", encoding="utf-8")

    result = CliRunner().invoke(
        cli_module.app, ["--config", str(config_file), "run"]
    )

    assert result.exit_code == 2
    assert "unique_fields" in result.stderr
    assert cli.calls == []
