"""Smoke tests for the integration harness fixture layer."""

from __future__ import annotations

from tests.integration.fixtures import USERS_DDL_PATH, _parse_published_port
from tests.integration.helpers import real_provider_tests_enabled


def test_real_provider_flag_defaults_disabled(monkeypatch) -> None:
    """Real-store integration mode should be opt-in by environment flag."""
    monkeypatch.delenv("CONFORMANCE_RUN_INTEGRATION_REAL", raising=False)
    assert real_provider_tests_enabled() is False

    monkeypatch.setenv("CONFORMANCE_RUN_INTEGRATION_REAL", "yes")
    assert real_provider_tests_enabled() is True


def test_published_port_parsing_takes_first_binding() -> None:
    assert _parse_published_port("127.0.0.1:55432\n[::1]:55432\n") == (
        "127.0.0.1",
        55432,
    )


def test_users_ddl_declares_the_email_check() -> None:
    assert "users_email_check" in USERS_DDL_PATH.read_text(encoding="utf-8")
