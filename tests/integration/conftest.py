"""Shared fixtures for integration-oriented test modules."""

from __future__ import annotations

from tests.integration.fixtures import (  # noqa: F401
    postgres_dsn,
    postgres_settings,
    run_connection,
)
