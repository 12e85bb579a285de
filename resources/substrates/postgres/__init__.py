"""Postgres substrate primitives for the conformance harness."""

from resources.substrates.postgres.engine import create_postgres_engine
from resources.substrates.postgres.errors import (
    classify_postgres_error,
    sqlstate_of,
    to_transport_failure,
)
from resources.substrates.postgres.health import ping
from resources.substrates.postgres.session import connection_scope, run_scope

__all__ = [
    "classify_postgres_error",
    "connection_scope",
    "create_postgres_engine",
    "ping",
    "run_scope",
    "sqlstate_of",
    "to_transport_failure",
]
