"""Connection lifecycle helpers for one conformance run.

A run owns exactly one connection. It is acquired once, threaded explicitly
into every component, and released on every exit path, including failed
assertions.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from packages.conformance_shared.config import PostgresSettings
from packages.conformance_shared.logging import get_logger
from resources.substrates.postgres.engine import create_postgres_engine
from resources.substrates.postgres.errors import to_transport_failure

_LOGGER = get_logger(__name__)


@contextmanager
def connection_scope(engine: Engine) -> Iterator[Connection]:
    """Yield one live connection and close it when the block exits."""
    try:
        connection = engine.connect()
    except SQLAlchemyError as exc:
        raise to_transport_failure(exc) from exc
    _LOGGER.debug("Store connection acquired")
    try:
        yield connection
    finally:
        connection.close()
        _LOGGER.debug("Store connection released")


@contextmanager
def run_scope(config: PostgresSettings) -> Iterator[Connection]:
    """Build an engine, yield its single run connection, then dispose it."""
    engine = create_postgres_engine(config)
    try:
        with connection_scope(engine) as connection:
            yield connection
    finally:
        engine.dispose()
