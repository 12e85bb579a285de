"""Readiness probe for the store under verification."""

from __future__ import annotations

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from packages.conformance_shared.logging import get_logger
from resources.substrates.postgres.errors import to_transport_failure

_LOGGER = get_logger(__name__)


def ping(engine: Engine, *, timeout_seconds: float = 1.0) -> bool:
    """Return True when the store answers ``SELECT 1`` within the timeout.

    The timeout is applied with ``SET LOCAL`` and ends with the probe
    transaction.
    """
    timeout_ms = max(1, int(timeout_seconds * 1000))
    try:
        with engine.connect() as conn, conn.begin():
            conn.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
            conn.execute(text("SELECT 1")).scalar_one()
    except SQLAlchemyError as exc:
        _LOGGER.warning("Store ping failed: %s", to_transport_failure(exc))
        return False
    return True
