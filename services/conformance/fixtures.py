"""Table-state resets that give every scenario a known-empty baseline."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from packages.conformance_shared.logging import get_logger
from resources.substrates.postgres.errors import to_transport_failure
from services.conformance.descriptor import validate_identifier

_LOGGER = get_logger(__name__)


class FixtureController:
    """Clear the probed table between scenarios."""

    def __init__(self, connection: Connection, *, table_name: str = "users") -> None:
        self._connection = connection
        self._table = validate_identifier(table_name, kind="table name")

    def reset_all(self) -> None:
        """Remove every record; identity sequences keep their position."""
        self._execute(f"TRUNCATE {self._table}")

    def reset_all_and_restart_identity(self) -> None:
        """Remove every record and restart owned identity sequences."""
        self._execute(f"TRUNCATE {self._table} RESTART IDENTITY")

    def row_count(self) -> int:
        """Return the number of records currently in the table."""
        try:
            with self._connection.begin():
                result = self._connection.execute(
                    text(f"SELECT count(*) FROM {self._table}")
                )
                return int(result.scalar_one())
        except SQLAlchemyError as exc:
            raise to_transport_failure(exc) from exc

    @contextmanager
    def scenario(self, *, restart_identity: bool = False) -> Iterator[None]:
        """Reset before the block and again after it, on every exit path."""
        reset = (
            self.reset_all_and_restart_identity if restart_identity else self.reset_all
        )
        reset()
        try:
            yield
        finally:
            reset()

    def _execute(self, statement: str) -> None:
        try:
            with self._connection.begin():
                self._connection.execute(text(statement))
        except SQLAlchemyError as exc:
            raise to_transport_failure(exc) from exc
        _LOGGER.debug("Fixture reset: %s", statement)
