"""Observed-schema reads from the store's metadata catalog."""

from __future__ import annotations

from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from packages.conformance_shared.errors import UnknownTable
from packages.conformance_shared.logging import get_logger
from resources.substrates.postgres.errors import to_transport_failure

_LOGGER = get_logger(__name__)

_COLUMNS_QUERY = text(
    "SELECT column_name, data_type "
    "FROM information_schema.columns "
    "WHERE table_name = :table_name AND table_schema = :table_schema "
    "ORDER BY ordinal_position"
)


class ObservedSchemaReader:
    """Read column name and type pairs for one table from the catalog."""

    def __init__(self, connection: Connection, *, schema_name: str = "public") -> None:
        self._connection = connection
        self._schema_name = schema_name

    def read_schema(self, table_name: str) -> dict[str, str]:
        """Return ``column_name -> data_type`` for ``table_name``.

        Raises:
            TransportFailure: the catalog query failed; ``StoreUnavailable``
                when the connection itself was lost.
            UnknownTable: the catalog reported no columns for the table.
        """
        try:
            with self._connection.begin():
                rows = self._connection.execute(
                    _COLUMNS_QUERY,
                    {"table_name": table_name, "table_schema": self._schema_name},
                ).all()
        except SQLAlchemyError as exc:
            raise to_transport_failure(exc) from exc

        observed: dict[str, str] = {}
        for column_name, data_type in rows:
            observed[column_name] = data_type
        if not observed:
            raise UnknownTable(table_name)

        _LOGGER.debug(
            "Observed schema read: table=%s columns=%s", table_name, len(observed)
        )
        return observed
