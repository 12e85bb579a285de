"""Constraint probes: crafted statements that exercise one rule each.

Every probe runs in its own transaction on the shared run connection, so a
statement refused by the store never leaves the connection in an aborted
transaction for the next probe. The store enforces constraints; probes only
classify what it did.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from packages.conformance_shared.logging import fields, get_logger, log_context
from resources.substrates.postgres.errors import (
    classify_postgres_error,
    to_transport_failure,
)
from services.conformance.descriptor import validate_identifier
from services.conformance.domain import (
    Accepted,
    DeleteOutcome,
    ProbeOutcome,
    Rejected,
    UserRecord,
)

_LOGGER = get_logger(__name__)

INVALID_EMAIL = "user"
INVALID_DATE_LITERAL = "invalid_date"


class ConstraintProbe:
    """Issue insert/delete probes against one table and classify outcomes."""

    def __init__(self, connection: Connection, *, table_name: str = "users") -> None:
        self._connection = connection
        self._table = validate_identifier(table_name, kind="table name")

    @property
    def table_name(self) -> str:
        return self._table

    def insert_valid(self, record: UserRecord) -> ProbeOutcome:
        """Insert every populated field of a well-formed record."""
        return self._insert(record.to_row())

    def insert_with_invalid_email(
        self, record: UserRecord, *, email: str = INVALID_EMAIL
    ) -> ProbeOutcome:
        """Insert ``record`` with an email that fails the format check."""
        row = record.to_row()
        row["email"] = email
        return self._insert(row)

    def insert_with_invalid_date(
        self, record: UserRecord, *, birthdate: str = INVALID_DATE_LITERAL
    ) -> ProbeOutcome:
        """Insert ``record`` with an unparseable birthdate literal."""
        row = record.to_row()
        row["birthdate"] = birthdate
        return self._insert(row)

    def insert_missing_required_field(
        self, record: UserRecord, field_name: str
    ) -> ProbeOutcome:
        """Insert ``record`` with ``field_name`` left out of the statement."""
        if field_name not in UserRecord.REQUIRED_FIELDS:
            raise ValueError(f"not a mandatory field: {field_name}")
        row = record.to_row()
        row.pop(field_name, None)
        return self._insert(row)

    def insert_duplicate(
        self, record: UserRecord, *, field_name: str = "email"
    ) -> ProbeOutcome:
        """Insert ``record`` twice, varying every identity-like field but one.

        Returns the outcome of the second insert. If the first insert is
        itself rejected, that rejection is returned unchanged.
        """
        first = self._insert(record.to_row())
        if isinstance(first, Rejected):
            return first
        row = record.to_row()
        if field_name not in row:
            raise ValueError(f"record has no value for field: {field_name}")
        if field_name != "email":
            row["email"] = f"duplicate.{row['email']}"
        if field_name != "username":
            row["username"] = f"{row['username']}_duplicate"
        return self._insert(row)

    def delete_by_id(self, record_id: int) -> DeleteOutcome:
        """Delete the record whose store-assigned id is ``record_id``."""
        return self._delete("id", record_id)

    def delete_by_non_matching_key(
        self, key: object, *, column: str = "id"
    ) -> DeleteOutcome:
        """Delete by a key expected to match nothing; zero rows is not an error."""
        return self._delete(column, key)

    def count_by(self, column: str, value: object) -> int:
        """Return how many rows have ``column = value``."""
        validate_identifier(column, kind="column name")
        statement = text(f"SELECT count(*) FROM {self._table} WHERE {column} = :value")
        try:
            with self._connection.begin():
                result = self._connection.execute(statement, {"value": value})
                return int(result.scalar_one())
        except SQLAlchemyError as exc:
            raise to_transport_failure(exc) from exc

    def fetch_all(self) -> list[UserRecord]:
        """Return every row in the table ordered by id."""
        statement = text(f"SELECT * FROM {self._table} ORDER BY id")
        try:
            with self._connection.begin():
                rows = self._connection.execute(statement).mappings().all()
        except SQLAlchemyError as exc:
            raise to_transport_failure(exc) from exc
        return [UserRecord.from_row(row) for row in rows]

    def _insert(self, row: Mapping[str, Any]) -> ProbeOutcome:
        columns = [validate_identifier(name, kind="column name") for name in row]
        statement = text(
            f"INSERT INTO {self._table} ({', '.join(columns)}) "
            f"VALUES ({', '.join(f':{name}' for name in columns)}) "
            "RETURNING *"
        )
        try:
            with self._connection.begin():
                result = self._connection.execute(statement, dict(row))
                affected = result.rowcount
                returned = result.mappings().one()
        except SQLAlchemyError as exc:
            classified = classify_postgres_error(exc)
            if classified is None:
                raise to_transport_failure(exc) from exc
            kind, detail = classified
            with log_context(
                {
                    fields.OUTCOME: "rejected",
                    fields.REJECTION_KIND: kind.value,
                    fields.SQLSTATE: detail.sqlstate,
                }
            ):
                _LOGGER.info(
                    "Insert rejected: constraint=%s column=%s",
                    detail.constraint,
                    detail.column,
                )
            return Rejected(kind=kind, detail=detail)

        record = UserRecord.from_row(returned)
        with log_context({fields.OUTCOME: "accepted", fields.AFFECTED: affected}):
            _LOGGER.info("Insert accepted: id=%s", record.id)
        return Accepted(record=record, affected=affected)

    def _delete(self, column: str, key: object) -> DeleteOutcome:
        validate_identifier(column, kind="column name")
        statement = text(f"DELETE FROM {self._table} WHERE {column} = :key")
        try:
            with self._connection.begin():
                affected = self._connection.execute(statement, {"key": key}).rowcount
        except SQLAlchemyError as exc:
            raise to_transport_failure(exc) from exc
        with log_context({fields.AFFECTED: affected}):
            _LOGGER.info("Delete completed: %s=%s", column, key)
        return DeleteOutcome(key_column=column, key=key, affected=affected)
