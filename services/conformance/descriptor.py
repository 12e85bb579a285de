"""Declared schema contracts for verified tables."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


def validate_identifier(name: str, *, kind: str = "identifier") -> str:
    """Return ``name`` when it is a plain lower-case SQL identifier."""
    if not _IDENTIFIER.fullmatch(name):
        raise ValueError(f"invalid {kind}: {name!r}")
    return name


@dataclass(frozen=True, slots=True)
class FieldExpectation:
    """One expected column and its logical type tag."""

    name: str
    type: str


class SchemaDescriptor:
    """Ordered, duplicate-free set of field expectations for one table."""

    def __init__(self, table_name: str, fields: Iterable[FieldExpectation]) -> None:
        self._table_name = validate_identifier(table_name, kind="table name")
        self._fields = tuple(fields)
        seen: set[str] = set()
        for field in self._fields:
            validate_identifier(field.name, kind="column name")
            if field.name in seen:
                raise ValueError(f"duplicate field expectation: {field.name}")
            seen.add(field.name)

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def fields(self) -> tuple[FieldExpectation, ...]:
        return self._fields

    def names(self) -> tuple[str, ...]:
        return tuple(field.name for field in self._fields)

    def get(self, name: str) -> FieldExpectation | None:
        for field in self._fields:
            if field.name == name:
                return field
        return None

    def __iter__(self) -> Iterator[FieldExpectation]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)


USERS_SCHEMA = SchemaDescriptor(
    "users",
    (
        FieldExpectation("id", "integer"),
        FieldExpectation("email", "text"),
        FieldExpectation("username", "text"),
        FieldExpectation("birthdate", "date"),
        FieldExpectation("city", "text"),
        FieldExpectation("first_name", "text"),
        FieldExpectation("last_name", "text"),
        FieldExpectation("password", "text"),
        FieldExpectation("created_at", "timestamp"),
        FieldExpectation("enabled", "boolean"),
        FieldExpectation("last_access_time", "timestamp"),
    ),
)
