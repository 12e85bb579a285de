"""Canonical error types for the conformance harness.

Two families live here. Constraint rejections are *data*: a ``RejectionKind``
plus a ``ViolationDetail`` describing what the store refused. Transport and
catalog failures are *exceptions* that abort the current scenario.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RejectionKind(str, Enum):
    """Why the store refused a data-manipulation statement."""

    FORMAT_VIOLATION = "format_violation"
    NOT_NULL_VIOLATION = "not_null_violation"
    TYPE_CONVERSION_FAILURE = "type_conversion_failure"
    UNIQUENESS_VIOLATION = "uniqueness_violation"


@dataclass(frozen=True)
class ViolationDetail:
    """Structured diagnostics attached to one constraint rejection.

    ``message`` is the store's own text. It is carried for humans and logs
    only; callers assert on ``RejectionKind`` and the structured fields.
    """

    sqlstate: str
    message: str
    constraint: str | None = None
    column: str | None = None
    table: str | None = None


class ConformanceError(Exception):
    """Base class for harness failures that abort a scenario."""


class TransportFailure(ConformanceError):
    """Store operation failed for a reason other than a recognized constraint."""

    def __init__(self, message: str, *, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


class StoreUnavailable(TransportFailure):
    """The store connection could not be used."""


class UnknownTable(ConformanceError):
    """The metadata catalog reported no columns for a table."""

    def __init__(self, table_name: str) -> None:
        super().__init__(f"table not found in metadata catalog: {table_name}")
        self.table_name = table_name
