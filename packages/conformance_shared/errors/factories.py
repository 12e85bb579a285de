"""Factory helpers for building consistent rejection diagnostics."""

from __future__ import annotations

from . import codes
from .types import RejectionKind, ViolationDetail

_KIND_BY_SQLSTATE: dict[str, RejectionKind] = {
    codes.CHECK_VIOLATION: RejectionKind.FORMAT_VIOLATION,
    codes.NOT_NULL_VIOLATION: RejectionKind.NOT_NULL_VIOLATION,
    codes.INVALID_DATETIME_FORMAT: RejectionKind.TYPE_CONVERSION_FAILURE,
    codes.DATETIME_FIELD_OVERFLOW: RejectionKind.TYPE_CONVERSION_FAILURE,
    codes.INVALID_TEXT_REPRESENTATION: RejectionKind.TYPE_CONVERSION_FAILURE,
    codes.UNIQUE_VIOLATION: RejectionKind.UNIQUENESS_VIOLATION,
}


def rejection_kind_for(sqlstate: str | None) -> RejectionKind | None:
    """Return the rejection kind for a SQLSTATE, or None when unrecognized."""
    if sqlstate is None:
        return None
    return _KIND_BY_SQLSTATE.get(sqlstate.upper())


def violation_detail(
    sqlstate: str,
    message: str,
    *,
    constraint: str | None = None,
    column: str | None = None,
    table: str | None = None,
) -> ViolationDetail:
    """Create a violation detail with blank diagnostic fields folded to None."""
    return ViolationDetail(
        sqlstate=sqlstate.upper(),
        message=message.strip(),
        constraint=_blank_to_none(constraint),
        column=_blank_to_none(column),
        table=_blank_to_none(table),
    )


def _blank_to_none(value: str | None) -> str | None:
    """Normalize empty diagnostic strings into ``None``."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
