"""Postgres/SQLAlchemy exception classification.

Constraint rejections are recognized by SQLSTATE and driver diagnostics only.
Store message text is carried along as opaque detail and is never matched.
"""

from __future__ import annotations

from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    InterfaceError,
    OperationalError,
    ResourceClosedError,
)

from packages.conformance_shared.errors import (
    RejectionKind,
    StoreUnavailable,
    TransportFailure,
    ViolationDetail,
    codes,
    rejection_kind_for,
    violation_detail,
)

_UNAVAILABLE_TYPES = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    ResourceClosedError,
)


def sqlstate_of(exc: BaseException) -> str | None:
    """Return the SQLSTATE reported by the driver beneath ``exc``, if any."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None)
    if isinstance(sqlstate, str) and sqlstate:
        return sqlstate
    return None


def classify_postgres_error(
    exc: BaseException,
) -> tuple[RejectionKind, ViolationDetail] | None:
    """Map a failed statement onto a constraint rejection.

    Returns ``None`` when the failure is not a recognized constraint
    rejection; callers should then raise ``to_transport_failure(exc)``.
    """
    if not isinstance(exc, DBAPIError) or exc.connection_invalidated:
        return None
    sqlstate = sqlstate_of(exc)
    kind = rejection_kind_for(sqlstate)
    if kind is None or sqlstate is None:
        return None

    diag = getattr(exc.orig, "diag", None)
    message = getattr(diag, "message_primary", None) or str(exc.orig)
    detail = violation_detail(
        sqlstate,
        message,
        constraint=getattr(diag, "constraint_name", None),
        column=getattr(diag, "column_name", None),
        table=getattr(diag, "table_name", None),
    )
    return kind, detail


def to_transport_failure(exc: BaseException) -> TransportFailure:
    """Wrap an unrecognized store failure in the harness transport taxonomy."""
    sqlstate = sqlstate_of(exc)
    message = f"{type(exc).__name__}: {exc}"
    invalidated = isinstance(exc, DBAPIError) and exc.connection_invalidated
    connection_class = sqlstate is not None and sqlstate.startswith(
        codes.CONNECTION_EXCEPTION_CLASS
    )
    if invalidated or connection_class or isinstance(exc, _UNAVAILABLE_TYPES):
        return StoreUnavailable(message, sqlstate=sqlstate)
    return TransportFailure(message, sqlstate=sqlstate)
