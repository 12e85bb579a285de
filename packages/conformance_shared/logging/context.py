"""Scenario-scoped logging context.

The runner binds the scenario and table for each block it executes; probes
layer outcome fields on top. Every record emitted inside a scope carries the
merged fields. Scopes are stacked on a ``ContextVar`` holding read-only
snapshots, so leaving a scope always restores the enclosing one exactly.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar
from types import MappingProxyType

from . import fields

_EMPTY: Mapping[str, str] = MappingProxyType({})
_SCOPE: ContextVar[Mapping[str, str]] = ContextVar(
    "conformance_log_scope", default=_EMPTY
)


def _merged(base: Mapping[str, str], values: Mapping[str, object]) -> Mapping[str, str]:
    merged = dict(base)
    for key, value in values.items():
        if value is not None:
            merged[str(key)] = str(value)
    return MappingProxyType(merged)


def current_context() -> dict[str, str]:
    """Return a copy of the fields bound in the current scope."""
    return dict(_SCOPE.get())


def seed_context(values: Mapping[str, object]) -> None:
    """Bind run-wide fields (service, environment) outside any scope."""
    _SCOPE.set(_merged(_SCOPE.get(), values))


def reset_context() -> None:
    """Drop every bound field."""
    _SCOPE.set(_EMPTY)


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[None]:
    """Bind ``values`` for the duration of the block; ``None`` values are skipped."""
    token = _SCOPE.set(_merged(_SCOPE.get(), values))
    try:
        yield
    finally:
        _SCOPE.reset(token)


def scenario_context(scenario: str, *, table: str) -> AbstractContextManager[None]:
    """Bind the scenario and table name every verdict log line should carry."""
    return log_context({fields.SCENARIO: scenario, fields.TABLE: table})
