"""Expected-vs-observed schema reconciliation.

Comparison is by type tag string. ``EXACT`` only folds case and whitespace;
``NORMALIZED`` first maps well-known catalog spellings onto logical tags and
drops width/precision suffixes. Neither policy treats structurally
compatible types (``text`` and ``varchar``, ``timestamp`` and
``timestamptz``) as equal.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from enum import StrEnum

from services.conformance.descriptor import FieldExpectation
from services.conformance.domain import ReconciliationResult, ReconciliationStatus


class TypeComparisonPolicy(StrEnum):
    """How observed catalog type names are compared to expected tags."""

    EXACT = "exact"
    NORMALIZED = "normalized"


_PRECISION = re.compile(r"\(\s*\d+(\s*,\s*\d+)?\s*\)")
_WHITESPACE = re.compile(r"\s+")

_CATALOG_ALIASES: dict[str, str] = {
    "int": "integer",
    "int4": "integer",
    "int8": "bigint",
    "int2": "smallint",
    "bool": "boolean",
    "character varying": "varchar",
    "character": "char",
    "timestamp without time zone": "timestamp",
    "timestamp with time zone": "timestamptz",
    "time without time zone": "time",
    "time with time zone": "timetz",
    "double precision": "float8",
    "real": "float4",
}


def normalize_type_tag(tag: str, *, policy: TypeComparisonPolicy) -> str:
    """Return the comparable form of ``tag`` under ``policy``."""
    folded = _WHITESPACE.sub(" ", tag.strip().lower())
    if policy is TypeComparisonPolicy.EXACT:
        return folded
    stripped = _WHITESPACE.sub(" ", _PRECISION.sub("", folded)).strip()
    return _CATALOG_ALIASES.get(stripped, stripped)


def reconcile_field(
    expected: FieldExpectation,
    observed: Mapping[str, str],
    *,
    policy: TypeComparisonPolicy = TypeComparisonPolicy.EXACT,
) -> ReconciliationResult:
    """Reconcile one expected field against the observed mapping."""
    if expected.name not in observed:
        return ReconciliationResult(
            name=expected.name,
            status=ReconciliationStatus.MISSING,
            expected=expected.type,
        )
    observed_type = observed[expected.name]
    same = normalize_type_tag(observed_type, policy=policy) == normalize_type_tag(
        expected.type, policy=policy
    )
    return ReconciliationResult(
        name=expected.name,
        status=(
            ReconciliationStatus.MATCHED
            if same
            else ReconciliationStatus.TYPE_MISMATCH
        ),
        expected=expected.type,
        observed=observed_type,
    )


def reconcile(
    expected: Iterable[FieldExpectation],
    observed: Mapping[str, str],
    *,
    policy: TypeComparisonPolicy = TypeComparisonPolicy.EXACT,
) -> tuple[ReconciliationResult, ...]:
    """Reconcile every expected field, preserving declaration order."""
    return tuple(
        reconcile_field(field, observed, policy=policy) for field in expected
    )


def unmatched(results: Iterable[ReconciliationResult]) -> tuple[ReconciliationResult, ...]:
    """Return results that are not ``MATCHED``."""
    return tuple(result for result in results if not result.matched)


def all_matched(results: Iterable[ReconciliationResult]) -> bool:
    """Return True when every result is ``MATCHED``."""
    return not unmatched(results)
