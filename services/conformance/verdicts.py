"""Pass/fail verdicts for reconciliation results and probe outcomes.

A deliberately invalid probe that the store accepts is itself a failed
verdict; nothing here raises on a failed expectation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from packages.conformance_shared.errors import RejectionKind
from services.conformance.domain import (
    Accepted,
    DeleteOutcome,
    ProbeOutcome,
    ReconciliationResult,
    ReconciliationStatus,
    Rejected,
)


@dataclass(frozen=True, slots=True)
class Verdict:
    """Outcome of one assertion made by the harness."""

    scenario: str
    passed: bool
    expected: str
    observed: str
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class ConformanceReport:
    """Ordered verdicts for one run."""

    table_name: str
    verdicts: tuple[Verdict, ...]

    @property
    def passed(self) -> bool:
        return all(verdict.passed for verdict in self.verdicts)

    def failures(self) -> tuple[Verdict, ...]:
        return tuple(verdict for verdict in self.verdicts if not verdict.passed)


def schema_verdicts(results: Iterable[ReconciliationResult]) -> list[Verdict]:
    """Return a presence verdict and a type verdict for each field."""
    verdicts: list[Verdict] = []
    for result in results:
        present = result.status is not ReconciliationStatus.MISSING
        verdicts.append(
            Verdict(
                scenario=f"field {result.name} present",
                passed=present,
                expected="present",
                observed="present" if present else "missing",
            )
        )
        verdicts.append(
            Verdict(
                scenario=f"field {result.name} is {result.expected}",
                passed=result.matched,
                expected=result.expected,
                observed=result.observed if result.observed is not None else "missing",
            )
        )
    return verdicts


def expect_accepted(scenario: str, outcome: ProbeOutcome, *, now: datetime) -> Verdict:
    """Expect acceptance with store-assigned id and a current-year ``created_at``."""
    if isinstance(outcome, Rejected):
        return Verdict(
            scenario=scenario,
            passed=False,
            expected="accepted",
            observed=f"rejected:{outcome.kind.value}",
            detail=outcome.detail.message,
        )
    record = outcome.record
    if record.id is None or record.created_at is None:
        return Verdict(
            scenario=scenario,
            passed=False,
            expected="accepted",
            observed="accepted",
            detail="store did not assign id and created_at",
        )
    if record.created_at.year != now.year:
        return Verdict(
            scenario=scenario,
            passed=False,
            expected=f"created_at in {now.year}",
            observed=f"created_at in {record.created_at.year}",
        )
    return Verdict(scenario=scenario, passed=True, expected="accepted", observed="accepted")


def expect_rejected(
    scenario: str,
    outcome: ProbeOutcome,
    kind: RejectionKind,
    *,
    column: str | None = None,
) -> Verdict:
    """Expect a rejection of ``kind``, optionally naming ``column``."""
    expected = f"rejected:{kind.value}"
    if isinstance(outcome, Accepted):
        return Verdict(
            scenario=scenario,
            passed=False,
            expected=expected,
            observed="accepted",
            detail="store accepted input built to violate a constraint",
        )
    observed = f"rejected:{outcome.kind.value}"
    if outcome.kind is not kind:
        return Verdict(
            scenario=scenario,
            passed=False,
            expected=expected,
            observed=observed,
            detail=outcome.detail.message,
        )
    if column is not None and outcome.detail.column != column:
        return Verdict(
            scenario=scenario,
            passed=False,
            expected=f"{expected} on {column}",
            observed=f"{observed} on {outcome.detail.column}",
            detail=outcome.detail.message,
        )
    return Verdict(scenario=scenario, passed=True, expected=expected, observed=observed)


def expect_affected(scenario: str, outcome: DeleteOutcome, count: int) -> Verdict:
    """Expect a delete to affect exactly ``count`` rows."""
    return expect_equal(scenario, expected=count, observed=outcome.affected)


def expect_equal(scenario: str, *, expected: object, observed: object) -> Verdict:
    """Expect two observed values to be equal."""
    return Verdict(
        scenario=scenario,
        passed=expected == observed,
        expected=str(expected),
        observed=str(observed),
    )
