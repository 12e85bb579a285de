"""Sequential conformance suite over one run connection.

Scenarios run strictly one after another: fixture reset, probe or catalog
read, verdict, reset. A ``TransportFailure`` aborts the run and propagates to
the caller; every other failure is reported as a verdict.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from functools import partial

from sqlalchemy import Connection

from packages.conformance_shared.config import ConformanceSettings
from packages.conformance_shared.errors import RejectionKind, UnknownTable
from packages.conformance_shared.logging import (
    fields,
    get_logger,
    log_context,
    scenario_context,
)
from services.conformance.descriptor import USERS_SCHEMA, SchemaDescriptor
from services.conformance.domain import Accepted, UserRecord
from services.conformance.fixtures import FixtureController
from services.conformance.probe import ConstraintProbe
from services.conformance.reader import ObservedSchemaReader
from services.conformance.reconciler import TypeComparisonPolicy, reconcile
from services.conformance.verdicts import (
    ConformanceReport,
    Verdict,
    expect_accepted,
    expect_affected,
    expect_equal,
    expect_rejected,
    schema_verdicts,
)

_LOGGER = get_logger(__name__)

NON_EXISTENT_ID_OFFSET = 100
_LAST_ACCESS_TIME = datetime(2024, 6, 8, 11, 15, tzinfo=UTC)


class ConformanceRunner:
    """Run schema and constraint scenarios against one table."""

    def __init__(
        self,
        connection: Connection,
        *,
        descriptor: SchemaDescriptor = USERS_SCHEMA,
        schema_name: str = "public",
        policy: TypeComparisonPolicy = TypeComparisonPolicy.EXACT,
        unique_fields: Sequence[str] = (),
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        unknown = sorted(set(unique_fields) - set(UserRecord.insertable_fields()))
        if unknown:
            raise ValueError(
                f"unique_fields names no insertable users column: {', '.join(unknown)}"
            )
        self._descriptor = descriptor
        self._policy = policy
        self._unique_fields = tuple(unique_fields)
        self._now = now
        self._reader = ObservedSchemaReader(connection, schema_name=schema_name)
        self._probe = ConstraintProbe(connection, table_name=descriptor.table_name)
        self._fixtures = FixtureController(
            connection, table_name=descriptor.table_name
        )

    @classmethod
    def from_settings(
        cls,
        connection: Connection,
        settings: ConformanceSettings,
        *,
        descriptor: SchemaDescriptor = USERS_SCHEMA,
    ) -> "ConformanceRunner":
        """Build a runner whose table options come from ``settings.table``."""
        if descriptor.table_name != settings.table.name:
            descriptor = SchemaDescriptor(settings.table.name, descriptor.fields)
        return cls(
            connection,
            descriptor=descriptor,
            schema_name=settings.table.schema_name,
            policy=TypeComparisonPolicy(settings.table.type_policy),
            unique_fields=settings.table.unique_fields,
        )

    @property
    def table_name(self) -> str:
        return self._descriptor.table_name

    def run(self) -> ConformanceReport:
        """Run the schema checks, then every probe scenario.

        Probes are skipped when the table is absent from the catalog.
        """
        schema, table_found = self._check_schema()
        if not table_found:
            return ConformanceReport(self.table_name, schema)
        probes = self.check_probes()
        return ConformanceReport(self.table_name, schema + probes.verdicts)

    def check_schema(self) -> ConformanceReport:
        """Reconcile the declared schema against the catalog."""
        verdicts, _ = self._check_schema()
        return ConformanceReport(self.table_name, verdicts)

    def check_probes(self) -> ConformanceReport:
        """Run each constraint scenario against a freshly reset table."""
        verdicts: list[Verdict] = []
        for name, restart_identity, scenario in self._scenarios():
            with scenario_context(name, table=self.table_name):
                with self._fixtures.scenario(restart_identity=restart_identity):
                    produced = scenario(name)
                _log_verdicts(produced)
            verdicts.extend(produced)
        return ConformanceReport(self.table_name, tuple(verdicts))

    def _check_schema(self) -> tuple[tuple[Verdict, ...], bool]:
        with scenario_context("schema", table=self.table_name):
            try:
                observed = self._reader.read_schema(self.table_name)
            except UnknownTable:
                _LOGGER.warning("Table missing from catalog: %s", self.table_name)
                missing = Verdict(
                    scenario=f"table {self.table_name} exists",
                    passed=False,
                    expected="present",
                    observed="missing",
                )
                fields_missing = schema_verdicts(reconcile(self._descriptor, {}))
                return (missing, *fields_missing), False

            results = reconcile(self._descriptor, observed, policy=self._policy)
            verdicts = schema_verdicts(results)
            _log_verdicts(verdicts)
        return tuple(verdicts), True

    def _scenarios(self) -> list[tuple[str, bool, Callable[[str], list[Verdict]]]]:
        scenarios: list[tuple[str, bool, Callable[[str], list[Verdict]]]] = [
            ("insert valid user", False, self._insert_valid),
            ("insert user with invalid email", False, self._invalid_email),
            ("insert user with invalid birthdate", False, self._invalid_birthdate),
            ("insert user without city", False, self._missing_city),
            ("delete user by id", True, self._delete_by_id),
            ("delete non-existent user", True, self._delete_non_existent),
            ("restart identity", True, self._restart_identity),
        ]
        for field_name in self._unique_fields:
            scenarios.append(
                (
                    f"insert duplicate {field_name}",
                    False,
                    partial(self._duplicate, field_name=field_name),
                )
            )
        return scenarios

    def _insert_valid(self, name: str) -> list[Verdict]:
        record = UserRecord.sample()
        outcome = self._probe.insert_valid(record)
        verdicts = [expect_accepted(name, outcome, now=self._now())]
        if not isinstance(outcome, Accepted):
            return verdicts
        rows = self._probe.fetch_all()
        verdicts.append(
            expect_equal(f"{name}: affected", expected=1, observed=outcome.affected)
        )
        verdicts.append(
            expect_equal(f"{name}: table rows", expected=1, observed=len(rows))
        )
        if rows:
            verdicts.append(
                expect_equal(
                    f"{name}: stored email",
                    expected=record.email,
                    observed=rows[0].email,
                )
            )
        return verdicts

    def _invalid_email(self, name: str) -> list[Verdict]:
        outcome = self._probe.insert_with_invalid_email(UserRecord.sample())
        return [expect_rejected(name, outcome, RejectionKind.FORMAT_VIOLATION)]

    def _invalid_birthdate(self, name: str) -> list[Verdict]:
        outcome = self._probe.insert_with_invalid_date(UserRecord.sample())
        return [expect_rejected(name, outcome, RejectionKind.TYPE_CONVERSION_FAILURE)]

    def _missing_city(self, name: str) -> list[Verdict]:
        outcome = self._probe.insert_missing_required_field(
            UserRecord.sample(), "city"
        )
        return [
            expect_rejected(
                name, outcome, RejectionKind.NOT_NULL_VIOLATION, column="city"
            )
        ]

    def _delete_by_id(self, name: str) -> list[Verdict]:
        seeded = self._seed(name)
        if isinstance(seeded, Verdict):
            return [seeded]
        before = self._probe.count_by("id", seeded)
        deleted = self._probe.delete_by_id(seeded)
        after = self._probe.count_by("id", seeded)
        return [
            expect_equal(f"{name}: exists before", expected=1, observed=before),
            expect_affected(name, deleted, 1),
            expect_equal(f"{name}: exists after", expected=0, observed=after),
        ]

    def _delete_non_existent(self, name: str) -> list[Verdict]:
        seeded = self._seed(name)
        if isinstance(seeded, Verdict):
            return [seeded]
        deleted = self._probe.delete_by_non_matching_key(
            seeded + NON_EXISTENT_ID_OFFSET
        )
        remaining = self._fixtures.row_count()
        return [
            expect_affected(name, deleted, 0),
            expect_equal(f"{name}: rows untouched", expected=1, observed=remaining),
        ]

    def _restart_identity(self, name: str) -> list[Verdict]:
        first = self._seed(name)
        if isinstance(first, Verdict):
            return [first]
        self._fixtures.reset_all_and_restart_identity()
        second = self._seed(name)
        if isinstance(second, Verdict):
            return [second]
        return [expect_equal(name, expected=first, observed=second)]

    def _duplicate(self, name: str, *, field_name: str) -> list[Verdict]:
        outcome = self._probe.insert_duplicate(
            UserRecord.sample(enabled=True, last_access_time=_LAST_ACCESS_TIME),
            field_name=field_name,
        )
        return [expect_rejected(name, outcome, RejectionKind.UNIQUENESS_VIOLATION)]

    def _seed(self, name: str) -> int | Verdict:
        """Insert the fully populated sample user and return its id."""
        outcome = self._probe.insert_valid(
            UserRecord.sample(enabled=True, last_access_time=_LAST_ACCESS_TIME)
        )
        if isinstance(outcome, Accepted):
            if outcome.record.id is not None:
                return outcome.record.id
            observed = "accepted without id"
        else:
            observed = f"rejected:{outcome.kind.value}"
        return Verdict(
            scenario=f"{name}: seed insert",
            passed=False,
            expected="accepted",
            observed=observed,
        )


def _log_verdicts(verdicts: Sequence[Verdict]) -> None:
    for verdict in verdicts:
        with log_context({fields.PASSED: verdict.passed}):
            if verdict.passed:
                _LOGGER.info("Verdict passed: %s", verdict.scenario)
            else:
                _LOGGER.warning(
                    "Verdict failed: %s expected=%s observed=%s",
                    verdict.scenario,
                    verdict.expected,
                    verdict.observed,
                )
