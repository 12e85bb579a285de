"""Domain models for conformance checks and constraint probes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Any, ClassVar, TypeAlias

from pydantic import BaseModel, ConfigDict

from packages.conformance_shared.errors import RejectionKind, ViolationDetail


class ReconciliationStatus(StrEnum):
    """Per-field result of comparing expected and observed schema."""

    MATCHED = "matched"
    MISSING = "missing"
    TYPE_MISMATCH = "type_mismatch"


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    """Reconciliation verdict for one expected field."""

    name: str
    status: ReconciliationStatus
    expected: str
    observed: str | None = None

    @property
    def matched(self) -> bool:
        return self.status is ReconciliationStatus.MATCHED


class UserRecord(BaseModel):
    """One row of the probed users table.

    ``id`` and ``created_at`` are assigned by the store and stay ``None``
    until the record has been persisted.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "email",
        "username",
        "city",
        "first_name",
        "last_name",
        "password",
    )
    STORE_ASSIGNED_FIELDS: ClassVar[frozenset[str]] = frozenset({"id", "created_at"})

    email: str
    username: str
    birthdate: date
    city: str
    first_name: str
    last_name: str
    password: str
    enabled: bool | None = None
    last_access_time: datetime | None = None
    id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def sample(cls, **overrides: Any) -> "UserRecord":
        """Return the canonical well-formed user, optionally overridden."""
        values: dict[str, Any] = {
            "email": "user@example.com",
            "username": "user",
            "birthdate": date(2024, 1, 2),
            "city": "La Plata",
            "first_name": "Juan",
            "last_name": "Perez",
            "password": "hashed_password",
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def insertable_fields(cls) -> tuple[str, ...]:
        """Return the columns a probe may supply, in declaration order."""
        return tuple(
            name for name in cls.model_fields if name not in cls.STORE_ASSIGNED_FIELDS
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserRecord":
        """Build a record from a stored row without validating it.

        A store with a missing constraint hands back values this model would
        refuse (a null ``city``, a malformed ``email``); those rows must still
        surface as accepted outcomes. Undeclared columns are ignored and
        absent ones read as ``None``.
        """
        return cls.model_construct(**{name: row.get(name) for name in cls.model_fields})

    def to_row(self) -> dict[str, Any]:
        """Return insertable column values; unset optionals are omitted."""
        return self.model_dump(
            mode="python",
            exclude=set(self.STORE_ASSIGNED_FIELDS),
            exclude_none=True,
        )


@dataclass(frozen=True, slots=True)
class Accepted:
    """The store accepted the statement."""

    record: UserRecord
    affected: int = 1

    @property
    def accepted(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Rejected:
    """The store refused the statement with a recognized constraint kind."""

    kind: RejectionKind
    detail: ViolationDetail

    @property
    def accepted(self) -> bool:
        return False


ProbeOutcome: TypeAlias = Accepted | Rejected


@dataclass(frozen=True, slots=True)
class DeleteOutcome:
    """Result of a keyed delete; zero affected rows is a successful no-op."""

    key_column: str
    key: object
    affected: int
