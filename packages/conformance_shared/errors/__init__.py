"""Public shared error API for the conformance harness."""

from . import codes
from .factories import rejection_kind_for, violation_detail
from .types import (
    ConformanceError,
    RejectionKind,
    StoreUnavailable,
    TransportFailure,
    UnknownTable,
    ViolationDetail,
)

__all__ = [
    "ConformanceError",
    "RejectionKind",
    "StoreUnavailable",
    "TransportFailure",
    "UnknownTable",
    "ViolationDetail",
    "codes",
    "rejection_kind_for",
    "violation_detail",
]
