"""Canonical logging field names for the conformance harness.

Keeping names centralized keeps JSON log lines stable for downstream
collectors and lets tests assert on field keys without string drift.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"

# Scenario fields.
SCENARIO = "scenario"
TABLE = "table"
OUTCOME = "outcome"
REJECTION_KIND = "rejection_kind"
SQLSTATE = "sqlstate"
AFFECTED = "affected"
PASSED = "passed"

# Common run-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
