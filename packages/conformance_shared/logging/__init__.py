"""Public logging API for the conformance harness.

Thin layer over the standard ``logging`` module: one root handler, JSON or
plain output, and scope fields propagated through ``contextvars``.
"""

from . import fields
from .config import configure_logging, get_logger
from .context import (
    current_context,
    log_context,
    reset_context,
    scenario_context,
    seed_context,
)

__all__ = [
    "configure_logging",
    "current_context",
    "fields",
    "get_logger",
    "log_context",
    "reset_context",
    "scenario_context",
    "seed_context",
]
