"""Root logging setup for conformance runs.

One stream handler carries every record. JSON mode writes one object per line
for collectors. Plain mode prefixes the scenario in brackets and appends the
remaining scope fields as ``key=value`` pairs.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

from . import fields
from .context import current_context, seed_context

# Driver and pool chatter stays out of verdict logs unless DEBUG is asked for.
_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "psycopg")


class ScopeFilter(logging.Filter):
    """Attach the current log scope to each record as ``record.scope``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.scope = current_context()
        return True


def _scope_of(record: logging.LogRecord) -> dict[str, str]:
    scope = getattr(record, "scope", None)
    return scope if isinstance(scope, dict) else {}


class JsonFormatter(logging.Formatter):
    """One compact JSON object per record, scope fields inlined."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
            **_scope_of(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    """Terminal-oriented lines: ``time LEVEL logger [scenario] message k=v``."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        scope = dict(_scope_of(record))
        scenario = scope.pop(fields.SCENARIO, None)
        line = super().formatMessage(record)
        if scenario is not None:
            prefix = f"{record.name} "
            line = line.replace(prefix, f"{prefix}[{scenario}] ", 1)
        if scope:
            line += " " + " ".join(f"{key}={scope[key]}" for key in sorted(scope))
        return line


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    service: str | None = None,
    environment: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route all records through one handler on ``stream`` (stdout by default).

    Repeated calls replace the previous handler instead of adding another.
    """
    resolved = logging.getLevelName(level.upper())
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.addFilter(ScopeFilter())
    handler.setFormatter(JsonFormatter() if json_output else PlainFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(resolved)

    quiet = resolved if resolved == logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)

    seed_context({fields.SERVICE: service, fields.ENVIRONMENT: environment})


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a stdlib logger; handlers live on the root only."""
    return logging.getLogger(name)
