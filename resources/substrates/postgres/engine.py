"""SQLAlchemy engine construction for the store under verification."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Engine, create_engine

from packages.conformance_shared.config import PostgresSettings


def create_postgres_engine(config: PostgresSettings) -> Engine:
    """Construct a psycopg-backed engine sized for one sequential connection."""
    connect_args: dict[str, Any] = {
        "connect_timeout": int(config.connect_timeout_seconds),
        "sslmode": config.sslmode,
    }
    if config.statement_timeout_ms is not None:
        connect_args["options"] = f"-c statement_timeout={config.statement_timeout_ms}"
    return create_engine(
        config.require_url(),
        pool_size=1,
        max_overflow=0,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
