"""Disposable Postgres for real-store integration tests.

A ``postgres:16`` container is started with the docker CLI, gated on
``pg_isready`` and a host-side ``SELECT 1``, seeded with ``data/users.sql``,
and stopped at session end. Set ``CONFORMANCE_INTEGRATION_DATABASE_URL`` to
run against an existing database instead; its users table must already exist.
"""

from __future__ import annotations

import os
import socket
import subprocess
import time
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import pytest
from sqlalchemy import Connection, create_engine

from packages.conformance_shared.config import PostgresSettings
from resources.substrates.postgres import run_scope
from tests.integration.helpers import real_provider_tests_enabled

USERS_DDL_PATH = Path(__file__).resolve().parent / "data" / "users.sql"
EXTERNAL_URL_ENV = "CONFORMANCE_INTEGRATION_DATABASE_URL"
POSTGRES_IMAGE = "postgres:16"
_CREDENTIAL = "conformance"


def _docker(*args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
    return subprocess.run(("docker", *args), check=check, capture_output=True, text=True)


def _docker_available() -> bool:
    try:
        _docker("version")
    except (FileNotFoundError, subprocess.CalledProcessError):
        return False
    return True


def _parse_published_port(port_output: str) -> tuple[str, int]:
    """Parse the first ``host:port`` binding printed by ``docker port``."""
    binding = port_output.strip().splitlines()[0].strip()
    host, port = binding.rsplit(":", maxsplit=1)
    return host, int(port)


def _poll(check, *, timeout_seconds: float, what: str) -> None:
    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline:
        if check():
            return
        time.sleep(0.2)
    raise TimeoutError(f"timed out waiting for {what}")


@dataclass(frozen=True, slots=True)
class PostgresContainer:
    """Handle for one running disposable Postgres container."""

    container_id: str
    host: str
    port: int

    @property
    def url(self) -> str:
        return (
            f"postgresql+psycopg://{_CREDENTIAL}:{_CREDENTIAL}"
            f"@{self.host}:{self.port}/{_CREDENTIAL}"
        )

    @classmethod
    def start(cls, image: str = POSTGRES_IMAGE) -> "PostgresContainer":
        env = ("POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB")
        env_args = [arg for name in env for arg in ("--env", f"{name}={_CREDENTIAL}")]
        container_id = _docker(
            "run", "--detach", "--rm", "--publish", "127.0.0.1::5432", *env_args, image
        ).stdout.strip()
        host, port = _parse_published_port(
            _docker("port", container_id, "5432/tcp").stdout
        )
        return cls(container_id=container_id, host=host, port=port)

    def wait_ready(self, *, timeout_seconds: float = 60.0) -> None:
        """Block until the server accepts TCP, passes pg_isready, and serves SQL."""
        _poll(self._accepts_tcp, timeout_seconds=30.0, what=f"{self.host}:{self.port}")
        _poll(self._serves_sql, timeout_seconds=timeout_seconds, what="Postgres")

    def stop(self) -> None:
        _docker("stop", self.container_id, check=False)

    def _accepts_tcp(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=0.5):
                return True
        except OSError:
            return False

    def _serves_sql(self) -> bool:
        ready = _docker(
            "exec", self.container_id, "pg_isready", "-U", _CREDENTIAL, check=False
        )
        if ready.returncode != 0:
            return False
        # pg_isready can pass during the init restart; confirm from the host.
        engine = create_engine(self.url)
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
        except Exception:  # noqa: BLE001
            return False
        finally:
            engine.dispose()
        return True


def _create_users_table(url: str) -> None:
    engine = create_engine(url)
    try:
        with engine.begin() as conn:
            conn.exec_driver_sql(USERS_DDL_PATH.read_text(encoding="utf-8"))
    finally:
        engine.dispose()


@pytest.fixture(scope="session")
def postgres_dsn() -> Iterator[str]:
    """Yield a Postgres URL whose database holds the users table."""
    if not real_provider_tests_enabled():
        pytest.skip("real-provider integration tests disabled")
    external = os.getenv(EXTERNAL_URL_ENV, "").strip()
    if external:
        yield PostgresSettings(url=external).url
        return
    if not _docker_available():
        pytest.skip("docker unavailable for integration tests")
    container = PostgresContainer.start()
    try:
        container.wait_ready()
        _create_users_table(container.url)
        yield container.url
    finally:
        container.stop()


@pytest.fixture(scope="session")
def postgres_settings(postgres_dsn: str) -> PostgresSettings:
    """Return store settings bound to the integration database."""
    return PostgresSettings(url=postgres_dsn, statement_timeout_ms=5000)


@pytest.fixture
def run_connection(postgres_settings: PostgresSettings) -> Iterator[Connection]:
    """Yield one run-scoped connection over an emptied users table."""
    with run_scope(postgres_settings) as connection:
        with connection.begin():
            connection.exec_driver_sql("TRUNCATE users RESTART IDENTITY")
        yield connection
