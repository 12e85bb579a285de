"""Typed configuration models for conformance runs."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "conformance" / "conformance.yaml"
DATABASE_URL_ENV = "DATABASE_URL"

_DRIVER_PREFIXES = ("postgres://", "postgresql://")
_PSYCOPG_PREFIX = "postgresql+psycopg://"
_COLUMN_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


class LoggingSettings(BaseModel):
    """Structured logging configuration for harness runs."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "users-conformance"
    environment: str = "dev"


class PostgresSettings(BaseModel):
    """Connection settings for the store under verification."""

    url: str = ""
    connect_timeout_seconds: float = Field(default=10.0, gt=0)
    statement_timeout_ms: int | None = Field(default=None, gt=0)
    sslmode: Literal[
        "disable", "allow", "prefer", "require", "verify-ca", "verify-full"
    ] = "prefer"
    health_timeout_seconds: float = Field(default=1.0, gt=0)

    @field_validator("url")
    @classmethod
    def _use_psycopg_driver(cls, value: str) -> str:
        """Rewrite bare libpq-style URLs onto the psycopg SQLAlchemy driver."""
        url = value.strip()
        for prefix in _DRIVER_PREFIXES:
            if url.startswith(prefix):
                return _PSYCOPG_PREFIX + url[len(prefix) :]
        return url

    def require_url(self) -> str:
        """Return the configured URL or fail when none was supplied."""
        if not self.url:
            raise ValueError(
                f"postgres.url is required; set {DATABASE_URL_ENV} "
                "or CONFORMANCE_POSTGRES__URL"
            )
        return self.url


class TableSettings(BaseModel):
    """Which table is verified and how its column types are compared."""

    name: str = "users"
    schema_name: str = "public"
    type_policy: Literal["exact", "normalized"] = "normalized"
    unique_fields: list[str] = Field(default_factory=list)

    @field_validator("unique_fields")
    @classmethod
    def _plain_column_names(cls, value: list[str]) -> list[str]:
        """Accept only distinct lowercase column identifiers."""
        for name in value:
            if not _COLUMN_NAME.match(name):
                raise ValueError(f"not a column identifier: {name!r}")
        if len(set(value)) != len(value):
            raise ValueError("unique_fields lists a column more than once")
        return value


class DatabaseUrlSettingsSource(PydanticBaseSettingsSource):
    """Map the conventional ``DATABASE_URL`` variable onto ``postgres.url``."""

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        del field
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        value = os.environ.get(DATABASE_URL_ENV, "").strip()
        if not value:
            return {}
        return {"postgres": {"url": value}}


class ConformanceSettings(BaseSettings):
    """Root runtime settings resolved from init/env/yaml/defaults sources."""

    model_config = SettingsConfigDict(
        env_prefix="CONFORMANCE_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    table: TableSettings = Field(default_factory=TableSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Apply precedence: init > prefixed env > DATABASE_URL > yaml > defaults."""
        yaml_file = settings_cls.model_config.get("yaml_file") or DEFAULT_CONFIG_PATH
        return (
            init_settings,
            env_settings,
            DatabaseUrlSettingsSource(settings_cls),
            YamlConfigSettingsSource(
                settings_cls,
                yaml_file=yaml_file,
                yaml_file_encoding="utf-8",
            ),
        )
