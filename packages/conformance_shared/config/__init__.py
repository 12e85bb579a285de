"""Public API for conformance configuration."""

from .loader import load_settings
from .models import (
    DATABASE_URL_ENV,
    DEFAULT_CONFIG_PATH,
    ConformanceSettings,
    LoggingSettings,
    PostgresSettings,
    TableSettings,
)

__all__ = [
    "DATABASE_URL_ENV",
    "DEFAULT_CONFIG_PATH",
    "ConformanceSettings",
    "LoggingSettings",
    "PostgresSettings",
    "TableSettings",
    "load_settings",
]
