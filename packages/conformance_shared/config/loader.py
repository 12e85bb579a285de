"""Settings loading with an optional explicit YAML file."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from pydantic_settings import SettingsConfigDict

from .models import ConformanceSettings


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    config_path: str | Path | None = None,
) -> ConformanceSettings:
    """Load settings, letting ``cli_params`` override every other source.

    When ``config_path`` is given it replaces the default YAML location; a
    missing file simply contributes nothing.
    """
    init = dict(cli_params) if cli_params is not None else {}
    if config_path is None:
        return ConformanceSettings(**init)

    resolved = Path(config_path)

    class _FileScopedSettings(ConformanceSettings):
        model_config = SettingsConfigDict(yaml_file=resolved)

    return _FileScopedSettings(**init)
