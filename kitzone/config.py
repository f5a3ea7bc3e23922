"""Loading of the execution context and logging setup."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from . import constants
from .models import ExecutionContext


class ConfigError(Exception):
    """The configuration file is missing, unreadable or invalid."""


def load_context(
    path: Optional[Path] = None,
    environ: Mapping[str, str] = os.environ,
) -> ExecutionContext:
    """Build the execution context once at startup.

    Without a file the built-in constants are used. A YAML file, given
    directly or through ``KITZONE_CONFIG``, overrides individual values.
    """
    if path is None:
        configured = environ.get(constants.CONFIG_ENV_VAR)
        if not configured:
            return ExecutionContext()
        path = Path(configured)

    if not path.exists():
        raise ConfigError(f"Missing configuration file at {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    defaults = ExecutionContext().model_dump(mode="python")
    try:
        return ExecutionContext.model_validate(_merge(defaults, data))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def configure_logging(level: Optional[str] = None) -> None:
    """Send log records to stderr; the level defaults to WARNING."""
    name = (level or "WARNING").upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(
        level=numeric,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
