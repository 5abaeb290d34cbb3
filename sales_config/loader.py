"""
Configuration Loader (``sales_config.loader``).

Responsibility
--------------
Loads the YAML settings file, overlays environment variables, and parses the
result into the frozen ``sales_config.schema`` dataclasses.  Runtime callers
go through ``sales_config.get_active_config()`` instead of calling this
module directly.

Environment overrides
---------------------
* ``SALES_DATABASE_URL``     -> database.url
* ``SALES_LOG_LEVEL``        -> logging.level
* ``SALES_STOCK_LOCK_MODE``  -> stock.lock_mode

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or invalid values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from sales_config.schema import (
    DatabaseSettings,
    LoggingSettings,
    SalesSettings,
    StockSettings,
)

ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SALES_DATABASE_URL": ("database", "url"),
    "SALES_LOG_LEVEL": ("logging", "level"),
    "SALES_STOCK_LOCK_MODE": ("stock", "lock_mode"),
}

LOCK_MODES = ("pessimistic", "optimistic")


class ConfigurationError(ValueError):
    """The settings file or environment holds an invalid value."""


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return data


def apply_env_overrides(
    raw: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return a copy of ``raw`` with ENV_OVERRIDES applied."""
    environ = os.environ if environ is None else environ
    merged: dict[str, Any] = {
        key: dict(val) if isinstance(val, Mapping) else val
        for key, val in raw.items()
    }
    for env_name, (section, key) in ENV_OVERRIDES.items():
        if env_name in environ:
            merged.setdefault(section, {})[key] = environ[env_name]
    return merged


def compute_checksum(raw: Mapping[str, Any]) -> str:
    """Deterministic SHA-256 over the effective settings."""
    canonical = json.dumps(raw, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_settings(raw: Mapping[str, Any]) -> SalesSettings:
    """Validate a settings mapping into ``SalesSettings``."""
    db_raw = _section(raw, "database")
    if not db_raw.get("url"):
        raise ConfigurationError("database.url is required")

    database = DatabaseSettings(
        url=str(db_raw["url"]),
        echo=_bool(db_raw, "echo", False),
        pool_size=_positive_int(db_raw, "pool_size", 20),
        max_overflow=_non_negative_int(db_raw, "max_overflow", 10),
        pool_timeout=_positive_int(db_raw, "pool_timeout", 30),
        busy_timeout=_positive_int(db_raw, "busy_timeout", 30),
        create_tables=_bool(db_raw, "create_tables", False),
    )

    log_raw = _section(raw, "logging")
    level = str(log_raw.get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"logging.level: unknown level {level!r}")

    stock_raw = _section(raw, "stock")
    lock_mode = str(stock_raw.get("lock_mode", "pessimistic")).lower()
    if lock_mode not in LOCK_MODES:
        raise ConfigurationError(
            f"stock.lock_mode must be one of {', '.join(LOCK_MODES)}, got {lock_mode!r}"
        )

    return SalesSettings(
        database=database,
        logging=LoggingSettings(level=level),
        stock=StockSettings(
            lock_mode=lock_mode,
            max_cas_attempts=_positive_int(stock_raw, "max_cas_attempts", 5),
        ),
        checksum=compute_checksum(raw),
    )


def load_settings(
    path: Path,
    environ: Mapping[str, str] | None = None,
) -> SalesSettings:
    """Load ``path``, apply environment overrides, and parse."""
    return parse_settings(apply_env_overrides(load_yaml_file(path), environ))


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{name}: must be a mapping")
    return value


def _bool(raw: Mapping[str, Any], key: str, default: bool) -> bool:
    value = raw.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false", "1", "0"):
        return value.lower() in ("true", "1")
    raise ConfigurationError(f"{key}: expected a boolean, got {value!r}")


def _positive_int(raw: Mapping[str, Any], key: str, default: int) -> int:
    value = _int(raw, key, default)
    if value < 1:
        raise ConfigurationError(f"{key}: must be positive, got {value}")
    return value


def _non_negative_int(raw: Mapping[str, Any], key: str, default: int) -> int:
    value = _int(raw, key, default)
    if value < 0:
        raise ConfigurationError(f"{key}: must not be negative, got {value}")
    return value


def _int(raw: Mapping[str, Any], key: str, default: int) -> int:
    value = raw.get(key, default)
    if isinstance(value, bool):
        raise ConfigurationError(f"{key}: expected an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key}: expected an integer, got {value!r}") from None
