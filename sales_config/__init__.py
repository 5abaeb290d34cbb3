"""
sales_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the ONLY way to obtain settings at runtime.
    No kernel component reads files or environment variables itself; the
    kernel receives plain arguments built by ``sales_config.bridges``.

Architecture position:
    Configuration -- sits above ``sales_kernel``.  The kernel MUST NEVER
    import from ``sales_config``.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``SALES_CONFIG_TRACE`` log entry carrying the settings checksum, so the
    configuration that governed a run can be identified afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from sales_config.loader import ConfigurationError, load_settings
from sales_config.schema import (
    DatabaseSettings,
    LoggingSettings,
    SalesSettings,
    StockSettings,
)

_logger = logging.getLogger("sales_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> SalesSettings:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML settings file.  Defaults to the packaged defaults.yaml.
        environ: Environment mapping for overrides.  Defaults to os.environ.

    Raises:
        FileNotFoundError: ``path`` does not exist.
        ConfigurationError: a value is missing or invalid.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    settings = load_settings(config_path, environ)

    _logger.info(
        "SALES_CONFIG_TRACE",
        extra={
            "config_path": str(config_path),
            "checksum": settings.checksum,
            "lock_mode": settings.stock.lock_mode,
            "log_level": settings.logging.level,
        },
    )
    return settings


__all__ = [
    "ConfigurationError",
    "DatabaseSettings",
    "LoggingSettings",
    "SalesSettings",
    "StockSettings",
    "get_active_config",
]
