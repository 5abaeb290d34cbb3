"""
Configuration schema (``sales_config.schema``).

Frozen dataclasses describing the runtime settings.  Instances are produced
only by ``sales_config.loader`` and are never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings handed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    busy_timeout: int = 30
    create_tables: bool = False


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class StockSettings:
    """How the stock guard serializes concurrent admissions."""

    lock_mode: str = "pessimistic"
    max_cas_attempts: int = 5


@dataclass(frozen=True)
class SalesSettings:
    """The complete effective configuration."""

    database: DatabaseSettings
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    stock: StockSettings = field(default_factory=StockSettings)
    checksum: str = ""
