"""
Config-to-kernel bridge (``sales_config.bridges``).

Translates a loaded ``SalesSettings`` into kernel calls: logging setup,
engine initialization, optional table creation, and enforcer registration.
The kernel never sees ``SalesSettings`` itself, only the plain arguments
passed here.

Usage:
    settings = get_active_config()
    bootstrap(settings)
    with session_scope() as session:
        SalesOperations(session).insert_order_line(10692, 10, 27)
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from sales_config.schema import SalesSettings
from sales_kernel.db.engine import create_tables, init_engine_from_url
from sales_kernel.domain.clock import Clock
from sales_kernel.logging_config import configure_logging
from sales_kernel.services.enforcement import register_invariant_enforcers
from sales_kernel.services.stock_guard import StockLockMode


def stock_lock_mode(settings: SalesSettings) -> StockLockMode:
    return StockLockMode(settings.stock.lock_mode)


def bootstrap(settings: SalesSettings, clock: Clock | None = None) -> Engine:
    """
    Bring the kernel up from settings.

    Postconditions:
        - sales_kernel logging is configured at ``settings.logging.level``.
        - The engine and session factory are initialized.
        - Tables (and PostgreSQL ledger triggers) exist if
          ``settings.database.create_tables`` is set.
        - The invariant enforcers are registered.

    Returns:
        The initialized Engine.
    """
    configure_logging(level=logging.getLevelName(settings.logging.level))

    db = settings.database
    engine = init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        busy_timeout=db.busy_timeout,
    )
    if db.create_tables:
        create_tables()

    register_invariant_enforcers(
        clock=clock,
        lock_mode=stock_lock_mode(settings),
        max_cas_attempts=settings.stock.max_cas_attempts,
    )
    return engine
