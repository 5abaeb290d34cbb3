"""Database layer - engine, declarative base, interceptors, and ledger guards."""

from sales_kernel.db.base import Base
from sales_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from sales_kernel.db.interceptors import InterceptorRegistry, WritePhase

__all__ = [
    "Base",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "InterceptorRegistry",
    "WritePhase",
]
