"""
Module: sales_kernel.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM models and the
    type annotation map that keeps column types consistent across the schema.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, domain/, or outer layers.

Invariants enforced:
    - Integer natural keys: employees, products and orders keep the integer
      identifiers of the sales dataset.  int maps to BIGINT on PostgreSQL and
      to INTEGER on SQLite (so surrogate keys still autoincrement there).
    - Decimal precision: Python Decimal maps to Numeric(12, 4).  Prices are
      never stored as float.
    - datetime maps to DateTime(timezone=True) -- always timezone-aware.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, Numeric
from sqlalchemy.orm import DeclarativeBase

# SQLite only autoincrements a column declared exactly INTEGER PRIMARY KEY.
KeyInteger = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - Decimal maps to Numeric(12, 4).
        - datetime maps to DateTime(timezone=True).
        - int maps to BIGINT (INTEGER on SQLite).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(12, 4),
        datetime: DateTime(timezone=True),
        int: KeyInteger,
    }
