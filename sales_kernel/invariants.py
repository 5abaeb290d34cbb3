"""
Sales Kernel Invariants Contract.

These invariants are structural law. They are enforced by the interceptors
registered on the ORM flush and by database constraints. No configuration
value may switch them off; configuration only selects *how* stock is locked.

This module exists solely to declare the invariants explicitly. The
enforcement is distributed across StockGuard, TitleAuditInterceptor,
the ledger immutability listeners, and the table check constraints.
"""

from enum import Enum, unique


@unique
class SalesInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    STOCK_ADMISSION = "stock_admission"
    """An order line commits only if its quantity does not exceed the
    product stock at the instant of the check, and the stock is decremented
    by exactly that quantity in the same transaction. Enforced by
    StockGuard."""

    TITLE_AUDIT = "title_audit"
    """Every title change on an employee appends exactly one audit
    entry carrying the previous and new title. Enforced by
    TitleAuditInterceptor."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """Product stock never goes negative. Enforced by StockGuard and by
    the ck_products_stock_non_negative check constraint."""

    AUDIT_APPEND_ONLY = "audit_append_only"
    """Audit entries are never updated or deleted. Enforced by ORM
    listeners (sales_kernel.db.immutability) and PostgreSQL triggers."""


ALL_SALES_INVARIANTS: frozenset[SalesInvariant] = frozenset(SalesInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_sales_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = ("sales_config",)
