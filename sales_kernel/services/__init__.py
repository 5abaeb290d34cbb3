"""Kernel services: the invariant enforcers and the sanctioned write API."""

from sales_kernel.services.enforcement import (
    get_registry,
    register_invariant_enforcers,
    unregister_invariant_enforcers,
)
from sales_kernel.services.sales_operations import (
    DEFAULT_DISCOUNT,
    OrderLineResult,
    SalesOperations,
    TitleChangeResult,
)
from sales_kernel.services.stock_guard import StockGuard, StockLockMode
from sales_kernel.services.title_audit import TitleAuditInterceptor

__all__ = [
    "DEFAULT_DISCOUNT",
    "OrderLineResult",
    "SalesOperations",
    "StockGuard",
    "StockLockMode",
    "TitleAuditInterceptor",
    "TitleChangeResult",
    "get_registry",
    "register_invariant_enforcers",
    "unregister_invariant_enforcers",
]
