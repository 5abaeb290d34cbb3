"""
Enforcement wiring -- attach the invariant enforcers to the ORM.

Responsibility:
    Registers, in one call, everything that must be active before any
    mutation reaches the database:

        Employee   / after_update   -> TitleAuditInterceptor    (TITLE_AUDIT)
        OrderLine  / before_insert  -> StockGuard    (STOCK_ADMISSION, NON_NEGATIVE_STOCK)
        AuditEntry / before_update,
                     before_delete  -> ledger immutability    (AUDIT_APPEND_ONLY)
        Session    / after_flush_postexec -> expire decremented stock
        Session    / after_commit, after_rollback -> clear admissions

Usage (once at startup, after models are imported):

    register_invariant_enforcers(lock_mode=StockLockMode.PESSIMISTIC)

Calling it again replaces the previous enforcers, so a new clock or lock mode
takes effect.  ``unregister_invariant_enforcers()`` is for tests only.
"""

from sqlalchemy import event
from sqlalchemy.orm import Session

from sales_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from sales_kernel.db.interceptors import InterceptorRegistry, WritePhase
from sales_kernel.domain.clock import Clock
from sales_kernel.logging_config import get_logger
from sales_kernel.models.employee import Employee
from sales_kernel.models.order_line import OrderLine
from sales_kernel.services.stock_guard import (
    StockGuard,
    StockLockMode,
    clear_admissions,
    expire_decremented_stock,
)
from sales_kernel.services.title_audit import TitleAuditInterceptor

logger = get_logger("services.enforcement")

_SESSION_LISTENERS = (
    ("after_flush_postexec", expire_decremented_stock),
    ("after_commit", clear_admissions),
    ("after_rollback", clear_admissions),
)

_registry: InterceptorRegistry | None = None


def register_invariant_enforcers(
    *,
    clock: Clock | None = None,
    lock_mode: StockLockMode = StockLockMode.PESSIMISTIC,
    max_cas_attempts: int = 5,
) -> InterceptorRegistry:
    """
    Register the audit interceptor, stock guard and ledger listeners.

    Returns:
        The InterceptorRegistry now holding the enforcers.
    """
    global _registry

    unregister_invariant_enforcers()

    registry = InterceptorRegistry()
    registry.register(Employee, WritePhase.AFTER_UPDATE, TitleAuditInterceptor(clock))
    registry.register(
        OrderLine,
        WritePhase.BEFORE_INSERT,
        StockGuard(lock_mode=lock_mode, max_attempts=max_cas_attempts),
    )
    register_immutability_listeners()
    for event_name, listener in _SESSION_LISTENERS:
        event.listen(Session, event_name, listener)

    _registry = registry
    logger.info(
        "invariant_enforcers_registered",
        extra={
            "lock_mode": StockLockMode(lock_mode).value,
            "max_cas_attempts": max_cas_attempts,
        },
    )
    return registry


def unregister_invariant_enforcers() -> None:
    """
    Remove every enforcer.

    WARNING: Only use this in tests.  Without the enforcers, title changes
    go unaudited and order lines bypass the stock check.
    """
    global _registry

    if _registry is not None:
        _registry.clear()
        _registry = None
    unregister_immutability_listeners()
    for event_name, listener in _SESSION_LISTENERS:
        if event.contains(Session, event_name, listener):
            event.remove(Session, event_name, listener)


def get_registry() -> InterceptorRegistry | None:
    """The registry installed by the last register_invariant_enforcers()."""
    return _registry
