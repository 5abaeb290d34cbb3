"""
Interceptor registry -- before-write / after-write extension points per entity.

===============================================================================
WHY THIS EXISTS
===============================================================================

The invariants of this kernel must run synchronously INSIDE the transaction
of the mutation that triggers them: the stock check-and-decrement before an
order line row is written, the audit append after an employee row is
updated.  A database trigger would do this in the server; this registry does
it in-process, on top of SQLAlchemy mapper events, so any supported backend
works without trigger support.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_insert OrderLine] --> StockGuard ----------> InsufficientStockError
         |                         (same connection)            |
         v                                                      v
    INSERT order_details                              flush aborted, caller
         |                                            rolls back the session
    [after_update Employee] --> TitleAuditInterceptor --> AuditWriteError
         |
         v
    flush completes (commit is still the caller's decision)

Handlers have the signature ``handler(connection, target)``.  ``connection``
is the flush's Connection: anything executed on it joins the session's
transaction, so the handler's writes commit or roll back together with the
triggering row.

One SQLAlchemy listener is installed per (entity, phase) the first time a
handler is registered for it and removed when the last one goes away.
Handlers run in registration order; the first exception stops the chain.

===============================================================================
USAGE
===============================================================================

    registry = InterceptorRegistry()
    registry.register(OrderLine, WritePhase.BEFORE_INSERT, guard)
    ...
    registry.clear()   # removes every SQLAlchemy listener it installed
"""

from collections.abc import Callable
from enum import Enum
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Connection

from sales_kernel.logging_config import get_logger

logger = get_logger("db.interceptors")

Interceptor = Callable[[Connection, Any], None]


class WritePhase(str, Enum):
    """Extension points, named after the SQLAlchemy mapper events they use."""

    BEFORE_INSERT = "before_insert"
    AFTER_INSERT = "after_insert"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"


class InterceptorRegistry:
    """
    Per-entity, per-phase handler chains dispatched from mapper events.

    Contract:
        Handlers registered for (entity, phase) run for every flushed
        instance of ``entity`` (or a subclass) in that phase, on the flush
        connection, in registration order.

    Guarantees:
        - Registering the same handler twice for the same slot is a no-op.
        - ``clear()`` leaves no SQLAlchemy listener behind.

    Non-goals:
        - Does NOT catch handler exceptions.  A failing handler aborts the
          flush, which is exactly how an enforcer rejects a mutation.
    """

    def __init__(self) -> None:
        self._handlers: dict[tuple[type, WritePhase], list[Interceptor]] = {}
        self._listeners: dict[tuple[type, WritePhase], Callable] = {}

    def register(self, entity: type, phase: WritePhase, handler: Interceptor) -> None:
        key = (entity, WritePhase(phase))
        chain = self._handlers.setdefault(key, [])
        if handler in chain:
            return
        chain.append(handler)
        if key not in self._listeners:
            listener = self._make_listener(key)
            event.listen(entity, key[1].value, listener, propagate=True)
            self._listeners[key] = listener
        logger.debug(
            "interceptor_registered",
            extra={
                "entity_type": entity.__name__,
                "phase": key[1].value,
                "handler": _handler_name(handler),
            },
        )

    def unregister(self, entity: type, phase: WritePhase, handler: Interceptor) -> None:
        key = (entity, WritePhase(phase))
        chain = self._handlers.get(key)
        if not chain or handler not in chain:
            return
        chain.remove(handler)
        if not chain:
            self._remove_slot(key)

    def handlers(self, entity: type, phase: WritePhase) -> tuple[Interceptor, ...]:
        return tuple(self._handlers.get((entity, WritePhase(phase)), ()))

    def clear(self) -> None:
        for key in list(self._handlers):
            self._remove_slot(key)

    def _remove_slot(self, key: tuple[type, WritePhase]) -> None:
        self._handlers.pop(key, None)
        listener = self._listeners.pop(key, None)
        if listener is not None and event.contains(key[0], key[1].value, listener):
            event.remove(key[0], key[1].value, listener)

    def _make_listener(self, key: tuple[type, WritePhase]) -> Callable:
        def _dispatch(mapper, connection, target):
            # Snapshot so a handler may unregister itself mid-dispatch.
            for handler in tuple(self._handlers.get(key, ())):
                handler(connection, target)

        return _dispatch


def _handler_name(handler: Interceptor) -> str:
    return getattr(handler, "__qualname__", type(handler).__qualname__)
