"""
StockGuard -- admit an order line only against sufficient product stock.

Responsibility:
    Registered on ``OrderLine`` / before_insert.  Before the order line row is
    written, reads the product stock on the flush connection, rejects the
    line if the requested quantity exceeds it, and otherwise decrements the
    stock.  The decrement and the order line INSERT share the flush's
    transaction, so they commit together or not at all.

Architecture position:
    Kernel > Services.  The only writer of ``products.stock_quantity``.

Invariants enforced:
    STOCK_ADMISSION
        quantity <= stock at check time; stock_after = stock_before - qty.
    NON_NEGATIVE_STOCK
        Every decrement is a guarded UPDATE whose WHERE clause re-checks the
        stock, so no interleaving of writers can take it below zero.

Lock modes:
    PESSIMISTIC (default)
        SELECT ... FOR UPDATE on the product row, then
        UPDATE ... SET stock = stock - :qty WHERE id = :id AND stock >= :qty
        RETURNING stock.
        On PostgreSQL the row lock serializes concurrent guards, so the
        UPDATE always matches.  On SQLite FOR UPDATE is a no-op: another
        writer can commit between the read and the UPDATE, so the admitted
        stock_before is derived from the RETURNING value, never the read.
        A miss re-reads the stock and re-decides.
    OPTIMISTIC
        Unlocked read, then compare-and-swap
        UPDATE ... SET stock = stock - :qty WHERE id = :id AND stock = :observed
        RETURNING stock.
        A miss means another transaction changed the stock in between; the
        check is repeated against the fresh value.

    Either way the loop is bounded by ``max_attempts``; exhausting it raises
    StockContentionError.  This loop is the single check-and-decrement step,
    not a retry of the caller's operation: rejection is always terminal.

Failure modes:
    - ProductNotFoundError: the line references no existing product.
    - InsufficientStockError: quantity exceeds stock; carries ``available``.
    - StockContentionError: optimistic CAS lost ``max_attempts`` races.
"""

from dataclasses import asdict
from enum import Enum

from sqlalchemy import select, update
from sqlalchemy.engine import Connection
from sqlalchemy.orm import object_session

from sales_kernel.domain.admission import AdmissionDecision
from sales_kernel.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    StockContentionError,
)
from sales_kernel.logging_config import get_logger
from sales_kernel.models.order_line import OrderLine
from sales_kernel.models.product import Product

logger = get_logger("services.stock_guard")

# Session.info key holding the AdmissionDecisions of the current transaction
ADMISSIONS_KEY = "sales_kernel.admissions"

_products = Product.__table__


class StockLockMode(str, Enum):
    """How the guard serializes concurrent check-and-decrement sequences."""

    PESSIMISTIC = "pessimistic"
    OPTIMISTIC = "optimistic"


class StockGuard:
    """
    Before-insert handler for ``OrderLine``.

    Contract:
        Called as ``guard(connection, order_line)`` by the InterceptorRegistry
        while the session flushes.  Returns normally only after the stock has
        been decremented on ``connection``.

    Guarantees:
        - Two outcomes per attempt: the stock is decremented (the INSERT then
          proceeds) or an exception aborts the flush with nothing written.
        - The AdmissionDecision of every admitted line is appended to
          ``session.info[ADMISSIONS_KEY]``.

    Non-goals:
        - Does NOT validate quantity or discount ranges; the caller and the
          order_details check constraints do.
    """

    def __init__(
        self,
        lock_mode: StockLockMode = StockLockMode.PESSIMISTIC,
        max_attempts: int = 5,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.lock_mode = StockLockMode(lock_mode)
        self.max_attempts = max_attempts

    def __call__(self, connection: Connection, target: OrderLine) -> None:
        decision = self.admit(
            connection,
            order_id=target.order_id,
            product_id=target.product_id,
            quantity=target.quantity,
        )
        session = object_session(target)
        if session is not None:
            session.info.setdefault(ADMISSIONS_KEY, []).append(decision)

    def admit(
        self,
        connection: Connection,
        order_id: int,
        product_id: int,
        quantity: int,
    ) -> AdmissionDecision:
        """
        Check and decrement stock for one order line.

        Preconditions:
            - ``connection`` is inside the transaction that will insert the
              order line.
        Postconditions:
            - On return, products.stock_quantity has been reduced by
              ``quantity`` on ``connection``.

        Raises:
            ProductNotFoundError, InsufficientStockError, StockContentionError.
        """
        locked = self.lock_mode is StockLockMode.PESSIMISTIC

        for attempt in range(1, self.max_attempts + 1):
            stock = self._read_stock(connection, product_id, for_update=locked)

            if quantity > stock:
                decision = AdmissionDecision.rejected(
                    order_id, product_id, quantity, stock, attempts=attempt
                )
                logger.warning("order_line_rejected", extra=asdict(decision))
                raise InsufficientStockError(
                    product_id=product_id,
                    requested=quantity,
                    available=stock,
                )

            stmt = update(_products).where(_products.c.id == product_id)
            if locked:
                stmt = stmt.where(_products.c.stock_quantity >= quantity)
            else:
                stmt = stmt.where(_products.c.stock_quantity == stock)
            stmt = stmt.values(
                stock_quantity=_products.c.stock_quantity - quantity
            ).returning(_products.c.stock_quantity)

            stock_after = connection.execute(stmt).scalar_one_or_none()
            if stock_after is not None:
                # Another writer may have committed since the read; the
                # decrement's own result is the authoritative stock.
                decision = AdmissionDecision.admitted(
                    order_id, product_id, quantity, stock_after + quantity, attempts=attempt
                )
                logger.info("order_line_admitted", extra=asdict(decision))
                return decision

            logger.debug(
                "stock_changed_concurrently",
                extra={
                    "product_id": product_id,
                    "observed_stock": stock,
                    "attempt": attempt,
                    "lock_mode": self.lock_mode.value,
                },
            )

        logger.error(
            "stock_contention_exhausted",
            extra={"product_id": product_id, "attempts": self.max_attempts},
        )
        raise StockContentionError(product_id=product_id, attempts=self.max_attempts)

    @staticmethod
    def _read_stock(connection: Connection, product_id: int, for_update: bool) -> int:
        stmt = select(_products.c.stock_quantity).where(_products.c.id == product_id)
        if for_update:
            stmt = stmt.with_for_update()
        stock = connection.execute(stmt).scalar_one_or_none()
        if stock is None:
            raise ProductNotFoundError(product_id)
        return stock


def expire_decremented_stock(session, flush_context) -> None:
    """
    Session ``after_flush_postexec`` listener.

    The guard decrements stock with Core statements, so Product instances
    already in the identity map still hold the pre-flush value.  Expire
    ``stock_quantity`` on those so the next access re-reads it.
    """
    decisions = session.info.get(ADMISSIONS_KEY)
    if not decisions:
        return
    touched = {d.product_id for d in decisions}
    for obj in list(session.identity_map.values()):
        if isinstance(obj, Product) and obj.id in touched:
            session.expire(obj, ["stock_quantity"])


def clear_admissions(session, *args) -> None:
    """Session ``after_commit`` / ``after_rollback`` listener."""
    session.info.pop(ADMISSIONS_KEY, None)
