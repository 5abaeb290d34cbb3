"""
SalesOperations -- the sanctioned write API for titles and order lines.

Responsibility:
    Thin composition over the enforcers.  ``change_employee_title`` resolves
    the employee and applies the new title; ``insert_order_line`` resolves the
    product, copies its unit price, applies the default discount, validates
    the line and submits it.  Both flush, which fires the registered
    interceptors (TitleAuditInterceptor, StockGuard) inside the caller's
    transaction.

Architecture position:
    Kernel > Services.  Callers wrap calls in ``session_scope()`` (or their
    own transaction) and own commit/rollback.

Failure modes:
    - EmployeeNotFoundError / ProductNotFoundError: unknown identifier,
      raised before anything is written.
    - InvalidOrderLineError: quantity not a non-negative int, or discount
      outside [0, 1].
    - DuplicateOrderLineError: the order already has a line for the product.
    - InsufficientStockError, StockContentionError, AuditWriteError:
      propagated from the enforcers; the session must be rolled back.

Usage:
    with session_scope() as session:
        ops = SalesOperations(session)
        ops.change_employee_title(1, "Manager")
        ops.insert_order_line(order_id=10692, product_id=10, quantity=27)
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy import update

from sales_kernel.domain.admission import AdmissionDecision
from sales_kernel.exceptions import (
    DuplicateOrderLineError,
    EmployeeNotFoundError,
    InvalidOrderLineError,
    ProductNotFoundError,
)
from sales_kernel.logging_config import LogContext, get_logger
from sales_kernel.models.employee import Employee
from sales_kernel.models.order_line import OrderLine
from sales_kernel.models.product import Product
from sales_kernel.services.base import BaseService
from sales_kernel.services.stock_guard import ADMISSIONS_KEY

logger = get_logger("services.sales_operations")

DEFAULT_DISCOUNT = Decimal("0")

_employees = Employee.__table__


@dataclass(frozen=True)
class TitleChangeResult:
    """Outcome of change_employee_title."""

    employee_id: int
    previous_title: str | None
    new_title: str | None
    audited: bool


@dataclass(frozen=True)
class OrderLineResult:
    """Outcome of an admitted insert_order_line."""

    order_id: int
    product_id: int
    unit_price: Decimal
    quantity: int
    discount: Decimal
    admission: AdmissionDecision

    @property
    def stock_before(self) -> int:
        return self.admission.stock_before

    @property
    def stock_after(self) -> int | None:
        return self.admission.stock_after


class SalesOperations(BaseService):
    """
    Request-style entry points for the two guarded mutations.

    Contract:
        Every mutation flushes before returning, so enforcement has already
        run when a result is handed back.

    Guarantees:
        - Never commits; the caller's rollback undoes everything.
        - Unit price on a new order line is the product's price at insertion.
        - ``discount=None`` means "use the default" (0); any explicit value,
          0 included, is used as given.
    """

    def change_employee_title(self, employee_id: int, new_title: str | None) -> TitleChangeResult:
        """
        Set an employee's title.  A real change appends one audit entry.

        Raises:
            EmployeeNotFoundError: no employee has ``employee_id``.
            AuditWriteError: the audit entry could not be written.
        """
        with LogContext.bind(employee_id=employee_id):
            employee = self._lock_employee(employee_id)
            if employee is None:
                logger.warning("employee_not_found", extra={"employee_id": employee_id})
                raise EmployeeNotFoundError(employee_id)

            previous_title = employee.title
            if previous_title == new_title:
                logger.info(
                    "title_unchanged",
                    extra={"employee_id": employee_id, "title": new_title},
                )
                return TitleChangeResult(employee_id, previous_title, new_title, audited=False)

            employee.title = new_title
            self.session.flush()

            return TitleChangeResult(employee_id, previous_title, new_title, audited=True)

    def _lock_employee(self, employee_id: int) -> Employee | None:
        """
        Load the employee under a row lock, refreshed from the database.

        The previous title must be the committed one, not whatever this
        session loaded earlier, so the row is locked before it is read and
        any identity-map copy is overwritten.  SQLite has no row locks; a
        no-op UPDATE takes the database writer lock instead, which holds off
        every other writer until this transaction ends.
        """
        if self.session.get_bind().dialect.name == "sqlite":
            self.session.execute(
                update(_employees)
                .where(_employees.c.id == employee_id)
                .values(title=_employees.c.title)
            )
        return self.session.get(
            Employee, employee_id, with_for_update=True, populate_existing=True
        )

    def insert_order_line(
        self,
        order_id: int,
        product_id: int,
        quantity: int,
        discount: Decimal | int | float | str | None = None,
    ) -> OrderLineResult:
        """
        Add one product line to an order, gated by the stock guard.

        Args:
            order_id: Order the line belongs to.
            product_id: Product being ordered.
            quantity: Units requested; non-negative integer.
            discount: Fraction in [0, 1].  None applies DEFAULT_DISCOUNT.

        Raises:
            ProductNotFoundError, InvalidOrderLineError,
            DuplicateOrderLineError, InsufficientStockError,
            StockContentionError.
        """
        with LogContext.bind(order_id=order_id, product_id=product_id):
            product = self.session.get(Product, product_id)
            if product is None:
                logger.warning("product_not_found", extra={"product_id": product_id})
                raise ProductNotFoundError(product_id)

            resolved_discount = self._resolve_discount(order_id, product_id, discount)
            self._validate_quantity(order_id, product_id, quantity)

            if self.session.get(OrderLine, (order_id, product_id)) is not None:
                raise DuplicateOrderLineError(order_id, product_id)

            line = OrderLine(
                order_id=order_id,
                product_id=product_id,
                unit_price=product.unit_price,
                quantity=quantity,
                discount=resolved_discount,
            )
            self.session.info[ADMISSIONS_KEY] = []
            self.session.add(line)
            self.session.flush()

            admission = next(
                (
                    d
                    for d in self.session.info.get(ADMISSIONS_KEY, [])
                    if (d.order_id, d.product_id) == (order_id, product_id)
                ),
                None,
            )
            if admission is None:
                logger.error("stock_guard_not_registered", extra={"product_id": product_id})
                raise RuntimeError(
                    "Order line flushed without a stock admission. "
                    "Call register_invariant_enforcers() at startup."
                )
            logger.info(
                "order_line_inserted",
                extra={
                    "order_id": order_id,
                    "product_id": product_id,
                    "quantity": quantity,
                    "unit_price": line.unit_price,
                    "discount": line.discount,
                },
            )
            return OrderLineResult(
                order_id=order_id,
                product_id=product_id,
                unit_price=line.unit_price,
                quantity=quantity,
                discount=line.discount,
                admission=admission,
            )

    @staticmethod
    def _validate_quantity(order_id: int, product_id: int, quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidOrderLineError(order_id, product_id, "quantity", "must be an integer")
        if quantity < 0:
            raise InvalidOrderLineError(order_id, product_id, "quantity", "must not be negative")

    @staticmethod
    def _resolve_discount(
        order_id: int,
        product_id: int,
        discount: Decimal | int | float | str | None,
    ) -> Decimal:
        if discount is None:
            return DEFAULT_DISCOUNT
        if isinstance(discount, bool):
            raise InvalidOrderLineError(order_id, product_id, "discount", "must be a number")
        try:
            value = discount if isinstance(discount, Decimal) else Decimal(str(discount))
        except InvalidOperation:
            raise InvalidOrderLineError(
                order_id, product_id, "discount", f"not a number: {discount!r}"
            ) from None
        if not value.is_finite() or not Decimal("0") <= value <= Decimal("1"):
            raise InvalidOrderLineError(
                order_id, product_id, "discount", "must be between 0 and 1"
            )
        return value
