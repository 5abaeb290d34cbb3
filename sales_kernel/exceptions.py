"""
Typed Exception Hierarchy for the Sales Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must learn WHICH invariant blocked an operation without parsing
message strings. Every exception here:
  1. Is a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (product_id, available, ...)

Example:
    try:
        ops.insert_order_line(order_id=10692, product_id=10, quantity=27)
    except InsufficientStockError as e:
        resubmit(quantity=e.available)            # Structured data
        api_response(code=e.code, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from SalesKernelError:

    SalesKernelError (base)
    |
    +-- MissingReferenceError
    |   +-- EmployeeNotFoundError
    |   +-- ProductNotFoundError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- OrderLineError
    |   +-- InvalidOrderLineError
    |   +-- DuplicateOrderLineError
    |
    +-- AuditError
    |   +-- AuditWriteError
    |
    +-- ConcurrencyError
    |   +-- StockContentionError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                   | When Raised
----------------|------------------------|----------------------------------------
Reference       | EMPLOYEE_NOT_FOUND     | Employee ID doesn't exist
                | PRODUCT_NOT_FOUND      | Product ID doesn't exist
----------------|------------------------|----------------------------------------
Stock           | INSUFFICIENT_STOCK     | Quantity exceeds stock at check time
----------------|------------------------|----------------------------------------
Order line      | INVALID_ORDER_LINE     | Negative quantity, discount not in [0, 1]
                | DUPLICATE_ORDER_LINE   | (order_id, product_id) already exists
----------------|------------------------|----------------------------------------
Audit           | AUDIT_WRITE_FAILED     | Audit entry insert failed (TITLE_AUDIT)
----------------|------------------------|----------------------------------------
Concurrency     | STOCK_CONTENTION       | Optimistic stock CAS attempts exhausted
----------------|------------------------|----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION | Update or delete of an audit entry

===============================================================================
DESIGN DECISIONS
===============================================================================

1. MissingReferenceError, NOT ReferenceError.
   ReferenceError is a Python builtin (weakref proxies). Shadowing it would
   make `except ReferenceError` ambiguous in every importing module.

2. Every error raised by an enforcer carries `invariant`, the
   SalesInvariant that blocked the operation.

3. All errors abort the enclosing transaction. None are handled locally;
   retrying is the caller's decision.

===============================================================================
"""

from sales_kernel.invariants import SalesInvariant


class SalesKernelError(Exception):
    """
    Base exception for all sales kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SALES_KERNEL_ERROR"
    invariant: SalesInvariant | None = None


# Reference exceptions


class MissingReferenceError(SalesKernelError):
    """An operation referenced an employee or product that does not exist."""

    code: str = "REFERENCE_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class EmployeeNotFoundError(MissingReferenceError):
    """Employee with given ID was not found."""

    code: str = "EMPLOYEE_NOT_FOUND"
    invariant = SalesInvariant.TITLE_AUDIT

    def __init__(self, employee_id: int):
        self.employee_id = employee_id
        super().__init__("Employee", employee_id)


class ProductNotFoundError(MissingReferenceError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"
    invariant = SalesInvariant.STOCK_ADMISSION

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__("Product", product_id)


# Stock exceptions


class StockError(SalesKernelError):
    """Base exception for stock admission errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """
    Requested quantity exceeds the product stock at check time.

    `available` is the stock observed by the guard, so the caller can
    adjust the quantity and resubmit.
    """

    code: str = "INSUFFICIENT_STOCK"
    invariant = SalesInvariant.STOCK_ADMISSION

    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


# Order line exceptions


class OrderLineError(SalesKernelError):
    """Base exception for order line errors."""

    code: str = "ORDER_LINE_ERROR"


class InvalidOrderLineError(OrderLineError):
    """Order line values violate the order_details constraints."""

    code: str = "INVALID_ORDER_LINE"

    def __init__(self, order_id: int, product_id: int, field: str, reason: str):
        self.order_id = order_id
        self.product_id = product_id
        self.field = field
        self.reason = reason
        super().__init__(
            f"Invalid order line ({order_id}, {product_id}) {field}: {reason}"
        )


class DuplicateOrderLineError(OrderLineError):
    """The order already has a line for this product."""

    code: str = "DUPLICATE_ORDER_LINE"

    def __init__(self, order_id: int, product_id: int):
        self.order_id = order_id
        self.product_id = product_id
        super().__init__(
            f"Order {order_id} already has a line for product {product_id}"
        )


# Audit exceptions


class AuditError(SalesKernelError):
    """Base exception for audit errors."""

    code: str = "AUDIT_ERROR"


class AuditWriteError(AuditError):
    """
    The audit entry for a title change could not be written.

    Fatal to the title change: the employee update is rolled back with it.
    """

    code: str = "AUDIT_WRITE_FAILED"
    invariant = SalesInvariant.TITLE_AUDIT

    def __init__(self, employee_id: int, reason: str):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(
            f"Audit entry for employee {employee_id} could not be written: {reason}"
        )


# Concurrency exceptions


class ConcurrencyError(SalesKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StockContentionError(ConcurrencyError):
    """Optimistic stock compare-and-swap lost the race too many times."""

    code: str = "STOCK_CONTENTION"
    invariant = SalesInvariant.STOCK_ADMISSION

    def __init__(self, product_id: int, attempts: int):
        self.product_id = product_id
        self.attempts = attempts
        super().__init__(
            f"Stock for product {product_id} changed concurrently "
            f"on {attempts} consecutive attempts"
        )


# Immutability exceptions


class ImmutabilityError(SalesKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only audit entry."""

    code: str = "IMMUTABILITY_VIOLATION"
    invariant = SalesInvariant.AUDIT_APPEND_ONLY

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
