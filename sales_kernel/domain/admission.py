"""
Admission -- the outcome of gating one order line against product stock.

Responsibility:
    Immutable value objects describing what the StockGuard decided for a
    single insertion attempt.  There are exactly two terminal outcomes:
    ADMITTED (stock decremented and line inserted, together) and REJECTED
    (nothing written).

Architecture position:
    Kernel > Domain -- pure values, zero I/O.
"""

from dataclasses import dataclass
from enum import Enum


class AdmissionOutcome(str, Enum):
    """Terminal outcome of one order line insertion attempt."""

    ADMITTED = "admitted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class AdmissionDecision:
    """
    Result of the stock check for one order line.

    ``stock_after`` is None for rejections, since no write occurred.
    """

    outcome: AdmissionOutcome
    order_id: int
    product_id: int
    requested: int
    stock_before: int
    stock_after: int | None = None
    attempts: int = 1

    @property
    def is_admitted(self) -> bool:
        return self.outcome == AdmissionOutcome.ADMITTED

    @classmethod
    def admitted(
        cls,
        order_id: int,
        product_id: int,
        requested: int,
        stock_before: int,
        attempts: int = 1,
    ) -> "AdmissionDecision":
        return cls(
            outcome=AdmissionOutcome.ADMITTED,
            order_id=order_id,
            product_id=product_id,
            requested=requested,
            stock_before=stock_before,
            stock_after=stock_before - requested,
            attempts=attempts,
        )

    @classmethod
    def rejected(
        cls,
        order_id: int,
        product_id: int,
        requested: int,
        available: int,
        attempts: int = 1,
    ) -> "AdmissionDecision":
        return cls(
            outcome=AdmissionOutcome.REJECTED,
            order_id=order_id,
            product_id=product_id,
            requested=requested,
            stock_before=available,
            attempts=attempts,
        )
