"""
Module: sales_kernel.models.order_line
Responsibility: ORM persistence for order lines (``order_details``).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    STOCK_ADMISSION
        A row is inserted only after StockGuard (before_insert) has checked
        and decremented the product stock on the same connection.
    quantity >= 0, unit_price >= 0, 0 <= discount <= 1 (check constraints).
    One line per (order_id, product_id) -- composite primary key.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from sales_kernel.db.base import Base


class OrderLine(Base):
    """
    One product line on an order.

    Contract:
        ``unit_price`` is captured from the product at insertion and never
        re-derived.  Lines are immutable once created in the kernel's scope.
    """

    __tablename__ = "order_details"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_order_details_quantity_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_order_details_unit_price_non_negative"),
        CheckConstraint(
            "discount >= 0 AND discount <= 1", name="ck_order_details_discount_range"
        ),
    )

    order_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id"),
        primary_key=True,
        autoincrement=False,
    )

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    discount: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        nullable=False,
        default=Decimal("0"),
    )

    def __repr__(self) -> str:
        return (
            f"<OrderLine order={self.order_id} product={self.product_id} "
            f"qty={self.quantity}>"
        )
