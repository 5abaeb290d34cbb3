"""
Module: sales_kernel.models.product
Responsibility: ORM persistence for the product catalog and its stock level.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    NON_NEGATIVE_STOCK
        stock_quantity >= 0 (ck_products_stock_non_negative).  The
        StockGuard never issues a decrement that would break it.
    unit_price >= 0 (ck_products_unit_price_non_negative).

Failure modes:
    - IntegrityError if any writer outside the kernel drives stock negative.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from sales_kernel.db.base import Base


class Product(Base):
    """
    Catalog product.

    Contract:
        ``unit_price`` is read-only from the kernel's perspective; it is copied
        onto each order line at insertion.  ``stock_quantity`` is written only
        by the StockGuard.
    """

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_products_unit_price_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)

    product_name: Mapped[str] = mapped_column(String(40), nullable=False)

    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # Units in stock
    stock_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Product {self.id}: {self.product_name} stock={self.stock_quantity}>"
