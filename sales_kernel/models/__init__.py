"""ORM models for the sales kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from sales_kernel.models.audit_entry import AuditEntry
from sales_kernel.models.employee import Employee
from sales_kernel.models.order_line import OrderLine
from sales_kernel.models.product import Product

__all__ = [
    "AuditEntry",
    "Employee",
    "OrderLine",
    "Product",
]
