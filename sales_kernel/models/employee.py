"""
Module: sales_kernel.models.employee
Responsibility: ORM persistence for employees.  Only ``title`` is mutated by
    the kernel; every other field belongs to external collaborators.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    TITLE_AUDIT
        A change to ``title`` appends one AuditEntry (TitleAuditInterceptor,
        registered on this model's after_update event).
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sales_kernel.db.base import Base


class Employee(Base):
    """
    Employee of the sales organization.

    Contract:
        Created externally with a stable integer id.  The kernel changes
        ``title`` only through SalesOperations.change_employee_title and
        never deletes employees.
    """

    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)

    last_name: Mapped[str] = mapped_column(String(20), nullable=False)

    first_name: Mapped[str] = mapped_column(String(10), nullable=False)

    # Job title; audited on every change
    title: Mapped[str | None] = mapped_column(
        String(30),
        nullable=True,
        # Old value is loaded on set, even when expired, so history is exact
        active_history=True,
    )

    extension: Mapped[str | None] = mapped_column(String(4), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Employee {self.id}: {self.first_name} {self.last_name} ({self.title})>"
