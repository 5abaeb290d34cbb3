"""
Module: sales_kernel.models.audit_entry
Responsibility: ORM persistence for the employee title audit ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    TITLE_AUDIT
        One row per title change, written by TitleAuditInterceptor in the
        same transaction as the employee update.
    AUDIT_APPEND_ONLY
        No UPDATE or DELETE (ORM listeners in db/immutability.py plus
        PostgreSQL triggers in db/sql/).

Audit relevance:
    AuditEntry IS the audit trail.  ``employee_id`` is a plain reference, not
    a foreign key: past entries survive whatever later happens to the
    employee row.  ``id`` increases with insertion order, so ordering by it
    replays an employee's title history.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from sales_kernel.db.base import Base


class AuditEntry(Base):
    """
    One recorded title change.

    Guarantees:
        - previous_title / new_title are the pre- and post-update values.
        - modified_at defaults to the database time of insertion when the
          writer does not supply one.
    """

    __tablename__ = "employee_title_audit"

    __table_args__ = (
        Index("idx_title_audit_employee", "employee_id", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    employee_id: Mapped[int] = mapped_column(nullable=False)

    previous_title: Mapped[str | None] = mapped_column(String(30), nullable=True)

    new_title: Mapped[str | None] = mapped_column(String(30), nullable=True)

    modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEntry {self.id} employee={self.employee_id} "
            f"{self.previous_title!r} -> {self.new_title!r}>"
        )
