"""
TitleAuditInterceptor -- append one audit entry per employee title change.

Responsibility:
    Registered on ``Employee`` / after_update.  When the flushed update
    changed ``title``, inserts one ``employee_title_audit`` row on the flush
    connection, inside the same transaction as the employee UPDATE.

Invariants enforced:
    TITLE_AUDIT
        Exactly one entry per title change, with the pre- and post-update
        values.  Inserts of new employees never reach after_update, and
        updates that leave ``title`` unchanged (other fields, or a rewrite
        to the same value) produce no entry.

Failure modes:
    - AuditWriteError wraps any database error raised by the audit INSERT.
      It propagates out of ``session.flush()``; the employee update is
      rolled back with it.
"""

from typing import Any

from sqlalchemy import insert
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.attributes import get_history

from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.exceptions import AuditWriteError
from sales_kernel.logging_config import get_logger
from sales_kernel.models.audit_entry import AuditEntry
from sales_kernel.models.employee import Employee

logger = get_logger("services.title_audit")


class TitleAuditInterceptor:
    """
    After-update handler for ``Employee``.

    Contract:
        Called as ``interceptor(connection, employee)`` by the
        InterceptorRegistry while the session flushes.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()

    def __call__(self, connection: Connection, target: Employee) -> None:
        change = self.title_change(target)
        if change is None:
            return
        previous_title, new_title = change

        values = self._entry_values(target.id, previous_title, new_title)
        try:
            connection.execute(insert(AuditEntry.__table__).values(**values))
        except SQLAlchemyError as exc:
            logger.error(
                "title_audit_write_failed",
                extra={"employee_id": target.id, "new_title": new_title},
                exc_info=True,
            )
            raise AuditWriteError(
                employee_id=target.id,
                reason=str(getattr(exc, "orig", None) or exc),
            ) from exc

        logger.info(
            "title_change_audited",
            extra={
                "employee_id": target.id,
                "previous_title": previous_title,
                "new_title": new_title,
                "modified_at": values["modified_at"],
            },
        )

    @staticmethod
    def title_change(target: Employee) -> tuple[str | None, str | None] | None:
        """(previous, new) if this flush changes the title, else None."""
        history = get_history(target, "title")
        if not history.added:
            return None
        previous_title = history.deleted[0] if history.deleted else None
        new_title = history.added[0]
        if previous_title == new_title:
            return None
        return previous_title, new_title

    def _entry_values(
        self,
        employee_id: int,
        previous_title: str | None,
        new_title: str | None,
    ) -> dict[str, Any]:
        return {
            "employee_id": employee_id,
            "previous_title": previous_title,
            "new_title": new_title,
            "modified_at": self._clock.now(),
        }
