"""
ORM-Level Ledger Immutability (AUDIT_APPEND_ONLY, layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

The title audit trail is a ledger: rows are appended by the
TitleAuditInterceptor and never touched again.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through Python/SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/sql/01_audit_ledger.sql (PostgreSQL triggers)
    - Catches raw SQL, bulk UPDATE/DELETE statements, direct psql access

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update AuditEntry] --> ImmutabilityViolationError
    [before_delete AuditEntry] --> ImmutabilityViolationError
         |
         v
    SQL sent to database (never, for audit entries)

The interceptor itself writes audit rows with a Core INSERT on the flush
connection, so it never produces ORM-tracked AuditEntry objects and is not
affected by these listeners.

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
    ...
    register_immutability_listeners()
"""

from sqlalchemy import event

from sales_kernel.exceptions import ImmutabilityViolationError
from sales_kernel.invariants import SalesInvariant
from sales_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(target, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": SalesInvariant.AUDIT_APPEND_ONLY.value,
            "entity_type": "AuditEntry",
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="AuditEntry",
        entity_id=str(target.id),
        reason=reason,
    )


def _check_audit_entry_immutability(mapper, connection, target):
    """Prevent any updates to AuditEntry records."""
    _block(target, "UPDATE", "Audit entries are immutable and cannot be modified")


def _check_audit_entry_delete(mapper, connection, target):
    """Prevent deletion of AuditEntry records."""
    _block(target, "DELETE", "Audit entries cannot be deleted")


def register_immutability_listeners():
    """
    Register the ledger immutability listeners.  Idempotent.

    Call this after the models are imported but before any database
    operations begin.
    """
    from sales_kernel.models.audit_entry import AuditEntry

    for event_name, listener in (
        ("before_update", _check_audit_entry_immutability),
        ("before_delete", _check_audit_entry_delete),
    ):
        if not event.contains(AuditEntry, event_name, listener):
            event.listen(AuditEntry, event_name, listener)


def unregister_immutability_listeners():
    """
    Remove the ledger immutability listeners.

    WARNING: Only use this in tests that must tamper with the ledger.
    """
    from sales_kernel.models.audit_entry import AuditEntry

    for event_name, listener in (
        ("before_update", _check_audit_entry_immutability),
        ("before_delete", _check_audit_entry_delete),
    ):
        if event.contains(AuditEntry, event_name, listener):
            event.remove(AuditEntry, event_name, listener)
