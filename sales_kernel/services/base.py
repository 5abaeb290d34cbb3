"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor and session-handling contract.  Services receive a
    SQLAlchemy ``Session`` and persist through ``session.flush()`` -- never
    ``session.commit()``.  Flushing is what fires the interceptors, so every
    enforcer runs inside the caller's transaction.

Invariants enforced:
    Transaction boundaries: the caller (``session_scope()``, a request
    handler, or a test) owns commit and rollback.  A rejected order line or a
    failed audit write therefore leaves nothing behind once the caller rolls
    back.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session):
        self.session = session
