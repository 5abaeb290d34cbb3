"""
Structured JSON logging for the sales kernel.

Every record under the ``sales_kernel`` logger is one JSON object per line.
Operation-scoped identifiers (order, product, employee, correlation, actor)
are bound with ``LogContext.bind()`` and stamped on every record emitted
inside the block; they take precedence over same-named ``extra`` keys.
Exceptions raised by the kernel contribute their ``code``, ``invariant`` and
structured attributes as ``exc_*`` fields.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Mapping
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "actor_id", "employee_id", "order_id", "product_id")

_bound: ContextVar[Mapping[str, str]] = ContextVar("sales_kernel_log_context", default={})


class LogContext:
    """Operation-scoped log fields, isolated per thread and per task."""

    @staticmethod
    def get_all() -> dict[str, str]:
        """Return the bound fields in declaration order."""
        bound = _bound.get()
        return {name: bound[name] for name in _CONTEXT_FIELDS if name in bound}

    @staticmethod
    def clear() -> None:
        _bound.set({})

    @staticmethod
    def bind(**fields: Any) -> "_Binding":
        """Bind fields for the duration of a ``with`` block.

        Values are stringified, so integer ids can be bound directly.
        None values and names outside the known fields are ignored.
        """
        return _Binding(fields)


class _Binding:
    def __init__(self, fields: Mapping[str, Any]):
        self._fields = {
            name: str(value)
            for name, value in fields.items()
            if name in _CONTEXT_FIELDS and value is not None
        }
        self._token: Token | None = None

    def __enter__(self) -> type[LogContext]:
        self._token = _bound.set({**_bound.get(), **self._fields})
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        _bound.reset(self._token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """datetime as ISO 8601, Decimal as its exact string, Enum as its value."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, val in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, val)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        # SalesKernelError subclasses carry a code, an invariant and their data
        if hasattr(exc, "code"):
            fields["exc_code"] = exc.code
        if getattr(exc, "invariant", None) is not None:
            fields["exc_invariant"] = exc.invariant
        for name, val in vars(exc).items():
            if not name.startswith("_") and name != "code":
                fields[f"exc_{name}"] = val
        return fields


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "sales_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the sales_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the sales_kernel logger.  Later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(handler)


def reset_logging() -> None:
    """Drop the configured handler so configure_logging() can run again (tests)."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
