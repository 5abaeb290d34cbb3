"""
Module: sales_kernel.db.triggers
Responsibility: Loading, installing, and verifying the PostgreSQL triggers that
    keep the title audit ledger append-only (AUDIT_APPEND_ONLY, layer 2 of 2).  This is
    the database-level complement to the ORM listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only.

Failure modes:
    - PostgreSQL RAISE EXCEPTION on UPDATE/DELETE of employee_title_audit
      (surfaces as sqlalchemy.exc.InternalError / DBAPIError).
    - FileNotFoundError if SQL files are missing from the sql/ directory.

TRUNCATE does not fire row-level triggers; test cleanup relies on that.
"""

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import Engine

from sales_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

SQL_DIR = Path(__file__).parent / "sql"

TRIGGER_FILES = [
    "01_audit_ledger.sql",
]

DROP_FILE = "99_drop_all.sql"

ALL_TRIGGER_NAMES = [
    "trg_title_audit_immutability_update",
    "trg_title_audit_immutability_delete",
]


def _load_sql_file(filename: str) -> str:
    return (SQL_DIR / filename).read_text(encoding="utf-8")


def load_trigger_sql() -> str:
    """Concatenate all trigger SQL files in numbered order."""
    parts = []
    for filename in TRIGGER_FILES:
        parts.append(f"-- Loading: {filename}")
        parts.append(_load_sql_file(filename))
        parts.append("")
    return "\n".join(parts)


def load_drop_sql() -> str:
    return _load_sql_file(DROP_FILE)


def install_ledger_triggers(engine: Engine) -> None:
    """
    Install the audit ledger triggers.  Idempotent (CREATE OR REPLACE).

    Preconditions: Tables exist; engine is connected to PostgreSQL.
    """
    with engine.begin() as conn:
        conn.execute(text(load_trigger_sql()))
    logger.info("ledger_triggers_installed", extra={"triggers": ALL_TRIGGER_NAMES})


def uninstall_ledger_triggers(engine: Engine) -> None:
    """
    Remove the audit ledger triggers.

    WARNING: Only for migrations and tests.  Re-install immediately afterwards.
    """
    with engine.begin() as conn:
        conn.execute(text(load_drop_sql()))
    logger.warning("ledger_triggers_uninstalled")


def get_missing_triggers(engine: Engine) -> list[str]:
    """Trigger names that should be installed but aren't."""
    trigger_list = ", ".join(f"'{name}'" for name in ALL_TRIGGER_NAMES)
    with engine.connect() as conn:
        rows = conn.execute(
            text(f"SELECT tgname FROM pg_trigger WHERE tgname IN ({trigger_list})")
        )
        installed = {row[0] for row in rows}
    return sorted(set(ALL_TRIGGER_NAMES) - installed)


def triggers_installed(engine: Engine) -> bool:
    return not get_missing_triggers(engine)
