# Overview: Locking and transaction-scope helpers shared by the write paths.

from __future__ import annotations

from flask import current_app
from sqlalchemy import text

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; writers there are serialized
    by begin_write_transaction() instead.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Open the write transaction for a read-increment-write unit of work.

    - SQLite: BEGIN IMMEDIATE takes the database write lock up front, so two
      writers can never both read the same counter value.
    - PostgreSQL: SET LOCAL statement_timeout bounds lock waits; a timeout
      surfaces as OperationalError and aborts the transaction.

    Must be called before the first write of the unit of work. No retries:
    a lock timeout is terminal for the caller.
    """
    dialect = db.engine.dialect.name
    if dialect == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))
    elif dialect == "postgresql":
        timeout_ms = int(current_app.config.get("TRANSACTION_TIMEOUT_MS") or 0)
        if timeout_ms > 0:
            db.session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
