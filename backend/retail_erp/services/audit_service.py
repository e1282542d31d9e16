# Overview: Service-layer operations for the audit trail.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import AuditLog
"""
Audit Invariants (authoritative)

- Append-only; no updates/deletes of existing entries.
- Written AFTER the business transaction commits, in its own commit.
- Best-effort: a failure is logged and rolled back, never raised to the
  caller, so auditing can not fail the event it records.
"""


def record_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: int | None = None,
    actor_user_id: int | None = None,
    note: str | None = None,
    payload: dict | None = None,
) -> AuditLog | None:
    try:
        entry = AuditLog(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            note=note,
            payload=payload,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception:
        db.session.rollback()
        current_app.logger.warning("Failed to write audit event %s for %s %s", event_type, entity_type, entity_id, exc_info=True)
        return None

