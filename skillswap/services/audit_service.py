"""
skillswap.services.audit_service — Moderator Audit Trail
=========================================================

Every moderator mutation follows the same pattern:
  1. Read "before" snapshot of the touched columns
  2. Apply change
  3. Write admin_log with before/after JSON, in the same transaction
  4. Commit
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from skillswap.database.models import AdminLog

logger = logging.getLogger(__name__)


def row_to_dict(obj: Any, columns: Iterable[str] | None = None) -> dict | None:
    """Convert a model instance (or a subset of its columns) to a JSON-safe dict."""
    if obj is None:
        return None
    keys = list(columns) if columns is not None else [c.key for c in obj.__table__.columns]
    result = {}
    for key in keys:
        val = getattr(obj, key, None)
        if isinstance(val, datetime):
            val = val.isoformat()
        result[key] = val
    return result


def log_admin_action(
    session: Session,
    *,
    actor_id: str,
    action_type: str,
    target_table: str,
    target_id: str | None,
    before: dict | None,
    after: dict | None,
    reason: str | None = None,
) -> None:
    """Insert a row into admin_log within the current transaction."""
    session.add(AdminLog(
        actor_id=actor_id,
        action_type=action_type,
        target_table=target_table,
        target_id=target_id,
        before_snapshot=before,
        after_snapshot=after,
        reason=reason,
    ))
    logger.info(
        "Moderator %s: %s on %s/%s", actor_id, action_type, target_table, target_id
    )


def recent_audit(engine: Engine, *, limit: int = 50, actor_id: str | None = None) -> list[dict]:
    """Most recent audit rows first."""
    with Session(engine) as session:
        stmt = select(AdminLog).order_by(AdminLog.timestamp.desc(), AdminLog.id.desc())
        if actor_id is not None:
            stmt = stmt.where(AdminLog.actor_id == actor_id)
        rows = session.scalars(stmt.limit(limit)).all()
        return [
            {
                "id": r.id,
                "actor_id": r.actor_id,
                "action_type": r.action_type,
                "target_table": r.target_table,
                "target_id": r.target_id,
                "before": r.before_snapshot,
                "after": r.after_snapshot,
                "reason": r.reason,
                "timestamp": r.timestamp.isoformat() if r.timestamp else None,
            }
            for r in rows
        ]
