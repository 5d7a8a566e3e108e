"""
Audit logging service

Entries are written inside the caller's transaction. If an entry cannot be
written the caller's change must not be committed either, so any database
error here is raised as AuditWriteFailed and the enclosing transaction rolls
back.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leave_engine.core.exceptions import AuditWriteFailed
from leave_engine.models.audit_log import AuditEntry
from leave_engine.utils.datetime_utils import now_utc
from leave_engine.utils.json_serializer import to_json_safe

logger = logging.getLogger(__name__)


def record(
    db: Session,
    entity_type: str,
    entity_id: int,
    actor_id: int,
    action: str,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    comment: Optional[str] = None,
) -> AuditEntry:
    """
    Append one audit entry

    Args:
        db: Database session (the caller owns the transaction)
        entity_type: "leave_request", "leave_balance", ...
        entity_id: ID of the affected entity
        actor_id: ID of the employee performing the action
        action: Action name (e.g. "APPROVE", "COMMIT_USAGE")
        before: Snapshot before the change
        after: Snapshot after the change
        comment: Free-text comment supplied with the action

    Returns:
        The flushed AuditEntry

    Raises:
        AuditWriteFailed: if the entry could not be written
    """
    entry = AuditEntry(
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        action=action,
        before_state=to_json_safe(before),
        after_state=to_json_safe(after),
        comment=comment,
        timestamp=now_utc(),
    )
    try:
        db.add(entry)
        db.flush()
    except SQLAlchemyError as exc:
        logger.error(
            "audit write failed: entity_type=%s entity_id=%s action=%s",
            entity_type, entity_id, action, exc_info=True,
        )
        raise AuditWriteFailed(
            f"Could not record audit entry for {entity_type} {entity_id}",
            entity_id=entity_id,
        ) from exc
    return entry


def list_entries(
    db: Session,
    entity_type: str,
    entity_id: int,
) -> List[AuditEntry]:
    """Audit trail for one entity, oldest first"""
    return (
        db.query(AuditEntry)
        .filter(AuditEntry.entity_type == entity_type, AuditEntry.entity_id == entity_id)
        .order_by(AuditEntry.timestamp.asc(), AuditEntry.id.asc())
        .all()
    )
