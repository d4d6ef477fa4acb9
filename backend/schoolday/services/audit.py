from __future__ import annotations

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from schoolday.models.activity_log import ActivityLog
from schoolday.models.enums import AuditAction

SLOT_ENTITY = "timetable_slot"
UPLOAD_ENTITY = "timetable_bulk_upload"

_ENTITY_BY_ACTION = {AuditAction.TIMETABLE_IMPORT: UPLOAD_ENTITY}


def log_activity(
    db: Session,
    *,
    actor_id: str | None,
    action: AuditAction,
    entity_id: str | int,
    details: dict | None = None,
) -> ActivityLog:
    """Stage an audit row in the caller's transaction; the caller commits."""
    record = ActivityLog(
        actor_id=actor_id,
        action=action,
        entity_type=_ENTITY_BY_ACTION.get(action, SLOT_ENTITY),
        entity_id=str(entity_id),
        details=jsonable_encoder(details or {}),
    )
    db.add(record)
    return record
