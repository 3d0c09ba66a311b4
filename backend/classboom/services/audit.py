from __future__ import annotations

from sqlalchemy.orm import Session

from classboom.models.activity_log import ActivityLog
from classboom.services.tenant import TenantContext


def log_activity(
    db: Session,
    *,
    tenant: TenantContext | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> None:
    record = ActivityLog(
        school_id=tenant.school_id if tenant is not None else None,
        user_id=tenant.user_id if tenant is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(record)
