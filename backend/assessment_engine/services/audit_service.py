from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from assessment_engine.core.timeutil import iso, utcnow
from assessment_engine.infra.event_bus import publish_event
from assessment_engine.models.student_profile_update import StudentProfileUpdate

ASSIGNMENT_RECEIVED = "assignment_received"


def record_assignment_received(
    db: Session,
    *,
    user_id: int,
    assessment_id: str,
    category_id: int,
    category_name: str,
    teacher_id: int | None,
    now: Optional[datetime] = None,
) -> StudentProfileUpdate:
    row = StudentProfileUpdate(
        user_id=int(user_id),
        update_type=ASSIGNMENT_RECEIVED,
        previous_value=None,
        new_value=assessment_id,
        reason=f"Assigned {category_name} assessment",
        assessment_id=assessment_id,
        category_id=int(category_id),
        updated_by=teacher_id,
        update_date=now or utcnow(),
    )
    db.add(row)
    return row


def profile_update_payload(row: StudentProfileUpdate) -> Dict[str, Any]:
    return {
        "id": int(row.id) if row.id is not None else None,
        "user_id": int(row.user_id),
        "update_type": row.update_type,
        "previous_value": row.previous_value,
        "new_value": row.new_value,
        "reason": row.reason,
        "assessment_id": row.assessment_id,
        "category_id": row.category_id,
        "updated_by": row.updated_by,
        "update_date": iso(row.update_date),
    }


def publish_profile_updates(rows: Iterable[StudentProfileUpdate]) -> None:
    """Announce committed audit rows. Must only be called after commit."""
    for row in rows:
        publish_event("profile_update", profile_update_payload(row), user_id=row.user_id)
