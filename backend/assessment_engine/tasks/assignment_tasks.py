from __future__ import annotations

from typing import Any

from assessment_engine.db.session import SessionLocal
from assessment_engine.services.assignment_service import assign_categories_batch


def task_assign_categories_batch(
    student_ids: list[Any],
    reading_level: str,
    categories: list[dict],
    teacher_id: int | None = None,
) -> dict:
    db = SessionLocal()
    try:
        return assign_categories_batch(
            db,
            student_ids=student_ids,
            reading_level=reading_level,
            categories=categories,
            teacher_id=teacher_id,
        )
    finally:
        db.close()
