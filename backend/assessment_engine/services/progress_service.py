"""Per-student category progress ledger.

Every mutation goes through `recompute_totals`, which keeps
`completed_categories` and `overall_progress` derived from the entries.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from assessment_engine.core.catalog import CategoryCatalog, get_catalog
from assessment_engine.core.timeutil import iso, utcnow
from assessment_engine.models.category_progress import CategoryProgress, CategoryProgressEntry
from assessment_engine.models.user import User
from assessment_engine.services.user_service import find_student

logger = logging.getLogger(__name__)


def default_entries(catalog: CategoryCatalog) -> List[CategoryProgressEntry]:
    return [
        CategoryProgressEntry(
            position=idx,
            category_id=c.category_id,
            category_name=c.name,
            pre_assessment_completed=False,
            main_assessment_completed=False,
            passed=False,
            passing_threshold=75,
            attempt_count=0,
            status=c.initial_status,
        )
        for idx, c in enumerate(catalog.categories)
    ]


def recompute_totals(progress: CategoryProgress, *, now: Optional[datetime] = None) -> None:
    entries = list(progress.entries or [])
    completed = sum(1 for e in entries if e.status == "completed")
    total = len(entries)
    progress.completed_categories = completed
    progress.total_categories = total
    progress.overall_progress = (completed / total) * 100 if total else 0.0
    progress.updated_at = now or utcnow()


def get_progress(db: Session, user_id: int) -> CategoryProgress | None:
    return db.query(CategoryProgress).filter(CategoryProgress.user_id == int(user_id)).first()


def get_or_create_progress(
    db: Session,
    *,
    student: User,
    reading_level: str = "",
    catalog: CategoryCatalog | None = None,
) -> CategoryProgress:
    progress = get_progress(db, student.id)
    if progress is not None:
        return progress

    catalog = catalog or get_catalog()
    progress = CategoryProgress(
        user_id=int(student.id),
        student_name=student.display_name,
        reading_level=reading_level or (student.reading_level or ""),
        catalog_version=catalog.version,
    )
    progress.entries = default_entries(catalog)
    recompute_totals(progress)
    db.add(progress)
    db.flush()
    logger.info("Created category progress for student %s (catalog v%s)", student.id, catalog.version)
    return progress


def find_entry(progress: CategoryProgress, category_id: int) -> CategoryProgressEntry | None:
    for e in progress.entries or []:
        if int(e.category_id) == int(category_id):
            return e
    return None


def find_or_append_entry(
    progress: CategoryProgress,
    *,
    category_id: int,
    category_name: str,
    catalog: CategoryCatalog | None = None,
) -> CategoryProgressEntry:
    entry = find_entry(progress, category_id)
    if entry is not None:
        return entry

    catalog = catalog or get_catalog()
    definition = catalog.get(category_id)
    position = max((e.position for e in progress.entries or []), default=-1) + 1
    entry = CategoryProgressEntry(
        position=position,
        category_id=int(category_id),
        category_name=category_name or (definition.name if definition else f"Category {category_id}"),
        pre_assessment_completed=False,
        main_assessment_completed=False,
        passed=False,
        passing_threshold=75,
        attempt_count=0,
        status=definition.initial_status if definition else "pending",
    )
    progress.entries.append(entry)
    logger.info("Appended category %s to progress of student %s", category_id, progress.user_id)
    return entry


def apply_assignment(
    db: Session,
    *,
    student: User,
    category_id: int,
    category_name: str,
    assessment_id: str,
    reading_level: str,
    catalog: CategoryCatalog | None = None,
    now: Optional[datetime] = None,
) -> CategoryProgress:
    now = now or utcnow()
    progress = get_or_create_progress(db, student=student, reading_level=reading_level, catalog=catalog)
    entry = find_or_append_entry(progress, category_id=category_id, category_name=category_name, catalog=catalog)

    entry.status = "in_progress"
    # Assigning the main assessment counts as having passed the pre-assessment step.
    entry.pre_assessment_completed = True
    if entry.pre_assessment_date is None:
        entry.pre_assessment_date = now
    entry.main_assessment_id = assessment_id
    entry.last_attempt_date = now

    if reading_level:
        progress.reading_level = reading_level
    progress.next_category_id = int(category_id)
    progress.next_category_name = entry.category_name
    progress.next_assessment_id = assessment_id
    recompute_totals(progress, now=now)
    db.flush()
    return progress


def apply_score(
    db: Session,
    *,
    student: User,
    category_id: int,
    category_name: str,
    percentage_score: float,
    passed: bool,
    passing_threshold: int,
    reading_level: str = "",
    catalog: CategoryCatalog | None = None,
    now: Optional[datetime] = None,
) -> CategoryProgress:
    now = now or utcnow()
    progress = get_or_create_progress(db, student=student, reading_level=reading_level, catalog=catalog)
    entry = find_or_append_entry(progress, category_id=category_id, category_name=category_name, catalog=catalog)

    entry.main_assessment_completed = True
    entry.main_assessment_score = float(percentage_score)
    entry.passed = bool(passed)
    entry.passing_threshold = int(passing_threshold)
    entry.attempt_count = int(entry.attempt_count or 0) + 1
    entry.last_attempt_date = now
    entry.completion_date = now
    entry.status = "completed" if passed else "in_progress"

    recompute_totals(progress, now=now)
    db.flush()
    return progress


def mark_category_completed(
    db: Session,
    *,
    student_id: int,
    category_id: int,
    now: Optional[datetime] = None,
) -> CategoryProgress | None:
    """Manual override: teacher marks the category complete without a scored attempt."""
    progress = get_progress(db, student_id)
    if progress is None:
        return None
    entry = find_entry(progress, category_id)
    if entry is None:
        return None

    now = now or utcnow()
    entry.status = "completed"
    entry.completion_date = now
    recompute_totals(progress, now=now)
    db.flush()
    return progress


def entry_to_dict(e: CategoryProgressEntry) -> Dict[str, Any]:
    return {
        "category_id": int(e.category_id),
        "category_name": e.category_name,
        "pre_assessment_completed": bool(e.pre_assessment_completed),
        "pre_assessment_score": e.pre_assessment_score,
        "pre_assessment_date": iso(e.pre_assessment_date),
        "main_assessment_completed": bool(e.main_assessment_completed),
        "main_assessment_id": e.main_assessment_id,
        "main_assessment_score": e.main_assessment_score,
        "passed": bool(e.passed),
        "passing_threshold": int(e.passing_threshold or 75),
        "attempt_count": int(e.attempt_count or 0),
        "last_attempt_date": iso(e.last_attempt_date),
        "completion_date": iso(e.completion_date),
        "status": e.status,
    }


def progress_to_dict(progress: CategoryProgress) -> Dict[str, Any]:
    next_category = None
    if progress.next_category_id is not None:
        next_category = {
            "category_id": int(progress.next_category_id),
            "category_name": progress.next_category_name,
            "assessment_id": progress.next_assessment_id,
        }
    return {
        "id": int(progress.id) if progress.id is not None else None,
        "user_id": int(progress.user_id),
        "student_name": progress.student_name,
        "reading_level": progress.reading_level,
        "catalog_version": progress.catalog_version,
        "categories": [entry_to_dict(e) for e in progress.entries or []],
        "completed_categories": int(progress.completed_categories or 0),
        "total_categories": int(progress.total_categories or 0),
        "overall_progress": float(progress.overall_progress or 0.0),
        "next_category": next_category,
        "updated_at": iso(progress.updated_at),
    }


def get_category_progress(db: Session, *, student_id: Any, catalog: CategoryCatalog | None = None) -> Dict[str, Any]:
    """Read the ledger; students without one get an unsaved default skeleton."""
    student = find_student(db, student_id)
    if student is not None:
        progress = get_progress(db, student.id)
        if progress is not None:
            return progress_to_dict(progress)

    catalog = catalog or get_catalog()
    skeleton = CategoryProgress(
        user_id=int(student.id) if student is not None else 0,
        student_name=student.display_name if student is not None else "",
        reading_level=(student.reading_level or "") if student is not None else "",
        catalog_version=catalog.version,
    )
    skeleton.entries = default_entries(catalog)
    recompute_totals(skeleton)
    out = progress_to_dict(skeleton)
    out["persisted"] = False
    return out
