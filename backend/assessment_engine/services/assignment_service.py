"""Assignment orchestrator.

For every requested category the orchestrator writes, as one unit:

    template (found or placeholder) -> optional customized copy ->
    Assignment + empty Response -> audit row -> CategoryProgress entry

The customized copy is built inside a SAVEPOINT so a bad customization
request only loses the customization; the student still gets the canonical
assessment.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assessment_engine.core.catalog import CategoryCatalog, get_catalog
from assessment_engine.core.config import settings
from assessment_engine.core.timeutil import iso, utcnow
from assessment_engine.db.transaction import translate_error, unit_of_work
from assessment_engine.models.assignment import Assignment, AssignmentStudent
from assessment_engine.models.response import AssessmentResponse
from assessment_engine.models.student_profile_update import StudentProfileUpdate
from assessment_engine.models.user import User
from assessment_engine.schemas.assessment import CategoryIn, CustomizationSpec
from assessment_engine.services import progress_service
from assessment_engine.services.audit_service import publish_profile_updates, record_assignment_received
from assessment_engine.services.content_service import resolve_template
from assessment_engine.services.customization_service import (
    coerce_spec,
    create_customized_assessment,
    get_customized_assessment,
    wants_customization,
)
from assessment_engine.services.errors import (
    AssessmentEngineError,
    CustomizationError,
    NotFoundError,
    ValidationError,
)
from assessment_engine.services.scoring_service import latest_response, resolve_effective_assessment
from assessment_engine.services.user_service import parse_student_ref, resolve_student

logger = logging.getLogger(__name__)

ASSIGNMENT_STATUSES = ("pending", "in_progress", "completed", "cancelled")


# ----------------------------------------------------------------------------
# Serializers
# ----------------------------------------------------------------------------

def assignment_to_dict(a: Assignment, db: Session | None = None) -> Dict[str, Any]:
    customization = None
    if a.has_customization and a.customized_assessment_id:
        customization = {"assessment_id": a.customized_assessment_id, "total_questions": None}
        if db is not None:
            ca = get_customized_assessment(db, a.customized_assessment_id)
            if ca is not None:
                customization["total_questions"] = ca.total_questions
    return {
        "id": int(a.id),
        "assessment_id": a.assessment_id,
        "assessment_title": a.assessment_title,
        "template_assessment_id": a.template_assessment_id,
        "category_id": int(a.category_id),
        "category_name": a.category_name,
        "assigned_by": a.assigned_by,
        "assigned_date": iso(a.assigned_date),
        "target_reading_level": a.target_reading_level,
        "passing_threshold": int(a.passing_threshold),
        "instructions": a.instructions,
        "notes": a.notes,
        "students": [
            {"user_id": int(s.user_id), "reading_level": s.reading_level, "status": s.status} for s in a.students
        ],
        "completion_count": int(a.completion_count or 0),
        "total_assigned": int(a.total_assigned or 0),
        "completion_rate": float(a.completion_rate or 0.0),
        "has_customization": bool(a.has_customization),
        "customized_assessment_id": a.customized_assessment_id,
        "customized_assessment": customization,
        "updated_at": iso(a.updated_at),
    }


def response_to_dict(r: AssessmentResponse) -> Dict[str, Any]:
    return {
        "id": int(r.id),
        "assessment_id": r.assessment_id,
        "template_assessment_id": r.template_assessment_id,
        "user_id": int(r.user_id),
        "assignment_id": r.assignment_id,
        "category_id": int(r.category_id),
        "category_name": r.category_name,
        "reading_level": r.reading_level,
        "has_customization": bool(r.has_customization),
        "customized_assessment_id": r.customized_assessment_id,
        "start_time": iso(r.start_time),
        "end_time": iso(r.end_time),
        "completed": bool(r.completed),
        "answers": dict(r.answers or {}),
        "raw_score": r.raw_score,
        "total_questions": int(r.total_questions or 0),
        "percentage_score": r.percentage_score,
        "passed": r.passed,
        "attempt_number": int(r.attempt_number or 0),
        "correct_answers": list(r.correct_answers or []),
        "incorrect_answers": list(r.incorrect_answers or []),
        "time_spent": float(r.time_spent or 0.0),
        "completed_at": iso(r.completed_at),
        "teacher_feedback": r.teacher_feedback or "",
        "teacher_reviewed_by": r.teacher_reviewed_by,
        "reviewed_at": iso(r.reviewed_at),
        "next_steps": r.next_steps or "",
    }


# ----------------------------------------------------------------------------
# Input validation
# ----------------------------------------------------------------------------

def _require_reading_level(reading_level: Any) -> str:
    level = str(reading_level or "").strip()
    if not level:
        raise ValidationError("Reading level is required", details={"field": "reading_level"})
    return level


def validate_categories(categories: Any, catalog: CategoryCatalog) -> List[CategoryIn]:
    if not categories or not isinstance(categories, Sequence) or isinstance(categories, (str, bytes)):
        raise ValidationError("At least one category is required", details={"field": "categories"})

    out: List[CategoryIn] = []
    for raw in categories:
        if isinstance(raw, CategoryIn):
            cid, name = raw.category_id, raw.category_name
        elif isinstance(raw, Mapping):
            cid, name = raw.get("category_id"), raw.get("category_name")
        else:
            raise ValidationError("Invalid category entry", details={"category": str(raw)})

        if isinstance(cid, bool) or not str(cid if cid is not None else "").strip().lstrip("-").isdigit():
            raise ValidationError("Category ID must be an integer", details={"category_id": str(cid)})
        definition = catalog.get(int(cid))
        if definition is None:
            raise ValidationError(
                f"Unknown category {cid}",
                details={"category_id": int(cid), "known": catalog.ids()},
            )
        out.append(CategoryIn(category_id=int(cid), category_name=str(name or "").strip() or definition.name))
    return out


def _parse_id(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}", details={"field": field, "value": str(value)})
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}", details={"field": field, "value": str(value)}) from None


def _resolve_teacher_id(db: Session, teacher_id: Any) -> int | None:
    tid = teacher_id if teacher_id is not None else settings.DEFAULT_TEACHER_ID
    if tid is None:
        return None
    tid = _parse_id(tid, "teacher_id")
    if db.get(User, tid) is None:
        raise ValidationError(f"Teacher {tid} not found", details={"teacher_id": tid})
    return tid


def _parse_customizations(customizations: Any) -> CustomizationSpec | None:
    try:
        return coerce_spec(customizations)
    except CustomizationError as exc:
        logger.warning("Ignoring malformed customization request: %s", exc.message)
        return None


# ----------------------------------------------------------------------------
# Assignment
# ----------------------------------------------------------------------------

def _assign_category(
    db: Session,
    *,
    student: User,
    reading_level: str,
    category: CategoryIn,
    spec: CustomizationSpec | None,
    teacher_id: int | None,
    catalog: CategoryCatalog,
    now: datetime,
) -> Tuple[Assignment, StudentProfileUpdate]:
    """All writes for one category. Flushes only; the caller owns the transaction."""
    template = resolve_template(
        db,
        category_id=category.category_id,
        category_name=category.category_name,
        reading_level=reading_level,
        created_by=teacher_id,
    )

    customized = None
    if spec is not None and wants_customization(spec, template):
        try:
            with db.begin_nested():
                customized = create_customized_assessment(
                    db,
                    template=template,
                    spec=spec,
                    student_id=student.id,
                    teacher_id=teacher_id,
                    category_name=category.category_name,
                    reading_level=reading_level,
                )
        except (CustomizationError, SQLAlchemyError) as exc:
            logger.warning(
                "Customization of %s for student %s failed, assigning canonical assessment: %s",
                template.assessment_id,
                student.id,
                exc,
            )
            customized = None

    in_effect = customized or template
    assignment = Assignment(
        assessment_id=in_effect.assessment_id,
        assessment_title=in_effect.title,
        template_assessment_id=template.assessment_id,
        category_id=category.category_id,
        category_name=category.category_name,
        assigned_by=teacher_id,
        assigned_date=now,
        target_reading_level=reading_level,
        passing_threshold=int(in_effect.passing_threshold or settings.DEFAULT_PASSING_THRESHOLD),
        instructions=in_effect.instructions,
        notes="",
        has_customization=customized is not None,
        customized_assessment_id=customized.assessment_id if customized is not None else None,
        updated_at=now,
    )
    assignment.students = [AssignmentStudent(user_id=int(student.id), reading_level=reading_level, status="pending")]
    assignment.refresh_completion()
    db.add(assignment)
    db.flush()

    db.add(
        AssessmentResponse(
            assessment_id=in_effect.assessment_id,
            template_assessment_id=template.assessment_id,
            user_id=int(student.id),
            assignment_id=int(assignment.id),
            category_id=category.category_id,
            category_name=category.category_name,
            reading_level=reading_level,
            has_customization=customized is not None,
            customized_assessment_id=customized.assessment_id if customized is not None else None,
            completed=False,
            answers={},
            total_questions=len(in_effect.questions or []),
            attempt_number=0,
            correct_answers=[],
            incorrect_answers=[],
        )
    )

    audit = record_assignment_received(
        db,
        user_id=student.id,
        assessment_id=in_effect.assessment_id,
        category_id=category.category_id,
        category_name=category.category_name,
        teacher_id=teacher_id,
        now=now,
    )

    progress_service.apply_assignment(
        db,
        student=student,
        category_id=category.category_id,
        category_name=category.category_name,
        assessment_id=in_effect.assessment_id,
        reading_level=reading_level,
        catalog=catalog,
        now=now,
    )
    return assignment, audit


def assign_categories(
    db: Session,
    *,
    student_id: Any,
    reading_level: Any,
    categories: Any,
    customizations: Any = None,
    teacher_id: Any = None,
    scope: str | None = None,
    catalog: CategoryCatalog | None = None,
) -> List[Dict[str, Any]]:
    catalog = catalog or get_catalog()
    parse_student_ref(student_id)
    level = _require_reading_level(reading_level)
    cats = validate_categories(categories, catalog)
    scope = str(scope or settings.ASSIGNMENT_TRANSACTION_SCOPE).strip().lower()
    if scope not in {"per_category", "all_or_nothing"}:
        raise ValidationError("Unknown transaction scope", details={"scope": scope})

    student = resolve_student(db, student_id)
    tid = _resolve_teacher_id(db, teacher_id)
    spec = _parse_customizations(customizations)
    now = utcnow()

    created: List[Assignment] = []
    audits: List[StudentProfileUpdate] = []
    if scope == "all_or_nothing":
        with unit_of_work(db, label="assigning categories"):
            for cat in cats:
                a, audit = _assign_category(
                    db, student=student, reading_level=level, category=cat, spec=spec,
                    teacher_id=tid, catalog=catalog, now=now,
                )
                created.append(a)
                audits.append(audit)
        publish_profile_updates(audits)
    else:
        for cat in cats:
            try:
                with unit_of_work(db, label=f"assigning category {cat.category_id}"):
                    a, audit = _assign_category(
                        db, student=student, reading_level=level, category=cat, spec=spec,
                        teacher_id=tid, catalog=catalog, now=now,
                    )
            except AssessmentEngineError as exc:
                if created:
                    # Earlier categories stay committed; tell the caller which.
                    exc.details = {
                        **exc.details,
                        "failed_category_id": cat.category_id,
                        "committed_assignments": [
                            {
                                "assignment_id": int(c.id),
                                "category_id": int(c.category_id),
                                "assessment_id": c.assessment_id,
                            }
                            for c in created
                        ],
                    }
                raise
            created.append(a)
            publish_profile_updates([audit])

    logger.info(
        "Assigned %d categor%s to student %s at %s",
        len(created),
        "y" if len(created) == 1 else "ies",
        student.id,
        level,
    )
    return [assignment_to_dict(a, db) for a in created]


def assign_categories_batch(
    db: Session,
    *,
    student_ids: Any,
    reading_level: Any,
    categories: Any,
    teacher_id: Any = None,
    catalog: CategoryCatalog | None = None,
) -> Dict[str, Any]:
    """Assign the same categories to many students; failures are per student."""
    catalog = catalog or get_catalog()
    if not student_ids or isinstance(student_ids, (str, bytes)):
        raise ValidationError("At least one student is required", details={"field": "students"})
    level = _require_reading_level(reading_level)
    cats = validate_categories(categories, catalog)

    successes: List[Dict[str, Any]] = []
    failures: List[Dict[str, Any]] = []
    for sid in student_ids:
        try:
            assignments = assign_categories(
                db,
                student_id=sid,
                reading_level=level,
                categories=cats,
                teacher_id=teacher_id,
                catalog=catalog,
            )
        except (AssessmentEngineError, SQLAlchemyError) as exc:
            if isinstance(exc, SQLAlchemyError):
                db.rollback()
            err = translate_error(exc, label=f"assigning student {sid}")
            logger.warning("Batch assignment failed for student %s: %s (%s)", sid, err.message, err.code)
            failures.append(
                {"student_id": sid, "error": err.message, "code": err.code, "retryable": err.retryable}
            )
            continue
        successes.append({"student_id": sid, "assignments": assignments})

    return {
        "successes": successes,
        "failures": failures,
        "total_processed": len(successes) + len(failures),
        "successful": len(successes),
        "failed": len(failures),
    }


# ----------------------------------------------------------------------------
# Reads and manual overrides
# ----------------------------------------------------------------------------

def get_assignments(db: Session, *, student_id: Any) -> List[Dict[str, Any]]:
    student = resolve_student(db, student_id)
    rows = (
        db.query(Assignment)
        .join(AssignmentStudent, AssignmentStudent.assignment_id == Assignment.id)
        .filter(AssignmentStudent.user_id == int(student.id))
        .order_by(Assignment.assigned_date.desc(), Assignment.id.desc())
        .all()
    )
    return [assignment_to_dict(a, db) for a in rows]


def _find_assignment(db: Session, assignment_ref: Any) -> Assignment:
    ref = str(assignment_ref if assignment_ref is not None else "").strip()
    if not ref:
        raise ValidationError("Assignment ID is required", details={"field": "assignment_id"})

    row = None
    if ref.isdigit():
        row = db.get(Assignment, int(ref))
    if row is None:
        row = db.query(Assignment).filter(Assignment.assessment_id == ref).order_by(Assignment.id.desc()).first()
    if row is None:
        raise NotFoundError("Assignment not found", details={"assignment_id": ref})
    return row


def update_assignment_status(
    db: Session,
    *,
    assignment_ref: Any,
    status: Any,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    status = str(status or "").strip().lower()
    if status not in ASSIGNMENT_STATUSES:
        raise ValidationError(
            "Invalid status",
            details={"status": status, "allowed": list(ASSIGNMENT_STATUSES)},
        )

    assignment = _find_assignment(db, assignment_ref)
    now = utcnow()
    with unit_of_work(db, label="updating assignment status"):
        for sub in assignment.students:
            sub.status = status
        if notes is not None:
            assignment.notes = notes
        assignment.refresh_completion()
        assignment.updated_at = now

        if status == "completed":
            for sub in assignment.students:
                progress_service.mark_category_completed(
                    db, student_id=int(sub.user_id), category_id=int(assignment.category_id), now=now
                )

    logger.info("Assignment %s set to %s", assignment.id, status)
    return assignment_to_dict(assignment, db)


def get_assessment_questions(db: Session, *, assessment_id: Any, student_id: Any) -> Dict[str, Any]:
    aid = str(assessment_id or "").strip()
    if not aid:
        raise ValidationError("Assessment ID is required", details={"field": "assessment_id"})

    student = resolve_student(db, student_id)
    response = latest_response(db, assessment_id=aid, user_id=student.id)
    effective = resolve_effective_assessment(db, assessment_id=aid, response=response, student_id=student.id)
    return {
        "is_customized": effective.is_customized,
        "assessment_id": effective.assessment_id,
        "title": effective.title,
        "category_id": effective.category_id,
        "category_name": effective.category_name,
        "instructions": effective.instructions,
        "passing_threshold": effective.passing_threshold,
        "questions": effective.questions,
    }


def start_assessment(db: Session, *, assessment_id: Any, student_id: Any) -> Dict[str, Any]:
    aid = str(assessment_id or "").strip()
    if not aid:
        raise ValidationError("Assessment ID is required", details={"field": "assessment_id"})

    student = resolve_student(db, student_id)
    response = latest_response(db, assessment_id=aid, user_id=student.id)
    if response is None:
        raise NotFoundError(
            "Assessment response not found",
            details={"assessment_id": aid, "student_id": int(student.id)},
        )

    now = utcnow()
    with unit_of_work(db, label="starting an assessment"):
        response.start_time = now
        if response.assignment_id is not None:
            assignment = db.get(Assignment, int(response.assignment_id))
            if assignment is not None:
                for sub in assignment.students:
                    if int(sub.user_id) == int(student.id) and sub.status == "pending":
                        sub.status = "in_progress"
                assignment.updated_at = now

    return {"response_id": int(response.id), "assessment_id": aid, "start_time": iso(response.start_time)}


def provide_feedback(
    db: Session,
    *,
    response_id: Any,
    teacher_id: int | None,
    teacher_feedback: Optional[str] = None,
    next_steps: Optional[str] = None,
) -> Dict[str, Any]:
    feedback = (teacher_feedback or "").strip()
    steps = (next_steps or "").strip()
    if not feedback and not steps:
        raise ValidationError("Feedback or next steps are required", details={"field": "teacher_feedback"})

    rid = _parse_id(response_id, "response_id")
    response = db.get(AssessmentResponse, rid)
    if response is None:
        raise NotFoundError("Response not found", details={"response_id": rid})

    with unit_of_work(db, label="recording feedback"):
        if feedback:
            response.teacher_feedback = feedback
        if steps:
            response.next_steps = steps
        response.teacher_reviewed_by = teacher_id
        response.reviewed_at = utcnow()

    return response_to_dict(response)


def get_responses(db: Session, *, student_id: Any) -> List[Dict[str, Any]]:
    student = resolve_student(db, student_id)
    rows = (
        db.query(AssessmentResponse)
        .filter(AssessmentResponse.user_id == int(student.id))
        .order_by(AssessmentResponse.created_at.desc(), AssessmentResponse.id.desc())
        .all()
    )
    return [response_to_dict(r) for r in rows]
