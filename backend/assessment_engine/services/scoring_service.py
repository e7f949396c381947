"""Scoring engine.

`score_answers` is a pure function of (questions, answers, threshold).
`submit_response` resolves the assessment the student actually received,
scores it and persists Response + Assignment + CategoryProgress in one
unit of work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Mapping, Optional

from sqlalchemy.orm import Session

from assessment_engine.core.config import settings
from assessment_engine.core.timeutil import as_utc, utcnow
from assessment_engine.db.transaction import unit_of_work
from assessment_engine.models.assignment import Assignment
from assessment_engine.models.response import AssessmentResponse
from assessment_engine.services import progress_service
from assessment_engine.services.content_service import get_template
from assessment_engine.services.customization_service import get_customized_assessment
from assessment_engine.services.errors import NotFoundError, ValidationError
from assessment_engine.services.user_service import resolve_student

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectiveAssessment:
    kind: Literal["customized", "canonical"]
    assessment_id: str
    title: str
    category_id: int
    category_name: str
    passing_threshold: int
    questions: List[Dict[str, Any]] = field(default_factory=list)
    instructions: str | None = None

    @property
    def is_customized(self) -> bool:
        return self.kind == "customized"


@dataclass(frozen=True)
class ScoreResult:
    raw_score: int
    total_points: int
    percentage_score: float
    passed: bool
    correct_answers: List[str]
    incorrect_answers: List[str]


def _point_value(q: Mapping[str, Any]) -> int:
    v = q.get("point_value")
    return 1 if v is None else int(v)


def _correct_option_id(q: Mapping[str, Any]) -> str | None:
    for opt in q.get("options") or []:
        if isinstance(opt, Mapping) and opt.get("is_correct"):
            return str(opt.get("option_id"))
    return None


def score_answers(
    questions: List[Mapping[str, Any]],
    answers: Mapping[str, Any],
    passing_threshold: int,
) -> ScoreResult:
    by_id = {str(q.get("question_id")): q for q in questions if isinstance(q, Mapping)}

    raw = 0
    correct: List[str] = []
    incorrect: List[str] = []
    for qid, answer in answers.items():
        q = by_id.get(str(qid))
        if q is None:
            continue
        right = _correct_option_id(q)
        if right is not None and answer is not None and str(answer) == right:
            raw += _point_value(q)
            correct.append(str(qid))
        else:
            incorrect.append(str(qid))

    total = sum(_point_value(q) for q in by_id.values())
    percentage = (raw / total) * 100 if total > 0 else 0.0
    return ScoreResult(
        raw_score=raw,
        total_points=total,
        percentage_score=percentage,
        passed=percentage >= passing_threshold,
        correct_answers=correct,
        incorrect_answers=incorrect,
    )


def latest_response(db: Session, *, assessment_id: str, user_id: int) -> AssessmentResponse | None:
    return (
        db.query(AssessmentResponse)
        .filter(AssessmentResponse.assessment_id == str(assessment_id), AssessmentResponse.user_id == int(user_id))
        .order_by(AssessmentResponse.id.desc())
        .first()
    )


def _from_customized(ca) -> EffectiveAssessment:
    return EffectiveAssessment(
        kind="customized",
        assessment_id=ca.assessment_id,
        title=ca.title,
        category_id=int(ca.category_id),
        category_name=ca.category_name,
        passing_threshold=int(ca.passing_threshold or settings.DEFAULT_PASSING_THRESHOLD),
        questions=list(ca.questions or []),
        instructions=ca.instructions,
    )


def _from_template(tpl) -> EffectiveAssessment:
    return EffectiveAssessment(
        kind="canonical",
        assessment_id=tpl.assessment_id,
        title=tpl.title,
        category_id=int(tpl.category_id),
        category_name=tpl.category_name,
        passing_threshold=int(tpl.passing_threshold or settings.DEFAULT_PASSING_THRESHOLD),
        questions=list(tpl.questions or []),
        instructions=tpl.instructions,
    )


def resolve_effective_assessment(
    db: Session,
    *,
    assessment_id: str,
    response: AssessmentResponse | None = None,
    student_id: int | None = None,
) -> EffectiveAssessment:
    """Customized copy when the student has one, else the canonical template.

    A missing customization record is not an error: resolution falls through
    to the template by `assessment_id`, then by the response's
    `template_assessment_id`.
    """
    if response is not None and response.has_customization:
        ca = get_customized_assessment(db, response.customized_assessment_id)
        if ca is not None:
            return _from_customized(ca)
        logger.warning(
            "Customized assessment %s for response %s is missing; using canonical template",
            response.customized_assessment_id,
            response.id,
        )
    elif student_id is not None:
        ca = get_customized_assessment(db, assessment_id)
        if ca is not None and int(ca.student_id) == int(student_id):
            return _from_customized(ca)

    tpl = get_template(db, assessment_id)
    if tpl is None and response is not None:
        tpl = get_template(db, response.template_assessment_id)
    if tpl is None:
        raise NotFoundError("Assessment not found", details={"assessment_id": str(assessment_id)})
    return _from_template(tpl)


def submit_response(
    db: Session,
    *,
    assessment_id: str,
    student_id: Any,
    answers: Any,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    if not str(assessment_id or "").strip():
        raise ValidationError("Assessment ID is required", details={"field": "assessment_id"})
    if not isinstance(answers, Mapping):
        raise ValidationError("Answers must be an object keyed by question id", details={"field": "answers"})
    answers = {str(k): str(v) for k, v in answers.items() if v is not None}

    student = resolve_student(db, student_id)
    response = latest_response(db, assessment_id=assessment_id, user_id=student.id)
    if response is None:
        raise NotFoundError(
            "Assessment response not found",
            details={"assessment_id": str(assessment_id), "student_id": int(student.id)},
        )

    effective = resolve_effective_assessment(db, assessment_id=assessment_id, response=response)
    result = score_answers(effective.questions, answers, effective.passing_threshold)
    now = now or utcnow()

    with unit_of_work(db, label="scoring a submission"):
        started = as_utc(response.start_time)
        response.answers = answers
        response.raw_score = result.raw_score
        response.total_questions = len(effective.questions)
        response.percentage_score = result.percentage_score
        response.passed = result.passed
        response.correct_answers = result.correct_answers
        response.incorrect_answers = result.incorrect_answers
        response.completed = True
        response.end_time = now
        response.completed_at = now
        response.time_spent = max(0.0, (now - started).total_seconds()) if started else 0.0
        response.attempt_number = int(response.attempt_number or 0) + 1

        if response.assignment_id is not None:
            assignment = db.get(Assignment, int(response.assignment_id))
            if assignment is not None:
                for sub in assignment.students:
                    if int(sub.user_id) == int(student.id):
                        sub.status = "completed"
                assignment.refresh_completion()
                assignment.updated_at = now

        progress_service.apply_score(
            db,
            student=student,
            category_id=int(response.category_id),
            category_name=response.category_name,
            percentage_score=result.percentage_score,
            passed=result.passed,
            passing_threshold=effective.passing_threshold,
            reading_level=response.reading_level,
            now=now,
        )

    logger.info(
        "Scored %s for student %s: %d/%d (%.1f%%, %s)",
        effective.assessment_id,
        student.id,
        result.raw_score,
        result.total_points,
        result.percentage_score,
        "passed" if result.passed else "not passed",
    )
    return {
        "assessment_id": str(assessment_id),
        "response_id": int(response.id),
        "raw_score": result.raw_score,
        "total_points": result.total_points,
        "percentage_score": result.percentage_score,
        "passed": result.passed,
        "correct_answers": result.correct_answers,
        "incorrect_answers": result.incorrect_answers,
        "attempt_number": int(response.attempt_number),
        "effective_assessment": effective.kind,
    }
