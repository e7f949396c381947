"""Per-student customization of a main assessment.

A customization request is keyed by "{originalAssessmentId}-{questionId}":

    selected_questions = {"MA-1-104233-q1": True, "MA-1-104233-q3": True}
    content_mappings   = {"MA-1-104233-q3": {"collection": "letters_collection", "content_id": "L-07"}}

`build_customized_questions` is pure; `create_customized_assessment` persists
the result. Both raise CustomizationError on bad input so the orchestrator can
fall back to the canonical assessment.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from assessment_engine.models.assessment_template import AssessmentTemplate
from assessment_engine.models.customized_assessment import CustomizedAssessment
from assessment_engine.schemas.assessment import ContentRef, CustomizationSpec
from assessment_engine.services.content_service import unique_assessment_id
from assessment_engine.services.errors import CustomizationError

logger = logging.getLogger(__name__)


def question_key(assessment_id: str, question_id: Any) -> str:
    return f"{assessment_id}-{question_id}"


def coerce_spec(spec: CustomizationSpec | Mapping[str, Any] | None) -> CustomizationSpec | None:
    if spec is None or isinstance(spec, CustomizationSpec):
        return spec
    try:
        return CustomizationSpec.model_validate(spec)
    except PydanticValidationError as exc:
        raise CustomizationError("Malformed customization request", details={"errors": exc.errors()}) from exc


def _references_template(keys, template: AssessmentTemplate) -> bool:
    prefix = f"{template.assessment_id}-"
    return any(str(k).startswith(prefix) for k in keys)


def wants_customization(spec: CustomizationSpec | None, template: AssessmentTemplate) -> bool:
    """True when the request selects or remaps at least one question of `template`."""
    if spec is None:
        return False
    selected = [k for k, v in spec.selected_questions.items() if v]
    return _references_template(selected, template) or _references_template(spec.content_mappings.keys(), template)


def _new_question_id(question_id: str) -> str:
    return f"{question_id}-{uuid.uuid4().hex[:8]}"


def build_customized_questions(template: AssessmentTemplate, spec: CustomizationSpec) -> List[Dict[str, Any]]:
    """Filter, remap and re-id the template's questions.

    Questions keep template order. When the request selects nothing for this
    template (remap only) every question is kept. Each surviving question
    gets a fresh sub-id and remembers `original_question_id`.
    """
    questions = list(template.questions or [])
    aid = template.assessment_id

    selected_keys = {k for k, v in spec.selected_questions.items() if v and str(k).startswith(f"{aid}-")}
    if selected_keys:
        kept = [q for q in questions if question_key(aid, q.get("question_id")) in selected_keys]
        if not kept:
            raise CustomizationError(
                f"None of the selected questions exist in {aid}",
                details={"assessment_id": aid, "selected": sorted(selected_keys)},
            )
    else:
        kept = questions

    out: List[Dict[str, Any]] = []
    for q in kept:
        if not isinstance(q, dict) or q.get("question_id") in (None, ""):
            raise CustomizationError(
                f"Template {aid} holds a question without question_id",
                details={"assessment_id": aid},
            )
        qid = str(q["question_id"])
        row = dict(q)
        row["original_question_id"] = qid
        row["question_id"] = _new_question_id(qid)

        mapping: Optional[ContentRef] = spec.content_mappings.get(question_key(aid, qid))
        if mapping is not None:
            row["original_content_reference"] = q.get("content_reference")
            row["content_reference"] = mapping.model_dump()
        out.append(row)

    return out


def create_customized_assessment(
    db: Session,
    *,
    template: AssessmentTemplate,
    spec: CustomizationSpec | Mapping[str, Any],
    student_id: int,
    teacher_id: int | None,
    category_name: str,
    reading_level: str,
) -> CustomizedAssessment:
    parsed = coerce_spec(spec)
    if parsed is None or not wants_customization(parsed, template):
        raise CustomizationError(
            "Customization request does not reference this assessment",
            details={"assessment_id": template.assessment_id},
        )

    questions = build_customized_questions(template, parsed)
    row = CustomizedAssessment(
        assessment_id=unique_assessment_id(db, f"CA-{int(template.category_id)}"),
        original_assessment_id=template.assessment_id,
        student_id=int(student_id),
        teacher_id=teacher_id,
        title=f"{template.title} (Customized)",
        description=f"Customized version of {template.title} for student",
        instructions=template.instructions,
        category_id=int(template.category_id),
        category_name=category_name or template.category_name,
        target_reading_level=reading_level,
        questions=questions,
        passing_threshold=int(template.passing_threshold or 75),
        status="active",
    )
    db.add(row)
    db.flush()
    logger.info(
        "Created customized assessment %s from %s with %d question(s)",
        row.assessment_id,
        template.assessment_id,
        len(questions),
    )
    return row


def get_customized_assessment(db: Session, assessment_id: str | None) -> CustomizedAssessment | None:
    if not assessment_id:
        return None
    return db.query(CustomizedAssessment).filter(CustomizedAssessment.assessment_id == str(assessment_id)).first()
