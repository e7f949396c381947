from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from assessment_engine.api.deps import get_current_user_optional, require_teacher, student_ref_or_caller
from assessment_engine.db.session import get_db
from assessment_engine.infra.queue import enqueue
from assessment_engine.models.user import User
from assessment_engine.schemas.assessment import (
    AssignCategoriesBatchRequest,
    AssignCategoriesRequest,
    FeedbackRequest,
    StartAssessmentRequest,
    SubmitResponseRequest,
    SubmitResponseOut,
    UpdateAssignmentStatusRequest,
)
from assessment_engine.services.analytics_service import get_student_analytics
from assessment_engine.services.assignment_service import (
    assign_categories,
    get_assessment_questions,
    get_assignments,
    get_responses,
    provide_feedback,
    start_assessment,
    update_assignment_status,
)
from assessment_engine.services.content_service import (
    get_content_options,
    get_question_content,
    recommended_category_details,
)
from assessment_engine.services.scoring_service import submit_response
from assessment_engine.tasks.assignment_tasks import task_assign_categories_batch

router = APIRouter(prefix="/assessment", tags=["assessment"])


@router.post("/assign-categories")
def assign_categories_route(
    request: Request,
    payload: AssignCategoriesRequest,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
) -> Dict[str, Any]:
    data = assign_categories(
        db,
        student_id=payload.student_id,
        reading_level=payload.reading_level,
        categories=payload.categories,
        customizations=payload.customizations,
        teacher_id=int(teacher.id),
    )
    return {"request_id": request.state.request_id, "data": {"assignments": data}, "error": None}


@router.post("/assign-categories-batch")
def assign_categories_batch_route(
    request: Request,
    payload: AssignCategoriesBatchRequest,
    teacher: User = Depends(require_teacher),
) -> Dict[str, Any]:
    res = enqueue(
        task_assign_categories_batch,
        list(payload.students),
        payload.reading_level,
        [c.model_dump() for c in payload.categories],
        int(teacher.id),
        queue_name="assignments",
    )
    return {"request_id": request.state.request_id, "data": res, "error": None}


@router.post("/submit")
def submit_route(
    request: Request,
    payload: SubmitResponseRequest,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user_optional),
) -> Dict[str, Any]:
    out = submit_response(
        db,
        assessment_id=payload.assessment_id,
        student_id=student_ref_or_caller(payload.student_id, user),
        answers=payload.answers,
    )
    data = SubmitResponseOut.model_validate(out).model_dump()
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.post("/start")
def start_route(
    request: Request,
    payload: StartAssessmentRequest,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user_optional),
) -> Dict[str, Any]:
    data = start_assessment(
        db,
        assessment_id=payload.assessment_id,
        student_id=student_ref_or_caller(payload.student_id, user),
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/assessment-assignments/{student_id}")
def assignments_route(request: Request, student_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    data = get_assignments(db, student_id=student_id)
    return {"request_id": request.state.request_id, "data": {"assignments": data}, "error": None}


@router.get("/student-analytics/{student_id}")
def analytics_route(request: Request, student_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return {"request_id": request.state.request_id, "data": get_student_analytics(db, student_id=student_id), "error": None}


@router.put("/assignment/{assignment_ref}/status")
def update_status_route(
    request: Request,
    assignment_ref: str,
    payload: UpdateAssignmentStatusRequest,
    db: Session = Depends(get_db),
    _teacher: User = Depends(require_teacher),
) -> Dict[str, Any]:
    data = update_assignment_status(db, assignment_ref=assignment_ref, status=payload.status, notes=payload.notes)
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/questions/{assessment_id}")
def questions_route(
    request: Request,
    assessment_id: str,
    student_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user_optional),
) -> Dict[str, Any]:
    data = get_assessment_questions(db, assessment_id=assessment_id, student_id=student_ref_or_caller(student_id, user))
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/recommended-categories/{reading_level}")
def recommended_categories_route(request: Request, reading_level: str) -> Dict[str, Any]:
    return {"request_id": request.state.request_id, "data": recommended_category_details(reading_level), "error": None}


@router.get("/question-content/{collection}/{content_id}")
def question_content_route(
    request: Request,
    collection: str,
    content_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    data = get_question_content(db, collection=collection, content_id=content_id)
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/content-options/{collection}")
def content_options_route(
    request: Request,
    collection: str,
    limit: int = 20,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    data = get_content_options(db, collection=collection, limit=limit, search=search)
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/responses/{student_id}")
def responses_route(request: Request, student_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return {"request_id": request.state.request_id, "data": {"responses": get_responses(db, student_id=student_id)}, "error": None}


@router.put("/responses/{response_id}/feedback")
def feedback_route(
    request: Request,
    response_id: int,
    payload: FeedbackRequest,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
) -> Dict[str, Any]:
    data = provide_feedback(
        db,
        response_id=response_id,
        teacher_id=int(teacher.id),
        teacher_feedback=payload.teacher_feedback,
        next_steps=payload.next_steps,
    )
    return {"request_id": request.state.request_id, "data": data, "error": None}
