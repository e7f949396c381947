from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from assessment_engine.db.session import get_db
from assessment_engine.services.progress_service import get_category_progress

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("/category/{student_id}")
def category_progress_route(request: Request, student_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return {"request_id": request.state.request_id, "data": get_category_progress(db, student_id=student_id), "error": None}
