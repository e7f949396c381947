from __future__ import annotations

from statistics import mean
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from assessment_engine.core.timeutil import iso
from assessment_engine.models.response import AssessmentResponse
from assessment_engine.services.progress_service import get_category_progress, get_progress
from assessment_engine.services.user_service import resolve_student

__all__ = ["get_student_analytics", "get_category_progress", "recommendation_for"]

_BREAKDOWN_STATUSES = {"in_progress", "completed"}


def recommendation_for(category: str, score: float) -> Dict[str, Any] | None:
    if score < 50:
        return {
            "type": "focused_practice",
            "category": category,
            "priority": "high",
            "message": f"Needs focused practice in {category}",
        }
    if score < 70:
        return {
            "type": "additional_practice",
            "category": category,
            "priority": "medium",
            "message": f"Would benefit from additional practice in {category}",
        }
    return None


def get_student_analytics(db: Session, *, student_id: Any) -> Dict[str, Any]:
    """Read-only summary of a student's completed work and category standing."""
    student = resolve_student(db, student_id)
    completed = (
        db.query(AssessmentResponse)
        .filter(AssessmentResponse.user_id == int(student.id), AssessmentResponse.completed.is_(True))
        .order_by(AssessmentResponse.completed_at.desc(), AssessmentResponse.id.desc())
        .all()
    )
    progress = get_progress(db, student.id)

    scores = [float(r.percentage_score) for r in completed if r.percentage_score is not None]

    breakdown: Dict[str, Dict[str, Any]] = {}
    for e in (progress.entries if progress is not None else []):
        if e.status not in _BREAKDOWN_STATUSES:
            continue
        breakdown[e.category_name] = {
            "category_id": int(e.category_id),
            "score": e.main_assessment_score,
            "status": e.status,
            "passed": bool(e.passed),
            "attempts": int(e.attempt_count or 0),
            "last_attempt": iso(e.last_attempt_date),
            "completion_date": iso(e.completion_date),
        }

    scored = [(name, float(row["score"])) for name, row in breakdown.items() if row["score"] is not None]
    ranked = sorted(scored, key=lambda x: x[1], reverse=True)
    strengths = [{"category": n, "score": s} for n, s in ranked[:2]]
    weaknesses = [{"category": n, "score": s} for n, s in sorted(scored, key=lambda x: x[1])[:2]]

    recommendations: List[Dict[str, Any]] = []
    if weaknesses:
        rec = recommendation_for(weaknesses[0]["category"], weaknesses[0]["score"])
        if rec is not None:
            recommendations.append(rec)

    recent = [
        {
            "assessment_id": r.assessment_id,
            "category": r.category_name,
            "score": r.percentage_score,
            "passed": r.passed,
            "date": iso(r.completed_at),
        }
        for r in completed[:5]
    ]

    return {
        "student_id": int(student.id),
        "student_name": student.display_name,
        "reading_level": (progress.reading_level if progress is not None else None) or student.reading_level,
        "total_assessments_completed": len(completed),
        "average_score": mean(scores) if scores else 0,
        "category_breakdown": breakdown,
        "strengths": strengths,
        "weaknesses": weaknesses,
        "recommendations": recommendations,
        "recent_progress": recent,
    }
