import pytest

from assessment_engine.services.analytics_service import get_student_analytics, recommendation_for
from assessment_engine.services.assignment_service import assign_categories
from assessment_engine.services.errors import NotFoundError
from assessment_engine.services.scoring_service import submit_response

from conftest import LEVEL, right


def test_analytics_summarizes_scores_and_recommends_weakest(db, student, make_template):
    make_template(1)
    make_template(2)
    assign_categories(
        db,
        student_id=student.id,
        reading_level=LEVEL,
        categories=[{"category_id": 1}, {"category_id": 2}, {"category_id": 3}],
    )
    submit_response(db, assessment_id="MA-1-100001", student_id=student.id, answers={q: right(q) for q in ("q1", "q2", "q3")})
    submit_response(db, assessment_id="MA-2-100001", student_id=student.id, answers={"q1": right("q1")})

    data = get_student_analytics(db, student_id=student.id)

    assert data["student_name"] == "Ana Cruz"
    assert data["reading_level"] == LEVEL
    assert data["total_assessments_completed"] == 2
    assert data["average_score"] == pytest.approx(50.0)

    breakdown = data["category_breakdown"]
    assert set(breakdown) == {"Alphabet Knowledge", "Phonological Awareness", "Decoding"}
    assert breakdown["Alphabet Knowledge"]["status"] == "completed"
    assert breakdown["Decoding"]["score"] is None

    assert data["strengths"] == [
        {"category": "Alphabet Knowledge", "score": 75.0},
        {"category": "Phonological Awareness", "score": 25.0},
    ]
    assert data["weaknesses"][0] == {"category": "Phonological Awareness", "score": 25.0}
    assert data["recommendations"][0]["type"] == "focused_practice"
    assert data["recommendations"][0]["priority"] == "high"
    assert data["recommendations"][0]["category"] == "Phonological Awareness"
    assert len(data["recent_progress"]) == 2


def test_analytics_for_student_without_activity(db, student):
    data = get_student_analytics(db, student_id=student.id)
    assert data["total_assessments_completed"] == 0
    assert data["average_score"] == 0
    assert data["category_breakdown"] == {}
    assert data["strengths"] == [] and data["weaknesses"] == []
    assert data["recommendations"] == []
    with pytest.raises(NotFoundError):
        get_student_analytics(db, student_id=12345)


def test_recommendation_bands():
    assert recommendation_for("Decoding", 49.9)["type"] == "focused_practice"
    assert recommendation_for("Decoding", 50)["type"] == "additional_practice"
    assert recommendation_for("Decoding", 69.9)["priority"] == "medium"
    assert recommendation_for("Decoding", 70) is None
