import pytest
from sqlalchemy.exc import OperationalError

from assessment_engine.models.assignment import Assignment
from assessment_engine.services import assignment_service
from assessment_engine.services.assignment_service import assign_categories_batch
from assessment_engine.services.errors import ValidationError
from assessment_engine.tasks import assignment_tasks

from conftest import LEVEL

CATEGORIES = [{"category_id": 1, "category_name": "Alphabet Knowledge"}, {"category_id": 2}]


def test_one_bad_student_does_not_stop_the_batch(db, student, make_student):
    other = make_student(3)
    out = assign_categories_batch(
        db, student_ids=[student.id, 999, other.id], reading_level=LEVEL, categories=CATEGORIES
    )

    assert [s["student_id"] for s in out["successes"]] == [student.id, other.id]
    assert all(len(s["assignments"]) == 2 for s in out["successes"])
    assert out["failures"] == [
        {"student_id": 999, "error": "Student 999 not found", "code": "NOT_FOUND", "retryable": False}
    ]
    assert (out["total_processed"], out["successful"], out["failed"]) == (3, 2, 1)
    assert db.query(Assignment).count() == 4


def test_malformed_student_reference_is_reported_per_student(db, student):
    out = assign_categories_batch(db, student_ids=["abc", student.id], reading_level=LEVEL, categories=CATEGORIES)
    assert out["failures"][0]["code"] == "VALIDATION_ERROR"
    assert out["successful"] == 1


def test_out_of_range_student_id_is_isolated(db, student, make_student):
    other = make_student(3)
    out = assign_categories_batch(
        db,
        student_ids=[student.id, "99999999999999999999999", other.id],
        reading_level=LEVEL,
        categories=CATEGORIES,
    )

    assert (out["total_processed"], out["successful"], out["failed"]) == (3, 2, 1)
    failure = out["failures"][0]
    assert failure["student_id"] == "99999999999999999999999"
    assert failure["code"] == "VALIDATION_ERROR" and failure["retryable"] is False
    assert db.query(Assignment).count() == 4


def test_storage_error_for_one_student_is_typed_and_rolled_back(db, student, make_student, monkeypatch):
    other = make_student(3)
    original = assignment_service.resolve_student

    def _lookup(db, ref):
        if ref == other.id:
            raise OperationalError("SELECT users", {}, Exception("server closed the connection"))
        return original(db, ref)

    monkeypatch.setattr(assignment_service, "resolve_student", _lookup)
    out = assign_categories_batch(
        db, student_ids=[other.id, student.id], reading_level=LEVEL, categories=CATEGORIES
    )

    assert out["failures"][0]["student_id"] == other.id
    assert out["failures"][0]["code"] == "PERSISTENCE_ERROR"
    assert [s["student_id"] for s in out["successes"]] == [student.id]
    assert db.query(Assignment).count() == 2


def test_shared_inputs_fail_the_whole_batch(db, student):
    with pytest.raises(ValidationError):
        assign_categories_batch(db, student_ids=[], reading_level=LEVEL, categories=CATEGORIES)
    with pytest.raises(ValidationError):
        assign_categories_batch(db, student_ids=[student.id], reading_level="", categories=CATEGORIES)
    with pytest.raises(ValidationError):
        assign_categories_batch(db, student_ids=[student.id], reading_level=LEVEL, categories=[{"category_id": 99}])
    assert db.query(Assignment).count() == 0


def test_batch_task_uses_its_own_session(monkeypatch):
    calls = {}

    class _Session:
        closed = False

        def close(self):
            self.closed = True

    session = _Session()
    monkeypatch.setattr(assignment_tasks, "SessionLocal", lambda: session)

    def _fake_batch(db, **kw):
        calls.update(kw)
        return {"successes": [], "failures": []}

    monkeypatch.setattr(assignment_tasks, "assign_categories_batch", _fake_batch)
    out = assignment_tasks.task_assign_categories_batch([2, 3], LEVEL, CATEGORIES, 1)

    assert out == {"successes": [], "failures": []}
    assert calls["student_ids"] == [2, 3] and calls["teacher_id"] == 1
    assert session.closed is True
