import pytest
from sqlalchemy.exc import SQLAlchemyError

from assessment_engine.models.assessment_template import AssessmentTemplate
from assessment_engine.models.assignment import Assignment
from assessment_engine.models.category_progress import CategoryProgress
from assessment_engine.models.customized_assessment import CustomizedAssessment
from assessment_engine.models.response import AssessmentResponse
from assessment_engine.models.student_profile_update import StudentProfileUpdate
from assessment_engine.services import assignment_service, audit_service, progress_service
from assessment_engine.services.assignment_service import (
    assign_categories,
    get_assessment_questions,
    get_assignments,
    get_responses,
    provide_feedback,
    start_assessment,
    update_assignment_status,
)
from assessment_engine.services.errors import (
    CustomizationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

from conftest import LEVEL

ALPHABET = {"category_id": 1, "category_name": "Alphabet Knowledge"}
PHONO = {"category_id": 2, "category_name": "Phonological Awareness"}


def _nothing_written(db):
    return (
        db.query(Assignment).count() == 0
        and db.query(AssessmentResponse).count() == 0
        and db.query(CategoryProgress).count() == 0
        and db.query(AssessmentTemplate).count() == 0
    )


def test_first_assignment_creates_placeholder_response_and_progress(db, student, teacher):
    out = assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET], teacher_id=teacher.id)

    assert len(out) == 1
    tpl = db.query(AssessmentTemplate).one()
    assert tpl.is_placeholder and tpl.questions == [] and tpl.assessment_id.startswith("MA-1-")

    a = db.query(Assignment).one()
    assert a.assessment_id == tpl.assessment_id
    assert a.template_assessment_id == tpl.assessment_id
    assert (a.total_assigned, a.completion_count, a.completion_rate) == (1, 0, 0.0)
    assert [(s.user_id, s.status) for s in a.students] == [(student.id, "pending")]
    assert a.has_customization is False and a.customized_assessment_id is None
    assert a.assigned_by == teacher.id

    r = db.query(AssessmentResponse).one()
    assert r.assignment_id == a.id
    assert r.completed is False and r.attempt_number == 0
    assert r.raw_score is None and r.percentage_score is None and r.passed is None

    progress = db.query(CategoryProgress).one()
    entries = {e.category_id: e for e in progress.entries}
    assert sorted(entries) == [1, 2, 3, 4, 5]
    assert entries[1].status == "in_progress"
    assert entries[1].pre_assessment_completed is True
    assert entries[1].main_assessment_id == tpl.assessment_id
    assert entries[5].status == "locked"
    assert progress.next_category_id == 1
    assert progress.completed_categories == 0 and progress.overall_progress == 0

    audit = db.query(StudentProfileUpdate).one()
    assert audit.update_type == "assignment_received"
    assert audit.assessment_id == tpl.assessment_id


def test_second_assignment_reuses_placeholder(db, student, make_student):
    other = make_student(3)
    assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET])
    assign_categories(db, student_id=other.id, reading_level=LEVEL, categories=[ALPHABET])

    assert db.query(AssessmentTemplate).count() == 1
    ids = {a.template_assessment_id for a in db.query(Assignment).all()}
    assert len(ids) == 1


def test_published_template_is_used(db, student, make_template):
    make_template(1)
    out = assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET])
    assert out[0]["assessment_id"] == "MA-1-100001"
    assert db.query(AssessmentResponse).one().total_questions == 4


def test_student_resolved_by_id_number(db, student):
    assign_categories(db, student_id=str(student.id_number), reading_level=LEVEL, categories=[ALPHABET])
    assert db.query(AssessmentResponse).one().user_id == student.id
    assert len(get_assignments(db, student_id=student.id_number)) == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"student_id": None},
        {"student_id": "abc"},
        {"reading_level": ""},
        {"categories": []},
        {"categories": [{"category_id": "x"}]},
        {"categories": [ALPHABET, {"category_id": 42, "category_name": "Nope"}]},
    ],
)
def test_invalid_input_writes_nothing(db, student, kwargs):
    args = {"student_id": student.id, "reading_level": LEVEL, "categories": [ALPHABET]}
    args.update(kwargs)
    with pytest.raises(ValidationError):
        assign_categories(db, **args)
    assert _nothing_written(db)


def test_unknown_student_is_not_found(db):
    with pytest.raises(NotFoundError):
        assign_categories(db, student_id=999, reading_level=LEVEL, categories=[ALPHABET])
    assert _nothing_written(db)


def test_customization_creates_variant_and_points_assignment_at_it(db, student, teacher, make_template):
    make_template(1)
    spec = {
        "selected_questions": {"MA-1-100001-q1": True, "MA-1-100001-q3": True},
        "content_mappings": {"MA-1-100001-q3": {"collection": "letters_collection", "content_id": "L-20"}},
    }
    out = assign_categories(
        db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET], customizations=spec, teacher_id=teacher.id
    )

    ca = db.query(CustomizedAssessment).one()
    a = db.query(Assignment).one()
    r = db.query(AssessmentResponse).one()
    assert a.has_customization is True and a.customized_assessment_id == ca.assessment_id
    assert a.assessment_id == ca.assessment_id and a.template_assessment_id == "MA-1-100001"
    assert r.has_customization is True and r.assessment_id == ca.assessment_id
    assert out[0]["customized_assessment"] == {"assessment_id": ca.assessment_id, "total_questions": 2}

    q = get_assessment_questions(db, assessment_id=ca.assessment_id, student_id=student.id)
    assert q["is_customized"] is True
    assert [x["original_question_id"] for x in q["questions"]] == ["q1", "q3"]


def test_customization_error_falls_back_to_canonical(db, student, make_template, monkeypatch):
    make_template(1)

    def _boom(*_a, **_k):
        raise CustomizationError("bad mapping")

    monkeypatch.setattr(assignment_service, "create_customized_assessment", _boom)
    assign_categories(
        db,
        student_id=student.id,
        reading_level=LEVEL,
        categories=[ALPHABET],
        customizations={"selected_questions": {"MA-1-100001-q1": True}},
    )

    a = db.query(Assignment).one()
    assert a.has_customization is False
    assert a.assessment_id == "MA-1-100001"
    assert db.query(CustomizedAssessment).count() == 0


def test_storage_error_inside_customization_is_rolled_back_to_savepoint(db, student, make_template, monkeypatch):
    make_template(1)

    def _orphan_variant(db, *, student_id, **_k):
        db.add(
            CustomizedAssessment(
                assessment_id="CA-1-000001",
                original_assessment_id="MA-does-not-exist",
                student_id=student_id,
                title="orphan",
                category_id=1,
                category_name="Alphabet Knowledge",
                target_reading_level=LEVEL,
                questions=[],
            )
        )
        db.flush()

    monkeypatch.setattr(assignment_service, "create_customized_assessment", _orphan_variant)
    assign_categories(
        db,
        student_id=student.id,
        reading_level=LEVEL,
        categories=[ALPHABET],
        customizations={"selected_questions": {"MA-1-100001-q1": True}},
    )

    assert db.query(CustomizedAssessment).count() == 0
    assert db.query(Assignment).one().has_customization is False
    assert db.query(AssessmentResponse).count() == 1


def test_malformed_customization_request_is_ignored(db, student, make_template):
    make_template(1)
    assign_categories(
        db,
        student_id=student.id,
        reading_level=LEVEL,
        categories=[ALPHABET],
        customizations={"content_mappings": {"MA-1-100001-q1": {"collection": "bogus", "content_id": "1"}}},
    )
    assert db.query(Assignment).one().has_customization is False


def _fail_on_category(monkeypatch, category_id):
    original = progress_service.apply_assignment

    def _apply(db, **kw):
        if kw["category_id"] == category_id:
            raise SQLAlchemyError("disk I/O error")
        return original(db, **kw)

    monkeypatch.setattr(progress_service, "apply_assignment", _apply)


def test_per_category_scope_keeps_earlier_categories(db, student, monkeypatch):
    _fail_on_category(monkeypatch, 2)
    with pytest.raises(PersistenceError):
        assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET, PHONO])

    assert [a.category_id for a in db.query(Assignment).all()] == [1]
    assert db.query(AssessmentResponse).count() == 1
    assert db.query(AssessmentTemplate).count() == 1
    progress = db.query(CategoryProgress).one()
    statuses = {e.category_id: e.status for e in progress.entries}
    assert statuses[1] == "in_progress" and statuses[2] == "pending"


def test_all_or_nothing_scope_rolls_back_everything(db, student, monkeypatch):
    published = []
    monkeypatch.setattr(audit_service, "publish_event", lambda *a, **k: published.append(a))
    _fail_on_category(monkeypatch, 2)
    with pytest.raises(PersistenceError):
        assign_categories(
            db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET, PHONO], scope="all_or_nothing"
        )
    assert _nothing_written(db)
    assert db.query(StudentProfileUpdate).count() == 0
    assert published == []


def test_profile_update_events_published_after_commit(db, student, monkeypatch):
    published = []
    monkeypatch.setattr(audit_service, "publish_event", lambda event_type, payload, user_id=None: published.append((event_type, payload)))
    assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET, PHONO])

    assert [e[0] for e in published] == ["profile_update", "profile_update"]
    assert {e[1]["category_id"] for e in published} == {1, 2}
    assert all(e[1]["id"] is not None for e in published)


def test_get_assignments_reduces_customization_payload(db, student, make_template):
    make_template(1)
    assign_categories(
        db,
        student_id=student.id,
        reading_level=LEVEL,
        categories=[ALPHABET, PHONO],
        customizations={"selected_questions": {"MA-1-100001-q2": True}},
    )
    rows = get_assignments(db, student_id=student.id)
    by_cat = {r["category_id"]: r for r in rows}
    assert by_cat[1]["customized_assessment"]["total_questions"] == 1
    assert by_cat[2]["customized_assessment"] is None
    with pytest.raises(NotFoundError):
        get_assignments(db, student_id=404)


def test_update_status_completed_marks_progress(db, student):
    out = assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET])
    data = update_assignment_status(db, assignment_ref=str(out[0]["id"]), status="completed", notes="done in class")

    assert data["students"][0]["status"] == "completed"
    assert (data["completion_count"], data["total_assigned"], data["completion_rate"]) == (1, 1, 100.0)
    assert data["notes"] == "done in class"

    progress = db.query(CategoryProgress).one()
    entry = next(e for e in progress.entries if e.category_id == 1)
    assert entry.status == "completed" and entry.completion_date is not None
    assert progress.completed_categories == 1
    assert progress.overall_progress == pytest.approx(20.0)


def test_update_status_by_assessment_id_and_errors(db, student):
    out = assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET])
    data = update_assignment_status(db, assignment_ref=out[0]["assessment_id"], status="cancelled")
    assert data["students"][0]["status"] == "cancelled"
    assert data["completion_count"] == 0

    with pytest.raises(ValidationError):
        update_assignment_status(db, assignment_ref=out[0]["id"], status="done")
    with pytest.raises(NotFoundError):
        update_assignment_status(db, assignment_ref="MA-404-000000", status="pending")


def test_questions_for_placeholder_are_empty_not_missing(db, student):
    out = assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET])
    q = get_assessment_questions(db, assessment_id=out[0]["assessment_id"], student_id=student.id)
    assert q["is_customized"] is False and q["questions"] == []
    with pytest.raises(NotFoundError):
        get_assessment_questions(db, assessment_id="MA-9-999999", student_id=student.id)


def test_questions_fall_back_when_customization_record_is_missing(db, student, make_template):
    make_template(1)
    assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET])
    r = db.query(AssessmentResponse).one()
    r.assessment_id = "CA-1-999999"
    r.has_customization = True
    r.customized_assessment_id = "CA-1-999999"
    db.commit()

    q = get_assessment_questions(db, assessment_id="CA-1-999999", student_id=student.id)
    assert q["is_customized"] is False
    assert q["assessment_id"] == "MA-1-100001"
    assert len(q["questions"]) == 4


def test_start_assessment_stamps_time_and_moves_to_in_progress(db, student):
    out = assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET])
    data = start_assessment(db, assessment_id=out[0]["assessment_id"], student_id=student.id)

    assert data["start_time"] is not None
    assert db.query(AssessmentResponse).one().start_time is not None
    assert db.query(Assignment).one().students[0].status == "in_progress"
    with pytest.raises(NotFoundError):
        start_assessment(db, assessment_id="MA-1-404404", student_id=student.id)


def test_feedback_and_response_listing(db, student, teacher):
    assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET, PHONO])
    rows = get_responses(db, student_id=student.id)
    assert len(rows) == 2

    with pytest.raises(ValidationError):
        provide_feedback(db, response_id=rows[0]["id"], teacher_id=teacher.id, teacher_feedback="  ")
    with pytest.raises(NotFoundError):
        provide_feedback(db, response_id=9999, teacher_id=teacher.id, teacher_feedback="ok")

    data = provide_feedback(
        db, response_id=rows[0]["id"], teacher_id=teacher.id, teacher_feedback="Good effort", next_steps="Practice b/d"
    )
    assert data["teacher_feedback"] == "Good effort"
    assert data["next_steps"] == "Practice b/d"
    assert data["teacher_reviewed_by"] == teacher.id
    assert data["reviewed_at"] is not None


def test_unknown_teacher_is_rejected(db, student):
    with pytest.raises(ValidationError):
        assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET], teacher_id=77)
    assert _nothing_written(db)


def test_failed_category_reports_what_was_already_committed(db, student, monkeypatch):
    _fail_on_category(monkeypatch, 2)
    with pytest.raises(PersistenceError) as excinfo:
        assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET, PHONO])

    details = excinfo.value.details
    kept = db.query(Assignment).one()
    assert details["failed_category_id"] == 2
    assert details["committed_assignments"] == [
        {"assignment_id": kept.id, "category_id": 1, "assessment_id": kept.assessment_id}
    ]


def test_first_category_failure_has_nothing_committed(db, student, monkeypatch):
    _fail_on_category(monkeypatch, 1)
    with pytest.raises(PersistenceError) as excinfo:
        assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET, PHONO])
    assert "committed_assignments" not in excinfo.value.details


def test_selection_matching_no_question_assigns_canonical(db, student, make_template):
    make_template(1)
    out = assign_categories(
        db,
        student_id=student.id,
        reading_level=LEVEL,
        categories=[ALPHABET],
        customizations={"selected_questions": {"MA-1-100001-q99": True}},
    )

    assert out[0]["assessment_id"] == "MA-1-100001"
    assert out[0]["has_customization"] is False
    assert db.query(CustomizedAssessment).count() == 0
    assert db.query(AssessmentResponse).one().total_questions == 4


@pytest.mark.parametrize("teacher_id", ["abc", "", True])
def test_non_numeric_teacher_id_is_a_validation_error(db, student, teacher_id):
    with pytest.raises(ValidationError):
        assign_categories(db, student_id=student.id, reading_level=LEVEL, categories=[ALPHABET], teacher_id=teacher_id)
    assert _nothing_written(db)


def test_non_numeric_response_id_is_a_validation_error(db, teacher):
    with pytest.raises(ValidationError):
        provide_feedback(db, response_id="r-1", teacher_id=teacher.id, teacher_feedback="ok")
