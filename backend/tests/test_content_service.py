import pytest

from assessment_engine.models.assessment_template import AssessmentTemplate
from assessment_engine.models.content_item import ContentItem
from assessment_engine.schemas.assessment import ContentRef
from assessment_engine.services.content_service import (
    get_content_options,
    get_question_content,
    get_recommended_categories,
    recommended_category_details,
    create_placeholder_template,
    resolve_template,
)
from assessment_engine.services.errors import NotFoundError, ValidationError

from conftest import LEVEL


@pytest.fixture()
def letters(db):
    db.add_all(
        [
            ContentItem(id="65f0aa0000000000000000a1", collection="letters_collection", natural_key="L-01", text="A a", payload={"sound": "/a/"}),
            ContentItem(id="65f0aa0000000000000000b2", collection="letters_collection", natural_key="L-02", text="B b", payload={}),
            ContentItem(id="65f0aa0000000000000000c3", collection="words_collection", natural_key="W-01", text="apple", payload={}),
        ]
    )
    db.commit()


def test_question_content_by_structured_id_then_natural_key(db, letters):
    by_id = get_question_content(db, collection="letters_collection", content_id="65f0aa0000000000000000a1")
    assert by_id["letterID"] == "L-01"
    assert by_id["sound"] == "/a/"

    by_key = get_question_content(db, collection="letters_collection", content_id="L-02")
    assert by_key["id"] == "65f0aa0000000000000000b2"

    wrapped = get_question_content(db, collection="letters_collection", content_id={"$oid": "65f0aa0000000000000000a1"})
    assert wrapped["text"] == "A a"


def test_question_content_errors(db, letters):
    with pytest.raises(ValidationError):
        get_question_content(db, collection="music_collection", content_id="L-01")
    with pytest.raises(ValidationError):
        get_question_content(db, collection="letters_collection", content_id="")
    with pytest.raises(NotFoundError):
        get_question_content(db, collection="letters_collection", content_id="L-99")
    # Word ids do not leak into another collection
    with pytest.raises(NotFoundError):
        get_question_content(db, collection="letters_collection", content_id="W-01")


def test_content_options_filters_by_collection_and_search(db, letters):
    out = get_content_options(db, collection="letters")
    assert out["total_items"] == 2
    out = get_content_options(db, collection="letters", search="b B")
    assert [i["letterID"] for i in out["items"]] == ["L-02"]
    with pytest.raises(ValidationError):
        get_content_options(db, collection="letters_collection")


def test_content_ref_normalizes_ids():
    assert ContentRef(collection="words_collection", content_id={"$oid": "abc"}).content_id == "abc"
    assert ContentRef(collection="words_collection", content_id=42).content_id == "42"
    with pytest.raises(ValueError):
        ContentRef(collection="nope", content_id="1")


def test_recommended_categories_policy_table():
    assert get_recommended_categories("Low Emerging") == [1, 2, 3]
    assert get_recommended_categories("High Emerging") == [2, 3, 4]
    assert get_recommended_categories("Developing") == [3, 4, 5]
    assert get_recommended_categories("Transitioning") == [4, 5]
    assert get_recommended_categories("At Grade Level") == [5]
    assert get_recommended_categories("Unknown Level") == []
    with pytest.raises(ValidationError):
        get_recommended_categories("  ")

    details = recommended_category_details("Transitioning")
    assert [c["category_title"] for c in details["recommended_categories"]] == ["Word Recognition", "Reading Comprehension"]


def test_placeholder_is_created_once(db):
    first = resolve_template(db, category_id=3, category_name="Decoding", reading_level=LEVEL)
    db.commit()
    second = resolve_template(db, category_id=3, category_name="Decoding", reading_level=LEVEL)

    assert first.assessment_id == second.assessment_id
    assert first.assessment_id.startswith("MA-3-")
    assert first.is_placeholder is True
    assert first.questions == []
    assert first.passing_threshold == 75
    assert db.query(AssessmentTemplate).count() == 1


def test_unpublished_template_is_not_resolved(db, make_template):
    make_template(3, assessment_id="MA-3-draft", is_published=False)
    tpl = resolve_template(db, category_id=3, category_name="Decoding", reading_level=LEVEL)
    assert tpl.assessment_id != "MA-3-draft"
    assert tpl.is_placeholder is True


def test_placeholder_ids_never_collide(db, monkeypatch):
    monkeypatch.setattr("assessment_engine.services.content_service.timestamp_suffix", lambda digits=6: "424242")
    a = create_placeholder_template(db, category_id=2, category_name="Phonological Awareness", reading_level=LEVEL)
    b = create_placeholder_template(db, category_id=2, category_name="Phonological Awareness", reading_level=LEVEL)

    assert a.assessment_id == "MA-2-424242"
    assert b.assessment_id == "MA-2-424243"
    assert b.title == f"Phonological Awareness Assessment - {LEVEL}"
