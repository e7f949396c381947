import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EVENT_BUS_ENABLED"] = "false"
os.environ["ASYNC_QUEUE_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from assessment_engine.db.base import Base
from assessment_engine.db.session import SessionLocal, engine, get_db
from assessment_engine.models.user import User
from assessment_engine.services.content_service import create_template

LEVEL = "Low Emerging"


def four_questions() -> list[dict]:
    letters = ["A", "B", "C", "D"]
    out = []
    for i, letter in enumerate(letters, start=1):
        out.append(
            {
                "question_id": f"q{i}",
                "question_text": f"Which one is the letter {letter}?",
                "type_id": "letter_recognition",
                "options": [
                    {"option_id": f"q{i}-right", "option_text": letter, "is_correct": True},
                    {"option_id": f"q{i}-wrong", "option_text": "Z", "is_correct": False},
                ],
                "content_reference": {"collection": "letters_collection", "content_id": f"L-0{i}"},
            }
        )
    return out


def right(qid: str) -> str:
    return f"{qid}-right"


def wrong(qid: str) -> str:
    return f"{qid}-wrong"


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def teacher(db):
    user = User(id=1, email="teacher1@demo.local", first_name="Tess", last_name="Reyes", role="teacher")
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def student(db):
    user = User(
        id=2,
        id_number=20230001,
        email="ana@demo.local",
        first_name="Ana",
        last_name="Cruz",
        role="student",
        reading_level=LEVEL,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def make_student(db):
    def _make(uid: int, **kw) -> User:
        user = User(id=uid, first_name=kw.pop("first_name", "Student"), last_name=str(uid), role="student", **kw)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture()
def make_template(db):
    def _make(category_id: int = 1, *, assessment_id: str | None = None, questions=None, **kw):
        row = create_template(
            db,
            assessment_id=assessment_id or f"MA-{category_id}-100001",
            title=kw.pop("title", f"Category {category_id} Assessment"),
            category_id=category_id,
            category_name=kw.pop("category_name", f"Category {category_id}"),
            reading_level=kw.pop("reading_level", LEVEL),
            questions=four_questions() if questions is None else questions,
            **kw,
        )
        db.commit()
        return row

    return _make


@pytest.fixture()
def client(db):
    from assessment_engine.main import app

    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()
