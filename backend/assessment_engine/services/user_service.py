from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from assessment_engine.models.user import User
from assessment_engine.services.errors import NotFoundError, ValidationError


# Largest key a BIGINT column (and SQLite INTEGER) can hold
MAX_STUDENT_KEY = 2**63 - 1


def _check_range(key: int, raw: Any) -> int:
    if key < 0 or key > MAX_STUDENT_KEY:
        raise ValidationError(f"Invalid student ID: {raw!r}", details={"field": "student_id", "value": str(raw)})
    return key


def parse_student_ref(student_ref: Any) -> int:
    """Turn a client-supplied student reference into an integer key."""
    if student_ref is None or isinstance(student_ref, bool):
        raise ValidationError("Student ID is required", details={"field": "student_id"})
    if isinstance(student_ref, int):
        return _check_range(student_ref, student_ref)
    s = str(student_ref).strip()
    if not s:
        raise ValidationError("Student ID is required", details={"field": "student_id"})
    if not s.isdigit():
        raise ValidationError(f"Invalid student ID: {s!r}", details={"field": "student_id", "value": s})
    return _check_range(int(s), s)


def find_student(db: Session, student_ref: Any) -> User | None:
    """Look a student up by primary key first, then by school id number."""
    key = parse_student_ref(student_ref)
    user = db.get(User, key)
    if user is not None:
        return user
    return db.query(User).filter(User.id_number == key).first()


def resolve_student(db: Session, student_ref: Any) -> User:
    user = find_student(db, student_ref)
    if user is None:
        raise NotFoundError(f"Student {student_ref} not found", details={"student_id": str(student_ref)})
    return user


def ensure_user_exists(db: Session, user_id: int, *, role: str = "student") -> User:
    """Ensure a user row exists for a given numeric ID.

    Callers identify themselves through the X-User-Id header; rows referenced
    by foreign keys (assigned_by, teacher_reviewed_by) must exist, so a
    minimal record is created when missing.
    """

    user = db.get(User, int(user_id))
    if user:
        return user

    uid = int(user_id)
    user = User(id=uid, email=f"{role}{uid}@demo.local", first_name=role.title(), last_name=str(uid), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
