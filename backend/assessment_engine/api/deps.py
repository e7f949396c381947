"""Common FastAPI dependencies.

No login: the frontend sends demo headers X-User-Id and X-User-Role.
A minimal User row is created when missing so foreign keys
(assigned_by, teacher_reviewed_by) hold.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from assessment_engine.db.session import get_db
from assessment_engine.models.user import User
from assessment_engine.services.user_service import ensure_user_exists


def _normalize_role(role: Optional[str]) -> Optional[str]:
    if not role:
        return None
    r = str(role).strip().lower()
    if r in {"teacher", "student", "admin"}:
        return r
    return None


def get_current_user_optional(
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
) -> Optional[User]:
    """Return current user from demo headers, or None when they are missing."""

    if not x_user_id:
        return None

    s = str(x_user_id).strip()
    if not s.isdigit():
        return None

    role = _normalize_role(x_user_role) or "student"
    return ensure_user_exists(db, int(s), role=role)


def require_user(user: Optional[User] = Depends(get_current_user_optional)) -> User:
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_teacher(user: User = Depends(require_user)) -> User:
    role = _normalize_role(getattr(user, "role", None))
    if role not in {"teacher", "admin"}:
        raise HTTPException(status_code=403, detail="Teacher role required")
    return user


def student_ref_or_caller(student_ref: Any, user: Optional[User]) -> Any:
    """Body/path student id wins; otherwise the caller acts for themselves."""
    if student_ref not in (None, ""):
        return student_ref
    return int(user.id) if user is not None else None
