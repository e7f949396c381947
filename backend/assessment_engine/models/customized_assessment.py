from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from assessment_engine.db.base_class import Base


class CustomizedAssessment(Base):
    """Per-student variant of a main assessment.

    Never updated after creation: a different selection for the same student
    produces a new row with a new `assessment_id`.
    """

    __tablename__ = "customized_assessments"

    id: Mapped[int] = mapped_column(primary_key=True)
    assessment_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    original_assessment_id: Mapped[str] = mapped_column(
        ForeignKey("main_assessments.assessment_id"), index=True, nullable=False
    )
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    teacher_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_name: Mapped[str] = mapped_column(String(120), nullable=False)
    target_reading_level: Mapped[str] = mapped_column(String(64), nullable=False)

    # Same shape as AssessmentTemplate.questions plus original_question_id / original_content_reference
    questions: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    passing_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=75, server_default=text("75"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", server_default=text("'active'"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    @property
    def total_questions(self) -> int:
        return len(self.questions or [])
