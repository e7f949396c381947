from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from assessment_engine.db.base_class import Base


class AssessmentTemplate(Base):
    """Canonical main assessment for one (category, reading level)."""

    __tablename__ = "main_assessments"

    id: Mapped[int] = mapped_column(primary_key=True)
    assessment_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    category_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    category_name: Mapped[str] = mapped_column(String(120), nullable=False)
    target_reading_level: Mapped[str] = mapped_column(String(64), index=True, nullable=False)

    # [{question_id, question_text, type_id, options: [{option_id, option_text, is_correct}], point_value, content_reference}]
    questions: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    passing_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=75, server_default=text("75"))

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", server_default=text("'active'"))
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    is_placeholder: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))

    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def total_questions(self) -> int:
        return len(self.questions or [])
