from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from assessment_engine.db.base_class import Base


class AssessmentResponse(Base):
    __tablename__ = "assessment_responses"

    id: Mapped[int] = mapped_column(primary_key=True)
    assessment_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    template_assessment_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    assignment_id: Mapped[int | None] = mapped_column(
        ForeignKey("assessment_assignments.id", ondelete="SET NULL"), index=True, nullable=True
    )
    category_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_name: Mapped[str] = mapped_column(String(120), nullable=False)
    reading_level: Mapped[str] = mapped_column(String(64), nullable=False)

    has_customization: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    customized_assessment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))

    answers: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    raw_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    percentage_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    correct_answers: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    incorrect_answers: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    time_spent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default=text("0"))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    teacher_feedback: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default=text("''"))
    teacher_reviewed_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    next_steps: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default=text("''"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Two concurrent submissions of the same attempt: the second flush raises StaleDataError.
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))

    __mapper_args__ = {"version_id_col": version_id}
