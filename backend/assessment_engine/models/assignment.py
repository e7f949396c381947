from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_engine.db.base_class import Base


class Assignment(Base):
    __tablename__ = "assessment_assignments"

    id: Mapped[int] = mapped_column(primary_key=True)
    # In-effect assessment: customized id when has_customization, else the template id
    assessment_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    assessment_title: Mapped[str] = mapped_column(String(255), nullable=False)
    template_assessment_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)

    category_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    category_name: Mapped[str] = mapped_column(String(120), nullable=False)
    assigned_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    assigned_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    target_reading_level: Mapped[str] = mapped_column(String(64), nullable=False)
    passing_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=75)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    completion_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    total_assigned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    completion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default=text("0"))

    has_customization: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    customized_assessment_id: Mapped[str | None] = mapped_column(
        ForeignKey("customized_assessments.assessment_id"), nullable=True
    )

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    students: Mapped[list["AssignmentStudent"]] = relationship(
        back_populates="assignment",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AssignmentStudent.id",
    )

    def refresh_completion(self) -> None:
        subs = list(self.students or [])
        done = sum(1 for s in subs if s.status == "completed")
        self.total_assigned = len(subs)
        self.completion_count = done
        self.completion_rate = (done / len(subs)) * 100 if subs else 0.0


class AssignmentStudent(Base):
    __tablename__ = "assignment_students"

    id: Mapped[int] = mapped_column(primary_key=True)
    assignment_id: Mapped[int] = mapped_column(
        ForeignKey("assessment_assignments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    reading_level: Mapped[str] = mapped_column(String(64), nullable=False)
    # pending | in_progress | completed | cancelled
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", server_default=text("'pending'"))

    assignment: Mapped[Assignment] = relationship(back_populates="students")
