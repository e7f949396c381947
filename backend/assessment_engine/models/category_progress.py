from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assessment_engine.db.base_class import Base


class CategoryProgress(Base):
    __tablename__ = "category_progress"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, index=True, nullable=False)
    student_name: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default=text("''"))
    reading_level: Mapped[str] = mapped_column(String(64), nullable=False, default="", server_default=text("''"))
    catalog_version: Mapped[str] = mapped_column(String(32), nullable=False, default="1", server_default=text("'1'"))

    completed_categories: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    total_categories: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    overall_progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default=text("0"))

    next_category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    next_category_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    next_assessment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))

    entries: Mapped[list["CategoryProgressEntry"]] = relationship(
        back_populates="progress",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CategoryProgressEntry.position",
    )

    __mapper_args__ = {"version_id_col": version_id}


class CategoryProgressEntry(Base):
    __tablename__ = "category_progress_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    progress_id: Mapped[int] = mapped_column(
        ForeignKey("category_progress.id", ondelete="CASCADE"), index=True, nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_name: Mapped[str] = mapped_column(String(120), nullable=False)

    pre_assessment_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pre_assessment_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    pre_assessment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    main_assessment_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    main_assessment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    main_assessment_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    passing_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=75)
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_attempt_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # pending | in_progress | completed | locked
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    progress: Mapped[CategoryProgress] = relationship(back_populates="entries")

    __table_args__ = (
        UniqueConstraint("progress_id", "category_id", name="uq_category_progress_entry"),
    )
