from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from assessment_engine.db.base_class import Base


class ContentItem(Base):
    """Read-only reference content (letters, syllables, words, sentences, short stories)."""

    __tablename__ = "content_items"

    # Structured identifier (24-char hex for items imported from the legacy store)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    collection: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    # letterID / syllableID / wordID / sentenceID / shortstoryID
    natural_key: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("collection", "natural_key", name="uq_content_items_collection_key"),
    )
