from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from assessment_engine.core.catalog import CategoryCatalog, get_catalog
from assessment_engine.core.config import settings
from assessment_engine.models.assessment_template import AssessmentTemplate
from assessment_engine.models.content_item import ContentItem
from assessment_engine.models.customized_assessment import CustomizedAssessment
from assessment_engine.schemas.assessment import CONTENT_COLLECTIONS, AssessmentQuestion, normalize_content_id
from assessment_engine.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Reading level -> categories a teacher should assign next.
RECOMMENDED_CATEGORIES: Dict[str, List[int]] = {
    "Low Emerging": [1, 2, 3],
    "High Emerging": [2, 3, 4],
    "Developing": [3, 4, 5],
    "Transitioning": [4, 5],
    "At Grade Level": [5],
}

# Short names accepted by the content picker
_OPTION_COLLECTIONS = {
    "letters": "letters_collection",
    "syllables": "syllables_collection",
    "words": "words_collection",
    "sentences": "sentences_collection",
    "shortstories": "shortstory_collection",
}


def natural_key_field(collection: str) -> str:
    """letters_collection -> letterID, shortstory_collection -> shortstoryID."""
    base = collection.replace("_collection", "")
    if base.endswith("s"):
        base = base[:-1]
    return f"{base}ID"


def timestamp_suffix(digits: int = 6) -> str:
    return str(int(time.time() * 1000))[-digits:]


def unique_assessment_id(db: Session, prefix: str) -> str:
    """`{prefix}-{6-digit ms suffix}`, bumped until unused in both assessment tables."""
    n = int(timestamp_suffix())
    for _ in range(1000):
        candidate = f"{prefix}-{n % 1_000_000:06d}"
        taken = (
            db.query(AssessmentTemplate.id).filter(AssessmentTemplate.assessment_id == candidate).first()
            or db.query(CustomizedAssessment.id).filter(CustomizedAssessment.assessment_id == candidate).first()
        )
        if not taken:
            return candidate
        n += 1
    raise RuntimeError(f"Could not allocate an assessment id for prefix {prefix}")


def item_to_dict(item: ContentItem) -> Dict[str, Any]:
    out = dict(item.payload or {})
    out.update(
        {
            "id": item.id,
            "collection": item.collection,
            natural_key_field(item.collection): item.natural_key,
            "text": item.text,
        }
    )
    return out


def get_question_content(db: Session, *, collection: str, content_id: Any) -> Dict[str, Any]:
    if not collection or content_id in (None, ""):
        raise ValidationError("Collection and content ID are required")
    if collection not in CONTENT_COLLECTIONS:
        raise ValidationError("Invalid collection name", details={"collection": collection})

    try:
        key = normalize_content_id(content_id)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"content_id": str(content_id)}) from exc

    item = db.query(ContentItem).filter(ContentItem.collection == collection, ContentItem.id == key).first()
    if item is None:
        item = (
            db.query(ContentItem)
            .filter(ContentItem.collection == collection, ContentItem.natural_key == key)
            .first()
        )
    if item is None:
        raise NotFoundError("Content not found", details={"collection": collection, "content_id": key})
    return item_to_dict(item)


def get_content_options(db: Session, *, collection: str, limit: int = 20, search: Optional[str] = None) -> Dict[str, Any]:
    full = _OPTION_COLLECTIONS.get(str(collection or "").strip())
    if not full:
        raise ValidationError("Invalid collection name", details={"collection": collection})

    q = db.query(ContentItem).filter(ContentItem.collection == full)
    term = (search or "").strip()
    if term:
        like = f"%{term}%"
        q = q.filter(or_(ContentItem.text.ilike(like), ContentItem.natural_key.ilike(like)))

    rows = q.order_by(ContentItem.natural_key.asc(), ContentItem.id.asc()).limit(max(1, min(int(limit), 200))).all()
    return {"collection": collection, "total_items": len(rows), "items": [item_to_dict(r) for r in rows]}


def get_template(db: Session, assessment_id: str) -> AssessmentTemplate | None:
    if not assessment_id:
        return None
    return db.query(AssessmentTemplate).filter(AssessmentTemplate.assessment_id == str(assessment_id)).first()


def find_active_template(db: Session, *, category_id: int, reading_level: str) -> AssessmentTemplate | None:
    return (
        db.query(AssessmentTemplate)
        .filter(
            AssessmentTemplate.category_id == int(category_id),
            AssessmentTemplate.target_reading_level == reading_level,
            AssessmentTemplate.status == "active",
            AssessmentTemplate.is_published.is_(True),
        )
        .order_by(AssessmentTemplate.id.asc())
        .first()
    )


def create_placeholder_template(
    db: Session,
    *,
    category_id: int,
    category_name: str,
    reading_level: str,
    created_by: int | None = None,
) -> AssessmentTemplate:
    """Persist an empty, published template so the assignment can proceed."""
    row = AssessmentTemplate(
        assessment_id=unique_assessment_id(db, f"MA-{int(category_id)}"),
        title=f"{category_name} Assessment - {reading_level}",
        description=f"Assessment for {category_name} at {reading_level} level",
        instructions=f"Please complete this {category_name} assessment.",
        category_id=int(category_id),
        category_name=category_name,
        target_reading_level=reading_level,
        questions=[],
        passing_threshold=int(settings.DEFAULT_PASSING_THRESHOLD),
        status="active",
        is_published=True,
        is_placeholder=True,
        created_by=created_by,
    )
    db.add(row)
    db.flush()
    logger.info("Created placeholder assessment %s for category %s (%s)", row.assessment_id, category_id, reading_level)
    return row


def resolve_template(
    db: Session,
    *,
    category_id: int,
    category_name: str,
    reading_level: str,
    created_by: int | None = None,
) -> AssessmentTemplate:
    tpl = find_active_template(db, category_id=category_id, reading_level=reading_level)
    if tpl is not None:
        logger.debug("Found published assessment %s (%s)", tpl.assessment_id, tpl.title)
        return tpl
    return create_placeholder_template(
        db,
        category_id=category_id,
        category_name=category_name,
        reading_level=reading_level,
        created_by=created_by,
    )


def create_template(
    db: Session,
    *,
    assessment_id: str,
    title: str,
    category_id: int,
    category_name: str,
    reading_level: str,
    questions: List[Dict[str, Any]],
    passing_threshold: int | None = None,
    is_published: bool = True,
    status: str = "active",
    created_by: int | None = None,
) -> AssessmentTemplate:
    """Store an authored template; questions are normalized through AssessmentQuestion."""
    normalized = [AssessmentQuestion.model_validate(q).model_dump(exclude_none=True) for q in (questions or [])]
    row = AssessmentTemplate(
        assessment_id=str(assessment_id),
        title=title,
        category_id=int(category_id),
        category_name=category_name,
        target_reading_level=reading_level,
        questions=normalized,
        passing_threshold=int(passing_threshold if passing_threshold is not None else settings.DEFAULT_PASSING_THRESHOLD),
        status=status,
        is_published=bool(is_published),
        created_by=created_by,
    )
    db.add(row)
    db.flush()
    return row


def get_recommended_categories(reading_level: str) -> List[int]:
    if not str(reading_level or "").strip():
        raise ValidationError("Reading level is required", details={"field": "reading_level"})
    return list(RECOMMENDED_CATEGORIES.get(str(reading_level).strip(), []))


def recommended_category_details(reading_level: str, catalog: CategoryCatalog | None = None) -> Dict[str, Any]:
    catalog = catalog or get_catalog()
    ids = get_recommended_categories(reading_level)
    rows = []
    for cid in ids:
        c = catalog.get(cid)
        if c is None:
            continue
        rows.append(
            {
                "category_id": c.category_id,
                "category_title": c.name,
                "category_description": c.description,
                "is_recommended": True,
            }
        )
    return {"reading_level": reading_level, "recommended_category_ids": ids, "recommended_categories": rows}
