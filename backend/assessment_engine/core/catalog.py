"""Category catalog used to seed every student's progress ledger.

The catalog is plain configuration: services take it as an argument and fall
back to `get_catalog()`, which reads `CATEGORY_CATALOG_FILE` when set and the
built-in five-category table otherwise.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

from assessment_engine.core.config import settings


@dataclass(frozen=True)
class CategoryDefinition:
    category_id: int
    name: str
    description: str = ""
    initial_status: str = "pending"


@dataclass(frozen=True)
class CategoryCatalog:
    version: str
    categories: tuple[CategoryDefinition, ...] = field(default_factory=tuple)

    def get(self, category_id: int) -> CategoryDefinition | None:
        for c in self.categories:
            if c.category_id == int(category_id):
                return c
        return None

    def ids(self) -> list[int]:
        return [c.category_id for c in self.categories]

    def __len__(self) -> int:
        return len(self.categories)


DEFAULT_CATALOG = CategoryCatalog(
    version="1",
    categories=(
        CategoryDefinition(
            1,
            "Alphabet Knowledge",
            "Assessment of letter recognition, uppercase and lowercase letters, and letter sounds",
        ),
        CategoryDefinition(
            2,
            "Phonological Awareness",
            "Assessment of sounds, sound patterns, and auditory processing skills",
        ),
        CategoryDefinition(
            3,
            "Decoding",
            "Assessment of ability to interpret written symbols and translate them into speech",
        ),
        CategoryDefinition(
            4,
            "Word Recognition",
            "Assessment of ability to recognize and understand common words",
        ),
        CategoryDefinition(
            5,
            "Reading Comprehension",
            "Assessment of understanding of text content",
            initial_status="locked",
        ),
    ),
)


def catalog_from_dict(data: dict[str, Any]) -> CategoryCatalog:
    rows = data.get("categories") if isinstance(data.get("categories"), list) else []
    if not rows:
        raise ValueError("category catalog needs at least one category")

    out: list[CategoryDefinition] = []
    seen: set[int] = set()
    for row in rows:
        cid = int(row["category_id"])
        if cid in seen:
            raise ValueError(f"duplicate category_id {cid} in catalog")
        seen.add(cid)
        status = str(row.get("initial_status") or "pending")
        if status not in {"pending", "locked"}:
            raise ValueError(f"initial_status for category {cid} must be pending or locked")
        out.append(
            CategoryDefinition(
                category_id=cid,
                name=str(row["name"]),
                description=str(row.get("description") or ""),
                initial_status=status,
            )
        )
    return CategoryCatalog(version=str(data.get("version") or "1"), categories=tuple(out))


@lru_cache(maxsize=1)
def get_catalog() -> CategoryCatalog:
    path = settings.CATEGORY_CATALOG_FILE
    if not path:
        return DEFAULT_CATALOG
    return catalog_from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
