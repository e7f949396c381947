from fastapi import APIRouter

from assessment_engine.core.catalog import get_catalog
from assessment_engine.infra.queue import is_async_enabled


router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    catalog = get_catalog()
    return {
        "status": "ok",
        "catalog": {"version": catalog.version, "categories": len(catalog)},
        "async_queue": {"enabled": bool(is_async_enabled())},
    }
