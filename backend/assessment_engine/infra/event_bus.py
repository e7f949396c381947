from __future__ import annotations

import json
import logging
import uuid
from functools import lru_cache
from typing import Any

import redis

from assessment_engine.core.config import settings
from assessment_engine.core.timeutil import utcnow

logger = logging.getLogger(__name__)


class RedisEventBus:
    def __init__(self, url: str = "redis://localhost:6379", stream_key: str = "assessment_engine:events"):
        self.client = redis.Redis.from_url(url, decode_responses=True)
        self.stream_key = stream_key

    def publish(self, event_type: str, payload: dict[str, Any], user_id: str | None = None) -> str:
        event_id = str(uuid.uuid4())
        event = {
            "event_id": event_id,
            "type": event_type,
            "payload": json.dumps(payload, default=str),
            "user_id": str(user_id or ""),
            "timestamp": utcnow().isoformat(),
            "status": "pending",
        }
        self.client.xadd(self.stream_key, event)
        return event_id


@lru_cache(maxsize=1)
def get_event_bus() -> RedisEventBus:
    return RedisEventBus(url=settings.REDIS_URL, stream_key=settings.EVENT_STREAM_KEY)


def publish_event(event_type: str, payload: dict[str, Any], user_id: Any = None) -> str | None:
    """Fire-and-forget publish. Returns the event id, or None when disabled or Redis is unreachable."""
    if not settings.EVENT_BUS_ENABLED:
        return None
    try:
        return get_event_bus().publish(event_type, payload, user_id=None if user_id is None else str(user_id))
    except redis.RedisError as exc:
        logger.warning("Could not publish %s event for user %s: %s", event_type, user_id, exc)
        return None
