"""Logging setup shared by the API process and queue workers.

- `set_request_id` stores the per-request correlation id in a ContextVar
- `RequestIdFilter` copies it onto every record as `request_id`
- `configure_logging` installs one stdout handler on the root logger
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

from assessment_engine.core.config import settings

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [rid=%(request_id)s] %(message)s"


def set_request_id(rid: str | None) -> None:
    _request_id.set(rid)


def get_request_id() -> str | None:
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get() or "-"
        return True


def configure_logging(level: str | None = None) -> None:
    """Install a single stdout handler. Safe to call more than once."""
    root = logging.getLogger()
    root.setLevel(str(level or settings.LOG_LEVEL or "INFO").upper())

    for h in root.handlers:
        if getattr(h, "_assessment_engine", False):
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler._assessment_engine = True  # type: ignore[attr-defined]
    root.addHandler(handler)
