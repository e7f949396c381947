import json

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Resolve backend root (…/backend/) regardless of current working directory
BASE_DIR = Path(__file__).resolve().parents[2]
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Reading Assessment Engine"
    ENV: str = "dev"
    # One origin or several, comma separated
    # Example: "http://localhost:5173,https://example.com"
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    DATABASE_URL: str
    SQL_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    # ===== Scoring / assignment policy =====
    DEFAULT_PASSING_THRESHOLD: int = 75

    # per_category: each category commits on its own, earlier categories stay committed
    # all_or_nothing: one transaction for the whole assignment request
    ASSIGNMENT_TRANSACTION_SCOPE: str = "per_category"

    # Optional JSON file overriding the built-in five-category catalog.
    # Shape: {"version": "2", "categories": [{"category_id": 1, "name": "...", ...}]}
    CATEGORY_CATALOG_FILE: str | None = None

    # Teacher recorded on assignments when the caller sends no identity.
    DEFAULT_TEACHER_ID: int | None = None

    # ===== Audit event sink (Redis streams) =====
    EVENT_BUS_ENABLED: bool = False
    EVENT_STREAM_KEY: str = "assessment_engine:events"

    # ===== Async Queue (RQ/Redis) =====
    ASYNC_QUEUE_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"
    RQ_DEFAULT_TIMEOUT_SEC: int = 600

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if v is None or v == "":
            return []

        if isinstance(v, list):
            return v

        # JSON list first, fallback split by comma
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                try:
                    return json.loads(s)
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in s.split(",") if item.strip()]

        return v

    @field_validator("ASSIGNMENT_TRANSACTION_SCOPE", mode="before")
    @classmethod
    def _normalize_scope(cls, v):
        s = str(v or "per_category").strip().lower()
        if s not in {"per_category", "all_or_nothing"}:
            raise ValueError("ASSIGNMENT_TRANSACTION_SCOPE must be per_category or all_or_nothing")
        return s


settings = Settings()
