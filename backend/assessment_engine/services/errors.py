from __future__ import annotations

from typing import Any, Dict, Optional


class AssessmentEngineError(Exception):
    """Base class for every error the engine surfaces to callers.

    `code` is stable and machine readable; `retryable` tells batch drivers and
    HTTP clients whether re-running the same unit of work can succeed.
    """

    code = "ENGINE_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": {**self.details, "retryable": self.retryable},
        }


class ValidationError(AssessmentEngineError):
    code = "VALIDATION_ERROR"
    status_code = 422


class NotFoundError(AssessmentEngineError):
    code = "NOT_FOUND"
    status_code = 404


class TransactionConflictError(AssessmentEngineError):
    code = "TRANSACTION_CONFLICT"
    status_code = 409
    retryable = True


class CustomizationError(AssessmentEngineError):
    # Recovered inside the orchestrator; never reaches an HTTP client.
    code = "CUSTOMIZATION_ERROR"
    status_code = 500


class PersistenceError(AssessmentEngineError):
    code = "PERSISTENCE_ERROR"
    status_code = 500
