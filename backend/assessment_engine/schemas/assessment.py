from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

CONTENT_COLLECTIONS = (
    "letters_collection",
    "syllables_collection",
    "words_collection",
    "sentences_collection",
    "shortstory_collection",
)

StudentRef = Union[int, str]


def normalize_content_id(value: Any) -> str:
    """Collapse the identifier shapes clients send into one string.

    Accepts plain strings, numbers and Mongo-export wrappers such as
    {"$oid": "65f0..."}.
    """
    if isinstance(value, dict):
        for key in ("$oid", "oid", "id", "_id"):
            if value.get(key) not in (None, ""):
                return normalize_content_id(value[key])
        raise ValueError("content_id object has no identifier")
    if isinstance(value, bool) or value is None:
        raise ValueError("content_id is required")
    s = str(value).strip()
    if not s:
        raise ValueError("content_id is required")
    return s


class ContentRef(BaseModel):
    collection: str
    content_id: str

    @field_validator("collection")
    @classmethod
    def _known_collection(cls, v: str) -> str:
        v = str(v or "").strip()
        if v not in CONTENT_COLLECTIONS:
            raise ValueError(f"collection must be one of {', '.join(CONTENT_COLLECTIONS)}")
        return v

    @field_validator("content_id", mode="before")
    @classmethod
    def _normalize_id(cls, v: Any) -> str:
        return normalize_content_id(v)


class QuestionOption(BaseModel):
    option_id: str
    option_text: str = ""
    is_correct: bool = False
    explanation: Optional[str] = None

    @field_validator("option_id", mode="before")
    @classmethod
    def _str_id(cls, v: Any) -> str:
        return str(v)


class AssessmentQuestion(BaseModel):
    question_id: str
    question_text: str = ""
    type_id: str = ""
    options: List[QuestionOption] = Field(default_factory=list)
    point_value: int = Field(default=1, ge=0)
    content_reference: Optional[ContentRef] = None
    displayed_text: Optional[str] = None

    # Only present on customized questions
    original_question_id: Optional[str] = None
    original_content_reference: Optional[ContentRef] = None

    @field_validator("question_id", "original_question_id", mode="before")
    @classmethod
    def _str_id(cls, v: Any) -> Any:
        return None if v is None else str(v)


class CategoryIn(BaseModel):
    category_id: int
    category_name: str = ""


class CustomizationSpec(BaseModel):
    # Keys are "{originalAssessmentId}-{questionId}"
    selected_questions: Dict[str, bool] = Field(default_factory=dict)
    content_mappings: Dict[str, ContentRef] = Field(default_factory=dict)


class AssignCategoriesRequest(BaseModel):
    student_id: StudentRef
    reading_level: str
    categories: List[CategoryIn]
    # Parsed by the orchestrator; a malformed spec is dropped, never a 422
    customizations: Optional[Dict[str, Any]] = None


class AssignCategoriesBatchRequest(BaseModel):
    students: List[StudentRef]
    reading_level: str
    categories: List[CategoryIn]


class SubmitResponseRequest(BaseModel):
    assessment_id: str
    answers: Dict[str, str] = Field(default_factory=dict)
    # Falls back to the X-User-Id header when omitted
    student_id: Optional[StudentRef] = None

    @field_validator("answers", mode="before")
    @classmethod
    def _stringify_answers(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items() if val is not None}
        return v


class StartAssessmentRequest(BaseModel):
    assessment_id: str
    student_id: Optional[StudentRef] = None


class UpdateAssignmentStatusRequest(BaseModel):
    status: str
    notes: Optional[str] = None


class FeedbackRequest(BaseModel):
    teacher_feedback: Optional[str] = None
    next_steps: Optional[str] = None


class SubmitResponseOut(BaseModel):
    assessment_id: str
    response_id: int
    raw_score: int
    total_points: int
    percentage_score: float
    passed: bool
    correct_answers: List[str]
    incorrect_answers: List[str]
    attempt_number: int
    effective_assessment: Literal["canonical", "customized"]
