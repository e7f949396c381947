from assessment_engine.models.user import User
from assessment_engine.models.assessment_template import AssessmentTemplate
from assessment_engine.models.customized_assessment import CustomizedAssessment
from assessment_engine.models.assignment import Assignment, AssignmentStudent
from assessment_engine.models.response import AssessmentResponse
from assessment_engine.models.category_progress import CategoryProgress, CategoryProgressEntry
from assessment_engine.models.student_profile_update import StudentProfileUpdate
from assessment_engine.models.content_item import ContentItem

__all__ = [
    "User",
    "AssessmentTemplate",
    "CustomizedAssessment",
    "Assignment",
    "AssignmentStudent",
    "AssessmentResponse",
    "CategoryProgress",
    "CategoryProgressEntry",
    "StudentProfileUpdate",
    "ContentItem",
]
