"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and carry the validation rules for
controller handlers and tests. Required fields are declared loosely
(`Any`, default None) and checked in validators so that every failure,
including a missing field or a wrong type, produces the same
human-readable message in the 400 response.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

TOPIC_MSG = "Topic is required and must be a non-empty string"
NUM_QUESTIONS_MSG = "Number of questions must be between 1 and 20"
GRADE_LEVEL_MSG = "Grade level is required"
QUESTION_MSG = "Question is required and must be a non-empty string"
STUDENT_DATA_MSG = "Student data is required"
PROMPT_MSG = "Prompt is required and must be a non-empty string"
ENHANCE_MSG = "Image data and instructions are required"

MIN_QUESTIONS = 1
MAX_QUESTIONS = 20


def _non_empty_str(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(message)
    return value


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class QuizRequest(_Request):
    """Payload for `POST /api/generate-quiz`."""
    topic: Any = Field(default=None, validate_default=True)
    num_questions: Any = Field(default=None, alias="numQuestions", validate_default=True)
    include_images: bool = Field(default=False, alias="includeImages")

    @field_validator("topic")
    @classmethod
    def _topic(cls, v):
        return _non_empty_str(v, TOPIC_MSG)

    @field_validator("num_questions")
    @classmethod
    def _num_questions(cls, v):
        if isinstance(v, bool) or not isinstance(v, int) or not MIN_QUESTIONS <= v <= MAX_QUESTIONS:
            raise ValueError(NUM_QUESTIONS_MSG)
        return v


class NotesRequest(_Request):
    """Payload for notes and assignment generation (topic + grade level)."""
    topic: Any = Field(default=None, validate_default=True)
    grade_level: Any = Field(default=None, alias="gradeLevel", validate_default=True)
    include_images: bool = Field(default=False, alias="includeImages")

    @field_validator("topic")
    @classmethod
    def _topic(cls, v):
        return _non_empty_str(v, TOPIC_MSG)

    @field_validator("grade_level")
    @classmethod
    def _grade_level(cls, v):
        if not isinstance(v, str) or not v:
            raise ValueError(GRADE_LEVEL_MSG)
        return v


class AssignmentRequest(NotesRequest):
    """Payload for `POST /api/generate-assignment`; `includeImages` is ignored."""


class FlashcardsRequest(_Request):
    topic: Any = Field(default=None, validate_default=True)
    include_images: bool = Field(default=False, alias="includeImages")

    @field_validator("topic")
    @classmethod
    def _topic(cls, v):
        return _non_empty_str(v, TOPIC_MSG)


class TutorRequest(_Request):
    question: Any = Field(default=None, validate_default=True)
    grade_level: Optional[str] = Field(default=None, alias="gradeLevel")
    include_images: bool = Field(default=False, alias="includeImages")

    @field_validator("question")
    @classmethod
    def _question(cls, v):
        return _non_empty_str(v, QUESTION_MSG)


class FeedbackRequest(_Request):
    student_data: Any = Field(default=None, alias="studentData", validate_default=True)

    @field_validator("student_data")
    @classmethod
    def _student_data(cls, v):
        if not isinstance(v, dict):
            raise ValueError(STUDENT_DATA_MSG)
        return v


class ImageRequest(_Request):
    prompt: Any = Field(default=None, validate_default=True)
    topic: Optional[str] = None
    style: str = "educational"

    @field_validator("prompt")
    @classmethod
    def _prompt(cls, v):
        return _non_empty_str(v, PROMPT_MSG)


class EnhanceImageRequest(_Request):
    image_data: Any = Field(default=None, alias="imageData", validate_default=True)
    instructions: Any = Field(default=None, validate_default=True)
    mime_type: str = Field(default="image/png", alias="mimeType")

    @field_validator("image_data", "instructions")
    @classmethod
    def _required(cls, v):
        return _non_empty_str(v, ENHANCE_MSG)

    @field_validator("mime_type")
    @classmethod
    def _mime_type(cls, v):
        if not v.startswith("image/"):
            raise ValueError("mimeType must be an image type")
        return v


class GradeQuizRequest(_Request):
    """Request model for server-side quiz grading."""
    quiz: Dict[str, Any]
    answers: Union[List[Any], Dict[str, Any], None] = None


class GradeAssignmentRequest(_Request):
    """Request model for server-side assignment grading."""
    assignment: Dict[str, Any]
    answers: Dict[str, Any] = Field(default_factory=dict)
