from typing import Any

from pydantic import ConfigDict, Field, field_validator

from app.models.enums import SectionType, TestFamily
from app.schemas.base import CamelSchema
from app.schemas.question import AnswerSubmission, as_identifier


# === Request ===


class SubmitTestRequest(CamelSchema):
    """Answers for one practice test attempt."""

    model_config = ConfigDict(use_enum_values=False)

    test_type: TestFamily
    practice_set: str = "1"
    section_type: SectionType | None = None
    answers: list[AnswerSubmission]
    time_spent: int | float = Field(default=0, ge=0, description="Seconds")

    @field_validator("test_type", mode="before")
    @classmethod
    def normalize_test_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return TestFamily.from_request(value)
            except ValueError:
                raise ValueError("Invalid test type") from None
        return value

    @field_validator("practice_set", mode="before")
    @classmethod
    def practice_set_as_text(cls, value: Any) -> Any:
        return as_identifier(value)

    @field_validator("section_type", mode="before")
    @classmethod
    def blank_section_is_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value


# === Scores ===


class SectionScoreSchema(CamelSchema):
    raw_score: int
    scaled_score: int
    max_raw: int | None = None


class TotalScoreSchema(CamelSchema):
    score: int
    percentile: int
    performance_level: str


class NationalMeritSchema(CamelSchema):
    status: str
    description: str


class ShsatScoresSchema(CamelSchema):
    math: SectionScoreSchema | None = None
    english: SectionScoreSchema | None = None
    total_raw_score: int
    total_scaled_score: int
    section_type: str


class FamilyScoresSchema(CamelSchema):
    math: SectionScoreSchema
    reading_writing: SectionScoreSchema
    total: TotalScoreSchema
    national_merit: NationalMeritSchema | None = None


# === Response ===


class CategoryScore(CamelSchema):
    correct: int
    total: int


class SubmissionResults(CamelSchema):
    correct_count: int
    total_questions: int
    percentage: int
    time_spent: int | float
    category_scores: dict[str, CategoryScore]


class DetailedResult(CamelSchema):
    question_id: str
    question_number: int | None = None
    is_correct: bool
    user_answer: int | list[int] | str | None = None
    category: str
    has_answer: bool


class SubmitTestResponse(CamelSchema):
    success: bool = True
    history_entry_id: int
    results: SubmissionResults
    detailed_results: list[DetailedResult]
    shsat_scores: ShsatScoresSchema | None = None
    sat_scores: FamilyScoresSchema | None = None
    psat_scores: FamilyScoresSchema | None = None


class SaveFailedResponse(CamelSchema):
    """Body returned when grading succeeded but the attempt could not be saved."""

    success: bool = False
    error_code: str = "SAVE_FAILED"
    retryable: bool = True
    backup_id: str
    message: str
