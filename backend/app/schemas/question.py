from typing import Any

from pydantic import ConfigDict, Field, field_validator, model_validator

from app.models.enums import AnswerType, QuestionDifficulty
from app.schemas.base import BaseSchema, CamelSchema


def as_identifier(value: Any) -> Any:
    # Banks use both numeric and string ids
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class Question(BaseSchema):
    """
    A question as stored in a JSON question bank.

    `correct_answer` is an option index for single choice, a list of indices
    for multiple answers, or the expected text for fill-in-the-blank.
    """

    model_config = ConfigDict(use_enum_values=False)

    id: str = Field(alias="_id")
    question_text: str
    passage: str | None = None
    options: list[str] | None = None
    answer_type: AnswerType = AnswerType.SINGLE_CHOICE
    correct_answer: int | list[int] | str
    category: str = "General"
    question_number: int | None = None
    difficulty: QuestionDifficulty = QuestionDifficulty.MEDIUM
    time_estimate: int = 60  # seconds
    explanation: str | None = None
    practice_set: str | None = None

    @field_validator("id", "practice_set", mode="before")
    @classmethod
    def identifier_as_text(cls, value: Any) -> Any:
        return as_identifier(value)

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, value: Any) -> Any:
        return value or "General"

    @model_validator(mode="after")
    def check_answer_shape(self) -> "Question":
        expected = {
            AnswerType.SINGLE_CHOICE: int,
            AnswerType.MULTIPLE_ANSWERS: list,
            AnswerType.FILL_IN_THE_BLANK: str,
        }[self.answer_type]
        if not isinstance(self.correct_answer, expected):
            raise ValueError(
                f"correct_answer for {self.answer_type.value} question must be {expected.__name__}"
            )
        return self


class QuestionPublic(BaseSchema):
    """A question as sent to the test taker: no answer, no explanation."""

    id: str = Field(serialization_alias="_id")
    question_text: str
    passage: str | None = None
    options: list[str] | None = None
    answer_type: AnswerType
    category: str
    difficulty: QuestionDifficulty
    time_estimate: int
    question_number: int | None = None
    practice_set: str | None = None


class TestInfo(CamelSchema):
    test_type: str
    practice_set: str
    section_type: str | None = None
    total_questions: int
    estimated_time: int  # seconds


class QuestionSetResponse(CamelSchema):
    success: bool = True
    questions: list[QuestionPublic]
    test_info: TestInfo


class AnswerSubmission(CamelSchema):
    question_id: str
    selected_answer: int | list[int] | str | None = None

    @field_validator("question_id", mode="before")
    @classmethod
    def question_id_as_text(cls, value: Any) -> Any:
        return as_identifier(value)
