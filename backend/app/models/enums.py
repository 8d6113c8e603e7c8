from enum import Enum, IntEnum


class UserRole(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


class TestFamily(str, Enum):
    """Test families with their own question banks and scoring rules."""

    SHSAT = "shsat"
    SAT = "sat"
    PSAT = "psat"
    STATE = "state"

    @classmethod
    def from_request(cls, value: str) -> "TestFamily":
        """Accept the client's spellings (`statetest`, `stateTest`) as well."""
        normalized = value.strip().lower()
        if normalized == "statetest":
            normalized = "state"
        return cls(normalized)


class AnswerType(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_ANSWERS = "multiple_answers"
    FILL_IN_THE_BLANK = "fill_in_the_blank"


class SectionType(str, Enum):
    """Which part of a test was taken (section-only practice variants)."""

    FULL = "full"
    ELA = "ela"
    MATH = "math"
    READING_WRITING = "readingwriting"


class ScoreSection(str, Enum):
    """Independently scaled sections."""

    ELA = "ela"
    MATH = "math"
    READING_WRITING = "reading_writing"


class QuestionDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MasteryLevel(IntEnum):
    NO_DATA = 0
    BEGINNER = 1
    DEVELOPING = 2
    PROFICIENT = 3
    ADVANCED = 4
    EXPERT = 5
