from app.models.base import Base, TimestampMixin
from app.models.enums import (
    AnswerType,
    MasteryLevel,
    QuestionDifficulty,
    ScoreSection,
    SectionType,
    TestFamily,
    UserRole,
)
from app.models.user import User
from app.models.history import TestHistoryEntry
from app.models.progress import CategoryPerformance, TestProgress

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Enums
    "AnswerType",
    "MasteryLevel",
    "QuestionDifficulty",
    "ScoreSection",
    "SectionType",
    "TestFamily",
    "UserRole",
    # User models
    "User",
    # History and progress
    "CategoryPerformance",
    "TestHistoryEntry",
    "TestProgress",
]
