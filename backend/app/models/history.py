from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin
from app.models.enums import TestFamily

if TYPE_CHECKING:
    from app.models.user import User


class TestHistoryEntry(Base, TimestampMixin):
    """
    One graded attempt in a user's history.

    Written exactly once, in the same transaction as the rolling statistics
    update. Never modified afterwards; only an admin may delete it.
    """

    __tablename__ = "test_history_entries"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    test_type: Mapped[TestFamily] = mapped_column(Enum(TestFamily), nullable=False)
    practice_set: Mapped[str] = mapped_column(String(50), nullable=False)
    section_type: Mapped[str | None] = mapped_column(String(20))
    test_name: Mapped[str] = mapped_column(String(255), nullable=False)

    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    # Format: {"percentage": 80, "correctCount": 8, "totalQuestions": 10,
    #          "timeSpent": 600, "categoryScores": {"Algebra": {"correct": 3, "total": 4}}}
    results: Mapped[dict] = mapped_column(JSON, nullable=False)

    # Family score breakdown: SHSAT {"math", "english", "totalScaledScore", ...},
    # SAT/PSAT {"math", "readingWriting", "total", "nationalMerit"?}; null for state tests
    scaled_scores: Mapped[dict | None] = mapped_column(JSON)

    # Format: [{"questionId": "q1", "questionNumber": 1, "isCorrect": true,
    #           "userAnswer": 2, "category": "Algebra", "hasAnswer": true}, ...]
    detailed_results: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="test_history")
