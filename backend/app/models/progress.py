from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin
from app.models.enums import TestFamily

if TYPE_CHECKING:
    from app.models.user import User


class TestProgress(Base, TimestampMixin):
    """Rolling statistics for one user and one test family."""

    __tablename__ = "test_progress"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_type: Mapped[TestFamily] = mapped_column(Enum(TestFamily), nullable=False)

    tests_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Running mean of percentage scores, 2 decimal places
    average_score: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    best_score: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    # Minutes
    time_spent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_attempt: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Format: {"math": 266, "english": 297, "total": 563}
    latest_scaled_score: Mapped[dict | None] = mapped_column(JSON)
    best_scaled_score: Mapped[dict | None] = mapped_column(JSON)

    user: Mapped["User"] = relationship("User", back_populates="test_progress")

    __table_args__ = (
        UniqueConstraint("user_id", "test_type", name="uq_test_progress_user_type"),
    )


class CategoryPerformance(Base, TimestampMixin):
    """Accumulated per-category results for one user and one test family."""

    __tablename__ = "category_performance"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_type: Mapped[TestFamily] = mapped_column(Enum(TestFamily), nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False)

    total_questions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    mastery_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="category_performance")

    __table_args__ = (
        UniqueConstraint(
            "user_id", "test_type", "category", name="uq_category_performance_user_type_category"
        ),
    )
