from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin
from app.models.enums import UserRole

if TYPE_CHECKING:
    from app.models.history import TestHistoryEntry
    from app.models.progress import CategoryPerformance, TestProgress


class User(Base, TimestampMixin):
    """
    A student's aggregate record.

    Owns the append-only test history plus the per-family rolling statistics
    that are updated alongside each new history entry.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(50))
    last_name: Mapped[str | None] = mapped_column(String(50))
    grade: Mapped[str | None] = mapped_column(String(2))

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), default=UserRole.STUDENT, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    test_history: Mapped[list["TestHistoryEntry"]] = relationship(
        "TestHistoryEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="TestHistoryEntry.id",
    )
    test_progress: Mapped[list["TestProgress"]] = relationship(
        "TestProgress", back_populates="user", cascade="all, delete-orphan"
    )
    category_performance: Mapped[list["CategoryPerformance"]] = relationship(
        "CategoryPerformance", back_populates="user", cascade="all, delete-orphan"
    )


# Import at bottom to avoid circular imports
from app.models.history import TestHistoryEntry  # noqa: E402, F401
from app.models.progress import CategoryPerformance, TestProgress  # noqa: E402, F401
