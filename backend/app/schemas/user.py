from datetime import datetime

from app.models.enums import TestFamily
from app.schemas.base import CamelSchema


class TestHistoryEntryResponse(CamelSchema):
    id: int
    test_type: TestFamily
    practice_set: str
    section_type: str | None = None
    test_name: str
    completed_at: datetime
    results: dict
    scaled_scores: dict | None = None
    detailed_results: list[dict]


class TestHistoryResponse(CamelSchema):
    success: bool = True
    test_history: list[TestHistoryEntryResponse]


class TestProgressResponse(CamelSchema):
    test_type: TestFamily
    tests_completed: int
    average_score: float
    best_score: float
    time_spent: int
    last_attempt: datetime | None = None
    latest_scaled_score: dict | None = None
    best_scaled_score: dict | None = None


class UserStats(CamelSchema):
    total_tests: int
    total_time_spent: int
    average_score: int
    favorite_test: str | None = None
    join_date: datetime | None = None
    last_active: datetime | None = None


class UserStatsResponse(CamelSchema):
    success: bool = True
    stats: UserStats
    test_progress: list[TestProgressResponse]


class CategoryPerformanceResponse(CamelSchema):
    test_type: TestFamily
    category: str
    total_questions: int
    correct_answers: int
    average_score: int
    mastery_level: int


class MasterySummaryItem(CamelSchema):
    total_questions: int
    correct_answers: int
    average_score: int
    mastery_level: int


class MasteryResponse(CamelSchema):
    success: bool = True
    category_performance: list[CategoryPerformanceResponse]
    mastery_summary: dict[str, MasterySummaryItem]
