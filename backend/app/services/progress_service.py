"""
Per-family rolling statistics and category mastery for a user.

Updates here never commit; they are staged on the session so the caller can
commit them together with the history entry they belong to.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import CategoryPerformance, TestProgress, User
from app.models.enums import MasteryLevel, TestFamily
from app.services.grading_service import Tally, round_half_up

FAMILY_DISPLAY_NAMES = {
    TestFamily.SHSAT: "SHSAT",
    TestFamily.SAT: "SAT",
    TestFamily.PSAT: "PSAT",
    TestFamily.STATE: "State Test",
}


@dataclass
class ProgressUpdate:
    """Everything one graded attempt contributes to the user's statistics."""

    test_type: TestFamily
    score: int  # percentage
    time_spent_seconds: float
    completed_at: datetime
    category_scores: dict[str, Tally]
    scaled_score: dict | None = None  # {"math": .., "english"/"reading_writing": .., "total": ..}


def mastery_level_for(average_score: int, total_questions: int) -> MasteryLevel:
    if total_questions == 0:
        return MasteryLevel.NO_DATA
    if average_score >= 90:
        return MasteryLevel.EXPERT
    if average_score >= 75:
        return MasteryLevel.ADVANCED
    if average_score >= 60:
        return MasteryLevel.PROFICIENT
    if average_score >= 40:
        return MasteryLevel.DEVELOPING
    return MasteryLevel.BEGINNER


def apply_attempt(progress: TestProgress, update: ProgressUpdate) -> None:
    """Fold one attempt into the running totals."""
    completed = progress.tests_completed or 0
    average = progress.average_score or 0
    new_completed = completed + 1
    total_points = average * completed + update.score

    progress.tests_completed = new_completed
    progress.average_score = round_half_up(total_points / new_completed * 100) / 100
    progress.best_score = max(progress.best_score or 0, update.score)
    progress.time_spent = (progress.time_spent or 0) + round_half_up(
        update.time_spent_seconds / 60
    )
    progress.last_attempt = update.completed_at

    if update.scaled_score is not None:
        progress.latest_scaled_score = dict(update.scaled_score)
        best_total = (progress.best_scaled_score or {}).get("total") or 0
        if update.scaled_score["total"] > best_total:
            progress.best_scaled_score = dict(update.scaled_score)


def accumulate_category(record: CategoryPerformance, tally: Tally) -> None:
    record.total_questions = (record.total_questions or 0) + tally.total
    record.correct_answers = (record.correct_answers or 0) + tally.correct
    if record.total_questions:
        record.average_score = round_half_up(record.correct_answers / record.total_questions * 100)
    else:
        record.average_score = 0
    record.mastery_level = int(mastery_level_for(record.average_score, record.total_questions))


class ProgressService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_progress(self, user_id: int) -> list[TestProgress]:
        result = await self.db.execute(
            select(TestProgress).where(TestProgress.user_id == user_id).order_by(TestProgress.id)
        )
        return list(result.scalars().all())

    async def get_category_performance(self, user_id: int) -> list[CategoryPerformance]:
        result = await self.db.execute(
            select(CategoryPerformance)
            .where(CategoryPerformance.user_id == user_id)
            .order_by(CategoryPerformance.test_type, CategoryPerformance.category)
        )
        return list(result.scalars().all())

    async def record_attempt(self, user_id: int, update: ProgressUpdate) -> TestProgress:
        """Stage the statistics and category updates for one attempt."""
        result = await self.db.execute(
            select(TestProgress).where(
                TestProgress.user_id == user_id,
                TestProgress.test_type == update.test_type,
            )
        )
        progress = result.scalar_one_or_none()
        if progress is None:
            progress = TestProgress(
                user_id=user_id,
                test_type=update.test_type,
                tests_completed=0,
                average_score=0,
                best_score=0,
                time_spent=0,
            )
            self.db.add(progress)

        apply_attempt(progress, update)

        if update.category_scores:
            result = await self.db.execute(
                select(CategoryPerformance).where(
                    CategoryPerformance.user_id == user_id,
                    CategoryPerformance.test_type == update.test_type,
                    CategoryPerformance.category.in_(list(update.category_scores)),
                )
            )
            existing = {record.category: record for record in result.scalars().all()}

            for category, tally in update.category_scores.items():
                record = existing.get(category)
                if record is None:
                    record = CategoryPerformance(
                        user_id=user_id,
                        test_type=update.test_type,
                        category=category,
                        total_questions=0,
                        correct_answers=0,
                    )
                    self.db.add(record)
                accumulate_category(record, tally)

        return progress

    async def get_stats(self, user: User) -> dict:
        """Totals across families, in the shape of the profile page's summary."""
        progress = await self.get_progress(user.id)
        family_order = list(TestFamily)
        attempted = sorted(
            (p for p in progress if p.tests_completed > 0),
            key=lambda p: family_order.index(p.test_type),
        )

        favorite = None
        if attempted:
            top = max(attempted, key=lambda p: p.tests_completed)
            favorite = FAMILY_DISPLAY_NAMES[top.test_type]

        return {
            "total_tests": sum(p.tests_completed for p in progress),
            "total_time_spent": sum(p.time_spent for p in progress),
            "average_score": (
                round_half_up(sum(p.average_score for p in attempted) / len(attempted))
                if attempted
                else 0
            ),
            "favorite_test": favorite,
            "join_date": user.created_at,
            "last_active": user.last_login_at,
        }

    async def get_mastery_summary(self, user_id: int) -> dict[str, dict]:
        """Category mastery merged across test families."""
        summary: dict[str, Tally] = {}
        for record in await self.get_category_performance(user_id):
            tally = summary.setdefault(record.category, Tally())
            tally.correct += record.correct_answers
            tally.total += record.total_questions

        merged = {}
        for category, tally in summary.items():
            average = round_half_up(tally.correct / tally.total * 100) if tally.total else 0
            merged[category] = {
                "total_questions": tally.total,
                "correct_answers": tally.correct,
                "average_score": average,
                "mastery_level": int(mastery_level_for(average, tally.total)),
            }
        return merged
