"""
Tests for persisting graded submissions and the statistics they feed.
"""

import asyncio
from datetime import UTC, datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, SubmissionSaveError
from app.models import CategoryPerformance, User, enums
from app.models import history, progress as progress_models
from app.services.grading_service import Tally
from app.services.progress_service import (
    ProgressService,
    ProgressUpdate,
    apply_attempt,
    mastery_level_for,
)
from app.services.submission_service import (
    PendingHistoryEntry,
    RetryPolicy,
    SubmissionPersistor,
    build_test_name,
    scaled_summary,
)
from app.services.scoring_service import calculate_sat_results, calculate_shsat_scores

Family = enums.TestFamily
HistoryEntry = history.TestHistoryEntry
Progress = progress_models.TestProgress

NO_DELAY = RetryPolicy(max_attempts=3, delay_seconds=0, save_timeout_seconds=5)


def pending_entry(test_type=Family.SAT) -> PendingHistoryEntry:
    return PendingHistoryEntry(
        test_type=test_type,
        practice_set="1",
        section_type=None,
        test_name=build_test_name(test_type, "1"),
        completed_at=datetime.now(UTC),
        results={"percentage": 80, "correctCount": 4, "totalQuestions": 5},
        detailed_results=[{"questionId": "q1", "isCorrect": True}],
        scaled_scores=None,
    )


def progress_update(score=80, seconds=600, scaled=None, categories=None) -> ProgressUpdate:
    return ProgressUpdate(
        test_type=Family.SAT,
        score=score,
        time_spent_seconds=seconds,
        completed_at=datetime.now(UTC),
        category_scores=categories if categories is not None else {"Algebra": Tally(4, 5)},
        scaled_score=scaled,
    )


async def history_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(HistoryEntry).where(HistoryEntry.user_id == user_id)
    )
    return result.scalar_one()


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class TestTestName:
    """Tests for history entry display names."""

    def test_practice_and_diagnostic(self):
        assert build_test_name(Family.SHSAT, "1") == "SHSAT Practice Test 1"
        assert build_test_name(Family.SHSAT, "diagnostic") == "SHSAT Diagnostic Test"
        assert build_test_name(Family.STATE, "2") == "State Test Practice Test 2"

    def test_section_suffix(self):
        assert (
            build_test_name(Family.SHSAT, "2", enums.SectionType.ELA)
            == "SHSAT Practice Test 2 - ELA Section"
        )
        assert (
            build_test_name(Family.SHSAT, "2", enums.SectionType.MATH)
            == "SHSAT Practice Test 2 - Math Section"
        )


class TestScaledSummary:
    """Tests for the compact scaled score kept on progress."""

    def test_shsat(self):
        summary = scaled_summary(calculate_shsat_scores(44, 50))
        assert summary == {"math": 266, "english": 297, "total": 563}

    def test_shsat_section_only(self):
        summary = scaled_summary(calculate_shsat_scores(0, 50, "ela"))
        assert summary == {"math": None, "english": 297, "total": 297}

    def test_sat(self):
        summary = scaled_summary(calculate_sat_results(44, 54))
        assert summary == {"math": 800, "reading_writing": 800, "total": 1600}

    def test_state_test(self):
        assert scaled_summary(None) is None


class TestRollingStatistics:
    """Tests for folding attempts into test progress."""

    def test_first_attempt(self):
        progress = Progress(tests_completed=0, average_score=0, best_score=0, time_spent=0)

        apply_attempt(progress, progress_update(score=80, seconds=600))

        assert progress.tests_completed == 1
        assert progress.average_score == 80
        assert progress.best_score == 80
        assert progress.time_spent == 10

    def test_running_average_rounded_to_two_places(self):
        progress = Progress(tests_completed=0, average_score=0, best_score=0, time_spent=0)

        for score in (80, 70, 70):
            apply_attempt(progress, progress_update(score=score, seconds=90))

        assert progress.tests_completed == 3
        assert progress.average_score == 73.33
        assert progress.best_score == 80
        # 90s rounds to 2 minutes each time
        assert progress.time_spent == 6

    def test_best_scaled_score_only_replaced_when_higher(self):
        progress = Progress(tests_completed=0, average_score=0, best_score=0, time_spent=0)

        apply_attempt(progress, progress_update(scaled={"math": 500, "total": 1000}))
        apply_attempt(progress, progress_update(scaled={"math": 400, "total": 900}))
        apply_attempt(progress, progress_update(scaled={"math": 600, "total": 1000}))

        assert progress.latest_scaled_score == {"math": 600, "total": 1000}
        assert progress.best_scaled_score == {"math": 500, "total": 1000}

    @pytest.mark.parametrize(
        "average,total,level",
        [
            (0, 0, 0),
            (39, 10, 1),
            (40, 10, 2),
            (60, 10, 3),
            (75, 10, 4),
            (89, 10, 4),
            (90, 10, 5),
        ],
    )
    def test_mastery_levels(self, average, total, level):
        assert mastery_level_for(average, total) == level


class TestSubmissionPersistor:
    """Tests for saving graded attempts with retries."""

    @pytest.mark.asyncio
    async def test_save_appends_entry_and_updates_progress(
        self, db_session: AsyncSession, test_user: User
    ):
        user_id = test_user.id
        persistor = SubmissionPersistor(db_session, NO_DELAY)

        entry_id = await persistor.save(user_id, pending_entry(), progress_update())

        entry = await db_session.get(HistoryEntry, entry_id)
        assert entry.test_name == "SAT Practice Test 1"
        assert entry.results["percentage"] == 80

        service = ProgressService(db_session)
        (progress,) = await service.get_progress(user_id)
        assert progress.tests_completed == 1
        assert progress.time_spent == 10

        (record,) = await service.get_category_performance(user_id)
        assert record.category == "Algebra"
        assert record.correct_answers == 4
        assert record.total_questions == 5
        assert record.mastery_level == 4

    @pytest.mark.asyncio
    async def test_history_only_grows(self, db_session: AsyncSession, test_user: User):
        user_id = test_user.id
        persistor = SubmissionPersistor(db_session, NO_DELAY)

        first = await persistor.save(user_id, pending_entry(), progress_update(score=60))
        second = await persistor.save(user_id, pending_entry(), progress_update(score=90))

        assert second > first
        assert await history_count(db_session, user_id) == 2
        (progress,) = await ProgressService(db_session).get_progress(user_id)
        assert progress.tests_completed == 2
        assert progress.average_score == 75
        assert progress.best_score == 90

    @pytest.mark.asyncio
    async def test_category_performance_accumulates(
        self, db_session: AsyncSession, test_user: User
    ):
        user_id = test_user.id
        persistor = SubmissionPersistor(db_session, NO_DELAY)

        await persistor.save(
            user_id, pending_entry(), progress_update(categories={"Algebra": Tally(1, 5)})
        )
        await persistor.save(
            user_id, pending_entry(), progress_update(categories={"Algebra": Tally(5, 5)})
        )

        result = await db_session.execute(
            select(CategoryPerformance).where(CategoryPerformance.user_id == user_id)
        )
        (record,) = result.scalars().all()
        assert record.total_questions == 10
        assert record.correct_answers == 6
        assert record.average_score == 60
        assert record.mastery_level == 3

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(
        self, db_session: AsyncSession, test_user: User, monkeypatch
    ):
        user_id = test_user.id
        real_commit = db_session.commit
        calls = {"count": 0}

        async def flaky_commit():
            calls["count"] += 1
            if calls["count"] == 1:
                raise OperationalError("COMMIT", {}, Exception("connection reset"))
            await real_commit()

        monkeypatch.setattr(db_session, "commit", flaky_commit)
        sleep = RecordingSleep()
        persistor = SubmissionPersistor(
            db_session, RetryPolicy(max_attempts=3, delay_seconds=2, save_timeout_seconds=5), sleep
        )

        await persistor.save(user_id, pending_entry(), progress_update())

        assert calls["count"] == 2
        assert sleep.calls == [2]
        assert await history_count(db_session, user_id) == 1
        (progress,) = await ProgressService(db_session).get_progress(user_id)
        assert progress.tests_completed == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_leave_history_unchanged(
        self, db_session: AsyncSession, test_user: User, monkeypatch
    ):
        user_id = test_user.id
        persistor = SubmissionPersistor(db_session, NO_DELAY)
        await persistor.save(user_id, pending_entry(), progress_update())

        async def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("database unavailable"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        sleep = RecordingSleep()
        persistor = SubmissionPersistor(db_session, NO_DELAY, sleep)

        with pytest.raises(SubmissionSaveError) as exc_info:
            await persistor.save(user_id, pending_entry(), progress_update())

        error = exc_info.value
        assert error.status_code == 503
        assert error.error_code == "SAVE_FAILED"
        assert error.retryable is True
        assert error.attempts == 3
        assert error.backup_id.startswith(f"{user_id}_")
        assert sleep.calls == [0, 0]

        monkeypatch.undo()
        assert await history_count(db_session, user_id) == 1
        (progress,) = await ProgressService(db_session).get_progress(user_id)
        assert progress.tests_completed == 1

    @pytest.mark.asyncio
    async def test_slow_commit_times_out_and_is_retried(
        self, db_session: AsyncSession, test_user: User, monkeypatch
    ):
        user_id = test_user.id
        real_commit = db_session.commit
        calls = {"count": 0}

        async def slow_commit():
            calls["count"] += 1
            await asyncio.sleep(1)
            await real_commit()

        monkeypatch.setattr(db_session, "commit", slow_commit)
        sleep = RecordingSleep()
        persistor = SubmissionPersistor(
            db_session,
            RetryPolicy(max_attempts=3, delay_seconds=0, save_timeout_seconds=0.05),
            sleep,
        )

        with pytest.raises(SubmissionSaveError) as exc_info:
            await persistor.save(user_id, pending_entry(), progress_update())

        assert calls["count"] == 3
        assert sleep.calls == [0, 0]
        assert exc_info.value.backup_id.startswith(f"{user_id}_")

        monkeypatch.undo()
        assert await history_count(db_session, user_id) == 0
        assert await ProgressService(db_session).get_progress(user_id) == []

    @pytest.mark.asyncio
    async def test_unknown_user_is_not_retried(self, db_session: AsyncSession):
        sleep = RecordingSleep()
        persistor = SubmissionPersistor(db_session, NO_DELAY, sleep)

        with pytest.raises(NotFoundError):
            await persistor.save(999, pending_entry(), progress_update())

        assert sleep.calls == []
        assert await history_count(db_session, 999) == 0
