"""
Test submission pipeline: grade, scale, persist.

Persistence is the only step with a retry policy. Each attempt re-reads the
user, stages the history entry together with the statistics update, and
commits once; a failed or timed-out attempt is rolled back so the history is
never left with a partial entry. When every attempt fails the caller gets a
SubmissionSaveError carrying a backup id, and the full entry is logged so it
can be restored by hand.

Concurrent submissions for the same user each append their own history row,
but the rolling statistics are read-modify-write without locking; one of two
racing updates to `test_progress` can be lost.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import DBAPIError, SQLAlchemyError, StatementError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError, SubmissionSaveError
from app.models import TestHistoryEntry, User
from app.models.enums import ScoreSection, SectionType, TestFamily
from app.schemas.submission import FamilyScoresSchema, ShsatScoresSchema, SubmitTestRequest
from app.services.grading_service import AnswerGrader, GradingResult
from app.services.progress_service import FAMILY_DISPLAY_NAMES, ProgressService, ProgressUpdate
from app.services.question_store import QuestionStore
from app.services.scoring_service import (
    FamilyScores,
    ShsatScores,
    calculate_psat_results,
    calculate_sat_results,
    calculate_shsat_scores,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    delay_seconds: float = 2.0  # fixed, no backoff or jitter
    save_timeout_seconds: float = 15.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.submission_save_max_attempts,
            delay_seconds=settings.submission_save_retry_delay,
            save_timeout_seconds=settings.submission_save_timeout,
        )


@dataclass
class PendingHistoryEntry:
    """Column values for a history entry that has not been saved yet."""

    test_type: TestFamily
    practice_set: str
    section_type: str | None
    test_name: str
    completed_at: datetime
    results: dict
    detailed_results: list[dict]
    scaled_scores: dict | None = None

    def backup_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["test_type"] = self.test_type.value
        payload["completed_at"] = self.completed_at.isoformat()
        return payload


@dataclass
class SubmissionOutcome:
    entry_id: int
    grading: GradingResult
    time_spent: int | float
    shsat_scores: ShsatScores | None = None
    sat_scores: FamilyScores | None = None
    psat_scores: FamilyScores | None = None


# === Entry assembly ===


def build_test_name(
    test_type: TestFamily, practice_set: str, section_type: SectionType | None = None
) -> str:
    family = FAMILY_DISPLAY_NAMES[test_type]
    if practice_set == "diagnostic":
        name = f"{family} Diagnostic Test"
    else:
        name = f"{family} Practice Test {practice_set}"

    if section_type == SectionType.ELA:
        name += " - ELA Section"
    elif section_type == SectionType.MATH:
        name += " - Math Section"
    return name


def score_sections(
    grading: GradingResult, test_type: TestFamily, section_type: SectionType | None
) -> ShsatScores | FamilyScores | None:
    """Scaled scores for the family, or None for state tests."""
    if test_type == TestFamily.SHSAT:
        return calculate_shsat_scores(
            grading.raw_score(ScoreSection.MATH),
            grading.raw_score(ScoreSection.ELA),
            section_type,
        )
    if test_type == TestFamily.SAT:
        return calculate_sat_results(
            grading.raw_score(ScoreSection.MATH),
            grading.raw_score(ScoreSection.READING_WRITING),
        )
    if test_type == TestFamily.PSAT:
        return calculate_psat_results(
            grading.raw_score(ScoreSection.MATH),
            grading.raw_score(ScoreSection.READING_WRITING),
        )
    return None


def scaled_summary(scores: ShsatScores | FamilyScores | None) -> dict | None:
    """The compact form kept as latest/best scaled score on the user's progress."""
    if isinstance(scores, ShsatScores):
        return {
            "math": scores.math.scaled_score if scores.math else None,
            "english": scores.english.scaled_score if scores.english else None,
            "total": scores.total_scaled_score,
        }
    if isinstance(scores, FamilyScores):
        return {
            "math": scores.math.scaled_score,
            "reading_writing": scores.reading_writing.scaled_score,
            "total": scores.total.score,
        }
    return None


def serialize_scores(scores: ShsatScores | FamilyScores | None) -> dict | None:
    if isinstance(scores, ShsatScores):
        return ShsatScoresSchema.model_validate(asdict(scores)).model_dump(by_alias=True, exclude_none=True)
    if isinstance(scores, FamilyScores):
        return FamilyScoresSchema.model_validate(asdict(scores)).model_dump(by_alias=True, exclude_none=True)
    return None


def build_history_entry(
    request: SubmitTestRequest,
    grading: GradingResult,
    scores: ShsatScores | FamilyScores | None,
    completed_at: datetime,
) -> PendingHistoryEntry:
    return PendingHistoryEntry(
        test_type=request.test_type,
        practice_set=request.practice_set,
        section_type=request.section_type.value if request.section_type else None,
        test_name=build_test_name(request.test_type, request.practice_set, request.section_type),
        completed_at=completed_at,
        results={
            "percentage": grading.percentage,
            "correctCount": grading.correct_count,
            "totalQuestions": grading.total_questions,
            "timeSpent": request.time_spent,
            "categoryScores": {
                category: {"correct": tally.correct, "total": tally.total}
                for category, tally in grading.category_scores.items()
            },
        },
        detailed_results=[
            {
                "questionId": graded.question_id,
                "questionNumber": graded.question_number,
                "isCorrect": graded.is_correct,
                "userAnswer": graded.user_answer,
                "category": graded.category,
                "hasAnswer": graded.has_answer,
            }
            for graded in grading.detailed_results
        ],
        scaled_scores=serialize_scores(scores),
    )


# === Persistence ===


def describe_error(exc: BaseException) -> dict[str, Any]:
    details: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc) or repr(exc)}
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        details["driver_error"] = f"{type(exc.orig).__name__}: {exc.orig}"
    if isinstance(exc, StatementError) and exc.statement:
        details["statement"] = exc.statement
    return details


class SubmissionPersistor:
    """Appends graded attempts to a user's history with bounded retries."""

    def __init__(
        self,
        db: AsyncSession,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.db = db
        self.policy = policy or RetryPolicy.from_settings()
        self.sleep = sleep

    async def save(
        self, user_id: int, entry: PendingHistoryEntry, progress: ProgressUpdate
    ) -> int:
        """Persist the entry and statistics update; returns the new entry id."""
        last_error: BaseException | None = None

        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                return await asyncio.wait_for(
                    self._save_once(user_id, entry, progress),
                    timeout=self.policy.save_timeout_seconds,
                )
            except NotFoundError:
                await self.db.rollback()
                raise
            except (SQLAlchemyError, TimeoutError, ConnectionError) as exc:
                last_error = exc
                await self.db.rollback()
                logger.warning(
                    "Saving test result failed (attempt %d/%d): %s",
                    attempt,
                    self.policy.max_attempts,
                    describe_error(exc)["message"],
                    extra={
                        "user_id": user_id,
                        "attempt": attempt,
                        "max_attempts": self.policy.max_attempts,
                        "error_type": type(exc).__name__,
                        "error_details": describe_error(exc),
                    },
                )
                if attempt < self.policy.max_attempts:
                    await self.sleep(self.policy.delay_seconds)

        backup_id = f"{user_id}_{int(time.time() * 1000)}"
        logger.error(
            "Test result for user %s could not be saved after %d attempts; backup %s",
            user_id,
            self.policy.max_attempts,
            backup_id,
            extra={
                "user_id": user_id,
                "backup_id": backup_id,
                "error_details": {
                    "last_error": describe_error(last_error) if last_error else None,
                    "entry": entry.backup_payload(),
                },
            },
        )
        raise SubmissionSaveError(backup_id=backup_id, attempts=self.policy.max_attempts)

    async def _save_once(
        self, user_id: int, entry: PendingHistoryEntry, progress: ProgressUpdate
    ) -> int:
        user = await self.db.get(User, user_id, populate_existing=True)
        if user is None:
            raise NotFoundError("User", user_id)

        row = TestHistoryEntry(
            user_id=user_id,
            test_type=entry.test_type,
            practice_set=entry.practice_set,
            section_type=entry.section_type,
            test_name=entry.test_name,
            completed_at=entry.completed_at,
            results=entry.results,
            scaled_scores=entry.scaled_scores,
            detailed_results=entry.detailed_results,
        )
        self.db.add(row)
        await ProgressService(self.db).record_attempt(user_id, progress)
        await self.db.commit()
        return row.id


# === Orchestration ===


class SubmissionService:
    def __init__(
        self,
        db: AsyncSession,
        question_store: QuestionStore,
        policy: RetryPolicy | None = None,
    ):
        self.db = db
        self.question_store = question_store
        self.persistor = SubmissionPersistor(db, policy)

    def grade(self, request: SubmitTestRequest) -> GradingResult:
        questions = self.question_store.load(
            request.test_type, request.practice_set, request.section_type
        )
        grader = AnswerGrader(
            questions,
            request.test_type,
            request.section_type,
            timeout_seconds=settings.grading_timeout_seconds,
            check_interval=settings.grading_check_interval,
        )
        return grader.grade(request.answers)

    async def submit(self, user_id: int, request: SubmitTestRequest) -> SubmissionOutcome:
        grading = self.grade(request)
        scores = score_sections(grading, request.test_type, request.section_type)
        summary = scaled_summary(scores)
        completed_at = datetime.now(UTC)

        logger.info(
            "Graded %s practice %s: %d/%d correct",
            request.test_type.value,
            request.practice_set,
            grading.correct_count,
            grading.total_questions,
            extra={
                "user_id": user_id,
                "test_type": request.test_type.value,
                "practice_set": request.practice_set,
            },
        )

        entry = build_history_entry(request, grading, scores, completed_at)
        progress = ProgressUpdate(
            test_type=request.test_type,
            score=grading.percentage,
            time_spent_seconds=request.time_spent,
            completed_at=completed_at,
            category_scores=grading.category_scores,
            scaled_score=summary,
        )
        entry_id = await self.persistor.save(user_id, entry, progress)

        return SubmissionOutcome(
            entry_id=entry_id,
            grading=grading,
            time_spent=request.time_spent,
            shsat_scores=scores if isinstance(scores, ShsatScores) else None,
            sat_scores=scores if request.test_type == TestFamily.SAT else None,
            psat_scores=scores if request.test_type == TestFamily.PSAT else None,
        )
