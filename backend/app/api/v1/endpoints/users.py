import logging

from fastapi import APIRouter
from sqlalchemy import select

from app.core.database import DatabaseSession
from app.core.deps import ActiveUser, AdminUser
from app.core.exceptions import NotFoundError
from app.models import TestHistoryEntry
from app.schemas import (
    CategoryPerformanceResponse,
    MasteryResponse,
    MessageResponse,
    TestHistoryEntryResponse,
    TestHistoryResponse,
    TestProgressResponse,
    UserStats,
    UserStatsResponse,
)
from app.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me/test-history", response_model=TestHistoryResponse)
async def get_my_test_history(current_user: ActiveUser, db: DatabaseSession):
    """Completed tests, most recent first."""
    result = await db.execute(
        select(TestHistoryEntry)
        .where(TestHistoryEntry.user_id == current_user.id)
        .order_by(TestHistoryEntry.completed_at.desc(), TestHistoryEntry.id.desc())
    )
    entries = result.scalars().all()
    return TestHistoryResponse(
        test_history=[TestHistoryEntryResponse.model_validate(e) for e in entries]
    )


@router.get("/me/stats", response_model=UserStatsResponse)
async def get_my_stats(current_user: ActiveUser, db: DatabaseSession):
    service = ProgressService(db)
    stats = await service.get_stats(current_user)
    progress = await service.get_progress(current_user.id)
    return UserStatsResponse(
        stats=UserStats(**stats),
        test_progress=[TestProgressResponse.model_validate(p) for p in progress],
    )


@router.get("/me/mastery", response_model=MasteryResponse)
async def get_my_mastery(current_user: ActiveUser, db: DatabaseSession):
    service = ProgressService(db)
    records = await service.get_category_performance(current_user.id)
    summary = await service.get_mastery_summary(current_user.id)
    return MasteryResponse(
        category_performance=[CategoryPerformanceResponse.model_validate(r) for r in records],
        mastery_summary=summary,
    )


# === Admin endpoints ===


@router.delete("/{user_id}/test-history/{entry_id}", response_model=MessageResponse)
async def delete_test_history_entry(
    user_id: int,
    entry_id: int,
    admin: AdminUser,
    db: DatabaseSession,
):
    """Remove one history entry. Rolling statistics are left untouched."""
    result = await db.execute(
        select(TestHistoryEntry).where(
            TestHistoryEntry.id == entry_id,
            TestHistoryEntry.user_id == user_id,
        )
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise NotFoundError("Test history entry", entry_id)

    await db.delete(entry)
    logger.info(
        "Admin %s deleted test history entry %s",
        admin.id,
        entry_id,
        extra={"user_id": user_id},
    )
    return MessageResponse(message="Test history entry deleted")
