from dataclasses import asdict
from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.core.config import settings
from app.core.database import DatabaseSession
from app.core.deps import ActiveUser
from app.core.exceptions import ValidationError
from app.models.enums import SectionType, TestFamily
from app.schemas import (
    CategoryScore,
    DetailedResult,
    FamilyScoresSchema,
    QuestionPublic,
    QuestionSetResponse,
    SaveFailedResponse,
    ShsatScoresSchema,
    SubmissionResults,
    SubmitTestRequest,
    SubmitTestResponse,
    TestInfo,
)
from app.services.question_store import QuestionStore
from app.services.submission_service import SubmissionService

router = APIRouter(prefix="/questions", tags=["Questions"])


@lru_cache
def get_question_store() -> QuestionStore:
    return QuestionStore(settings.question_data_dir)


QuestionStoreDep = Annotated[QuestionStore, Depends(get_question_store)]


@router.get("/test", response_model=QuestionSetResponse)
async def get_test_questions(
    store: QuestionStoreDep,
    test_type: Annotated[str, Query(alias="testType")],
    practice_set: Annotated[str, Query(alias="practiceSet")] = "1",
    section_type: Annotated[SectionType | None, Query(alias="sectionType")] = None,
):
    """Questions for a practice set, without answers or explanations."""
    try:
        family = TestFamily.from_request(test_type)
    except ValueError:
        raise ValidationError("Invalid test type", field="testType")

    questions = store.load(family, practice_set, section_type)

    return QuestionSetResponse(
        questions=[QuestionPublic.model_validate(q) for q in questions],
        test_info=TestInfo(
            test_type=family.value,
            practice_set=practice_set,
            section_type=section_type.value if section_type else None,
            total_questions=len(questions),
            estimated_time=sum(q.time_estimate for q in questions),
        ),
    )


@router.post(
    "/submit",
    response_model=SubmitTestResponse,
    responses={503: {"model": SaveFailedResponse}},
)
async def submit_test(
    data: SubmitTestRequest,
    current_user: ActiveUser,
    db: DatabaseSession,
    store: QuestionStoreDep,
):
    """
    Grade a practice test, convert to scaled scores and save to the user's history.

    Returns 503 with a SAVE_FAILED body when grading succeeded but the result
    could not be saved.
    """
    user_id = current_user.id
    outcome = await SubmissionService(db, store).submit(user_id, data)
    grading = outcome.grading

    return SubmitTestResponse(
        history_entry_id=outcome.entry_id,
        results=SubmissionResults(
            correct_count=grading.correct_count,
            total_questions=grading.total_questions,
            percentage=grading.percentage,
            time_spent=outcome.time_spent,
            category_scores={
                category: CategoryScore(correct=tally.correct, total=tally.total)
                for category, tally in grading.category_scores.items()
            },
        ),
        detailed_results=[
            DetailedResult.model_validate(asdict(graded)) for graded in grading.detailed_results
        ],
        shsat_scores=(
            ShsatScoresSchema.model_validate(asdict(outcome.shsat_scores))
            if outcome.shsat_scores
            else None
        ),
        sat_scores=(
            FamilyScoresSchema.model_validate(asdict(outcome.sat_scores))
            if outcome.sat_scores
            else None
        ),
        psat_scores=(
            FamilyScoresSchema.model_validate(asdict(outcome.psat_scores))
            if outcome.psat_scores
            else None
        ),
    )
