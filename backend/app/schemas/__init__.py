from app.schemas.base import BaseSchema, CamelSchema, MessageResponse
from app.schemas.question import (
    AnswerSubmission,
    Question,
    QuestionPublic,
    QuestionSetResponse,
    TestInfo,
)
from app.schemas.submission import (
    CategoryScore,
    DetailedResult,
    FamilyScoresSchema,
    SaveFailedResponse,
    ShsatScoresSchema,
    SubmissionResults,
    SubmitTestRequest,
    SubmitTestResponse,
)
from app.schemas.user import (
    CategoryPerformanceResponse,
    MasteryResponse,
    TestHistoryEntryResponse,
    TestHistoryResponse,
    TestProgressResponse,
    UserStats,
    UserStatsResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "CamelSchema",
    "MessageResponse",
    # Questions
    "AnswerSubmission",
    "Question",
    "QuestionPublic",
    "QuestionSetResponse",
    "TestInfo",
    # Submission
    "CategoryScore",
    "DetailedResult",
    "FamilyScoresSchema",
    "SaveFailedResponse",
    "ShsatScoresSchema",
    "SubmissionResults",
    "SubmitTestRequest",
    "SubmitTestResponse",
    # User
    "CategoryPerformanceResponse",
    "MasteryResponse",
    "TestHistoryEntryResponse",
    "TestHistoryResponse",
    "TestProgressResponse",
    "UserStats",
    "UserStatsResponse",
]
