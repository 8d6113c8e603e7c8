"""
Pytest configuration and fixtures for the scoring backend tests.
"""

import json
from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.endpoints.questions import get_question_store
from app.core.database import get_db
from app.core.security import create_access_token
from app.main import app
from app.models import Base, User
from app.models.enums import UserRole
from app.services.question_store import QuestionStore

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
def question_store(tmp_path: Path) -> QuestionStore:
    return QuestionStore(tmp_path)


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, question_store: QuestionStore
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_question_store] = lambda: question_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# === User Fixtures ===


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test student user."""
    user = User(
        email="student@test.com",
        first_name="Test",
        last_name="Student",
        grade="8",
        role=UserRole.STUDENT,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> User:
    """Create a test admin user."""
    user = User(
        email="admin@test.com",
        first_name="Test",
        last_name="Admin",
        role=UserRole.ADMIN,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def user_token(test_user: User) -> str:
    """Get an access token for the test user."""
    return create_access_token(subject=test_user.id, additional_claims={"role": "student"})


@pytest.fixture
def admin_token(test_admin: User) -> str:
    """Get an access token for the test admin."""
    return create_access_token(subject=test_admin.id, additional_claims={"role": "admin"})


def auth_headers(token: str) -> dict[str, str]:
    """Create authorization headers."""
    return {"Authorization": f"Bearer {token}"}


# === Question bank helpers ===


def make_question(
    number: int,
    category: str,
    correct_answer: Any = 1,
    answer_type: str = "single_choice",
    prefix: str = "q",
) -> dict[str, Any]:
    question: dict[str, Any] = {
        "_id": f"{prefix}{number}",
        "question_text": f"Question {number}",
        "answer_type": answer_type,
        "correct_answer": correct_answer,
        "category": category,
        "question_number": number,
        "difficulty": "medium",
        "time_estimate": 60,
        "explanation": "Because.",
    }
    if answer_type != "fill_in_the_blank":
        question["options"] = ["A", "B", "C", "D"]
    return question


def digital_sat_bank() -> list[dict[str, Any]]:
    """98 questions: 1-54 Reading & Writing, 55-98 Math; answer index 1 is correct."""
    return [
        make_question(n, "Craft and Structure" if n <= 54 else "Algebra") for n in range(1, 99)
    ]


def shsat_bank() -> list[dict[str, Any]]:
    """114 questions: 1-57 ELA, 58-114 Math; answer index 1 is correct."""
    return [
        make_question(n, "Reading Comprehension" if n <= 57 else "Algebra")
        for n in range(1, 115)
    ]


def answer_sheet(
    bank: list[dict[str, Any]], correct: Callable[[dict[str, Any]], bool]
) -> list[dict[str, Any]]:
    """Answers for every question; right where `correct(question)` is true, wrong otherwise."""
    return [
        {"questionId": q["_id"], "selectedAnswer": 1 if correct(q) else 0} for q in bank
    ]


@pytest.fixture
def write_bank(tmp_path: Path) -> Callable[[str, list[dict[str, Any]]], Path]:
    """Write a question bank under the store's data directory."""

    def _write(relative: str, questions: list[dict[str, Any]]) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(questions), encoding="utf-8")
        return path

    return _write
