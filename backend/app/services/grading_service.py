"""
Answer grading for practice test submissions.

Grades every submitted answer against the loaded question bank in a single
pass and accumulates three tallies at once: the overall correct count, a
per-category tally and per-section raw scores used for scaled scoring.

Section assignment is a chain of classifiers tried in order (first match
wins). SHSAT tries the explicit section of a section-only test, then a
keyword match on the question category, then the question number. SAT and
PSAT partition by question number only.
"""

import logging
import math
import re
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from app.core.exceptions import GradingTimeoutError
from app.models.enums import AnswerType, ScoreSection, SectionType, TestFamily
from app.schemas.question import AnswerSubmission, Question

logger = logging.getLogger(__name__)


@dataclass
class Tally:
    correct: int = 0
    total: int = 0

    def add(self, is_correct: bool) -> None:
        self.total += 1
        if is_correct:
            self.correct += 1


@dataclass
class GradedAnswer:
    question_id: str
    question_number: int | None
    category: str
    section: ScoreSection | None
    is_correct: bool
    has_answer: bool
    user_answer: Any = None


@dataclass
class GradingResult:
    correct_count: int
    total_questions: int
    category_scores: dict[str, Tally]
    section_tallies: dict[ScoreSection, Tally]
    detailed_results: list[GradedAnswer] = field(default_factory=list)

    @property
    def percentage(self) -> int:
        if self.total_questions == 0:
            return 0
        return round_half_up(self.correct_count / self.total_questions * 100)

    def raw_score(self, section: ScoreSection) -> int:
        tally = self.section_tallies.get(section)
        return tally.correct if tally else 0


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# === Correctness ===


def has_answer(selected: Any) -> bool:
    """True unless the question was skipped (no selection or blank text)."""
    if selected is None:
        return False
    if isinstance(selected, str) and selected == "":
        return False
    if isinstance(selected, list) and not selected:
        return False
    return True


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_answer_correct(question: Question, selected: Any) -> bool:
    if question.answer_type == AnswerType.MULTIPLE_ANSWERS:
        if not isinstance(selected, list):
            return False
        return sorted(selected) == sorted(question.correct_answer)

    if question.answer_type == AnswerType.FILL_IN_THE_BLANK:
        if selected is None or isinstance(selected, list):
            return False
        return str(selected).strip().lower() == str(question.correct_answer).strip().lower()

    return _is_index(selected) and selected == question.correct_answer


# === Section classifiers ===


class SectionClassifier(Protocol):
    def classify(self, question: Question) -> ScoreSection | None: ...


@dataclass(frozen=True)
class ExplicitSectionClassifier:
    """Section-only tests: every question belongs to the section taken."""

    section_type: SectionType | None

    def classify(self, question: Question) -> ScoreSection | None:
        if self.section_type == SectionType.ELA:
            return ScoreSection.ELA
        if self.section_type == SectionType.MATH:
            return ScoreSection.MATH
        return None


class CategoryKeywordClassifier:
    """Match whole words of the question category against per-section keywords."""

    def __init__(self, keywords: Mapping[ScoreSection, Sequence[str]]):
        self._patterns = [
            (section, re.compile(r"\b(" + "|".join(map(re.escape, words)) + r")\b", re.I))
            for section, words in keywords.items()
        ]

    def classify(self, question: Question) -> ScoreSection | None:
        for section, pattern in self._patterns:
            if pattern.search(question.category):
                return section
        return None


@dataclass(frozen=True)
class OrdinalRangeClassifier:
    """Assign by question number; numbers outside every range are unassigned."""

    ranges: tuple[tuple[int, int, ScoreSection], ...]

    def classify(self, question: Question) -> ScoreSection | None:
        number = question.question_number
        if number is None:
            return None
        for first, last, section in self.ranges:
            if first <= number <= last:
                return section
        return None


SHSAT_CATEGORY_KEYWORDS: dict[ScoreSection, tuple[str, ...]] = {
    ScoreSection.MATH: (
        "math",
        "mathematics",
        "algebra",
        "geometry",
        "arithmetic",
        "probability",
        "statistics",
    ),
    ScoreSection.ELA: (
        "ela",
        "english",
        "reading",
        "revising",
        "editing",
        "language",
    ),
}

SHSAT_ORDINAL_SECTIONS = OrdinalRangeClassifier(
    ranges=((1, 57, ScoreSection.ELA), (58, 114, ScoreSection.MATH))
)

DIGITAL_SAT_ORDINAL_SECTIONS = OrdinalRangeClassifier(
    ranges=((1, 54, ScoreSection.READING_WRITING), (55, 98, ScoreSection.MATH))
)


def section_classifiers_for(
    test_type: TestFamily, section_type: SectionType | None = None
) -> list[SectionClassifier]:
    if test_type == TestFamily.SHSAT:
        return [
            ExplicitSectionClassifier(section_type),
            CategoryKeywordClassifier(SHSAT_CATEGORY_KEYWORDS),
            SHSAT_ORDINAL_SECTIONS,
        ]
    if test_type in (TestFamily.SAT, TestFamily.PSAT):
        return [DIGITAL_SAT_ORDINAL_SECTIONS]
    return []


def classify_section(
    question: Question, classifiers: Iterable[SectionClassifier]
) -> ScoreSection | None:
    for classifier in classifiers:
        section = classifier.classify(question)
        if section is not None:
            return section
    return None


# === Grader ===


class AnswerGrader:
    """Grades one submission against an immutable question set."""

    def __init__(
        self,
        questions: Sequence[Question],
        test_type: TestFamily,
        section_type: SectionType | None = None,
        timeout_seconds: float = 95.0,
        check_interval: int = 20,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.questions_by_id = {question.id: question for question in questions}
        self.test_type = test_type
        self.section_type = section_type
        self.classifiers = section_classifiers_for(test_type, section_type)
        self.timeout_seconds = timeout_seconds
        self.check_interval = check_interval
        self.clock = clock

    def grade(self, answers: Sequence[AnswerSubmission]) -> GradingResult:
        started = self.clock()
        correct_count = 0
        category_scores: dict[str, Tally] = {}
        section_tallies: dict[ScoreSection, Tally] = {}
        detailed_results: list[GradedAnswer] = []

        for answer in answers:
            question = self.questions_by_id.get(answer.question_id)
            if question is None:
                continue

            is_correct = is_answer_correct(question, answer.selected_answer)
            if is_correct:
                correct_count += 1

            category_scores.setdefault(question.category, Tally()).add(is_correct)

            section = classify_section(question, self.classifiers)
            if section is not None:
                section_tallies.setdefault(section, Tally()).add(is_correct)

            detailed_results.append(
                GradedAnswer(
                    question_id=question.id,
                    question_number=question.question_number,
                    category=question.category,
                    section=section,
                    is_correct=is_correct,
                    has_answer=has_answer(answer.selected_answer),
                    user_answer=answer.selected_answer,
                )
            )

            if len(detailed_results) % self.check_interval == 0:
                self._check_budget(started, len(detailed_results))

        unmatched = len(answers) - len(detailed_results)
        if unmatched:
            logger.debug(
                "Skipped %d answers with unknown question ids",
                unmatched,
                extra={"test_type": self.test_type.value},
            )

        return GradingResult(
            correct_count=correct_count,
            total_questions=len(answers),
            category_scores=category_scores,
            section_tallies=section_tallies,
            detailed_results=detailed_results,
        )

    def _check_budget(self, started: float, graded_count: int) -> None:
        elapsed = self.clock() - started
        if elapsed > self.timeout_seconds:
            logger.error(
                "Grading exceeded %.0fs budget after %d answers",
                self.timeout_seconds,
                graded_count,
                extra={"test_type": self.test_type.value, "duration_ms": int(elapsed * 1000)},
            )
            raise GradingTimeoutError(elapsed_seconds=elapsed, graded_count=graded_count)
