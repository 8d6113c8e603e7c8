"""
Tests for answer grading and section classification.
"""

import itertools
import random

import pytest

from app.core.exceptions import GradingTimeoutError
from app.models import enums
from app.schemas.question import AnswerSubmission, Question
from app.services.grading_service import (
    AnswerGrader,
    CategoryKeywordClassifier,
    ExplicitSectionClassifier,
    GradingResult,
    SHSAT_CATEGORY_KEYWORDS,
    classify_section,
    has_answer,
    is_answer_correct,
    round_half_up,
    section_classifiers_for,
)
from tests.conftest import digital_sat_bank, make_question, shsat_bank

ScoreSection = enums.ScoreSection
Family = enums.TestFamily


def questions(raw: list[dict]) -> list[Question]:
    return [Question.model_validate(q) for q in raw]


def answer(question_id: str, selected) -> AnswerSubmission:
    return AnswerSubmission(question_id=question_id, selected_answer=selected)


class TestAnswerCorrectness:
    """Tests for per-type correctness rules."""

    def test_single_choice(self):
        question = Question.model_validate(make_question(1, "Algebra", correct_answer=2))

        assert is_answer_correct(question, 2) is True
        assert is_answer_correct(question, 1) is False
        assert is_answer_correct(question, None) is False
        assert is_answer_correct(question, "2") is False

    def test_multiple_answers_order_does_not_matter(self):
        question = Question.model_validate(
            make_question(1, "Algebra", correct_answer=[0, 2], answer_type="multiple_answers")
        )

        assert is_answer_correct(question, [0, 2]) is True
        assert is_answer_correct(question, [2, 0]) is True

    def test_multiple_answers_subset_and_superset_are_wrong(self):
        question = Question.model_validate(
            make_question(1, "Algebra", correct_answer=[0, 2], answer_type="multiple_answers")
        )

        assert is_answer_correct(question, [0]) is False
        assert is_answer_correct(question, [0, 1, 2]) is False
        assert is_answer_correct(question, 0) is False

    def test_fill_in_ignores_case_and_whitespace(self):
        question = Question.model_validate(
            make_question(1, "Algebra", correct_answer="42", answer_type="fill_in_the_blank")
        )

        assert is_answer_correct(question, " 42 ") is True
        assert is_answer_correct(question, "43") is False
        assert is_answer_correct(question, None) is False

    def test_fill_in_text_answer(self):
        question = Question.model_validate(
            make_question(
                1, "Vocabulary", correct_answer="Photosynthesis", answer_type="fill_in_the_blank"
            )
        )
        assert is_answer_correct(question, "  photosynthesis") is True

    def test_has_answer(self):
        assert has_answer(0) is True
        assert has_answer("x") is True
        assert has_answer([1]) is True
        assert has_answer(None) is False
        assert has_answer("") is False
        assert has_answer([]) is False

    def test_round_half_up(self):
        assert round_half_up(66.5) == 67
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2


class TestSectionClassifiers:
    """Tests for section assignment."""

    def test_explicit_section(self):
        question = Question.model_validate(make_question(100, "Algebra"))
        classifier = ExplicitSectionClassifier(enums.SectionType.ELA)
        assert classifier.classify(question) == ScoreSection.ELA

    def test_explicit_section_full_test_defers(self):
        question = Question.model_validate(make_question(1, "Algebra"))
        assert ExplicitSectionClassifier(None).classify(question) is None
        assert ExplicitSectionClassifier(enums.SectionType.FULL).classify(question) is None

    def test_category_keywords_match_whole_words(self):
        classifier = CategoryKeywordClassifier(SHSAT_CATEGORY_KEYWORDS)

        def section_of(category: str):
            return classifier.classify(Question.model_validate(make_question(1, category)))

        assert section_of("Geometry") == ScoreSection.MATH
        assert section_of("Reading Comprehension") == ScoreSection.ELA
        assert section_of("Revising/Editing") == ScoreSection.ELA
        # "relational" contains "ela" but not as a word
        assert section_of("Relational Logic") is None

    def test_shsat_chain_falls_back_to_question_number(self):
        classifiers = section_classifiers_for(Family.SHSAT)
        early = Question.model_validate(make_question(10, "Logic"))
        late = Question.model_validate(make_question(80, "Logic"))
        unnumbered = Question.model_validate(
            {**make_question(1, "Logic"), "question_number": None}
        )

        assert classify_section(early, classifiers) == ScoreSection.ELA
        assert classify_section(late, classifiers) == ScoreSection.MATH
        assert classify_section(unnumbered, classifiers) is None

    def test_shsat_keyword_beats_question_number(self):
        classifiers = section_classifiers_for(Family.SHSAT)
        question = Question.model_validate(make_question(10, "Algebra"))
        assert classify_section(question, classifiers) == ScoreSection.MATH

    def test_shsat_explicit_section_beats_keyword(self):
        classifiers = section_classifiers_for(Family.SHSAT, enums.SectionType.MATH)
        question = Question.model_validate(make_question(10, "Reading Comprehension"))
        assert classify_section(question, classifiers) == ScoreSection.MATH

    def test_digital_sat_partition(self):
        classifiers = section_classifiers_for(Family.SAT)
        sections = [classify_section(q, classifiers) for q in questions(digital_sat_bank())]

        assert sections.count(ScoreSection.READING_WRITING) == 54
        assert sections.count(ScoreSection.MATH) == 44
        assert None not in sections

    def test_state_tests_have_no_sections(self):
        assert section_classifiers_for(Family.STATE) == []


class TestAnswerGrader:
    """Tests for grading a whole submission."""

    def test_correct_count_and_percentage(self):
        bank = questions(digital_sat_bank()[:3])
        grader = AnswerGrader(bank, Family.SAT)

        result = grader.grade([answer("q1", 1), answer("q2", 1), answer("q3", 0)])

        assert result.correct_count == 2
        assert result.total_questions == 3
        assert result.percentage == 67

    def test_empty_submission(self):
        result = AnswerGrader(questions(digital_sat_bank()), Family.SAT).grade([])

        assert result.total_questions == 0
        assert result.percentage == 0
        assert result.detailed_results == []

    def test_unknown_question_ids_count_in_total_only(self):
        bank = questions(digital_sat_bank()[:2])
        grader = AnswerGrader(bank, Family.SAT)

        result = grader.grade([answer("q1", 1), answer("missing", 1)])

        assert result.correct_count == 1
        assert result.total_questions == 2
        assert result.percentage == 50
        assert [graded.question_id for graded in result.detailed_results] == ["q1"]

    def test_order_independence(self):
        bank_raw = shsat_bank()
        bank = questions(bank_raw)
        rng = random.Random(7)
        sheet = [answer(q["_id"], rng.choice([0, 1, None])) for q in bank_raw]
        shuffled = sheet[:]
        rng.shuffle(shuffled)

        first = AnswerGrader(bank, Family.SHSAT).grade(sheet)
        second = AnswerGrader(bank, Family.SHSAT).grade(list(reversed(sheet)))
        third = AnswerGrader(bank, Family.SHSAT).grade(shuffled)

        for other in (second, third):
            assert other.correct_count == first.correct_count
            assert other.category_scores == first.category_scores
            assert other.section_tallies == first.section_tallies

    def test_category_and_section_tallies(self):
        bank = questions(digital_sat_bank())
        sheet = [answer(f"q{n}", 1 if n % 2 else 0) for n in range(1, 99)]

        result = AnswerGrader(bank, Family.SAT).grade(sheet)

        assert result.category_scores["Craft and Structure"].total == 54
        assert result.category_scores["Craft and Structure"].correct == 27
        assert result.category_scores["Algebra"].correct == 22
        assert result.raw_score(ScoreSection.READING_WRITING) == 27
        assert result.raw_score(ScoreSection.MATH) == 22
        assert result.raw_score(ScoreSection.ELA) == 0

    def test_detailed_results(self):
        bank = questions(digital_sat_bank()[:2])

        result = AnswerGrader(bank, Family.SAT).grade([answer("q1", 1), answer("q2", None)])

        first, second = result.detailed_results
        assert first.is_correct is True
        assert first.has_answer is True
        assert first.question_number == 1
        assert first.section == ScoreSection.READING_WRITING
        assert second.is_correct is False
        assert second.has_answer is False
        assert second.user_answer is None

    def test_timeout_raises(self):
        ticks = itertools.chain([0.0], itertools.repeat(200.0))
        grader = AnswerGrader(
            questions(digital_sat_bank()),
            Family.SAT,
            timeout_seconds=95,
            check_interval=20,
            clock=lambda: next(ticks),
        )

        with pytest.raises(GradingTimeoutError) as exc_info:
            grader.grade([answer(f"q{n}", 1) for n in range(1, 99)])

        assert exc_info.value.status_code == 504
        assert exc_info.value.graded_count == 20

    def test_within_budget_does_not_raise(self):
        ticks = itertools.count(start=0.0, step=0.5)
        grader = AnswerGrader(
            questions(digital_sat_bank()),
            Family.SAT,
            clock=lambda: next(ticks),
        )

        result = grader.grade([answer(f"q{n}", 1) for n in range(1, 99)])

        assert isinstance(result, GradingResult)
        assert result.correct_count == 98
