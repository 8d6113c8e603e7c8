"""
Read-only access to the JSON question banks.

Layout under `question_data_dir`:

    SHSAT/shsatpractice{set}questions.json
    SHSAT/shsatpractice{set}{section}questions.json   (optional section-only banks)
    SHSAT/shsatdiagnosticquestions.json
    SAT/satpractice{set}questions.json
    PSAT/psatpractice{set}questions.json
    State-Test/Grade-7/statetestpractice{set}questions{g7,,g8}.json
"""

import json
import logging
import re
from pathlib import Path

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import AppException, NotFoundError
from app.models.enums import SectionType, TestFamily
from app.schemas.question import Question

logger = logging.getLogger(__name__)

_question_list = TypeAdapter(list[Question])
_SAFE_SET = re.compile(r"^[A-Za-z0-9_-]+$")


class QuestionStore:
    """Loads question banks from disk once and shares them between requests."""

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self._cache: dict[Path, tuple[Question, ...]] = {}

    def candidate_paths(
        self,
        test_type: TestFamily,
        practice_set: str,
        section_type: SectionType | None = None,
    ) -> list[Path]:
        """Files that may hold the bank, in preference order."""
        if test_type == TestFamily.SHSAT:
            base = self.data_dir / "SHSAT"
            if practice_set == "diagnostic":
                return [base / "shsatdiagnosticquestions.json"]
            paths = []
            if section_type in (SectionType.ELA, SectionType.MATH):
                paths.append(base / f"shsatpractice{practice_set}{section_type.value}questions.json")
            paths.append(base / f"shsatpractice{practice_set}questions.json")
            return paths

        if test_type == TestFamily.STATE:
            base = self.data_dir / "State-Test" / "Grade-7"
            return [
                base / f"statetestpractice{practice_set}questionsg7.json",
                base / f"statetestpractice{practice_set}questions.json",
                base / f"statetestpractice{practice_set}questionsg8.json",
            ]

        family = test_type.value
        return [self.data_dir / family.upper() / f"{family}practice{practice_set}questions.json"]

    def load(
        self,
        test_type: TestFamily,
        practice_set: str,
        section_type: SectionType | None = None,
    ) -> tuple[Question, ...]:
        """
        Questions for a practice set, ordered as stored.

        Raises NotFoundError when no bank exists or the bank is empty.
        """
        identifier = f"{test_type.value}/{practice_set}"
        if not _SAFE_SET.match(practice_set):
            raise NotFoundError("Question set", identifier)

        for path in self.candidate_paths(test_type, practice_set, section_type):
            if path in self._cache:
                return self._cache[path]
            if path.is_file():
                questions = self._read(path)
                if not questions:
                    raise NotFoundError("Question set", identifier)
                self._cache[path] = questions
                return questions

        logger.warning(
            "No question bank found for %s",
            identifier,
            extra={"test_type": test_type.value, "practice_set": practice_set},
        )
        raise NotFoundError("Question set", identifier)

    def _read(self, path: Path) -> tuple[Question, ...]:
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
            return tuple(_question_list.validate_python(raw))
        except (OSError, json.JSONDecodeError, PydanticValidationError) as exc:
            logger.error(
                "Failed to load question bank %s: %s",
                path,
                exc,
                extra={"error_type": type(exc).__name__},
            )
            raise AppException("Failed to load questions") from exc
