"""
Scaled scoring for SHSAT, SAT and PSAT.

Raw section scores (correct-answer counts) are converted through the fixed
tables in `scale_tables`, then combined into a family-specific result:

- SHSAT: ELA and Math scaled independently and summed; section-only practice
  reports just the section taken.
- SAT / PSAT: Reading & Writing plus Math, clamped total, percentile and a
  performance level. PSAT also reports a National Merit band.

Everything here is a pure function of its inputs.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from app.models.enums import SectionType
from app.services.scale_tables import (
    PSAT_MATH_TABLE,
    PSAT_PERCENTILE_TABLE,
    PSAT_READING_WRITING_TABLE,
    SAT_MATH_TABLE,
    SAT_PERCENTILE_TABLE,
    SAT_READING_WRITING_TABLE,
    SHSAT_SECTION_QUESTIONS,
    SHSAT_SECTION_TABLE,
    ScaleConversionTable,
)


class InvalidSectionError(ValueError):
    pass


@dataclass
class SectionScore:
    raw_score: int
    scaled_score: int
    max_raw: int | None = None


@dataclass
class TotalScore:
    score: int
    percentile: int
    performance_level: str


@dataclass
class NationalMeritStatus:
    status: str
    description: str


@dataclass
class ShsatScores:
    total_raw_score: int
    total_scaled_score: int
    section_type: str
    math: SectionScore | None = None
    english: SectionScore | None = None


@dataclass
class FamilyScores:
    """SAT or PSAT result."""

    math: SectionScore
    reading_writing: SectionScore
    total: TotalScore
    national_merit: NationalMeritStatus | None = None


# === SHSAT ===


def convert_shsat_section(raw_score: int) -> int:
    """Scaled score (0-365) for one SHSAT section."""
    return SHSAT_SECTION_TABLE.convert(raw_score)


def calculate_shsat_scores(
    math_raw: int,
    ela_raw: int,
    section_type: SectionType | str | None = None,
) -> ShsatScores:
    """Calculate SHSAT scores for the full test or a single section."""
    section = SectionType(section_type) if section_type else SectionType.FULL
    math = SectionScore(
        raw_score=math_raw,
        scaled_score=convert_shsat_section(math_raw),
        max_raw=SHSAT_SECTION_QUESTIONS,
    )
    english = SectionScore(
        raw_score=ela_raw,
        scaled_score=convert_shsat_section(ela_raw),
        max_raw=SHSAT_SECTION_QUESTIONS,
    )

    if section == SectionType.ELA:
        return ShsatScores(
            english=english,
            total_raw_score=ela_raw,
            total_scaled_score=english.scaled_score,
            section_type=SectionType.ELA.value,
        )

    if section == SectionType.MATH:
        return ShsatScores(
            math=math,
            total_raw_score=math_raw,
            total_scaled_score=math.scaled_score,
            section_type=SectionType.MATH.value,
        )

    return ShsatScores(
        math=math,
        english=english,
        total_raw_score=math_raw + ela_raw,
        total_scaled_score=math.scaled_score + english.scaled_score,
        section_type=SectionType.FULL.value,
    )


def convert_shsat_total_raw(total_raw: int) -> int:
    """
    Legacy conversion of a combined raw score (0-114).

    Assumes equal performance on both sections: the raw score is split
    floor/ceil between Math and ELA.
    """
    if total_raw < 0:
        return 0
    if total_raw > 2 * SHSAT_SECTION_QUESTIONS:
        return 730

    math_raw = total_raw // 2
    ela_raw = total_raw - math_raw
    return convert_shsat_section(math_raw) + convert_shsat_section(ela_raw)


# === SAT / PSAT shared helpers ===

_MATH_SECTIONS = {"math"}
_READING_WRITING_SECTIONS = {"readingwriting", "ebrw"}


def _section_table(
    section: str, math_table: ScaleConversionTable, rw_table: ScaleConversionTable
) -> ScaleConversionTable:
    if section in _MATH_SECTIONS:
        return math_table
    if section in _READING_WRITING_SECTIONS:
        return rw_table
    raise InvalidSectionError('Invalid section. Use "math" or "readingwriting"')


def get_percentile(total_score: int, table: Mapping[int, int], floor: int) -> int:
    """
    Percentile for a total score.

    Scans down from `total_score` in steps of 10 and returns the first table
    hit, so scores between entries take the next-lower entry. Defaults to 1.
    """
    # Table keys are multiples of 10; align so e.g. 755 scans 750, 740, ...
    score = total_score - total_score % 10
    while score >= floor:
        if score in table:
            return table[score]
        score -= 10
    return 1


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


# === SAT ===

SAT_TOTAL_MIN = 400
SAT_TOTAL_MAX = 1600


def convert_sat_raw_to_scaled(raw_score: int, section: str) -> int:
    """Scaled score (200-800) for a digital SAT section."""
    return _section_table(section, SAT_MATH_TABLE, SAT_READING_WRITING_TABLE).convert(raw_score)


def calculate_total_sat_score(math_score: int, reading_writing_score: int) -> int:
    return _clamp(math_score + reading_writing_score, SAT_TOTAL_MIN, SAT_TOTAL_MAX)


def get_sat_percentile(total_score: int) -> int:
    return get_percentile(total_score, SAT_PERCENTILE_TABLE, SAT_TOTAL_MIN)


def get_sat_performance_level(total_score: int) -> str:
    if total_score >= 1400:
        return "Excellent"
    if total_score >= 1200:
        return "Good"
    if total_score >= 1000:
        return "Average"
    if total_score >= 800:
        return "Below Average"
    return "Needs Improvement"


def calculate_sat_results(math_raw: int, reading_writing_raw: int) -> FamilyScores:
    """Complete SAT score breakdown from raw section scores."""
    math_scaled = convert_sat_raw_to_scaled(math_raw, "math")
    rw_scaled = convert_sat_raw_to_scaled(reading_writing_raw, "readingwriting")
    total = calculate_total_sat_score(math_scaled, rw_scaled)

    return FamilyScores(
        math=SectionScore(math_raw, math_scaled, SAT_MATH_TABLE.max_raw),
        reading_writing=SectionScore(
            reading_writing_raw, rw_scaled, SAT_READING_WRITING_TABLE.max_raw
        ),
        total=TotalScore(
            score=total,
            percentile=get_sat_percentile(total),
            performance_level=get_sat_performance_level(total),
        ),
    )


# === PSAT/NMSQT ===

PSAT_TOTAL_MIN = 320
PSAT_TOTAL_MAX = 1520


def convert_psat_raw_to_scaled(raw_score: int, section: str) -> int:
    """Scaled score (160-760) for a PSAT section."""
    return _section_table(section, PSAT_MATH_TABLE, PSAT_READING_WRITING_TABLE).convert(raw_score)


def calculate_total_psat_score(math_score: int, reading_writing_score: int) -> int:
    return _clamp(math_score + reading_writing_score, PSAT_TOTAL_MIN, PSAT_TOTAL_MAX)


def get_psat_percentile(total_score: int) -> int:
    return get_percentile(total_score, PSAT_PERCENTILE_TABLE, PSAT_TOTAL_MIN)


def get_psat_performance_level(total_score: int) -> str:
    if total_score >= 1400:
        return "Excellent (National Merit Semifinalist Range)"
    if total_score >= 1200:
        return "Good (Commended Student Range)"
    if total_score >= 1000:
        return "Average"
    if total_score >= 700:
        return "Below Average"
    return "Needs Improvement"


# Approximate; real cutoffs vary by state
NATIONAL_MERIT_BANDS = (
    (
        1460,
        "Likely National Merit Semifinalist",
        "Top 1% of test takers - likely to qualify for National Merit Semifinalist status",
    ),
    (
        1400,
        "Potential National Merit Semifinalist",
        "High score - may qualify for National Merit Semifinalist depending on state cutoffs",
    ),
    (
        1200,
        "Likely Commended Student",
        "Top 3-4% of test takers - likely to receive National Merit Commended Student recognition",
    ),
)


def get_national_merit_status(total_score: int) -> NationalMeritStatus:
    for threshold, status, description in NATIONAL_MERIT_BANDS:
        if total_score >= threshold:
            return NationalMeritStatus(status=status, description=description)
    return NationalMeritStatus(
        status="Not Qualifying",
        description="Score below typical National Merit recognition thresholds",
    )


def calculate_psat_results(math_raw: int, reading_writing_raw: int) -> FamilyScores:
    """Complete PSAT score breakdown, including the National Merit band."""
    math_scaled = convert_psat_raw_to_scaled(math_raw, "math")
    rw_scaled = convert_psat_raw_to_scaled(reading_writing_raw, "readingwriting")
    total = calculate_total_psat_score(math_scaled, rw_scaled)

    return FamilyScores(
        math=SectionScore(math_raw, math_scaled, PSAT_MATH_TABLE.max_raw),
        reading_writing=SectionScore(
            reading_writing_raw, rw_scaled, PSAT_READING_WRITING_TABLE.max_raw
        ),
        total=TotalScore(
            score=total,
            percentile=get_psat_percentile(total),
            performance_level=get_psat_performance_level(total),
        ),
        national_merit=get_national_merit_status(total),
    )
