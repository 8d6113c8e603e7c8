"""
Raw-to-scaled score conversion tables.

Each test family publishes its own fixed conversion per section. Tables are
built once at import time and never mutated; `convert` is a pure lookup.

Sources:
- SHSAT: NYC DOE prep materials, 57 questions per section, 0-365 per section.
- SAT: College Board digital SAT practice tests, 200-800 per section.
- PSAT/NMSQT: College Board practice tests, 160-760 per section.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class ScaleConversionTable:
    name: str
    scores: Mapping[int, int]
    floor: int
    max_raw: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "scores", MappingProxyType(dict(self.scores)))
        object.__setattr__(self, "max_raw", max(self.scores))

    @property
    def ceiling(self) -> int:
        return self.scores[self.max_raw]

    def convert(self, raw_score: int) -> int:
        """
        Scaled score for `raw_score`.

        Raw scores are clamped to [0, max_raw]: anything above the maximum
        gets the maximum entry, negatives get the family floor.
        """
        if raw_score < 0:
            return self.floor
        if raw_score > self.max_raw:
            raw_score = self.max_raw
        return self.scores.get(raw_score, self.floor)


def _table(name: str, floor: int, values: list[int]) -> ScaleConversionTable:
    return ScaleConversionTable(name=name, scores=dict(enumerate(values)), floor=floor)


# === SHSAT (same table for ELA and Math) ===

SHSAT_SECTION_TABLE = _table(
    "shsat_section",
    floor=0,
    values=[
        0, 16, 26, 37, 51, 65, 74, 83, 90, 98,  # 0-9
        105, 130, 134, 141, 146, 152, 158, 163, 168, 172,  # 10-19
        177, 181, 186, 190, 194, 201, 204, 208, 211, 215,  # 20-29
        218, 222, 226, 229, 233, 236, 240, 243, 247, 250,  # 30-39
        254, 257, 261, 266, 266, 270, 274, 279, 285, 291,  # 40-49
        297, 306, 315, 323, 333, 344, 355, 365,  # 50-57
    ],
)

SHSAT_SECTION_QUESTIONS = 57

# === SAT ===

SAT_READING_WRITING_TABLE = _table(
    "sat_reading_writing",
    floor=200,
    values=[
        200, 200, 200, 200, 200, 200, 210, 230, 250, 270,  # 0-9
        280, 290, 310, 320, 330, 340, 360, 375, 375, 385,  # 10-19
        395, 405, 410, 420, 430, 430, 440, 450, 460, 470,  # 20-29
        480, 490, 500, 500, 510, 520, 530, 540, 550, 555,  # 30-39
        565, 575, 585, 605, 615, 625, 635, 640, 650, 655,  # 40-49
        665, 680, 690, 720, 800,  # 50-54
    ],
)

SAT_MATH_TABLE = _table(
    "sat_math",
    floor=200,
    values=[
        200, 200, 200, 200, 200, 200, 210, 225, 245, 305,  # 0-9
        315, 320, 330, 340, 350, 360, 360, 370, 370, 380,  # 10-19
        390, 400, 400, 410, 420, 430, 440, 450, 465, 485,  # 20-29
        490, 500, 510, 520, 540, 550, 560, 570, 580, 590,  # 30-39
        600, 615, 645, 710, 800,  # 40-44
    ],
)

# === PSAT/NMSQT ===

PSAT_READING_WRITING_TABLE = _table(
    "psat_reading_writing",
    floor=160,
    values=[
        160, 160, 160, 160, 160, 160, 170, 180, 190, 200,  # 0-9
        210, 220, 230, 240, 250, 260, 270, 280, 290, 300,  # 10-19
        310, 320, 330, 340, 350, 360, 370, 380, 390, 400,  # 20-29
        410, 420, 430, 440, 450, 460, 470, 480, 490, 500,  # 30-39
        510, 520, 530, 540, 550, 570, 590, 610, 630, 650,  # 40-49
        670, 690, 710, 730, 760,  # 50-54
    ],
)

PSAT_MATH_TABLE = _table(
    "psat_math",
    floor=160,
    values=[
        160, 160, 160, 160, 160, 160, 170, 180, 190, 240,  # 0-9
        250, 260, 270, 280, 290, 300, 310, 320, 330, 340,  # 10-19
        350, 360, 370, 380, 390, 400, 410, 420, 430, 440,  # 20-29
        450, 460, 470, 480, 490, 500, 510, 520, 530, 540,  # 30-39
        550, 580, 620, 680, 760,  # 40-44
    ],
)


# === Percentiles (total score -> percentile, steps of 10) ===


def _percentiles(top: int, values: list[int]) -> Mapping[int, int]:
    return MappingProxyType({top - 10 * i: p for i, p in enumerate(values)})


# 1600 down to 400
SAT_PERCENTILE_TABLE = _percentiles(
    1600,
    [
        99, 99, 99, 99, 99, 99, 99, 99, 99, 99,  # 1600-1510
        99, 99, 99, 98, 98, 98, 98, 97, 97, 97,  # 1500-1410
        96, 96, 95, 95, 95, 94, 94, 93, 92, 92,  # 1400-1310
        92, 91, 90, 89, 89, 87, 87, 86, 85, 84,  # 1300-1210
        83, 81, 81, 79, 77, 77, 75, 74, 72, 71,  # 1200-1110
        69, 68, 66, 65, 63, 62, 60, 59, 56, 55,  # 1100-1010
        53, 52, 49, 48, 46, 44, 42, 41, 38, 37,  # 1000-910
        35, 34, 31, 30, 28, 27, 25, 23, 22, 20,  # 900-810
        19, 17, 16, 14, 14, 12, 11, 10, 10, 8,  # 800-710
        8, 7, 6, 6, 5, 5, 4, 4, 3, 3,  # 700-610
        3, 2, 2, 2, 2, 1, 1, 1, 1, 1,  # 600-510
        1, 1, 1, 1, 1, 1, 1, 1, 1, 1,  # 500-410
        1,  # 400
    ],
)

# 1520 down to 320
PSAT_PERCENTILE_TABLE = _percentiles(
    1520,
    [
        99, 99, 99, 99, 99, 99, 99, 99, 99, 98,  # 1520-1430
        98, 98, 97, 97, 96, 96, 95, 95, 94, 93,  # 1420-1330
        92, 91, 90, 89, 88, 87, 86, 85, 84, 82,  # 1320-1230
        81, 80, 78, 77, 75, 74, 72, 70, 69, 67,  # 1220-1130
        65, 64, 62, 60, 58, 56, 54, 52, 50, 48,  # 1120-1030
        46, 44, 42, 40, 38, 36, 34, 32, 30, 28,  # 1020-930
        26, 24, 22, 20, 18, 16, 15, 13, 12, 10,  # 920-830
        9, 8, 7, 6, 5, 4, 4, 3, 3, 2,  # 820-730
        2, 2, 1, 1, 1, 1, 1, 1, 1, 1,  # 720-630
        1, 1, 1, 1, 1, 1, 1, 1, 1, 1,  # 620-530
        1, 1, 1, 1, 1, 1, 1, 1, 1, 1,  # 520-430
        1, 1, 1, 1, 1, 1, 1, 1, 1, 1,  # 420-330
        1,  # 320
    ],
)
