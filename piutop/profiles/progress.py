"""
Grade Progress Bonus

For each chart type (single, double) and grade (A, A+, S, SS) a player earns
a bonus for the hardest level on which they reached the grade on roughly 10%
of the existing charts. The summed bonus is added to the player's starting
Elo rating.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

from piutop.config import (
    GRADE_ORDER,
    PROGRESS_CHART_TYPES,
    PROGRESS_GRADES,
    PROGRESS_GRADE_WEIGHTS,
    PROGRESS_LEVEL_DIVISOR,
    PROGRESS_MIN_FRACTION,
)
from piutop.leaderboard.builder import parse_chart_label
from piutop.models import Profile


@dataclass(frozen=True)
class Tracklist:
    """Number of existing charts per level, for singles and doubles."""
    singles_levels: Dict[int, int]
    doubles_levels: Dict[int, int]

    def levels_for(self, chart_type: str) -> Dict[int, int]:
        return self.singles_levels if chart_type == "S" else self.doubles_levels


@dataclass(frozen=True)
class GradeProgress:
    bonus_level: Optional[int] = None
    coef: float = 0.0
    min_number: int = 0
    achieved_number: int = 0
    bonus: float = 0.0


@dataclass(frozen=True)
class Progress:
    single: Dict[str, GradeProgress]
    double: Dict[str, GradeProgress]
    bonus: float


def build_tracklist(shared_charts: dict) -> Tracklist:
    """Count the snapshot's single and double charts per level."""
    singles: Dict[int, int] = {}
    doubles: Dict[int, int] = {}
    for info in shared_charts.values():
        _, chart_type, level = parse_chart_label(info.get("chart_label"))
        if level is None:
            continue
        if chart_type == "S":
            singles[level] = singles.get(level, 0) + 1
        elif chart_type == "D":
            doubles[level] = doubles.get(level, 0) + 1
    return Tracklist(singles_levels=singles, doubles_levels=doubles)


def level_bonus(level: int, grade: str, coef: float) -> float:
    return level ** 2 / PROGRESS_LEVEL_DIVISOR * PROGRESS_GRADE_WEIGHTS[grade] * coef


def get_grade_progress(profile: Profile, chart_type: str, grade: str, tracklist: Tracklist) -> GradeProgress:
    """
    Find the level giving the largest bonus for one (chart type, grade) block.

    Args:
        profile: Aggregated profile with best-grade results filed by level
        chart_type: "S" or "D"
        grade: Target grade; better grades count too
        tracklist: Existing charts per level
    """
    levels_count = tracklist.levels_for(chart_type)
    target = GRADE_ORDER[grade]
    best = GradeProgress()

    for level, entries in profile.results_by_level.items():
        total = levels_count.get(level, 0)
        if not total:
            continue
        min_number = math.ceil(total * PROGRESS_MIN_FRACTION)
        achieved_number = sum(
            1 for result, chart in entries
            if chart.chart_type == chart_type and GRADE_ORDER.get(result.grade, 0) >= target
        )
        if not achieved_number:
            continue
        coef = min(1.0, achieved_number / min_number)
        bonus = level_bonus(level, grade, coef)
        if bonus > best.bonus:
            best = GradeProgress(
                bonus_level=level,
                coef=coef,
                min_number=min_number,
                achieved_number=achieved_number,
                bonus=bonus,
            )

    return best


def get_progress(profile: Profile, tracklist: Tracklist) -> Progress:
    blocks = {
        name: {grade: get_grade_progress(profile, chart_type, grade, tracklist) for grade in PROGRESS_GRADES}
        for name, chart_type in PROGRESS_CHART_TYPES.items()
    }
    bonus = sum(item.bonus for block in blocks.values() for item in block.values())
    return Progress(single=blocks["single"], double=blocks["double"], bonus=bonus)
