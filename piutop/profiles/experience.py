"""
Experience

Experience is a pure function of a result and its chart; a profile's
experience is the plain sum over its accepted results.
"""

from piutop.config import (
    EXP_COOP_BASE,
    EXP_DOUBLE_MULTIPLIER,
    EXP_GRADE_MULTIPLIERS,
    EXP_RANK_MULTIPLIER,
    EXP_UNKNOWN_GRADE_MULTIPLIER,
)
from piutop.models import Chart, NormalizedResult


def get_exp(result: NormalizedResult, chart: Chart) -> float:
    """
    Experience for one result.

    Single/double charts give level squared, scaled by grade; coop charts
    and charts without a level give a flat base.
    """
    if chart.is_coop or not chart.chart_level:
        base = EXP_COOP_BASE
    else:
        base = chart.chart_level ** 2

    exp = base * EXP_GRADE_MULTIPLIERS.get(result.grade, EXP_UNKNOWN_GRADE_MULTIPLIER)
    if result.is_rank:
        exp *= EXP_RANK_MULTIPLIER
    if chart.is_double:
        exp *= EXP_DOUBLE_MULTIPLIER
    return exp
