"""
Chart Leaderboard Builder

Builds per-chart leaderboards from the stream of normalized results:
- at most one current best entry per (player, rank mode) on every chart
- unknown-player entries only ever occupy the first place
- best grade per (player, chart), newer results winning ties
- a maximum-score estimate per chart, from its best entry with known accuracy

Usage:
    from piutop.leaderboard.builder import build_leaderboards
    state = build_leaderboards(data, players)
"""

import re
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from piutop.config import GRADE_ORDER, RANK_MODE_SCORE_MULTIPLIER
from piutop.ingestion.normalizer import normalize_result
from piutop.ingestion.snapshot import UnresolvedReferenceError
from piutop.leaderboard.battles import extract_battles
from piutop.models import Battle, Chart, NormalizedResult, Player
from piutop.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

# "S17" -> ("S", "17"), "COOP3" -> ("COOP", "3")
CHART_LABEL_RE = re.compile(r"\D+|\d+")


@dataclass
class LeaderboardState:
    """Everything the builder produces, handed to the aggregation stages."""
    charts: Dict[int, Chart] = field(default_factory=dict)
    mapped_results: List[NormalizedResult] = field(default_factory=list)
    battles: List[Battle] = field(default_factory=list)
    top_results: Dict[Tuple[int, int, bool], NormalizedResult] = field(default_factory=dict)
    best_grade_results: Dict[Tuple[int, int], NormalizedResult] = field(default_factory=dict)
    skipped_count: int = 0

    def is_best_grade_on_chart(self, result: NormalizedResult) -> bool:
        key = (result.shared_chart_id, result.player_id)
        return self.best_grade_results.get(key) is result


def parse_chart_label(label: str) -> Tuple[str, str, int | None]:
    """
    Split a compact chart label into its type prefix and level.

    Returns:
        (upper-cased label, chart type, level or None)
    """
    label = (label or "").upper()
    parts = CHART_LABEL_RE.findall(label)
    chart_type = parts[0] if parts else ""
    chart_level = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else None
    return label, chart_type, chart_level


def create_chart(shared_chart_id: int, info: dict) -> Chart:
    label, chart_type, chart_level = parse_chart_label(info.get("chart_label"))
    return Chart(
        shared_chart_id=shared_chart_id,
        song=info.get("track_name"),
        chart_label=label,
        chart_type=chart_type,
        chart_level=chart_level,
        duration=info.get("duration"),
        max_total_steps=info.get("max_total_steps"),
    )


def _get_chart(state: LeaderboardState, raw: dict, shared_charts: dict) -> Chart:
    try:
        shared_chart_id = int(raw["shared_chart"])
    except (KeyError, TypeError, ValueError):
        raise UnresolvedReferenceError(f"Result {raw.get('id')!r} has no usable shared chart id")

    chart = state.charts.get(shared_chart_id)
    if chart is None:
        info = shared_charts.get(str(shared_chart_id), shared_charts.get(shared_chart_id))
        if info is None:
            raise UnresolvedReferenceError(f"Unknown shared chart {shared_chart_id} in result {raw.get('id')!r}")
        chart = create_chart(shared_chart_id, info)
        state.charts[shared_chart_id] = chart
    return chart


def insert_result(state: LeaderboardState, chart: Chart, result: NormalizedResult) -> bool:
    """
    Offer a result to its chart's leaderboard.

    The result replaces the player's current entry for the same rank mode
    only when it scores strictly higher. Ties keep the existing relative
    order: the new entry goes after every entry with an equal score.

    Returns:
        True if the result was placed on the leaderboard
    """
    key = (chart.shared_chart_id, result.player_id, result.is_rank)
    current = state.top_results.get(key)
    if current is not None and current.score >= result.score:
        return False

    if current is not None and current in chart.results:
        chart.results.remove(current)

    new_index = bisect_right(chart.results, -result.score, key=lambda r: -r.score)
    state.top_results[key] = result
    chart.total_results_count += 1

    if result.is_unknown_player and new_index != 0:
        return False

    chart.results.insert(new_index, result)
    if result.date is not None and (chart.latest_score_date is None or chart.latest_score_date < result.date):
        chart.latest_score_date = result.date

    state.battles.extend(extract_battles(result, chart))
    return True


def update_best_grade(state: LeaderboardState, result: NormalizedResult) -> None:
    """Track the best grade per (player, chart); newer results win ties."""
    if result.is_intermediate:
        return
    key = (result.shared_chart_id, result.player_id)
    current = state.best_grade_results.get(key)
    if current is None or GRADE_ORDER.get(current.grade, 0) <= GRADE_ORDER.get(result.grade, 0):
        state.best_grade_results[key] = result


def estimate_max_score(result: NormalizedResult) -> float:
    """Score implied by a 100% accuracy run, without the rank mode bonus."""
    multiplier = RANK_MODE_SCORE_MULTIPLIER if result.is_rank else 1
    return result.score / result.accuracy_raw * 100 / multiplier


def finalize_max_scores(charts: Dict[int, Chart]) -> None:
    """Derive each chart's maximum-score estimate once all leaderboards are built."""
    for chart in charts.values():
        chart.max_score_with_accuracy = 0
        chart.max_score_result = None
        for result in chart.results:
            if result.accuracy_raw and chart.max_score_with_accuracy < result.score:
                chart.max_score_result = result
                chart.max_score_with_accuracy = result.score
        if chart.max_score_with_accuracy:
            chart.max_score = estimate_max_score(chart.max_score_result)


def build_leaderboards(data: dict, players: Dict[int, Player]) -> LeaderboardState:
    """
    Normalize every raw result and build the chart leaderboards.

    Records referring to unknown players or charts are skipped with a warning.

    Args:
        data: Validated snapshot with 'results' and 'shared_charts'
        players: Player directory keyed by id

    Returns:
        LeaderboardState with charts, mapped results and battles
    """
    state = LeaderboardState()
    shared_charts = data["shared_charts"]

    for index, raw in enumerate(data["results"]):
        try:
            chart = _get_chart(state, raw, shared_charts)
            result = normalize_result(raw, players, chart, index)
        except UnresolvedReferenceError as e:
            state.skipped_count += 1
            logger.warning(f"Skipping result #{index}: {e}")
            continue

        state.mapped_results.append(result)
        insert_result(state, chart, result)
        update_best_grade(state, result)

    finalize_max_scores(state.charts)

    logger.info(
        f"Built {len(state.charts)} leaderboards from {len(state.mapped_results)} results "
        f"({state.skipped_count} skipped), {len(state.battles)} battles"
    )
    return state
