"""
Elo Rating Engine for PIU Top

This module replays battles between leaderboard entries in chronological
order and maintains a live Elo-like rating per player. It includes:
- Margin-of-victory outcomes derived from the chart's maximum-score estimate
- Dynamic K-factor based on both ratings and the chart level
- SSS protection: a top-grade result never loses rating
- Sparse placement and rating histories for trajectory charts

Usage:
    from piutop.elo.engine import replay_battles, get_ranking
"""

import statistics
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from piutop.config import (
    BASELINE_RATING,
    ELO_DIVISOR,
    K_BASE,
    K_LEVEL_PIVOT,
    K_MIN,
    K_RATING_BONUS,
    K_RATING_LOW,
    K_RATING_SPAN,
    MIN_BATTLES_FOR_RANKING,
    OUTCOME_AMPLIFIER,
    PLACEMENT_HISTORY_BATTLES,
    RANK_MODE_SCORE_MULTIPLIER,
    RATING_FLOOR,
    RATING_HISTORY_INTERVAL_MS,
    TOP_GRADE,
    UNRECOGNIZED_MAX_SCORE_MULTIPLIER,
)
from piutop.models import (
    Battle,
    NormalizedResult,
    PlacePoint,
    Profile,
    RankingEntry,
    RatingPoint,
    ScoreInfo,
)
from piutop.utils import clamp, round_half_up, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


def expected_score(rating_a, rating_b):
    """Calculate expected probability of player A beating player B"""
    return 1 / (1 + 10 ** ((rating_b - rating_a) / ELO_DIVISOR))


def get_adjusted_max_score(battle: Battle) -> Optional[float]:
    """
    Maximum achievable score used to judge the margin of a battle.

    The chart's estimate gets the rank mode bonus. If a casual battle still
    beats the estimate and one of its dates is inexact, the machine most
    likely failed to recognize rank mode, so the estimate is widened by 20%.
    If that is not enough either, the best score on the chart is used.

    Returns:
        None if the chart has no maximum-score estimate
    """
    chart = battle.chart
    if not chart.max_score:
        return None

    score_a = battle.result.score
    score_b = battle.enemy_result.score
    max_score = chart.max_score * (RANK_MODE_SCORE_MULTIPLIER if battle.is_rank else 1)

    if (
        max(max_score, score_a, score_b) != max_score
        and not battle.is_rank
        and (not battle.result.is_exact_date or not battle.enemy_result.is_exact_date)
    ):
        max_score *= UNRECOGNIZED_MAX_SCORE_MULTIPLIER

    if max(max_score, score_a, score_b) != max_score:
        max_score = chart.top_score

    return max_score


def battle_outcome(score_a, score_b, max_score=None) -> Tuple[float, float]:
    """
    Actual scores (S_A, S_B) of a battle, each within [0, 1] and summing to 1.

    With a maximum score, each side's deficit to the maximum decides the
    outcome and the margin is amplified around 0.5. Without one, the
    outcome is binary.
    """
    if score_a == score_b:
        return 0.5, 0.5

    if max_score and score_a and score_b:
        deficit_a = max_score / score_a - 1
        deficit_b = max_score / score_b - 1
        total = deficit_a + deficit_b
        s_a = (deficit_b / total - 0.5) * OUTCOME_AMPLIFIER + 0.5
        s_a = clamp(s_a, 0.0, 1.0)
        return s_a, 1.0 - s_a

    s_a = 1.0 if score_a > score_b else 0.0
    return s_a, 1.0 - s_a


def get_level_k(rating, chart_level):
    """
    Level-scaled K-factor for one side of a battle.

    Higher-rated players are capped higher but their K falls off faster
    on charts below the pivot level.
    """
    k_rating = clamp((rating - K_RATING_LOW) / K_RATING_SPAN, 0.0, 1.0)
    max_k = K_BASE + K_RATING_BONUS * k_rating
    level = chart_level or 0
    scaled = (level / K_LEVEL_PIVOT) ** ((k_rating - 0.5) * 5 + 2.5) * max_k
    return clamp(scaled, K_MIN, max_k)


def get_battle_k(rating_a, rating_b, chart_level):
    """Effective K of a battle: the less sensitive side dominates."""
    return min(get_level_k(rating_a, chart_level), get_level_k(rating_b, chart_level))


def rating_delta(k, actual, expected, grade):
    """Rating change for one side; an SSS result never loses rating."""
    delta = k * (actual - expected)
    if delta < 0 and grade == TOP_GRADE:
        return 0.0
    return delta


class PlacementTable:
    """Live ratings of every known profile, to compute places after each battle."""

    def __init__(self, profiles: Dict[int, Profile]):
        self._ids = np.array(list(profiles), dtype=np.int64)
        self._ratings = np.array([p.rating for p in profiles.values()], dtype=float)
        self._slots = {player_id: slot for slot, player_id in enumerate(profiles)}

    def add(self, profile: Profile) -> None:
        self._slots[profile.id] = len(self._ids)
        self._ids = np.append(self._ids, profile.id)
        self._ratings = np.append(self._ratings, profile.rating)

    def update(self, profile: Profile) -> None:
        self._ratings[self._slots[profile.id]] = profile.rating

    def place(self, profile: Profile) -> int:
        """1-based place when ordered by rating desc, ties by player id."""
        rating = profile.rating
        higher = np.count_nonzero(self._ratings > rating)
        tied_before = np.count_nonzero((self._ratings == rating) & (self._ids < profile.id))
        return int(higher + tied_before) + 1


def _get_or_create_profile(profiles: Dict[int, Profile], table: PlacementTable,
                           result: NormalizedResult) -> Profile:
    # Players seen only through intermediate results have no aggregated profile
    profile = profiles.get(result.player_id)
    if profile is None:
        profile = Profile(
            id=result.player_id,
            name=result.nickname,
            name_arcade=result.nickname_arcade,
            last_result_date=result.date,
            rating=BASELINE_RATING,
        )
        profiles[result.player_id] = profile
        table.add(profile)
    return profile


def record_place(profile: Profile, place: int, date: int) -> None:
    if (profile.last_place != place and profile.battle_count > MIN_BATTLES_FOR_RANKING) or (
        profile.battle_count == PLACEMENT_HISTORY_BATTLES and not profile.ranking_history
    ):
        profile.ranking_history.append(PlacePoint(place=place, date=date))
    profile.last_place = place


def record_rating(profile: Profile, date: int) -> None:
    history = profile.rating_history
    if not history or history[-1].date < date - RATING_HISTORY_INTERVAL_MS:
        history.append(RatingPoint(rating=profile.rating, date=date))


def sort_battles(battles: Iterable[Battle]) -> List[Battle]:
    """Chronological order by the later of the two results; missing dates sort first."""
    return sorted(battles, key=lambda battle: battle.date_ms)


def replay_battles(profiles: Dict[int, Profile], battles: Iterable[Battle],
                   debug: bool = False) -> Tuple[Dict[int, ScoreInfo], List[str]]:
    """
    Replay all battles chronologically and update profiles in place.

    Args:
        profiles: Profiles keyed by player id, ratings already initialized
        battles: Battles derived while building leaderboards
        debug: Collect a human-readable line block per battle

    Returns:
        Tuple of (score info keyed by result index, debug log lines)
    """
    score_info: Dict[int, ScoreInfo] = {}
    log_lines: List[str] = []
    table = PlacementTable(profiles)
    ordered = sort_battles(battles)

    logger.info(f"Replaying {len(ordered)} battles for {len(profiles)} players...")

    for battle in ordered:
        result, enemy_result, chart = battle.result, battle.enemy_result, battle.chart
        p1 = _get_or_create_profile(profiles, table, result)
        p2 = _get_or_create_profile(profiles, table, enemy_result)
        info1 = score_info.setdefault(result.index, ScoreInfo())
        info2 = score_info.setdefault(enemy_result.index, ScoreInfo())

        # Rating at the start of battle for this score
        info1.starting_rating = p1.rating
        info2.starting_rating = p2.rating
        p1.battle_count += 1
        p2.battle_count += 1

        r1, r2 = p1.rating, p2.rating
        e1 = expected_score(r1, r2)
        e2 = 1 - e1
        max_score = get_adjusted_max_score(battle)
        s1, s2 = battle_outcome(result.score, enemy_result.score, max_score)
        k = get_battle_k(r1, r2, chart.chart_level)
        dr1 = rating_delta(k, s1, e1, result.grade)
        dr2 = rating_delta(k, s2, e2, enemy_result.grade)

        info1.rating_diff += dr1
        info2.rating_diff += dr2
        info1.rating_diff_last = dr1
        info2.rating_diff_last = dr2

        if debug:
            lines = [
                f"{chart.chart_label} - {result.nickname} / {enemy_result.nickname} - {chart.song}",
                f"- {result.score} / {enemy_result.score} ({max_score}) - "
                f"R {s1:.2f}/{s2:.2f} E {e1:.2f} / {e2:.2f}",
                f"- Rating {r1:.2f} / {r2:.2f} - {dr1:.2f} / {dr2:.2f} - K {k:.2f}",
            ]
            log_lines.extend(lines)
            for line in lines:
                logger.debug(line)

        p1.rating = max(RATING_FLOOR, r1 + dr1)
        p2.rating = max(RATING_FLOOR, r2 + dr2)
        table.update(p1)
        table.update(p2)

        battle_date = battle.date_ms
        place1, place2 = table.place(p1), table.place(p2)
        record_place(p1, place1, battle_date)
        record_place(p2, place2, battle_date)
        record_rating(p1, battle_date)
        record_rating(p2, battle_date)

    raw_values = [p.rating for p in profiles.values() if p.battle_count]
    if raw_values:
        logger.info("Rating Distribution (players with battles):")
        logger.info(f"  Min: {min(raw_values):.2f}")
        logger.info(f"  Max: {max(raw_values):.2f}")
        logger.info(f"  Mean: {statistics.mean(raw_values):.2f}")
        logger.info(f"  Median: {statistics.median(raw_values):.2f}")
        logger.info(f"  Std Dev: {statistics.stdev(raw_values) if len(raw_values) > 1 else 0:.2f}")

    return score_info, log_lines


def get_ranking(profiles: Dict[int, Profile]) -> List[RankingEntry]:
    """
    Published ranking: players with enough battles, best raw rating first.

    Args:
        profiles: Profiles after all battles were replayed

    Returns:
        RankingEntry list ordered by raw rating desc, ties by player id
    """
    eligible = [p for p in profiles.values() if p.battle_count >= MIN_BATTLES_FOR_RANKING]
    eligible.sort(key=lambda p: (-p.rating, p.id))
    return [
        RankingEntry(
            id=p.id,
            name=p.name,
            name_arcade=p.name_arcade,
            rating=round_half_up(p.rating),
            rating_raw=p.rating,
            accuracy=p.accuracy,
            count=p.count,
            battle_count=p.battle_count,
        )
        for p in eligible
    ]
