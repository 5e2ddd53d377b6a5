"""
Profile Aggregator

Accumulates per-player statistics from the finished leaderboards: play
count, accuracy, grade histogram, best-grade results by grade and level,
last result date, achievements and experience.
"""

from typing import Dict

from piutop.leaderboard.builder import LeaderboardState
from piutop.models import Chart, NormalizedResult, Profile
from piutop.profiles.achievements import advance_achievements, initial_achievement_states
from piutop.profiles.experience import get_exp
from piutop.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


def is_profile_result(result: NormalizedResult) -> bool:
    return not result.is_unknown_player and not result.is_intermediate


def initialize_profile(result: NormalizedResult) -> Profile:
    return Profile(
        id=result.player_id,
        name=result.nickname,
        name_arcade=result.nickname_arcade,
        last_result_date=result.date,
        achievements=initial_achievement_states(),
    )


def apply_result(profile: Profile, result: NormalizedResult, chart: Chart, is_best_grade: bool) -> None:
    """Fold one accepted result into its player's profile."""
    profile.count += 1
    if result.accuracy is not None:
        profile.count_acc += 1
        profile.sum_accuracy += result.accuracy

    bucket = (result.grade or "?").replace("+", "")
    profile.grades[bucket] = profile.grades.get(bucket, 0) + 1

    if is_best_grade and not chart.is_coop:
        profile.results_by_grade.setdefault(result.grade, []).append((result, chart))
        if chart.chart_level is not None:
            profile.results_by_level.setdefault(chart.chart_level, []).append((result, chart))

    if result.is_exact_date and result.date is not None:
        if profile.last_result_date is None or profile.last_result_date < result.date:
            profile.last_result_date = result.date

    profile.achievements = advance_achievements(profile.achievements, result, chart, profile)
    profile.exp += get_exp(result, chart)


def aggregate_profiles(state: LeaderboardState) -> Dict[int, Profile]:
    """
    Build profiles from every eligible leaderboard entry.

    Args:
        state: Finished leaderboards

    Returns:
        Profiles keyed by player id
    """
    profiles: Dict[int, Profile] = {}

    for chart in state.charts.values():
        for result in chart.results:
            if not is_profile_result(result):
                continue
            profile = profiles.get(result.player_id)
            if profile is None:
                profile = profiles[result.player_id] = initialize_profile(result)
            apply_result(profile, result, chart, state.is_best_grade_on_chart(result))

    logger.info(f"Aggregated {len(profiles)} player profiles")
    return profiles
