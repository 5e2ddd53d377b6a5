"""
Achievements

Every achievement is a named variant with a fixed-shape state and a pure
transition function:

    transition(result, chart, state, profile) -> new state

The registry is closed: profiles carry exactly one state per registered
achievement, and the aggregator threads every result through every
transition in result order.
"""

from dataclasses import dataclass, replace
from functools import partial
from typing import Any, Callable, Dict

from piutop.config import TOP_GRADE
from piutop.models import Chart, NormalizedResult, Profile

COMBO_TARGETS = (500, 1000, 2000)
HJ_TARGET_COUNT = 10
SNIPER_ACCURACY = 99
LOYAL_TARGET_CHARTS = 10


@dataclass(frozen=True)
class AchievementState:
    """
    Attributes:
        progress: Completion percentage, 0-100
        achieved: Whether the achievement is unlocked
        data: Variant-specific immutable payload
    """
    progress: float = 0.0
    achieved: bool = False
    data: Any = None


@dataclass(frozen=True)
class Achievement:
    name: str
    description: str
    transition: Callable[[NormalizedResult, Chart, AchievementState, Profile], AchievementState]
    initial_state: AchievementState = AchievementState()


def _with_progress(state: AchievementState, progress: float, **changes) -> AchievementState:
    progress = min(100.0, max(state.progress, progress))
    return replace(state, progress=progress, achieved=state.achieved or progress >= 100, **changes)


def combo_transition(target, result, chart, state, profile):
    if state.achieved or not result.combo:
        return state
    return _with_progress(state, result.combo / target * 100)


def sss_transition(result, chart, state, profile):
    if state.achieved or result.grade != TOP_GRADE:
        return state
    return _with_progress(state, 100.0)


def hj_transition(result, chart, state, profile):
    if not result.is_hj:
        return state
    count = (state.data or 0) + 1
    return _with_progress(state, count / HJ_TARGET_COUNT * 100, data=count)


def sniper_transition(result, chart, state, profile):
    if state.achieved or result.accuracy is None:
        return state
    return _with_progress(state, result.accuracy / SNIPER_ACCURACY * 100)


def loyal_transition(result, chart, state, profile):
    """Counts distinct charts played per song; data is a frozenset of (song, chart id)."""
    played = state.data or frozenset()
    entry = (chart.song, chart.shared_chart_id)
    if entry in played:
        return state
    played = played | {entry}
    charts_of_song = sum(1 for song, _ in played if song == chart.song)
    return _with_progress(state, charts_of_song / LOYAL_TARGET_CHARTS * 100, data=played)


ACHIEVEMENTS: Dict[str, Achievement] = {
    **{
        f"combo-{target}": Achievement(
            name=f"combo-{target}",
            description=f"Reach a combo of {target}",
            transition=partial(combo_transition, target),
        )
        for target in COMBO_TARGETS
    },
    "sss": Achievement(
        name="sss",
        description="Get an SSS grade",
        transition=sss_transition,
    ),
    "hj-lover": Achievement(
        name="hj-lover",
        description=f"Play {HJ_TARGET_COUNT} results with the HJ modifier",
        transition=hj_transition,
        initial_state=AchievementState(data=0),
    ),
    "sniper": Achievement(
        name="sniper",
        description=f"Reach {SNIPER_ACCURACY}% accuracy",
        transition=sniper_transition,
    ),
    "loyal": Achievement(
        name="loyal",
        description=f"Play {LOYAL_TARGET_CHARTS} different charts of one song",
        transition=loyal_transition,
        initial_state=AchievementState(data=frozenset()),
    ),
}


def initial_achievement_states() -> Dict[str, AchievementState]:
    return {name: achievement.initial_state for name, achievement in ACHIEVEMENTS.items()}


def advance_achievements(states: Dict[str, AchievementState], result: NormalizedResult,
                         chart: Chart, profile: Profile) -> Dict[str, AchievementState]:
    """Run one result through every registered transition."""
    return {
        name: achievement.transition(result, chart, states[name], profile)
        for name, achievement in ACHIEVEMENTS.items()
    }
