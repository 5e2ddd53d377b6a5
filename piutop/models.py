"""
Data model for the ranking engine.

Normalized results are immutable once created. Charts and profiles are
accumulators owned by one pipeline stage at a time and handed on to the
next stage when it finishes.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from piutop.config import BASELINE_RATING, HISTOGRAM_GRADES, MAX_CHART_LEVEL
from piutop.utils import round_half_up, to_epoch_ms


@dataclass(frozen=True)
class Player:
    id: int
    nickname: str
    arcade_name: str
    region: Optional[str] = None


@dataclass(frozen=True)
class NormalizedResult:
    """
    Canonical form of one backend score record.

    Attributes:
        index: Position in the submission stream, used as the result key
        accuracy: Smoothed accuracy (sqrt-perfect weighting), None if unknown
        accuracy_raw: Accuracy using the raw perfect count, None if unknown
        is_intermediate: Short record without judgments, only used for battles
        is_unknown_player: Submitted under the machine's default profile
    """
    index: int
    player_id: int
    shared_chart_id: int
    nickname: str
    nickname_arcade: str
    score: int
    grade: Optional[str]
    is_rank: bool
    is_exact_date: bool
    is_unknown_player: bool
    is_intermediate: bool
    date_string: Optional[str] = None
    date: Optional[datetime] = None
    id: Optional[int] = None
    perfect: Optional[int] = None
    great: Optional[int] = None
    good: Optional[int] = None
    bad: Optional[int] = None
    miss: Optional[int] = None
    combo: Optional[int] = None
    mods: Optional[str] = None
    is_hj: bool = False
    is_machine_best: bool = False
    is_my_best: bool = False
    score_increase: Optional[int] = None
    calories: Optional[float] = None
    original_chart_mix: Optional[str] = None
    original_chart_label: Optional[str] = None
    original_score: Optional[int] = None
    accuracy: Optional[float] = None
    accuracy_raw: Optional[float] = None

    @property
    def date_ms(self) -> int:
        return to_epoch_ms(self.date)


@dataclass
class Chart:
    shared_chart_id: int
    song: str
    chart_label: str
    chart_type: str
    chart_level: Optional[int]
    duration: Optional[str] = None
    max_total_steps: Optional[int] = None
    results: List[NormalizedResult] = field(default_factory=list)
    latest_score_date: Optional[datetime] = None
    total_results_count: int = 0
    max_score_result: Optional[NormalizedResult] = None
    max_score_with_accuracy: int = 0
    max_score: Optional[float] = None

    @property
    def is_coop(self) -> bool:
        return self.chart_type == "COOP"

    @property
    def is_double(self) -> bool:
        return self.chart_type.startswith("D")

    @property
    def top_score(self) -> int:
        """Highest score currently on the leaderboard."""
        return max((r.score for r in self.results), default=0)


@dataclass(frozen=True, eq=False)
class Battle:
    """Head-to-head comparison of two leaderboard entries on one chart."""
    result: NormalizedResult
    enemy_result: NormalizedResult
    chart: Chart

    @property
    def date_ms(self) -> int:
        return max(self.result.date_ms, self.enemy_result.date_ms)

    @property
    def is_rank(self) -> bool:
        return self.result.is_rank


@dataclass(frozen=True)
class RatingPoint:
    rating: float
    date: int


@dataclass(frozen=True)
class PlacePoint:
    place: int
    date: int


@dataclass
class ScoreInfo:
    """Per-result rating annotations recorded while battles are replayed."""
    starting_rating: Optional[float] = None
    rating_diff: float = 0.0
    rating_diff_last: Optional[float] = None


def _empty_grades() -> Dict[str, int]:
    return {grade: 0 for grade in HISTOGRAM_GRADES}


def _empty_levels() -> Dict[int, list]:
    return {level: [] for level in range(1, MAX_CHART_LEVEL + 1)}


@dataclass
class Profile:
    id: int
    name: str
    name_arcade: str
    last_result_date: Optional[datetime] = None
    count: int = 0
    battle_count: int = 0
    count_acc: int = 0
    sum_accuracy: float = 0.0
    grades: Dict[str, int] = field(default_factory=_empty_grades)
    results_by_grade: Dict[str, list] = field(default_factory=dict)
    results_by_level: Dict[int, list] = field(default_factory=_empty_levels)
    achievements: Dict[str, Any] = field(default_factory=dict)
    exp: float = 0.0
    progress: Any = None
    rating: float = BASELINE_RATING
    rating_history: List[RatingPoint] = field(default_factory=list)
    ranking_history: List[PlacePoint] = field(default_factory=list)
    last_place: Optional[int] = None

    @property
    def accuracy(self) -> Optional[float]:
        """Mean smoothed accuracy over results with known accuracy."""
        if self.count_acc == 0:
            return None
        return round_half_up(self.sum_accuracy / self.count_acc * 100) / 100

    @property
    def rating_bonus(self) -> float:
        return self.progress.bonus if self.progress is not None else 0.0


@dataclass
class RankingEntry:
    id: int
    name: str
    name_arcade: str
    rating: int
    rating_raw: float
    accuracy: Optional[float] = None
    count: int = 0
    battle_count: int = 0
    change: Union[int, str, None] = None
    prev_rating: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
