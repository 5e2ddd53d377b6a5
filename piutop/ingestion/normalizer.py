"""
Result Normalizer

Converts raw backend score records into NormalizedResult objects:
- back-fills a single missing judgment count from the chart's step count
- guesses the grade of unrecognized results from their judgments
- derives smoothed and raw accuracy
"""

import math
from typing import Dict, Optional, Tuple

from piutop.config import (
    GOOD_WEIGHT,
    GREAT_WEIGHT,
    MISS_WEIGHT,
    PERFECT_WEIGHT,
    SMOOTHED_PERFECT_FACTOR,
    UNKNOWN_PLAYER_ARCADE_NAME,
)
from piutop.ingestion.snapshot import UnresolvedReferenceError
from piutop.models import Chart, NormalizedResult, Player
from piutop.utils import floor_to_hundredths, parse_date

JUDGMENTS = ("perfect", "great", "good", "bad", "miss")
RAW_JUDGMENTS = ("perfects", "greats", "goods", "bads", "misses")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def repair_judgments(judgments: Dict[str, Optional[int]], max_total_steps) -> Dict[str, Optional[int]]:
    """
    Back-fill the only missing judgment count.

    When exactly one count is missing and the chart's total step count is
    known, the missing count is whatever the other four leave over.
    Anything else is returned untouched.
    """
    repaired = dict(judgments)
    if not max_total_steps:
        return repaired

    missing = [name for name in JUDGMENTS if not _is_number(judgments.get(name))]
    if len(missing) != 1:
        return repaired

    known_sum = sum(judgments[name] for name in JUDGMENTS if name != missing[0])
    repaired[missing[0]] = max_total_steps - known_sum
    return repaired


def guess_grade(raw: dict) -> Optional[str]:
    """
    Infer the grade of a result the machine did not recognize.

    Only perfect-combo runs can be inferred: SSS without greats, SS with them.
    """
    grade = raw.get("grade")
    if raw.get("misses") == 0 and raw.get("bads") == 0 and raw.get("goods") == 0:
        greats = raw.get("greats")
        if greats == 0:
            return "SSS"
        if _is_number(greats) and greats > 0:
            return "SS"
    return grade


def _weighted_accuracy(perfect_weight: float, great, good, bad, miss) -> Optional[float]:
    total = perfect_weight + great + good + bad + miss
    if total <= 0:
        # Repaired counts can go negative when the step count is too small
        return None
    points = (
        perfect_weight * PERFECT_WEIGHT
        + great * GREAT_WEIGHT
        + good * GOOD_WEIGHT
        + miss * MISS_WEIGHT
    )
    return floor_to_hundredths(points / total)


def compute_accuracy(judgments: Dict[str, Optional[int]]) -> Tuple[Optional[float], Optional[float]]:
    """
    Calculate (smoothed, raw) accuracy for a judgment set.

    The smoothed value replaces the perfect count with sqrt(perfect) * 10 so
    that long charts do not wash out the other judgments. It is clamped at 0
    and forced to exactly 100 when the raw accuracy is 100.

    Returns:
        (None, None) if any count is unknown, there are no perfects,
        or the judgment total is not positive
    """
    if not all(_is_number(judgments.get(name)) for name in JUDGMENTS):
        return None, None

    perfect = judgments["perfect"]
    if perfect <= 0:
        return None, None

    others = (judgments["great"], judgments["good"], judgments["bad"], judgments["miss"])
    accuracy = _weighted_accuracy(math.sqrt(perfect) * SMOOTHED_PERFECT_FACTOR, *others)
    accuracy_raw = _weighted_accuracy(perfect, *others)
    if accuracy is None or accuracy_raw is None:
        return None, None

    if accuracy < 0:
        accuracy = 0.0
    elif accuracy_raw == 100:
        accuracy = 100.0
    else:
        accuracy = round(accuracy, 2)

    return accuracy, accuracy_raw


def _resolve_player(raw: dict, players: Dict[int, Player]) -> Player:
    try:
        return players[int(raw["player"])]
    except (KeyError, TypeError, ValueError):
        raise UnresolvedReferenceError(f"Unknown player {raw.get('player')!r} in result {raw.get('id')!r}")


def normalize_result(raw: dict, players: Dict[int, Player], chart: Chart, index: int) -> NormalizedResult:
    """
    Convert one raw backend record into a NormalizedResult.

    Args:
        raw: Backend result record
        players: Player directory keyed by id
        chart: Chart the result was played on (used for step-count repair)
        index: Position of the record in the submission stream

    Raises:
        UnresolvedReferenceError: If the player is not in the directory
    """
    player = _resolve_player(raw, players)

    common = dict(
        index=index,
        player_id=player.id,
        shared_chart_id=chart.shared_chart_id,
        nickname=player.nickname,
        nickname_arcade=player.arcade_name,
        is_unknown_player=player.arcade_name == UNKNOWN_PLAYER_ARCADE_NAME,
        date_string=raw.get("gained"),
        date=parse_date(raw.get("gained")),
        is_exact_date=bool(raw.get("exact_gain_date")),
        score=raw.get("score") or 0,
        is_rank=bool(raw.get("rank_mode")),
    )

    if "recognition_notes" not in raw:
        # Short record with minimum info, only useful for battles
        return NormalizedResult(
            **common,
            grade=raw.get("grade"),
            is_intermediate=True,
        )

    judgments = repair_judgments(
        {name: raw.get(raw_name) for name, raw_name in zip(JUDGMENTS, RAW_JUDGMENTS)},
        chart.max_total_steps,
    )
    accuracy, accuracy_raw = compute_accuracy(judgments)

    grade = raw.get("grade")
    if grade == "?":
        grade = guess_grade(raw)

    mods = raw.get("mods_list")
    calories = raw.get("calories")

    return NormalizedResult(
        **common,
        **judgments,
        id=raw.get("id"),
        grade=grade,
        is_intermediate=False,
        combo=raw.get("max_combo"),
        mods=mods,
        is_hj="HJ" in (mods or "").split(" "),
        is_machine_best=raw.get("recognition_notes") == "machine_best",
        is_my_best=raw.get("recognition_notes") == "personal_best",
        score_increase=raw.get("score_increase"),
        calories=calories / 1000 if calories else calories,
        original_chart_mix=raw.get("original_mix"),
        original_chart_label=raw.get("original_label"),
        original_score=raw.get("original_score"),
        accuracy=accuracy,
        accuracy_raw=accuracy_raw,
    )
