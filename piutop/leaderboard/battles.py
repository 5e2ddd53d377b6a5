"""
Battle Extractor

A battle is a synthetic head-to-head comparison between two players'
leaderboard entries on the same chart and rank mode. Battles are derived
every time an entry is inserted into a leaderboard, against the entries
already present, and are never deduplicated.
"""

from typing import List

from piutop.models import Battle, Chart, NormalizedResult


def is_battle_pair(result: NormalizedResult, enemy_result: NormalizedResult) -> bool:
    """Whether two leaderboard entries can be compared head-to-head."""
    return (
        not result.is_unknown_player
        and not enemy_result.is_unknown_player
        and enemy_result.is_rank == result.is_rank
        and enemy_result.player_id != result.player_id
        and bool(result.score)
        and bool(enemy_result.score)
    )


def extract_battles(result: NormalizedResult, chart: Chart) -> List[Battle]:
    """
    Derive battles for a freshly inserted entry.

    Args:
        result: Entry that was just accepted into the chart's leaderboard
        chart: Chart whose leaderboard already contains the entry

    Returns:
        One battle per eligible opponent, in leaderboard order
    """
    if result.is_unknown_player:
        return []
    return [
        Battle(result=result, enemy_result=enemy_result, chart=chart)
        for enemy_result in chart.results
        if is_battle_pair(result, enemy_result)
    ]
