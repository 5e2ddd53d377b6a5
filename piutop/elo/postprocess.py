"""
Profile Post-Processing

The single entry point for the heavy part of a run: grade progress bonus,
starting ratings and the battle replay. It is a pure function of its
inputs, so callers may run it inline or submit it to a background
executor and get identical output.

Usage:
    from piutop.elo.postprocess import get_processed_profiles
    processed = get_processed_profiles(profiles, tracklist, battles)

    from concurrent.futures import ProcessPoolExecutor
    with ProcessPoolExecutor(max_workers=1) as ex:
        processed = submit_processing(ex, profiles, tracklist, battles).result()
"""

from concurrent.futures import Executor, Future
from dataclasses import dataclass, replace
from typing import Dict, List

from piutop.config import BASELINE_RATING
from piutop.elo.engine import replay_battles
from piutop.models import Battle, Profile, ScoreInfo
from piutop.profiles.progress import Tracklist, get_progress


@dataclass
class ProcessedProfiles:
    profiles: Dict[int, Profile]
    score_info: Dict[int, ScoreInfo]
    log_text: str


def prepare_profiles(profiles: Dict[int, Profile], tracklist: Tracklist) -> Dict[int, Profile]:
    """
    Copy profiles with a fresh rating state seeded by the grade progress bonus.

    The input profiles are left untouched.
    """
    prepared = {}
    for player_id, profile in profiles.items():
        progress = get_progress(profile, tracklist)
        prepared[player_id] = replace(
            profile,
            progress=progress,
            rating=BASELINE_RATING + progress.bonus,
            battle_count=0,
            rating_history=[],
            ranking_history=[],
            last_place=None,
        )
    return prepared


def get_processed_profiles(profiles: Dict[int, Profile], tracklist: Tracklist,
                           battles: List[Battle], debug: bool = False) -> ProcessedProfiles:
    """
    Compute ratings and histories for all players.

    Args:
        profiles: Aggregated profiles keyed by player id
        tracklist: Existing charts per level, for the progress bonus
        battles: Battles derived while building leaderboards
        debug: Collect a per-battle log into log_text

    Returns:
        ProcessedProfiles with new profile objects, per-result score info
        and the debug log
    """
    processed = prepare_profiles(profiles, tracklist)
    score_info, log_lines = replay_battles(processed, battles, debug=debug)
    return ProcessedProfiles(
        profiles=processed,
        score_info=score_info,
        log_text="\n".join(log_lines),
    )


def submit_processing(executor: Executor, profiles: Dict[int, Profile], tracklist: Tracklist,
                      battles: List[Battle], debug: bool = False) -> Future:
    """Run get_processed_profiles on a background executor."""
    return executor.submit(get_processed_profiles, profiles, tracklist, battles, debug)
