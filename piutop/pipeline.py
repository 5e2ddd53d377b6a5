"""
Ranking Pipeline for PIU Top

This module runs the whole engine on one highscores snapshot:
normalization and leaderboards, profile aggregation, battle replay,
published ranking and ranking changes. Run as a script it processes the
latest raw snapshot and exports CSV tables.

Usage:
    python -m piutop.pipeline
    OR
    from piutop.pipeline import run_engine
    output = run_engine(data, store=MemoryStore())
"""

import sys
from pathlib import Path

# Enable both `python piutop/pipeline.py` and `python -m piutop.pipeline` execution.
_project_root = str(Path(__file__).parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Dict, List, Optional

import pandas as pd

from piutop.config import DEBUG, OUTPUT_FOLDER, SNAPSHOT_STORE_PATH
from piutop.elo.engine import get_ranking
from piutop.elo.postprocess import get_processed_profiles, submit_processing
from piutop.elo.ranking_changes import calculate_ranking_changes
from piutop.ingestion.snapshot import (
    build_player_directory,
    find_latest_snapshot,
    load_snapshot,
    validate_snapshot,
)
from piutop.leaderboard.builder import build_leaderboards
from piutop.models import Chart, NormalizedResult, Profile, RankingEntry, ScoreInfo
from piutop.profiles.aggregator import aggregate_profiles
from piutop.profiles.progress import build_tracklist
from piutop.storage import JsonFileStore, SnapshotStore
from piutop.utils import atomic_write_csv, cleanup_old_files, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


@dataclass
class EngineOutput:
    profiles: Dict[int, Profile]
    shared_charts: Dict[int, Chart]
    mapped_results: List[NormalizedResult]
    ranking: List[RankingEntry]
    score_info: Dict[int, ScoreInfo]
    log_text: str


def run_engine(data: dict, store: Optional[SnapshotStore] = None, debug: bool = DEBUG,
               executor: Optional[Executor] = None) -> EngineOutput:
    """
    Run the ranking engine on a full snapshot.

    Args:
        data: Snapshot with players, results and shared_charts
        store: Snapshot store for ranking changes; skipped when None
        debug: Collect the per-battle log
        executor: Run the battle replay on this executor instead of inline

    Returns:
        EngineOutput with profiles, charts, normalized results and ranking

    Raises:
        ValidationError: If the snapshot has an unexpected shape
    """
    validate_snapshot(data)
    players = build_player_directory(data["players"])

    state = build_leaderboards(data, players)
    profiles = aggregate_profiles(state)
    tracklist = build_tracklist(data["shared_charts"])

    if executor is not None:
        processed = submit_processing(executor, profiles, tracklist, state.battles, debug).result()
    else:
        processed = get_processed_profiles(profiles, tracklist, state.battles, debug=debug)

    ranking = get_ranking(processed.profiles)
    if store is not None:
        ranking = calculate_ranking_changes(ranking, store)

    logger.info(f"Ranking: {len(ranking)} of {len(processed.profiles)} players have enough battles")

    return EngineOutput(
        profiles=processed.profiles,
        shared_charts=state.charts,
        mapped_results=state.mapped_results,
        ranking=ranking,
        score_info=processed.score_info,
        log_text=processed.log_text,
    )


# --- Tables ---
def ranking_to_frame(ranking: List[RankingEntry]) -> pd.DataFrame:
    columns = ['place', 'id', 'name', 'name_arcade', 'rating', 'rating_raw', 'accuracy',
               'count', 'battle_count', 'change', 'prev_rating']
    df = pd.DataFrame([entry.to_dict() for entry in ranking], columns=columns[1:])
    df.insert(0, 'place', range(1, len(df) + 1))
    return df


def rating_history_to_frame(profiles: Dict[int, Profile]) -> pd.DataFrame:
    rows = [
        {'player_id': p.id, 'name': p.name, 'date': point.date, 'rating': round(point.rating, 2)}
        for p in profiles.values()
        for point in p.rating_history
    ]
    df = pd.DataFrame(rows, columns=['player_id', 'name', 'date', 'rating'])
    df['date'] = pd.to_datetime(df['date'].astype('int64'), unit='ms', utc=True)
    return df.sort_values(['player_id', 'date']).reset_index(drop=True)


def placement_history_to_frame(profiles: Dict[int, Profile]) -> pd.DataFrame:
    rows = [
        {'player_id': p.id, 'name': p.name, 'date': point.date, 'place': point.place}
        for p in profiles.values()
        for point in p.ranking_history
    ]
    df = pd.DataFrame(rows, columns=['player_id', 'name', 'date', 'place'])
    df['date'] = pd.to_datetime(df['date'].astype('int64'), unit='ms', utc=True)
    return df.sort_values(['player_id', 'date']).reset_index(drop=True)


def leaderboards_to_frame(charts: Dict[int, Chart]) -> pd.DataFrame:
    rows = [
        {
            'shared_chart_id': chart.shared_chart_id,
            'song': chart.song,
            'chart_label': chart.chart_label,
            'place': place,
            'player_id': result.player_id,
            'nickname': result.nickname,
            'score': result.score,
            'grade': result.grade,
            'accuracy': result.accuracy,
            'is_rank': result.is_rank,
            'date': result.date,
        }
        for chart in charts.values()
        for place, result in enumerate(chart.results, start=1)
    ]
    return pd.DataFrame(rows)


def _snapshot_date_label(output: EngineOutput) -> str:
    dates = [r.date for r in output.mapped_results if r.date is not None]
    return max(dates).strftime('%Y%m%d') if dates else 'undated'


def export_tables(output: EngineOutput, output_folder: Path) -> dict:
    """
    Export ranking, histories and leaderboards as CSV files.

    Returns:
        Dictionary of table name to written path
    """
    date_label = _snapshot_date_label(output)
    tables = {
        'ranking': ranking_to_frame(output.ranking),
        'rating_history': rating_history_to_frame(output.profiles),
        'placement_history': placement_history_to_frame(output.profiles),
        'leaderboards': leaderboards_to_frame(output.shared_charts),
    }

    paths = {}
    for name, df in tables.items():
        path = output_folder / f"{name}_{date_label}.csv"
        atomic_write_csv(df, path, index=False)
        cleanup_old_files(f"{name}_*.csv", keep_file=path, folder=output_folder)
        paths[name] = path
        logger.info(f"  {name}: {path} ({len(df)} rows)")

    return paths


def main():
    snapshot_path = find_latest_snapshot()
    if snapshot_path is None:
        logger.error("No raw highscores snapshot found")
        return None

    logger.info("=" * 60)
    logger.info(f"Processing snapshot {snapshot_path.name}")
    logger.info("=" * 60)

    data = load_snapshot(snapshot_path)
    output = run_engine(data, store=JsonFileStore(SNAPSHOT_STORE_PATH), debug=DEBUG)
    if output.log_text:
        logger.debug("\n" + output.log_text)

    ranking_df = ranking_to_frame(output.ranking)
    logger.info("Top 20 Players by Rating:")
    logger.info("\n" + ranking_df.head(20).to_string(index=False))

    logger.info("Exporting CSV files:")
    export_tables(output, OUTPUT_FOLDER)
    return output


if __name__ == "__main__":
    main()
