"""
Ranking Change Tracker

Compares a freshly computed ranking with persisted snapshots to tell how
each player moved. Three snapshots are kept:
- last fetched ranking: the ranking of the previous run
- last changed ranking: the previous run's ranking as of the last run
  whose id order differed from the run before it
- last changed ranking points: the same, for the rating map

Deltas are reported against the "last changed" baseline, so the displayed
movement does not reset on every refresh when nothing moved.
"""

from dataclasses import replace
from typing import Dict, List, Optional

from piutop.config import (
    LAST_CHANGED_POINTS_KEY,
    LAST_CHANGED_RANKING_KEY,
    LAST_FETCHED_RANKING_KEY,
)
from piutop.models import RankingEntry
from piutop.storage import SnapshotStore, StoreError
from piutop.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

NEW = "NEW"
UNKNOWN = "?"


def _entry_key(entry: dict):
    # Older snapshots were keyed by player name
    return entry.get("id", entry.get("name"))


def serialize_ranking(ranking: List[RankingEntry]) -> List[dict]:
    return [{"id": entry.id, "name": entry.name, "rating": entry.rating} for entry in ranking]


def _snapshot_entries(snapshot) -> List[dict]:
    """
    Raises:
        StoreError: If a stored snapshot is not a list of entry objects
    """
    if snapshot is None:
        return []
    if not isinstance(snapshot, list) or not all(isinstance(entry, dict) for entry in snapshot):
        raise StoreError(f"Malformed ranking snapshot of type {type(snapshot).__name__}")
    return snapshot


def get_list_of_ids(snapshot: Optional[List[dict]]) -> list:
    return [_entry_key(entry) for entry in _snapshot_entries(snapshot)]


def get_map_of_ratings(snapshot: Optional[List[dict]]) -> Dict:
    return {_entry_key(entry): entry.get("rating") for entry in _snapshot_entries(snapshot)}


def classify_change(player_id, list_prev: list, list_now: list):
    """
    Place change of a player between two id lists.

    Returns:
        "NEW" if absent from the previous list, "?" if absent from the
        current one, else previous index minus current index (positive = up)
    """
    if player_id not in list_prev:
        return NEW
    if player_id not in list_now:
        return UNKNOWN
    return list_prev.index(player_id) - list_now.index(player_id)


def apply_ranking_changes(ranking: List[RankingEntry], list_now: list, list_prev: list,
                          points_map: Dict) -> List[RankingEntry]:
    """Annotate entries with their previous rating and place change."""
    has_prev_list = bool(list_prev)
    annotated = []
    for entry in ranking:
        entry = replace(entry, prev_rating=points_map.get(entry.id))
        if has_prev_list:
            entry = replace(entry, change=classify_change(entry.id, list_prev, list_now))
        annotated.append(entry)
    return annotated


def calculate_ranking_changes(ranking: List[RankingEntry], store: SnapshotStore) -> List[RankingEntry]:
    """
    Classify ranking changes and roll the persisted snapshots forward.

    Storage failures never propagate: they are logged and the ranking is
    returned without change information.

    Args:
        ranking: Current ranking, best first
        store: Key-value store holding the snapshots

    Returns:
        New RankingEntry list with change and prev_rating filled in
    """
    try:
        last_changed_ranking = store.get_item(LAST_CHANGED_RANKING_KEY)
        last_changed_points = store.get_item(LAST_CHANGED_POINTS_KEY)
        last_fetched_ranking = store.get_item(LAST_FETCHED_RANKING_KEY)

        current = serialize_ranking(ranking)
        list_now = get_list_of_ids(current)
        list_last_fetched = get_list_of_ids(last_fetched_ranking)
        list_last_changed = get_list_of_ids(last_changed_ranking)
        map_points_now = get_map_of_ratings(current)
        map_points_last_fetched = get_map_of_ratings(last_fetched_ranking)
        map_points_last_changed = get_map_of_ratings(last_changed_points)

        points_map = map_points_last_changed
        if map_points_now != map_points_last_fetched:
            # Ratings changed since the last fetch
            store.set_item(LAST_CHANGED_POINTS_KEY, last_fetched_ranking)
            points_map = map_points_last_fetched

        list_prev = list_last_changed
        if list_now != list_last_fetched:
            # Order changed since the last fetch
            store.set_item(LAST_CHANGED_RANKING_KEY, last_fetched_ranking)
            list_prev = list_last_fetched

        annotated = apply_ranking_changes(ranking, list_now, list_prev, points_map)
        store.set_item(LAST_FETCHED_RANKING_KEY, current)
    except StoreError as e:
        logger.warning(f"Cannot get ranking from snapshot store: {e}")
        return list(ranking)

    moved = sum(1 for entry in annotated if isinstance(entry.change, int) and entry.change)
    logger.info(f"Ranking changes: {moved} players moved against the last changed snapshot")
    return annotated
