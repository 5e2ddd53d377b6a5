"""
Tests for ranking change tracking.
"""

import json

import pytest

from piutop.config import LAST_CHANGED_RANKING_KEY, LAST_FETCHED_RANKING_KEY
from piutop.elo.ranking_changes import (
    NEW,
    UNKNOWN,
    calculate_ranking_changes,
    classify_change,
    get_list_of_ids,
    get_map_of_ratings,
)
from piutop.models import RankingEntry
from piutop.storage import JsonFileStore, MemoryStore, SnapshotStore, StoreError


def ranking(*entries):
    return [RankingEntry(id=i, name=f"P{i}", name_arcade=f"P{i}", rating=r, rating_raw=float(r))
            for i, r in entries]


class BrokenStore(SnapshotStore):
    def get_item(self, key):
        raise StoreError("unavailable")

    def set_item(self, key, value):
        raise StoreError("unavailable")


class TestClassifyChange:
    """Tests for classify_change function."""

    def test_moved_up(self):
        assert classify_change(3, [1, 2, 3], [3, 1, 2]) == 2

    def test_moved_down(self):
        assert classify_change(1, [1, 2, 3], [2, 3, 1]) == -2

    def test_same_place(self):
        assert classify_change(2, [1, 2], [1, 2]) == 0

    def test_new(self):
        assert classify_change(4, [1, 2], [4, 1, 2]) == NEW

    def test_dropped_out(self):
        assert classify_change(2, [1, 2], [1]) == UNKNOWN


class TestSnapshotHelpers:
    """Tests for snapshot id and rating maps."""

    def test_ids(self):
        assert get_list_of_ids([{"id": 2, "rating": 1100}, {"id": 1, "rating": 1000}]) == [2, 1]

    def test_legacy_name_keys(self):
        assert get_list_of_ids([{"name": "ALPHA", "rating": 1100}]) == ["ALPHA"]

    def test_missing_snapshot(self):
        assert get_list_of_ids(None) == []
        assert get_map_of_ratings(None) == {}


class TestCalculateRankingChanges:
    """Tests for calculate_ranking_changes function."""

    @pytest.fixture
    def store(self):
        return MemoryStore()

    def test_first_run_has_no_changes(self, store):
        result = calculate_ranking_changes(ranking((1, 1100), (2, 1000)), store)
        assert [e.change for e in result] == [None, None]
        assert [e.prev_rating for e in result] == [None, None]
        assert get_list_of_ids(store.get_item(LAST_FETCHED_RANKING_KEY)) == [1, 2]

    def test_order_change_reported(self, store):
        calculate_ranking_changes(ranking((1, 1100), (2, 1000)), store)
        calculate_ranking_changes(ranking((1, 1100), (2, 1000)), store)
        result = calculate_ranking_changes(ranking((2, 1150), (1, 1100), (3, 1050)), store)
        assert [(e.id, e.change) for e in result] == [(2, 1), (1, -1), (3, NEW)]
        assert [e.prev_rating for e in result] == [1000, 1100, None]

    def test_changes_persist_until_next_change(self, store):
        calculate_ranking_changes(ranking((1, 1100), (2, 1000)), store)
        calculate_ranking_changes(ranking((2, 1150), (1, 1100)), store)
        baseline = store.get_item(LAST_CHANGED_RANKING_KEY)
        result = calculate_ranking_changes(ranking((2, 1150), (1, 1100)), store)
        assert store.get_item(LAST_CHANGED_RANKING_KEY) == baseline
        assert [(e.id, e.change) for e in result] == [(2, 1), (1, -1)]
        assert [e.prev_rating for e in result] == [1000, 1100]

    def test_baseline_rolls_forward(self, store):
        calculate_ranking_changes(ranking((1, 1100), (2, 1000)), store)
        calculate_ranking_changes(ranking((2, 1150), (1, 1100)), store)
        assert get_list_of_ids(store.get_item(LAST_CHANGED_RANKING_KEY)) == [1, 2]
        result = calculate_ranking_changes(ranking((1, 1200), (2, 1150)), store)
        assert get_list_of_ids(store.get_item(LAST_CHANGED_RANKING_KEY)) == [2, 1]
        assert [(e.id, e.change) for e in result] == [(1, 1), (2, -1)]

    def test_input_not_mutated(self, store):
        current = ranking((1, 1100), (2, 1000))
        calculate_ranking_changes(current, store)
        calculate_ranking_changes(ranking((2, 1150), (1, 1100)), store)
        assert current[0].change is None

    @pytest.mark.parametrize("stored", [{"1": 1000}, [None], "ranking"])
    def test_malformed_snapshot_returns_ranking(self, tmp_path, stored):
        path = tmp_path / "snapshots.json"
        path.write_text(json.dumps({LAST_FETCHED_RANKING_KEY: stored}), encoding="utf-8")
        result = calculate_ranking_changes(ranking((1, 1100), (2, 1000)), JsonFileStore(path))
        assert [e.id for e in result] == [1, 2]
        assert all(e.change is None and e.prev_rating is None for e in result)

    def test_malformed_snapshot_rejected(self):
        with pytest.raises(StoreError):
            get_list_of_ids([None])
        with pytest.raises(StoreError):
            get_map_of_ratings({"1": 1000})

    def test_store_failure_returns_ranking(self):
        current = ranking((1, 1100), (2, 1000))
        result = calculate_ranking_changes(current, BrokenStore())
        assert [e.id for e in result] == [1, 2]
        assert all(e.change is None for e in result)
