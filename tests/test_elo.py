"""
Tests for Elo calculation functions.
"""

import random
from datetime import datetime, timezone

import pytest

from piutop.config import K_MIN, MIN_BATTLES_FOR_RANKING, RATING_FLOOR
from piutop.elo.engine import (
    PlacementTable,
    battle_outcome,
    expected_score,
    get_adjusted_max_score,
    get_battle_k,
    get_level_k,
    get_ranking,
    rating_delta,
    replay_battles,
    sort_battles,
)
from piutop.models import Battle

HOUR_MS = 60 * 60 * 1000


@pytest.fixture
def duel(make_result, make_chart, make_profile):
    """Two profiles and a factory of battles between them on one S20 chart."""
    chart = make_chart()
    chart.max_score = 1000000
    profiles = {1: make_profile(1), 2: make_profile(2)}

    def _battle(score_a=960000, score_b=950000, date_ms=0, grade_a="A", grade_b="A", index=0):
        date = datetime.fromtimestamp(date_ms / 1000, tz=timezone.utc) if date_ms else None
        return Battle(
            result=make_result(index, 1, score_a, grade=grade_a, date=date),
            enemy_result=make_result(index + 1, 2, score_b, grade=grade_b, date=date),
            chart=chart,
        )

    return profiles, chart, _battle


class TestExpectedScore:
    """Tests for expected_score function."""

    def test_equal_ratings(self):
        assert expected_score(1000, 1000) == 0.5

    def test_symmetry(self):
        assert expected_score(1200, 1000) + expected_score(1000, 1200) == pytest.approx(1.0)

    def test_400_point_gap(self):
        assert expected_score(1400, 1000) == pytest.approx(10 / 11)


class TestBattleOutcome:
    """Tests for battle_outcome function."""

    def test_equal_scores_draw(self):
        assert battle_outcome(900000, 900000, 1000000) == (0.5, 0.5)

    def test_binary_without_max_score(self):
        assert battle_outcome(900000, 800000, None) == (1.0, 0.0)
        assert battle_outcome(800000, 900000, None) == (0.0, 1.0)

    def test_margin_amplified(self):
        s_a, s_b = battle_outcome(960000, 950000, 1000000)
        deficit_a = 1000000 / 960000 - 1
        deficit_b = 1000000 / 950000 - 1
        expected = (deficit_b / (deficit_a + deficit_b) - 0.5) * 5 + 0.5
        assert s_a == pytest.approx(expected)
        assert s_a == pytest.approx(0.7907, abs=1e-3)
        assert s_a + s_b == pytest.approx(1.0)

    def test_clamped(self):
        assert battle_outcome(990000, 500000, 1000000) == (1.0, 0.0)

    def test_bounds(self):
        for score_b in range(500000, 1000001, 50000):
            s_a, s_b = battle_outcome(900000, score_b, 1000000)
            assert 0.0 <= s_a <= 1.0
            assert s_a + s_b == pytest.approx(1.0)


class TestDynamicK:
    """Tests for get_level_k and get_battle_k functions."""

    def test_pivot_level_uses_cap(self):
        assert get_level_k(1100, 25) == pytest.approx(40)

    def test_low_rating_cap(self):
        assert get_level_k(700, 25) == pytest.approx(30)

    def test_high_rating_cap(self):
        assert get_level_k(2000, 25) == pytest.approx(50)

    def test_above_pivot_capped(self):
        assert get_level_k(2000, 28) == pytest.approx(50)

    def test_lower_level_scaled(self):
        assert get_level_k(1100, 12) == pytest.approx(40 * (12 / 25) ** 2.5)

    def test_missing_level_floor(self):
        assert get_level_k(1100, None) == K_MIN

    def test_strong_players_fall_off_faster(self):
        assert get_level_k(1500, 10) / get_level_k(1500, 25) < get_level_k(700, 10) / get_level_k(700, 25)

    def test_battle_k_is_minimum(self):
        assert get_battle_k(700, 2000, 25) == pytest.approx(30)
        assert get_battle_k(700, 2000, 25) == get_battle_k(2000, 700, 25)


class TestRatingDelta:
    """Tests for rating_delta function."""

    def test_positive(self):
        assert rating_delta(20, 1.0, 0.5, "A") == pytest.approx(10)

    def test_negative(self):
        assert rating_delta(20, 0.0, 0.5, "A") == pytest.approx(-10)

    def test_sss_never_loses(self):
        assert rating_delta(20, 0.0, 0.5, "SSS") == 0.0

    def test_sss_still_gains(self):
        assert rating_delta(20, 1.0, 0.5, "SSS") == pytest.approx(10)


class TestAdjustedMaxScore:
    """Tests for get_adjusted_max_score function."""

    def test_no_estimate(self, make_result, make_chart):
        battle = Battle(result=make_result(0, 1), enemy_result=make_result(1, 2), chart=make_chart())
        assert get_adjusted_max_score(battle) is None

    def test_casual(self, make_result, make_chart):
        chart = make_chart()
        chart.max_score = 1000000
        battle = Battle(result=make_result(0, 1, 900000), enemy_result=make_result(1, 2, 800000), chart=chart)
        assert get_adjusted_max_score(battle) == 1000000

    def test_rank_mode_bonus(self, make_result, make_chart):
        chart = make_chart()
        chart.max_score = 1000000
        battle = Battle(
            result=make_result(0, 1, 900000, is_rank=True),
            enemy_result=make_result(1, 2, 800000, is_rank=True),
            chart=chart,
        )
        assert get_adjusted_max_score(battle) == pytest.approx(1200000)

    def test_unrecognized_rank_mode_widened(self, make_result, make_chart):
        chart = make_chart()
        chart.max_score = 1000000
        battle = Battle(
            result=make_result(0, 1, 1100000, is_exact_date=False),
            enemy_result=make_result(1, 2, 800000),
            chart=chart,
        )
        assert get_adjusted_max_score(battle) == pytest.approx(1200000)

    def test_exact_dates_not_widened(self, make_result, make_chart):
        chart = make_chart()
        chart.max_score = 1000000
        top = make_result(0, 1, 1100000)
        chart.results = [top, make_result(1, 2, 800000)]
        battle = Battle(result=top, enemy_result=chart.results[1], chart=chart)
        assert get_adjusted_max_score(battle) == 1100000

    def test_falls_back_to_top_score(self, make_result, make_chart):
        chart = make_chart()
        chart.max_score = 1000000
        top = make_result(0, 1, 1300000, is_exact_date=False)
        chart.results = [top, make_result(1, 2, 800000)]
        battle = Battle(result=top, enemy_result=chart.results[1], chart=chart)
        assert get_adjusted_max_score(battle) == 1300000


class TestPlacementTable:
    """Tests for PlacementTable."""

    def test_places_by_rating(self, make_profile):
        profiles = {1: make_profile(1, 1000), 2: make_profile(2, 1200), 3: make_profile(3, 900)}
        table = PlacementTable(profiles)
        assert [table.place(profiles[i]) for i in (1, 2, 3)] == [2, 1, 3]

    def test_ties_by_player_id(self, make_profile):
        profiles = {5: make_profile(5, 1000), 2: make_profile(2, 1000)}
        table = PlacementTable(profiles)
        assert table.place(profiles[2]) == 1
        assert table.place(profiles[5]) == 2

    def test_update_and_add(self, make_profile):
        profiles = {1: make_profile(1, 1000), 2: make_profile(2, 1200)}
        table = PlacementTable(profiles)
        profiles[1].rating = 1300
        table.update(profiles[1])
        newcomer = make_profile(3, 1250)
        table.add(newcomer)
        assert [table.place(p) for p in (profiles[1], newcomer, profiles[2])] == [1, 2, 3]


class TestReplayBattles:
    """Tests for replay_battles function."""

    def test_winner_gains_loser_loses(self, duel):
        profiles, _, battle = duel
        replay_battles(profiles, [battle()])
        assert profiles[1].rating > 1000 > profiles[2].rating
        assert profiles[1].battle_count == profiles[2].battle_count == 1

    def test_binary_outcome_without_max_score(self, make_result, make_chart, make_profile):
        profiles = {1: make_profile(1), 2: make_profile(2)}
        chart = make_chart(label="S10")
        battle = Battle(result=make_result(0, 1, 900000), enemy_result=make_result(1, 2, 800000), chart=chart)
        replay_battles(profiles, [battle])
        k = get_battle_k(1000, 1000, 10)
        assert profiles[1].rating == pytest.approx(1000 + k * 0.5)
        assert profiles[2].rating == pytest.approx(1000 - k * 0.5)

    def test_histories_non_decreasing(self, duel):
        profiles, _, battle = duel
        rng = random.Random(3)
        battles = [battle(date_ms=rng.randrange(1, 10 ** 10), index=2 * i) for i in range(40)]
        replay_battles(profiles, battles)
        for profile in profiles.values():
            rating_dates = [point.date for point in profile.rating_history]
            place_dates = [point.date for point in profile.ranking_history]
            assert rating_dates == sorted(rating_dates)
            assert place_dates == sorted(place_dates)
            assert profile.rating >= RATING_FLOOR

    def test_zero_sum_without_protection(self, duel):
        profiles, _, battle = duel
        replay_battles(profiles, [battle(index=2 * i) for i in range(10)])
        assert profiles[1].rating + profiles[2].rating == pytest.approx(2000)

    def test_sss_protection(self, duel):
        profiles, _, battle = duel
        replay_battles(profiles, [battle(score_a=990000, score_b=995000, grade_a="SSS")])
        assert profiles[1].rating == 1000
        assert profiles[2].rating > 1000

    def test_rating_floor(self, duel):
        profiles, _, battle = duel
        profiles[2].rating = RATING_FLOOR + 0.01
        replay_battles(profiles, [battle(score_a=990000, score_b=500000)])
        assert profiles[2].rating == RATING_FLOOR

    def test_score_info(self, duel):
        profiles, _, battle = duel
        score_info, _ = replay_battles(profiles, [battle(index=0), battle(index=0)])
        first = score_info[0]
        assert first.starting_rating == pytest.approx(profiles[1].rating - first.rating_diff_last)
        assert first.rating_diff == pytest.approx(profiles[1].rating - 1000)
        assert score_info[1].rating_diff == pytest.approx(profiles[2].rating - 1000)

    def test_rating_history_sampled_hourly(self, duel):
        profiles, _, battle = duel
        start = 1_700_000_000_000
        battles = [
            battle(date_ms=start, index=0),
            battle(date_ms=start + HOUR_MS // 2, index=2),
            battle(date_ms=start + 2 * HOUR_MS, index=4),
        ]
        replay_battles(profiles, battles)
        assert [point.date for point in profiles[1].rating_history] == [start, start + 2 * HOUR_MS]

    def test_placement_history_starts_after_threshold(self, duel):
        profiles, _, battle = duel
        replay_battles(profiles, [battle(index=2 * i) for i in range(MIN_BATTLES_FOR_RANKING)])
        assert profiles[1].ranking_history == []

        replay_battles(profiles, [battle(index=100)])
        assert len(profiles[1].ranking_history) == 1
        assert profiles[1].ranking_history[0].place == 1
        assert profiles[2].ranking_history[0].place == 2

    def test_unseen_player_created(self, duel, make_result):
        profiles, chart, _ = duel
        stranger = Battle(result=make_result(0, 7, 950000), enemy_result=make_result(1, 1, 900000), chart=chart)
        replay_battles(profiles, [stranger])
        assert profiles[7].battle_count == 1
        assert profiles[7].rating > 1000

    def test_debug_log(self, duel):
        profiles, _, battle = duel
        _, lines = replay_battles(profiles, [battle()], debug=True)
        assert lines[0].startswith("S20 - P1 / P2")
        assert len(lines) == 3

    def test_no_log_without_debug(self, duel):
        profiles, _, battle = duel
        assert replay_battles(profiles, [battle()])[1] == []


class TestSortBattles:
    """Tests for sort_battles function."""

    def test_chronological_missing_dates_first(self, duel):
        _, _, battle = duel
        late, undated, early = battle(date_ms=2000, index=0), battle(index=2), battle(date_ms=1000, index=4)
        assert sort_battles([late, undated, early]) == [undated, early, late]


class TestGetRanking:
    """Tests for get_ranking function."""

    def test_threshold_and_order(self, make_profile):
        profiles = {
            1: make_profile(1, 1100.4, battle_count=MIN_BATTLES_FOR_RANKING),
            2: make_profile(2, 1250.5, battle_count=50),
            3: make_profile(3, 1300, battle_count=MIN_BATTLES_FOR_RANKING - 1),
            4: make_profile(4, 1100.4, battle_count=30),
        }
        ranking = get_ranking(profiles)
        assert [entry.id for entry in ranking] == [2, 1, 4]
        assert [entry.rating for entry in ranking] == [1251, 1100, 1100]
        assert ranking[0].rating_raw == 1250.5

    def test_empty(self):
        assert get_ranking({}) == []
