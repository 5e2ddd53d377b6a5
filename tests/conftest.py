"""
Shared builders for raw snapshots and normalized objects.
"""

import pytest

from piutop.leaderboard.builder import create_chart
from piutop.models import NormalizedResult, Profile


def raw_result(result_id, player, shared_chart, score, **overrides):
    raw = {
        "id": result_id,
        "player": player,
        "shared_chart": shared_chart,
        "score": score,
        "grade": "A",
        "gained": "2024-01-01T12:00:00Z",
        "exact_gain_date": True,
        "rank_mode": False,
        "recognition_notes": "personal_best",
        "perfects": 900,
        "greats": 50,
        "goods": 10,
        "bads": 5,
        "misses": 5,
        "max_combo": 400,
        "mods_list": "",
    }
    raw.update(overrides)
    return raw


def chart_info(label="S20", track_name="Song", max_total_steps=970):
    return {"track_name": track_name, "chart_label": label, "max_total_steps": max_total_steps}


def snapshot(results, players=None, shared_charts=None):
    return {
        "players": players if players is not None else {
            "1": {"nickname": "ALPHA", "arcade_name": "ALPHA"},
            "2": {"nickname": "BRAVO", "arcade_name": "BRAVO"},
            "3": {"nickname": "CHARLIE", "arcade_name": "CHARLIE"},
            "9": {"nickname": "PUMPITUP", "arcade_name": "PUMPITUP"},
        },
        "shared_charts": shared_charts if shared_charts is not None else {"10": chart_info()},
        "results": results,
    }


def normalized_result(index=0, player_id=1, score=900000, **overrides):
    fields = dict(
        index=index,
        player_id=player_id,
        shared_chart_id=10,
        nickname=f"P{player_id}",
        nickname_arcade=f"P{player_id}",
        score=score,
        grade="A",
        is_rank=False,
        is_exact_date=True,
        is_unknown_player=False,
        is_intermediate=False,
    )
    fields.update(overrides)
    return NormalizedResult(**fields)


@pytest.fixture
def make_raw_result():
    return raw_result


@pytest.fixture
def make_snapshot():
    return snapshot


@pytest.fixture
def make_chart_info():
    return chart_info


@pytest.fixture
def make_result():
    return normalized_result


@pytest.fixture
def make_chart():
    def _make_chart(shared_chart_id=10, label="S20", **info):
        return create_chart(shared_chart_id, chart_info(label=label, **info))
    return _make_chart


@pytest.fixture
def make_profile():
    def _make_profile(player_id=1, rating=1000, **overrides):
        return Profile(id=player_id, name=f"P{player_id}", name_arcade=f"P{player_id}",
                       rating=rating, **overrides)
    return _make_profile
