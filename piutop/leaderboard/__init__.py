"""
Chart Leaderboards

Modules:
- builder: Per-chart leaderboards, best grades and maximum-score estimates
- battles: Head-to-head battles between leaderboard entries
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "build_leaderboards":
        from piutop.leaderboard.builder import build_leaderboards
        return build_leaderboards
    if name == "extract_battles":
        from piutop.leaderboard.battles import extract_battles
        return extract_battles
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
