"""
Elo Rating System

Modules:
- engine: Chronological battle replay and published ranking
- postprocess: Entry point computing processed profiles, inline or in background
- ranking_changes: Place changes against persisted ranking snapshots
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "replay_battles":
        from piutop.elo.engine import replay_battles
        return replay_battles
    if name == "get_ranking":
        from piutop.elo.engine import get_ranking
        return get_ranking
    if name == "get_processed_profiles":
        from piutop.elo.postprocess import get_processed_profiles
        return get_processed_profiles
    if name == "calculate_ranking_changes":
        from piutop.elo.ranking_changes import calculate_ranking_changes
        return calculate_ranking_changes
    if name == "run_engine":
        from piutop.pipeline import run_engine
        return run_engine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
