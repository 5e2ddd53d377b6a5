"""
Player Profiles

Modules:
- aggregator: Per-player counters, grade histograms and best-grade results
- achievements: Registry of achievement state machines
- experience: Experience earned per result
- progress: Grade progress bonus added to the starting rating
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "aggregate_profiles":
        from piutop.profiles.aggregator import aggregate_profiles
        return aggregate_profiles
    if name == "get_progress":
        from piutop.profiles.progress import get_progress
        return get_progress
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
