"""
Data Ingestion

Modules:
- snapshot: Load and validate backend highscores snapshots
- normalizer: Convert raw results into normalized results
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "load_snapshot":
        from piutop.ingestion.snapshot import load_snapshot
        return load_snapshot
    if name == "normalize_result":
        from piutop.ingestion.normalizer import normalize_result
        return normalize_result
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
