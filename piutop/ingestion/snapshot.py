"""
Highscores Snapshot Loader

This module loads the full results snapshot exported by the backend
(players, results and shared charts) and validates its top-level shape
before the ranking engine runs on it.

Usage:
    from piutop.ingestion.snapshot import load_snapshot
    data = load_snapshot(path)
"""

import json
from pathlib import Path
from typing import Dict, Optional

from piutop.config import (
    ASSETS_FOLDER,
    MAX_INPUT_SIZE,
    RAW_SNAPSHOT_PATTERN,
    REQUIRED_SNAPSHOT_KEYS,
)
from piutop.models import Player
from piutop.utils import setup_logging, validate_input_size

# --- Module Logger ---
logger = setup_logging(__name__)


class IngestionError(Exception):
    """Custom exception for ingestion errors"""
    pass


class ValidationError(IngestionError):
    """Snapshot does not have the expected shape"""
    pass


class UnresolvedReferenceError(IngestionError):
    """A result refers to a player or chart missing from the snapshot"""
    pass


def validate_snapshot(data) -> None:
    """
    Validate the top-level shape of a highscores snapshot.

    Args:
        data: Decoded JSON object

    Raises:
        ValidationError: If a required key is absent or has the wrong type
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Snapshot must be a JSON object, got {type(data).__name__}")

    if data.get("error"):
        raise ValidationError(f"Backend returned an error: {data['error']}")

    missing = [key for key in REQUIRED_SNAPSHOT_KEYS if key not in data]
    if missing:
        raise ValidationError(f"Snapshot is missing required keys: {', '.join(missing)}")

    if not isinstance(data["players"], dict):
        raise ValidationError("'players' must be a mapping of player id to player")
    if not isinstance(data["shared_charts"], dict):
        raise ValidationError("'shared_charts' must be a mapping of chart id to chart")
    if not isinstance(data["results"], list):
        raise ValidationError("'results' must be an array of results")

    for index, result in enumerate(data["results"]):
        if not isinstance(result, dict):
            raise ValidationError(f"Result #{index} is not an object")
        for key in ("player", "shared_chart", "score"):
            if key not in result:
                raise ValidationError(f"Result #{index} is missing required field '{key}'")


def load_snapshot(path: Path) -> dict:
    """
    Read and validate a snapshot JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        Decoded snapshot

    Raises:
        ValidationError: If the file is too large, not JSON, or malformed
    """
    raw = path.read_bytes()
    try:
        validate_input_size(raw, MAX_INPUT_SIZE)
    except ValueError as e:
        raise ValidationError(str(e))

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Failed to decode {path}: {e}")

    validate_snapshot(data)
    logger.info(
        f"Loaded snapshot {path.name}: {len(data['results'])} results, "
        f"{len(data['players'])} players, {len(data['shared_charts'])} charts"
    )
    return data


def find_latest_snapshot(folder: Path | None = None) -> Optional[Path]:
    """Return the newest raw snapshot file, or None if there is none."""
    files = sorted((folder or ASSETS_FOLDER).glob(RAW_SNAPSHOT_PATTERN))
    if not files:
        return None
    return files[-1]


def build_player_directory(players: dict) -> Dict[int, Player]:
    """
    Convert the snapshot's player map into Player records keyed by integer id.

    Raises:
        ValidationError: If a player entry is malformed
    """
    directory = {}
    for player_id, info in players.items():
        try:
            directory[int(player_id)] = Player(
                id=int(player_id),
                nickname=info["nickname"],
                arcade_name=info.get("arcade_name") or "",
                region=info.get("region"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed player entry {player_id!r}: {e}")
    return directory
