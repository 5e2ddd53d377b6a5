"""
Helpers shared by the PIU Top pipeline stages.

Logging setup, date and number conversions, and atomic file output.
"""

import json
import logging
import math
import shutil
import tempfile
from datetime import datetime
from pathlib import Path

import pandas as pd

from piutop.config import LOG_DATE_FORMAT, LOG_FORMAT, LOG_LEVEL, OUTPUT_FOLDER


# --- Logging Setup ---
def setup_logging(name: str | None = None, level: int | str = LOG_LEVEL) -> logging.Logger:
    """
    Get a logger that writes to stderr in the project's format.

    Calling it again for the same name does not add a second handler.

    Args:
        name: Logger name, normally the caller's __name__
        level: Level name or number (default: LOG_LEVEL)
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(stream)
    logger.setLevel(level)
    return logger


# --- Dates ---
def parse_date(value) -> datetime | None:
    """
    Parse a backend timestamp into a timezone-aware UTC datetime.

    Returns None for missing or unparseable values.
    """
    if value is None or value == "":
        return None
    timestamp = pd.to_datetime(value, utc=True, errors='coerce')
    if pd.isna(timestamp):
        return None
    return timestamp.to_pydatetime()


def to_epoch_ms(date: datetime | None) -> int:
    """Milliseconds since the epoch; missing dates count as epoch zero."""
    if date is None:
        return 0
    return int(date.timestamp() * 1000)


# --- Numbers ---
def floor_to_hundredths(value: float) -> float:
    return math.floor(value * 100) / 100


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# --- File Operations ---
def cleanup_old_files(pattern: str, keep_file: Path | None = None, folder: Path | None = None) -> list[Path]:
    """
    Delete outdated exports matching a glob pattern.

    Args:
        pattern: Glob pattern, e.g. "ranking_*.csv"
        keep_file: Export that survives the cleanup, normally the one just written
        folder: Folder to clean (default: OUTPUT_FOLDER)

    Returns:
        Paths that were deleted
    """
    logger = setup_logging(__name__)
    keep = keep_file.resolve() if keep_file else None
    removed = []

    for candidate in (folder or OUTPUT_FOLDER).glob(pattern):
        if candidate.resolve() == keep:
            continue
        try:
            candidate.unlink()
        except OSError as e:
            logger.warning(f"Could not delete {candidate}: {e}")
            continue
        removed.append(candidate)
        logger.debug(f"Removed outdated export {candidate}")

    return removed


def _atomic_write(path: Path, suffix: str, write) -> None:
    """Write through a temporary file in the target folder, then move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode='w', suffix=suffix, dir=path.parent, delete=False, encoding='utf-8'
        ) as tmp:
            tmp_path = Path(tmp.name)
            write(tmp)
        shutil.move(str(tmp_path), str(path))
    except Exception:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise


def atomic_write_csv(df, path: Path, **kwargs) -> None:
    """
    Write a DataFrame to CSV without leaving a half-written file behind.

    Extra keyword arguments go to DataFrame.to_csv().
    """
    _atomic_write(path, '.csv', lambda tmp: df.to_csv(tmp, **kwargs))
    setup_logging(__name__).debug(f"Wrote {len(df)} rows to {path}")


def atomic_write_json(data, path: Path) -> None:
    _atomic_write(path, '.json', lambda tmp: json.dump(data, tmp, ensure_ascii=False))


# --- Validation ---
def validate_input_size(payload: str | bytes, max_size: int) -> None:
    """
    Raises:
        ValueError: If the payload is larger than max_size bytes
    """
    if len(payload) > max_size:
        raise ValueError(f"Input too large: {len(payload):,} bytes (limit {max_size:,})")


__all__ = [
    'setup_logging',
    'parse_date',
    'to_epoch_ms',
    'floor_to_hundredths',
    'round_half_up',
    'clamp',
    'cleanup_old_files',
    'atomic_write_csv',
    'atomic_write_json',
    'validate_input_size',
]
