"""
Central configuration for the PIU Top ranking engine.

All shared constants and configuration values should be defined here
to avoid duplication and ensure consistency across modules.
"""

from pathlib import Path

# --- Project Paths ---
PROJECT_ROOT = Path(__file__).parent.parent
DATA_FOLDER = PROJECT_ROOT / "data"
OUTPUT_FOLDER = DATA_FOLDER / "processed"
ASSETS_FOLDER = DATA_FOLDER / "raw"
SNAPSHOT_STORE_PATH = DATA_FOLDER / "ranking_snapshots.json"

# Input file patterns
RAW_SNAPSHOT_PATTERN = "highscores_*.json"

# --- Input Validation ---
MAX_INPUT_SIZE = 200_000_000  # Maximum snapshot size in bytes (~200MB)
REQUIRED_SNAPSHOT_KEYS = ("players", "results", "shared_charts")

# --- Players ---
UNKNOWN_PLAYER_ARCADE_NAME = "PUMPITUP"  # Machine default profile, not a real player

# --- Grades ---
GRADE_ORDER = {
    '?': 0,
    'F': 1,
    'D': 2,
    'D+': 3,
    'C': 4,
    'C+': 5,
    'B': 6,
    'B+': 7,
    'A': 8,
    'A+': 9,
    'S': 10,
    'SS': 11,
    'SSS': 12,
}
TOP_GRADE = "SSS"
HISTOGRAM_GRADES = ("F", "D", "C", "B", "A", "S", "SS", "SSS")
MAX_CHART_LEVEL = 28

# --- Accuracy Weights ---
PERFECT_WEIGHT = 100
GREAT_WEIGHT = 60
GOOD_WEIGHT = 30
MISS_WEIGHT = -20
SMOOTHED_PERFECT_FACTOR = 10  # sqrt(perfect) * 10 replaces the raw perfect count

# --- Elo System Configuration ---
BASELINE_RATING = 1000  # Starting rating before the grade progress bonus
RATING_FLOOR = 100  # Hard floor: players can never go below this
ELO_DIVISOR = 400
MIN_BATTLES_FOR_RANKING = 20
PLACEMENT_HISTORY_BATTLES = 21  # First battle count that records a place

# Score bonus of rank mode, and tolerance for unrecognized machine bests
RANK_MODE_SCORE_MULTIPLIER = 1.2
UNRECOGNIZED_MAX_SCORE_MULTIPLIER = 1.2

# Margin-of-victory amplification around 0.5
OUTCOME_AMPLIFIER = 5

# --- Dynamic K Configuration ---
K_RATING_LOW = 700  # Ratings at or below map to kRating = 0
K_RATING_SPAN = 800  # kRating reaches 1 at K_RATING_LOW + K_RATING_SPAN
K_BASE = 30
K_RATING_BONUS = 20
K_LEVEL_PIVOT = 25  # Charts of this level use the full per-side cap
K_MIN = 1

# --- Rating History ---
RATING_HISTORY_INTERVAL_MS = 60 * 60 * 1000  # At most one sample per hour

# --- Grade Progress Bonus ---
PROGRESS_GRADES = ("A", "A+", "S", "SS")
PROGRESS_CHART_TYPES = {"single": "S", "double": "D"}
PROGRESS_MIN_FRACTION = 0.1  # ~10% of the charts of a level must reach the grade
PROGRESS_GRADE_WEIGHTS = {"A": 0.4, "A+": 0.5, "S": 0.6, "SS": 0.7}
PROGRESS_LEVEL_DIVISOR = 10

# --- Experience ---
EXP_GRADE_MULTIPLIERS = {
    'SSS': 1.5,
    'SS': 1.4,
    'S': 1.3,
    'A+': 1.2,
    'A': 1.1,
    'B+': 1.0,
    'B': 1.0,
    'C+': 0.9,
    'C': 0.9,
    'D+': 0.8,
    'D': 0.8,
    'F': 0.7,
}
EXP_UNKNOWN_GRADE_MULTIPLIER = 0.8
EXP_COOP_BASE = 100
EXP_RANK_MULTIPLIER = 1.2
EXP_DOUBLE_MULTIPLIER = 1.1

# --- Ranking Snapshots ---
SNAPSHOT_SCHEMA_VERSION = "v3"
LAST_CHANGED_RANKING_KEY = f"lastChangedRanking_{SNAPSHOT_SCHEMA_VERSION}"
LAST_CHANGED_POINTS_KEY = f"lastChangedRankingPoints_{SNAPSHOT_SCHEMA_VERSION}"
LAST_FETCHED_RANKING_KEY = f"lastFetchedRanking_{SNAPSHOT_SCHEMA_VERSION}"

# --- Debug ---
DEBUG = False  # Collect a per-battle log into the engine output

# --- Logging ---
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
