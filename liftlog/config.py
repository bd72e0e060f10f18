"""
Liftlog Analytics — Configuration

Environment settings and every tunable heuristic used by the analytics
engine. Thresholds are named here so they can be validated or overridden
without touching the algorithms.
"""
import json
import os
from pathlib import Path

# ── Environment ──────────────────────────────────────────────────────
CSV_PATH = os.environ.get("LIFTLOG_CSV_PATH", "workout_data.csv")
MUSCLE_MAPPING_PATH = os.environ.get(
    "LIFTLOG_MUSCLE_MAPPING", str(Path(__file__).parent / "muscle_mapping.json")
)
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-1.5-flash")
PORT = int(os.environ.get("LIFTLOG_PORT", "3000"))
LOG_LEVEL = os.environ.get("LIFTLOG_LOG_LEVEL", "INFO")

# ── Ingestion ────────────────────────────────────────────────────────
KG_TO_LBS = 2.20462262185
SESSION_KEY_SEPARATOR = "|||"
UNKNOWN_EXERCISE = "(unknown)"

# ── 1RM formulas ─────────────────────────────────────────────────────
# Brzycki's denominator hits zero at ~36.97 reps
BRZYCKI_MAX_REPS = 36

# ── Training age ─────────────────────────────────────────────────────
TRAINING_AGE_THRESHOLDS = {
    "novice": 6,         # < 6 months
    "intermediate": 24,  # 6-24 months, >= 24 = advanced
}
DAYS_PER_MONTH = 30.44
LOW_CONFIDENCE_MONTHS = 3
MIN_WORKOUTS_PER_WEEK = 2

# ── Trends ───────────────────────────────────────────────────────────
TREND_WINDOW = 4          # sessions per comparison block
TREND_CHANGE_PCT = 2.0    # ±% band for improving / declining
STALL_TOLERANCE = 0.03    # last 2 blocks within 3% of recent avg
STALL_WEEKS = 4           # reported plateau length (approximation, not measured)
TREND_TOP_N = 5

# ── Personal records ─────────────────────────────────────────────────
PR_MIN_WEIGHT = 50        # lbs — drops bodyweight/accessory movements
PR_TOP_N = 10

# ── Forecast ─────────────────────────────────────────────────────────
WEEKLY_GAIN_RATES = {
    "novice": {"base": 0.015, "max": 0.025, "variance": 0.008},
    "intermediate": {"base": 0.006, "max": 0.012, "variance": 0.004},
    "advanced": {"base": 0.002, "max": 0.005, "variance": 0.002},
}
CEILING_MULTIPLIERS = {
    "novice": 2.0,
    "intermediate": 1.4,
    "advanced": 1.15,
}
DEFAULT_TRAINING_AGE = "intermediate"
MOMENTUM = {
    "strong": 1.2,     # positive slope, R² > 0.5
    "normal": 1.0,     # positive slope, weak fit
    "noisy": 0.8,      # R² < 0.3
    "declining": 0.5,  # negative slope with a decent fit
}
MOMENTUM_STRONG_R2 = 0.5
MOMENTUM_NOISY_R2 = 0.3
UPPER_BAND_FACTOR = 1.5
DEFAULT_FORECAST_WEEKS = 12
MAX_FORECAST_WEEKS = 52
MIN_FORECAST_POINTS = 3   # timeline and regression points needed to forecast
MIN_FORECAST_R2 = 0.1     # below this the fit is too poor to project

# ── Muscle volume ────────────────────────────────────────────────────
PRIMARY_MUSCLE_WEIGHT = 1.0
SECONDARY_MUSCLE_WEIGHT = 0.4
TIME_WINDOWS = {
    "3months": 3,
    "1year": 12,
    "all": None,
}

# ── Coach ────────────────────────────────────────────────────────────
BASELINE_WORKOUTS_PER_WEEK = 3
RECENT_SESSIONS_FOR_PROMPT = 5


def load_muscle_mapping(path: str | None = None) -> dict:
    """
    Load the exercise → muscle-group mapping document.

    Expected shape::

        {"exercises": {name: {"primary": [...], "secondary": [...]}},
         "radarGroups": [...], "muscleAliases": {alias: canonical}}

    Missing ``radarGroups`` / ``muscleAliases`` default to empty.
    """
    path = path or MUSCLE_MAPPING_PATH
    with open(path, encoding="utf-8") as fh:
        doc = json.load(fh)

    if not isinstance(doc, dict) or not isinstance(doc.get("exercises"), dict):
        raise ValueError(f"Muscle mapping {path} has no 'exercises' object")

    exercises = {}
    for name, entry in doc["exercises"].items():
        if not isinstance(entry, dict):
            raise ValueError(f"Muscle mapping entry for {name!r} must be an object")
        exercises[name] = {
            "primary": list(entry.get("primary") or []),
            "secondary": list(entry.get("secondary") or []),
        }

    return {
        "exercises": exercises,
        "radarGroups": list(doc.get("radarGroups") or []),
        "muscleAliases": dict(doc.get("muscleAliases") or {}),
    }
