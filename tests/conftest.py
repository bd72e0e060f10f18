"""Test configuration — shared rows/sessions fixtures, liftlog importable from the repo root."""
import sys
from pathlib import Path

import pytest

# Add project root to path so `from liftlog.xxx import` works without installing
sys.path.insert(0, str(Path(__file__).parent.parent))


def make_row(**overrides) -> dict:
    """Minimal normalized set row; override any field."""
    row = {
        "title": "Push Day",
        "start_time": "2024-01-01T10:00:00",
        "end_time": "",
        "description": "",
        "exercise_title": "Bench Press (Barbell)",
        "superset_id": "",
        "exercise_notes": "",
        "set_type": "normal",
        "set_index": 0,
        "weight_lbs": None,
        "weight_kg": None,
        "reps": None,
        "distance_miles": None,
        "duration_seconds": None,
        "rpe": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def row():
    return make_row


@pytest.fixture
def bench_rows():
    """Bench Press over 3 sessions: day 1 (135×10, 155×8, 175×5), day 30 (180×5), day 60 (185×5)."""
    day1, day30, day60 = "2024-01-01T10:00:00", "2024-01-30T10:00:00", "2024-02-29T10:00:00"
    return [
        make_row(start_time=day1, set_index=0, weight_lbs=135.0, reps=10),
        make_row(start_time=day1, set_index=1, weight_lbs=155.0, reps=8),
        make_row(start_time=day1, set_index=2, weight_lbs=175.0, reps=5),
        make_row(start_time=day30, set_index=0, weight_lbs=180.0, reps=5),
        make_row(start_time=day60, set_index=0, weight_lbs=185.0, reps=5),
    ]


@pytest.fixture
def bench_sessions(bench_rows):
    from liftlog.sessions import build_sessions
    return build_sessions(bench_rows)


@pytest.fixture
def mapping():
    return {
        "exercises": {
            "Bench Press (Barbell)": {"primary": ["Chest"], "secondary": ["Triceps", "Front Delts"]},
            "Squat (Barbell)": {"primary": ["Quads", "Glutes"], "secondary": ["Hamstrings"]},
            "Bicep Curl (Dumbbell)": {"primary": ["Biceps"], "secondary": []},
        },
        "radarGroups": ["Chest", "Shoulders", "Triceps", "Biceps", "Quads", "Glutes", "Hamstrings"],
        "muscleAliases": {"Front Delts": "Shoulders"},
    }
