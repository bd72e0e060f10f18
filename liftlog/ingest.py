"""
Liftlog Analytics — CSV Ingestion

Reads a Hevy-style workout export (one row per logged set) and turns every
cell into a well-typed optional value, so the analytics core never sees raw
strings for numeric fields.
"""
import logging
import math
from typing import TypedDict

import pandas as pd

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "title", "start_time", "end_time", "description", "exercise_title",
    "superset_id", "exercise_notes", "set_type",
)
FLOAT_FIELDS = ("weight_lbs", "weight_kg", "distance_miles", "duration_seconds", "rpe")
INT_FIELDS = ("set_index", "reps")


class RawSetRow(TypedDict, total=False):
    title: str
    start_time: str
    end_time: str
    description: str
    exercise_title: str
    superset_id: str
    exercise_notes: str
    set_type: str
    set_index: int | None
    weight_lbs: float | None
    weight_kg: float | None
    reps: int | None
    distance_miles: float | None
    duration_seconds: float | None
    rpe: float | None


def _parse_float(value) -> float | None:
    """'' / None / garbage / NaN → None, otherwise a float."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(num) or math.isinf(num):
        return None
    return num


def _parse_int(value) -> int | None:
    num = _parse_float(value)
    if num is None:
        return None
    return int(num)


def _non_negative(value):
    return value if value is None or value >= 0 else None


def normalize_row(record: dict) -> RawSetRow:
    """Explicit parse-with-default for every field of one CSV record."""
    row: RawSetRow = {}
    for field in TEXT_FIELDS:
        raw = record.get(field)
        row[field] = "" if raw is None else str(raw).strip()
    for field in FLOAT_FIELDS:
        row[field] = _parse_float(record.get(field))
    for field in INT_FIELDS:
        row[field] = _parse_int(record.get(field))

    # Negative loads / reps are not valid sets — treat as missing
    row["weight_lbs"] = _non_negative(row["weight_lbs"])
    row["weight_kg"] = _non_negative(row["weight_kg"])
    row["reps"] = _non_negative(row["reps"])
    if row["set_index"] is not None and row["set_index"] < 0:
        row["set_index"] = None
    return row


def _clean_header(name: str) -> str:
    return str(name).strip().strip('"').strip()


def read_workout_csv(path_or_buffer) -> list[RawSetRow]:
    """
    Read a workout CSV export into a list of normalized rows.

    Header names may be wrapped in quotes (some exports double-quote them).
    Rows with neither a title nor a start_time cannot be keyed into a
    session and are dropped.
    """
    df = pd.read_csv(
        path_or_buffer,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        skipinitialspace=True,
    )
    df.columns = [_clean_header(c) for c in df.columns]

    rows = []
    dropped = 0
    for record in df.to_dict("records"):
        row = normalize_row(record)
        if not row["title"] and not row["start_time"]:
            dropped += 1
            continue
        rows.append(row)

    if dropped:
        logger.warning("Dropped %d rows with neither title nor start_time", dropped)
    logger.info("Read %d set rows", len(rows))
    return rows
