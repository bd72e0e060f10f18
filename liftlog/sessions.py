"""
Liftlog Analytics — Sessions

Groups per-set rows into workout sessions and owns the in-memory snapshot
the API and dashboard read from. Sessions are immutable once built; a reload
builds a whole new snapshot and swaps the reference.
"""
import logging
import math
import numbers
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping
from urllib.parse import unquote

import numpy as np
import pandas as pd

from liftlog.config import CSV_PATH, KG_TO_LBS, SESSION_KEY_SEPARATOR, UNKNOWN_EXERCISE
from liftlog.ingest import read_workout_csv

logger = logging.getLogger(__name__)

HEVY_DATE_FORMAT = "%d %b %Y, %H:%M"  # "25 Oct 2025, 19:56"


# ═══════════════════════════════════════════════════════════════════════
# DATES
# ═══════════════════════════════════════════════════════════════════════

def _naive_utc(ts: pd.Timestamp) -> pd.Timestamp:
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


@lru_cache(maxsize=8192)
def _parse_date_text(text: str) -> pd.Timestamp | None:
    ts = pd.to_datetime(text, format=HEVY_DATE_FORMAT, errors="coerce")
    if pd.isna(ts):
        try:
            ts = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if pd.isna(ts):
        return None
    return _naive_utc(pd.Timestamp(ts))


def parse_workout_date(value) -> pd.Timestamp | None:
    """
    Parse a session start_time into a naive (UTC) Timestamp.

    Accepts ISO strings, the Hevy export format and datetime objects.
    Empty or unparsable values return None, never raise.
    """
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return _naive_utc(pd.Timestamp(value))
    text = str(value).strip()
    if not text:
        return None
    return _parse_date_text(text)


def date_sort_value(value) -> int:
    ts = parse_workout_date(value)
    return ts.value if ts is not None else -(2 ** 63)


# ═══════════════════════════════════════════════════════════════════════
# SESSION MODEL
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SetEntry:
    set_index: int | None = None
    weight_lbs: float | None = None
    reps: int | None = None
    distance_miles: float | None = None
    duration_seconds: float | None = None
    rpe: float | None = None
    exercise_notes: str = ""

    def to_dict(self) -> dict:
        return {
            "set_index": self.set_index,
            "weight_lbs": self.weight_lbs,
            "reps": self.reps,
            "distance_miles": self.distance_miles,
            "duration_seconds": self.duration_seconds,
            "rpe": self.rpe,
            "exercise_notes": self.exercise_notes,
        }


@dataclass(frozen=True)
class Session:
    id: str
    title: str
    start_time: str
    end_time: str = ""
    description: str = ""
    exercises: Mapping[str, tuple[SetEntry, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def date(self) -> pd.Timestamp | None:
        return parse_workout_date(self.start_time)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "description": self.description,
            "exercises": list(self.exercises),
        }

    def to_dict(self) -> dict:
        return {
            **self.summary(),
            "exercises": {
                name: [s.to_dict() for s in sets] for name, sets in self.exercises.items()
            },
        }


def session_key(title: str, start_time: str) -> str:
    return f"{title}{SESSION_KEY_SEPARATOR}{start_time}"


def as_number(value) -> float | None:
    """Only real, finite numbers count (numpy scalars included); strings and bools never do."""
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        return None
    if not math.isfinite(value):
        return None
    return value


def normalized_weight_lbs(row: Mapping) -> float | None:
    lbs = as_number(row.get("weight_lbs"))
    if lbs is not None:
        return lbs
    kg = as_number(row.get("weight_kg"))
    if kg is not None:
        return kg * KG_TO_LBS
    return None


def _set_entry(row: Mapping) -> SetEntry:
    set_index = as_number(row.get("set_index"))
    reps = as_number(row.get("reps"))
    return SetEntry(
        set_index=int(set_index) if set_index is not None else None,
        weight_lbs=normalized_weight_lbs(row),
        reps=int(reps) if reps is not None else None,
        distance_miles=as_number(row.get("distance_miles")),
        duration_seconds=as_number(row.get("duration_seconds")),
        rpe=as_number(row.get("rpe")),
        exercise_notes=row.get("exercise_notes") or "",
    )


def build_sessions(rows: Iterable[Mapping]) -> list[Session]:
    """
    Group set rows into sessions keyed by (title, start_time).

    Every row lands in exactly one session, in row order, under its
    exercise_title (blank titles go to "(unknown)"). Only a row whose title
    and start_time are both absent (None) is skipped. Output is sorted by
    start_time descending; unparsable dates sort last.
    """
    shells: dict[str, dict] = {}
    for row in rows:
        title, start_time = row.get("title"), row.get("start_time")
        if title is None and start_time is None:
            continue
        title = str(title or "")
        start_time = str(start_time or "")
        key = session_key(title, start_time)
        if key not in shells:
            shells[key] = {
                "id": key,
                "title": title,
                "start_time": start_time,
                "end_time": row.get("end_time") or "",
                "description": row.get("description") or "",
                "exercises": {},
            }
        exercise = row.get("exercise_title") or UNKNOWN_EXERCISE
        shells[key]["exercises"].setdefault(exercise, []).append(_set_entry(row))

    sessions = [
        Session(
            id=s["id"],
            title=s["title"],
            start_time=s["start_time"],
            end_time=s["end_time"],
            description=s["description"],
            exercises=MappingProxyType(
                {name: tuple(sets) for name, sets in s["exercises"].items()}
            ),
        )
        for s in shells.values()
    ]
    sessions.sort(key=lambda s: date_sort_value(s.start_time), reverse=True)
    return sessions


def sessions_to_frame(sessions: Iterable[Session]) -> pd.DataFrame:
    """
    Flatten sessions into one row per set.

    ``order`` preserves the iteration order (session order, then set order)
    so "first seen" semantics survive groupby/idxmax.
    """
    rows = []
    order = 0
    for s in sessions:
        ts = s.date
        for exercise, sets in s.exercises.items():
            for st in sets:
                rows.append({
                    "order": order,
                    "session_id": s.id,
                    "start_time": s.start_time,
                    "date": ts,
                    "exercise": exercise,
                    "set_index": st.set_index,
                    "weight_lbs": st.weight_lbs,
                    "reps": st.reps,
                    "rpe": st.rpe,
                })
                order += 1
    columns = ["order", "session_id", "start_time", "date", "exercise",
               "set_index", "weight_lbs", "reps", "rpe"]
    df = pd.DataFrame(rows, columns=columns)
    df["weight_lbs"] = pd.to_numeric(df["weight_lbs"], errors="coerce")
    df["reps"] = pd.to_numeric(df["reps"], errors="coerce")
    return df


def exercise_names(sessions: Iterable[Session]) -> list[str]:
    """Distinct exercise names across sessions, case-insensitively sorted."""
    names = {name for s in sessions for name in s.exercises}
    return sorted(names, key=str.casefold)


# ═══════════════════════════════════════════════════════════════════════
# SNAPSHOT STORE
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Snapshot:
    rows: tuple = ()
    sessions: tuple[Session, ...] = ()
    loaded_at: pd.Timestamp | None = None
    source: str = ""


class SessionStore:
    """
    Holds the current immutable Snapshot.

    Readers grab ``store.snapshot`` once and work on it; a reload builds the
    replacement completely before swapping the reference, so nobody ever
    sees a half-built collection.
    """

    def __init__(self, csv_path: str | None = None):
        self.csv_path = csv_path or CSV_PATH
        self._snapshot = Snapshot()
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def sessions(self) -> tuple[Session, ...]:
        return self._snapshot.sessions

    def replace(self, rows: Iterable[Mapping], source: str = "") -> Snapshot:
        rows = tuple(rows)
        new = Snapshot(
            rows=rows,
            sessions=tuple(build_sessions(rows)),
            loaded_at=pd.Timestamp.now(),
            source=source,
        )
        with self._lock:
            self._snapshot = new
        return new

    def reload(self, csv_path: str | None = None) -> Snapshot:
        """Rebuild from the CSV. On failure the previous snapshot stays live."""
        path = csv_path or self.csv_path
        try:
            rows = read_workout_csv(path)
        except Exception:
            logger.exception("Failed to load workout CSV from %s", path)
            raise
        snap = self.replace(rows, source=str(path))
        logger.info("Loaded %d rows, %d sessions", len(snap.rows), len(snap.sessions))
        return snap

    def exercise_names(self) -> list[str]:
        return exercise_names(self._snapshot.sessions)

    def find_session(self, session_id: str) -> Session | None:
        sessions = self._snapshot.sessions
        decoded = unquote(session_id)
        for s in sessions:
            if s.id == session_id or s.id == decoded:
                return s
        return None
