"""
Liftlog Analytics — Analytics Engine

Pure functions over built sessions: 1RM estimates, per-exercise timelines,
training age, trends, personal records and muscle-group volume.
Nothing here does I/O or keeps state between calls.
"""
import math
from typing import Iterable, Mapping

import pandas as pd

from liftlog.config import (
    BRZYCKI_MAX_REPS,
    DAYS_PER_MONTH,
    LOW_CONFIDENCE_MONTHS,
    MIN_WORKOUTS_PER_WEEK,
    PR_MIN_WEIGHT,
    PR_TOP_N,
    PRIMARY_MUSCLE_WEIGHT,
    SECONDARY_MUSCLE_WEIGHT,
    STALL_TOLERANCE,
    STALL_WEEKS,
    TIME_WINDOWS,
    TRAINING_AGE_THRESHOLDS,
    TREND_CHANGE_PCT,
    TREND_TOP_N,
    TREND_WINDOW,
)
from liftlog.sessions import (
    Session,
    as_number,
    date_sort_value,
    parse_workout_date,
    sessions_to_frame,
)


# ═══════════════════════════════════════════════════════════════════════
# 1. 1RM ESTIMATES
# ═══════════════════════════════════════════════════════════════════════

def _check_load(weight: float, reps: float) -> None:
    if weight < 0:
        raise ValueError(f"weight must be >= 0, got {weight}")
    if reps < 0:
        raise ValueError(f"reps must be >= 0, got {reps}")


def epley_1rm(weight: float, reps: float) -> float:
    """Epley: weight × (1 + reps/30). reps=0 returns the weight unchanged."""
    _check_load(weight, reps)
    return weight * (1 + reps / 30)


def brzycki_1rm(weight: float, reps: float) -> float | None:
    """
    Brzycki: weight / (1.0278 − 0.0278 × reps).

    The denominator reaches zero at ~36.97 reps, so anything above
    BRZYCKI_MAX_REPS is rejected with None instead of a huge or negative
    estimate.
    """
    _check_load(weight, reps)
    if reps > BRZYCKI_MAX_REPS:
        return None
    return weight / (1.0278 - 0.0278 * reps)


def _valid_weight(value) -> float | None:
    w = as_number(value)
    return w if w is not None and w >= 0 else None


def _valid_reps(value) -> float | None:
    r = as_number(value)
    return r if r is not None and r >= 0 else None


# ═══════════════════════════════════════════════════════════════════════
# 2. PROGRESSION TIMELINE
# ═══════════════════════════════════════════════════════════════════════

def exercise_progression(sessions: Iterable[Session], exercise: str) -> list[dict]:
    """
    One point per session containing ``exercise`` (exact, case-sensitive).

    max_weight tracks every weighted set; the 1RM estimates only use sets
    that also have reps. total_sets counts sets with reps. Sorted by date
    ascending with a stable sort, so same-timestamp sessions keep input order.
    """
    timeline = []
    for s in sessions:
        sets = s.exercises.get(exercise)
        if sets is None:
            continue
        max_w = best_epley = best_brzycki = None
        total_sets = 0
        for st in sets:
            w = _valid_weight(st.weight_lbs)
            reps = _valid_reps(st.reps)
            if w is not None:
                if max_w is None or w > max_w:
                    max_w = w
                if reps is not None:
                    e = epley_1rm(w, reps)
                    if best_epley is None or e > best_epley:
                        best_epley = e
                    b = brzycki_1rm(w, reps)
                    if b is not None and (best_brzycki is None or b > best_brzycki):
                        best_brzycki = b
            if reps is not None:
                total_sets += 1
        timeline.append({
            "session_id": s.id,
            "date": s.start_time,
            "max_weight": max_w,
            "epley_1rm": best_epley,
            "brzycki_1rm": best_brzycki,
            "total_sets": total_sets,
        })
    timeline.sort(key=lambda p: date_sort_value(p["date"]))
    return timeline


# ═══════════════════════════════════════════════════════════════════════
# 3. TRAINING AGE
# ═══════════════════════════════════════════════════════════════════════

def _start_time(session) -> object:
    if isinstance(session, Mapping):
        return session.get("start_time")
    return getattr(session, "start_time", None)


def infer_training_age(sessions: Iterable) -> dict:
    """
    Classify experience from the span and frequency of logged sessions.

    This measures how much history is in the data, not the lifter's real
    training age; sparse logs (< 2 sessions/week) drop confidence to low
    for anything past novice.
    """
    dates = sorted(
        ts for ts in (parse_workout_date(_start_time(s)) for s in sessions) if ts is not None
    )
    if not dates:
        return {
            "classification": "novice",
            "months": 0,
            "confidence": "low",
            "workouts_per_week": 0,
            "total_sessions": 0,
            "first_workout": None,
            "last_workout": None,
        }

    first, last = dates[0], dates[-1]
    span_days = (last - first).total_seconds() / 86400
    months = span_days / DAYS_PER_MONTH
    weeks = max(1.0, span_days / 7)
    workouts_per_week = len(dates) / weeks

    if months < TRAINING_AGE_THRESHOLDS["novice"]:
        classification = "novice"
        confidence = "low" if months < LOW_CONFIDENCE_MONTHS else "medium"
    elif months < TRAINING_AGE_THRESHOLDS["intermediate"]:
        classification = "intermediate"
        confidence = "medium"
    else:
        classification = "advanced"
        confidence = "high"

    if workouts_per_week < MIN_WORKOUTS_PER_WEEK and classification != "novice":
        confidence = "low"

    return {
        "classification": classification,
        "months": round(months, 1),
        "confidence": confidence,
        "workouts_per_week": round(workouts_per_week, 1),
        "total_sessions": len(dates),
        "first_workout": first.isoformat(),
        "last_workout": last.isoformat(),
    }


# ═══════════════════════════════════════════════════════════════════════
# 4. TRENDS
# ═══════════════════════════════════════════════════════════════════════

def _session_max_weights(sessions: Iterable[Session]) -> pd.DataFrame:
    """Best (positive) weight per exercise per session."""
    df = sessions_to_frame(sessions)
    df = df[df["weight_lbs"].notna()]
    if df.empty:
        return pd.DataFrame(columns=["exercise", "session_id", "order", "date", "weight"])
    per_session = (
        df.groupby(["exercise", "session_id"], sort=False)
        .agg(order=("order", "min"), date=("date", "first"), weight=("weight_lbs", "max"))
        .reset_index()
    )
    return per_session[per_session["weight"] > 0]


def training_trends(sessions: Iterable[Session]) -> dict:
    """
    Flag exercises as improving, declining or stalling.

    Compares the average top weight of the last TREND_WINDOW sessions with
    the TREND_WINDOW before them; exercises without a full prior block are
    skipped. Stalling is reported with a fixed STALL_WEEKS duration, an
    approximation rather than a measured plateau length.
    """
    per_session = _session_max_weights(sessions)
    improving, declining, stalling = [], [], []

    for exercise, grp in per_session.groupby("exercise", sort=False):
        if len(grp) < TREND_WINDOW * 2:
            continue
        weights = (
            grp.sort_values(["date", "order"], kind="mergesort", na_position="first")["weight"]
            .astype(float)
            .tolist()
        )
        recent = weights[-TREND_WINDOW:]
        previous = weights[-2 * TREND_WINDOW:-TREND_WINDOW]
        recent_avg = sum(recent) / len(recent)
        previous_avg = sum(previous) / len(previous)
        change = (recent_avg - previous_avg) / previous_avg * 100

        entry = {
            "exercise": exercise,
            "change": round(change, 1),
            "recent_avg": round(recent_avg, 1),
            "previous_avg": round(previous_avg, 1),
        }
        if change > TREND_CHANGE_PCT:
            improving.append(entry)
        elif change < -TREND_CHANGE_PCT:
            declining.append(entry)
        elif all(abs(w - recent_avg) < recent_avg * STALL_TOLERANCE
                 for w in weights[-2 * TREND_WINDOW:]):
            stalling.append({
                "exercise": exercise,
                "weeks": STALL_WEEKS,
                "current_max": round(recent[-1], 1),
            })

    return {
        "improving": sorted(improving, key=lambda t: t["change"], reverse=True)[:TREND_TOP_N],
        "stalling": stalling[:TREND_TOP_N],
        "declining": sorted(declining, key=lambda t: t["change"])[:TREND_TOP_N],
    }


# ═══════════════════════════════════════════════════════════════════════
# 5. PERSONAL RECORDS
# ═══════════════════════════════════════════════════════════════════════

def personal_records(sessions: Iterable[Session]) -> list[dict]:
    """
    Best set per exercise by estimated 1RM (not by heaviest weight).

    Missing/invalid reps count as a single rep, and a single rep is taken as
    a true 1RM. Exercises whose PR weight is <= PR_MIN_WEIGHT are dropped to
    keep bodyweight and accessory work off the list.
    """
    df = sessions_to_frame(sessions)
    weighted = df[df["weight_lbs"] > 0].copy()
    if weighted.empty:
        return []

    reps = weighted["reps"].where(weighted["reps"] > 0, 1)
    weighted["reps_used"] = reps.astype(int)
    weighted["e1rm"] = weighted["weight_lbs"].where(
        weighted["reps_used"] <= 1, weighted["weight_lbs"] * (1 + weighted["reps_used"] / 30)
    )

    # idxmax keeps the first occurrence of the max, i.e. first-seen wins ties
    weighted = weighted.sort_values("order", kind="mergesort")
    idx = weighted.groupby("exercise", sort=False)["e1rm"].idxmax()
    prs = weighted.loc[idx]
    prs = prs[prs["weight_lbs"] > PR_MIN_WEIGHT]
    prs = prs.sort_values(["e1rm", "order"], ascending=[False, True], kind="mergesort")

    return [
        {
            "exercise": row["exercise"],
            "weight": float(row["weight_lbs"]),
            "reps": int(row["reps_used"]),
            "estimated_1rm": round(float(row["e1rm"]), 1),
            "date": row["start_time"],
        }
        for _, row in prs.head(PR_TOP_N).iterrows()
    ]


# ═══════════════════════════════════════════════════════════════════════
# 6. MUSCLE GROUP VOLUME
# ═══════════════════════════════════════════════════════════════════════

def _window_months(time_window) -> float | None:
    if time_window is None:
        return None
    if isinstance(time_window, str):
        if time_window not in TIME_WINDOWS:
            raise ValueError(
                f"Unknown time window {time_window!r}; expected one of {sorted(TIME_WINDOWS)}"
            )
        return TIME_WINDOWS[time_window]
    months = float(time_window)
    if months < 0:
        raise ValueError(f"time window must be >= 0 months, got {time_window}")
    return months


def filter_sessions_by_window(
    sessions: Iterable[Session], time_window="all", now: pd.Timestamp | None = None
) -> list[Session]:
    """Keep sessions within N months of ``now``. Undated sessions are kept."""
    months = _window_months(time_window)
    sessions = list(sessions)
    if months is None:
        return sessions
    now = parse_workout_date(now) if now is not None else pd.Timestamp.now()
    kept = []
    for s in sessions:
        ts = s.date
        if ts is None:
            kept.append(s)
            continue
        months_ago = (now - ts).total_seconds() / 86400 / DAYS_PER_MONTH
        if months_ago <= months:
            kept.append(s)
    return kept


def muscle_volume(
    sessions: Iterable[Session],
    mapping: Mapping,
    time_window="all",
    now: pd.Timestamp | None = None,
) -> dict:
    """
    Weighted training volume (weight × reps) per canonical muscle group.

    Primary muscles get the full exercise volume, secondary ones
    SECONDARY_MUSCLE_WEIGHT of it. Muscle names go through the alias table;
    anything that does not land on a radar group is ignored. Percentages are
    all 0 when there is no volume at all.
    """
    included = filter_sessions_by_window(sessions, time_window, now)
    groups = list(mapping.get("radarGroups") or [])
    aliases = mapping.get("muscleAliases") or {}
    exercise_map = mapping.get("exercises") or {}
    volumes = {g: 0.0 for g in groups}

    df = sessions_to_frame(included)
    if not df.empty:
        df["volume"] = df["weight_lbs"] * df["reps"]
        per_exercise = df.groupby("exercise", sort=False)["volume"].sum(min_count=1)
        for exercise, vol in per_exercise.items():
            entry = exercise_map.get(exercise)
            if entry is None or pd.isna(vol):
                continue
            for muscles, factor in (
                (entry.get("primary") or [], PRIMARY_MUSCLE_WEIGHT),
                (entry.get("secondary") or [], SECONDARY_MUSCLE_WEIGHT),
            ):
                for muscle in muscles:
                    target = aliases.get(muscle, muscle)
                    if target in volumes:
                        volumes[target] += float(vol) * factor

    total = sum(volumes.values())
    if total > 0 and math.isfinite(total):
        normalized = {g: v / total * 100 for g, v in volumes.items()}
    else:
        normalized = {g: 0.0 for g in volumes}

    return {
        "volumes": volumes,
        "normalized": normalized,
        "radar_groups": groups,
        "session_count": len(included),
        "total_volume": total,
    }


def muscle_balance_flags(normalized: Mapping[str, float]) -> dict:
    """Groups well under / over the mean share (< 60% / > 140% of average)."""
    if not normalized:
        return {"underworked": [], "overworked": []}
    avg = sum(normalized.values()) / len(normalized)
    return {
        "underworked": [m for m, v in normalized.items() if v < avg * 0.6],
        "overworked": [m for m, v in normalized.items() if v > avg * 1.4],
    }
