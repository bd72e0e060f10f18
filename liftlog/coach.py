"""
Liftlog Analytics — AI Coach context

Collects the computed analytics into one dict and renders it as the system
prompt sent to the LLM alongside the user's question.
"""
from typing import Iterable, Mapping

from liftlog.analytics import (
    infer_training_age,
    muscle_volume,
    personal_records,
    training_trends,
)
from liftlog.config import BASELINE_WORKOUTS_PER_WEEK, RECENT_SESSIONS_FOR_PROMPT
from liftlog.sessions import Session, as_number

DIVIDER = "═" * 63


def volume_stats(sessions: Iterable[Session]) -> dict:
    total_volume = 0.0
    total_sets = 0
    n = 0
    for s in sessions:
        n += 1
        for sets in s.exercises.values():
            for st in sets:
                w, r = as_number(st.weight_lbs), as_number(st.reps)
                if w is not None and r is not None:
                    total_volume += w * r
                    total_sets += 1
    return {
        "total_volume": total_volume,
        "total_sets": total_sets,
        "avg_volume_per_session": total_volume / n if n else 0,
        "avg_sets_per_session": total_sets / n if n else 0,
    }


def consistency_percent(sessions: list[Session]) -> float:
    """Sessions logged vs. a 3/week baseline over the observed span, max 100."""
    dates = sorted(ts for ts in (s.date for s in sessions) if ts is not None)
    if len(dates) < 2:
        return 0.0
    weeks = (dates[-1] - dates[0]).total_seconds() / (7 * 86400)
    expected = weeks * BASELINE_WORKOUTS_PER_WEEK
    if expected <= 0:
        return 100.0
    return min(100.0, len(sessions) / expected * 100)


def recent_exercises(sessions: list[Session], n_sessions: int = RECENT_SESSIONS_FOR_PROMPT) -> list[dict]:
    """Distinct exercises of the most recent sessions, newest first."""
    newest_first = sorted(
        sessions,
        key=lambda s: (s.date is not None, s.date.value if s.date is not None else 0),
        reverse=True,
    )
    seen, history = set(), []
    for s in newest_first[:n_sessions]:
        for exercise in s.exercises:
            if exercise not in seen:
                seen.add(exercise)
                history.append({"exercise": exercise, "date": s.start_time})
    return history


def analysis_for_prompt(sessions: Iterable[Session], mapping: Mapping | None = None) -> dict:
    sessions = list(sessions)
    age = infer_training_age(sessions)

    balance = {}
    if mapping and mapping.get("exercises"):
        balance = muscle_volume(sessions, mapping, "all")["normalized"]

    return {
        "training_age": age["classification"],
        "training_months": age["months"],
        "workouts_per_week": age["workouts_per_week"],
        "prs": personal_records(sessions),
        "trends": training_trends(sessions),
        "muscle_balance": balance,
        "volume_stats": volume_stats(sessions),
        "consistency_percent": consistency_percent(sessions),
        "exercise_history": recent_exercises(sessions),
    }


def _bullets(lines: list[str], empty: str) -> str:
    return "\n".join(lines) if lines else empty


def build_system_prompt(analysis: Mapping) -> str:
    prs = [
        f"• {p['exercise']}: {p['weight']:.0f}lb × {p['reps']} reps (est. 1RM: {p['estimated_1rm']}lb)"
        for p in analysis.get("prs", [])[:8]
    ]
    trends = analysis.get("trends") or {}
    improving = [f"• {t['exercise']}: +{t['change']:.1f}%" for t in trends.get("improving", [])[:5]]
    stalling = [
        f"• {t['exercise']}: stalled ~{t['weeks']} weeks at {t['current_max']}lb"
        for t in trends.get("stalling", [])[:5]
    ]
    declining = [f"• {t['exercise']}: {t['change']:.1f}%" for t in trends.get("declining", [])[:3]]

    balance = sorted((analysis.get("muscle_balance") or {}).items(), key=lambda kv: kv[1], reverse=True)
    dominant = ", ".join(f"{m} ({v:.1f}%)" for m, v in balance[:3]) or "balanced"
    neglected = ", ".join(f"{m} ({v:.1f}%)" for m, v in balance[-3:] if v < 10) or "none significantly neglected"

    vs = analysis.get("volume_stats") or {}
    recent = ", ".join(e["exercise"] for e in (analysis.get("exercise_history") or [])[:10]) or "varied"

    return f"""You are an expert strength and conditioning coach. You have access to this athlete's logged workout history and the analytics computed from it.

{DIVIDER}
ATHLETE PROFILE
{DIVIDER}
• Level: {str(analysis.get('training_age', 'novice')).upper()} ({analysis.get('training_months', 0)} months of tracked training)
• Frequency: {analysis.get('workouts_per_week', 0):.1f} workouts/week
• Consistency: {analysis.get('consistency_percent', 0):.0f}%
• Avg volume/session: {vs.get('avg_volume_per_session', 0):.0f} lbs
• Avg sets/session: {vs.get('avg_sets_per_session', 0):.1f}

{DIVIDER}
PERSONAL RECORDS
{DIVIDER}
{_bullets(prs, 'No PRs recorded yet')}

{DIVIDER}
PROGRESS
{DIVIDER}
Improving:
{_bullets(improving, 'None identified')}
Plateaued:
{_bullets(stalling, 'None identified')}
Declining:
{_bullets(declining, 'None identified')}

{DIVIDER}
MUSCLE BALANCE
{DIVIDER}
• Most trained: {dominant}
• Undertrained: {neglected}

Recent exercise focus: {recent}

Reference their data when recommending changes, match advice to their training level, be specific with sets, reps and loads, and recommend a professional for anything pain or injury related."""


def build_full_prompt(system_prompt: str | None, user_message: str) -> str:
    if not system_prompt:
        return user_message
    return (
        f"{system_prompt}\n\nUser Question: {user_message}\n\n"
        "Provide a helpful, concise response (2-3 sentences):"
    )
