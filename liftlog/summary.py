"""
Liftlog Analytics — Summary CLI

    python -m liftlog.summary [path/to/workout_data.csv]
"""
import sys

from liftlog.analytics import infer_training_age, personal_records, training_trends
from liftlog.config import CSV_PATH
from liftlog.sessions import SessionStore


def run_summary(csv_path: str | None = None) -> dict:
    """Load the CSV, print the headline analytics and return them."""
    path = csv_path or CSV_PATH
    print("🏋️ Liftlog Summary — Starting...")

    print(f"\n📥 Loading {path}...")
    store = SessionStore(path)
    snap = store.reload()
    sessions = snap.sessions
    print(f"   {len(snap.rows)} set rows across {len(sessions)} sessions")

    if not sessions:
        print("   No sessions found. Done.")
        return {"sessions": 0}

    age = infer_training_age(sessions)
    prs = personal_records(sessions)
    trends = training_trends(sessions)

    print(f"\n{'='*50}")
    print("📊 Training Profile:")
    print(f"   Sessions: {age['total_sessions']}")
    print(f"   Level: {age['classification']} ({age['months']} months, {age['confidence']} confidence)")
    print(f"   Frequency: {age['workouts_per_week']} workouts/week")
    if age["first_workout"]:
        print(f"   📅 {age['first_workout'][:10]} → {age['last_workout'][:10]}")

    if prs:
        print("\n🏆 Top PRs:")
        for pr in prs[:5]:
            print(f"   {pr['exercise']}: {pr['weight']:g}lb x{pr['reps']} (e1RM {pr['estimated_1rm']})")

    if trends["improving"]:
        print("\n📈 Improving:")
        for t in trends["improving"]:
            print(f"   {t['exercise']}: +{t['change']}%")
    if trends["stalling"]:
        print("\n⏸️ Stalling:")
        for t in trends["stalling"]:
            print(f"   {t['exercise']}: ~{t['weeks']} weeks at {t['current_max']}lb")
    if trends["declining"]:
        print("\n📉 Declining:")
        for t in trends["declining"]:
            print(f"   {t['exercise']}: {t['change']}%")

    return {
        "sessions": len(sessions),
        "training_age": age,
        "prs": prs,
        "trends": trends,
    }


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    try:
        run_summary(args[0] if args else None)
    except Exception as e:
        print(f"\n❌ Summary FAILED: {e}")
        return 1
    print("\nDone.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
