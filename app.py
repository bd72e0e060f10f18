"""
🏋️ Liftlog Analytics — Streamlit Dashboard
Run: streamlit run app.py
"""
import io

import streamlit as st
import pandas as pd
import plotly.graph_objects as go

from liftlog.analytics import (
    exercise_progression, infer_training_age, training_trends,
    personal_records, muscle_volume, muscle_balance_flags,
)
from liftlog.prediction import forecast_exercise
from liftlog.coach import analysis_for_prompt, build_system_prompt
from liftlog.config import CSV_PATH, TIME_WINDOWS, load_muscle_mapping
from liftlog.llm_client import GeminiClient, LLMError, LLMRateLimited
from liftlog.ingest import read_workout_csv
from liftlog.sessions import SessionStore, build_sessions, exercise_names, parse_workout_date

# ── Page Config ──────────────────────────────────────────────────────
st.set_page_config(page_title="Liftlog Analytics", page_icon="🏋️", layout="wide", initial_sidebar_state="expanded")

st.markdown("""
<style>
    @import url('https://fonts.googleapis.com/css2?family=Space+Grotesk:wght@400;500;600;700&display=swap');
    .stApp { font-family: 'Space Grotesk', sans-serif; }
    div[data-testid="stMetric"] {
        background: linear-gradient(135deg, #1a1a2e 0%, #16213e 100%);
        border: 1px solid #1e3a5f; border-radius: 12px; padding: 16px;
    }
    div[data-testid="stMetric"] label { color: #94a3b8 !important; font-size: 0.85rem; }
</style>
""", unsafe_allow_html=True)

PL = dict(
    template="plotly_dark", paper_bgcolor="rgba(0,0,0,0)", plot_bgcolor="rgba(0,0,0,0)",
    font=dict(family="Space Grotesk", color="#e2e8f0"), margin=dict(l=40, r=20, t=40, b=40),
)

WINDOW_LABELS = {"3months": "Last 3 months", "1year": "Last year", "all": "All time"}


# ── Data Loading ─────────────────────────────────────────────────────
# cache_resource: sessions hold read-only mappings that cache_data can't pickle
@st.cache_resource
def load_store(csv_path: str) -> SessionStore:
    store = SessionStore(csv_path)
    store.reload()
    return store


@st.cache_resource
def load_mapping() -> dict:
    return load_muscle_mapping()


@st.cache_resource
def load_uploaded_sessions(data: bytes) -> list:
    return build_sessions(read_workout_csv(io.BytesIO(data)))


try:
    store = load_store(CSV_PATH)
    mapping = load_mapping()
except Exception as e:
    st.error(f"Error loading data from {CSV_PATH}: {e}")
    st.stop()

snap = store.snapshot
sessions = snap.sessions

# ── Sidebar ──────────────────────────────────────────────────────────
with st.sidebar:
    st.markdown("# 🏋️ Liftlog")
    st.caption(f"{len(snap.rows)} sets · {len(sessions)} sessions")
    st.divider()
    if st.button("🔄 Reload data", use_container_width=True):
        try:
            store.reload()
        except Exception as e:
            st.error(f"Reload failed: {e}")
        else:
            st.rerun()
    if snap.loaded_at is not None:
        mins_ago = int((pd.Timestamp.now() - snap.loaded_at).total_seconds() // 60)
        st.caption("📡 Loaded just now" if mins_ago < 1 else f"📡 Loaded {mins_ago} min ago")

    uploaded = st.file_uploader("Upload workout CSV", type="csv")
    if uploaded is not None:
        try:
            sessions = load_uploaded_sessions(uploaded.getvalue())
        except Exception as e:
            st.error(f"Could not read {uploaded.name}: {e}")
        else:
            st.caption(f"📤 Using {uploaded.name} · {len(sessions)} sessions")

    st.divider()
    page = st.radio("Section", [
        "📊 Overview",
        "📈 Progression",
        "📉 Trends",
        "🏆 PRs",
        "🎯 Muscle Balance",
        "🤖 AI Coach",
    ], label_visibility="collapsed")

if not sessions:
    st.warning("No workouts found in the CSV.")
    st.stop()

age = infer_training_age(sessions)


# ══════════════════════════════════════════════════════════════════════
# 📊 OVERVIEW
# ══════════════════════════════════════════════════════════════════════
if page == "📊 Overview":
    st.markdown("## 📊 Overview")

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Sessions", age["total_sessions"])
    c2.metric("Training Age", age["classification"].title(), f"{age['confidence']} confidence",
              delta_color="off")
    c3.metric("Months Tracked", age["months"])
    c4.metric("Workouts / Week", age["workouts_per_week"])

    st.divider()
    st.markdown("### Recent Sessions")
    for s in sessions[:10]:
        ts = s.date
        label = ts.strftime("%d %b %Y") if ts is not None else s.start_time or "undated"
        n_sets = sum(len(sets) for sets in s.exercises.values())
        with st.expander(f"📅 {label} — {s.title} | {len(s.exercises)} exercises · {n_sets} sets"):
            if s.description:
                st.caption(f'💬 "{s.description}"')
            rows = [
                {"Exercise": name, "Set": st_.set_index, "Weight (lb)": st_.weight_lbs,
                 "Reps": st_.reps, "RPE": st_.rpe}
                for name, sets in s.exercises.items() for st_ in sets
            ]
            st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)


# ══════════════════════════════════════════════════════════════════════
# 📈 PROGRESSION
# ══════════════════════════════════════════════════════════════════════
elif page == "📈 Progression":
    st.markdown("## 📈 Exercise Progression")

    available = exercise_names(sessions)
    selected = st.selectbox("Exercise", available)
    c1, c2 = st.columns([3, 1])
    weeks = c1.slider("Forecast weeks", 4, 26, 12)
    level = c2.selectbox("Training age", ["auto", "novice", "intermediate", "advanced"],
                         format_func=lambda v: f"Auto ({age['classification']})" if v == "auto" else v.title())
    if selected:
        timeline = exercise_progression(sessions, selected)
        hist = pd.DataFrame(timeline)
        if hist.empty:
            st.info("No sets logged for this exercise.")
        else:
            hist["ts"] = hist["date"].apply(parse_workout_date)
            hist = hist[hist["ts"].notna()]
            fig = go.Figure()
            fig.add_trace(go.Scatter(x=hist["ts"], y=hist["max_weight"], mode="lines+markers",
                                     name="Max weight", line=dict(color="#3b82f6", width=2)))
            fig.add_trace(go.Scatter(x=hist["ts"], y=hist["epley_1rm"], mode="lines+markers",
                                     name="Epley 1RM", line=dict(color="#ef4444", width=3)))
            fig.add_trace(go.Scatter(x=hist["ts"], y=hist["brzycki_1rm"], mode="lines",
                                     name="Brzycki 1RM", line=dict(color="#fbbf24", width=2, dash="dot")))

            forecast = forecast_exercise(sessions, selected, weeks, None if level == "auto" else level)
            preds = pd.DataFrame(forecast["predictions"])
            if not preds.empty and not hist.empty:
                last = hist["ts"].max()
                preds["ts"] = [last + pd.Timedelta(weeks=i) for i in range(1, len(preds) + 1)]
                fig.add_trace(go.Scatter(x=preds["ts"], y=preds["upper"], mode="lines",
                                         line=dict(width=0), showlegend=False, hoverinfo="skip"))
                fig.add_trace(go.Scatter(x=preds["ts"], y=preds["lower"], mode="lines",
                                         line=dict(width=0), fill="tonexty",
                                         fillcolor="rgba(239, 68, 68, 0.15)", name="Forecast range"))
                fig.add_trace(go.Scatter(x=preds["ts"], y=preds["predicted"], mode="lines",
                                         name="Forecast", line=dict(color="#ef4444", width=2, dash="dash")))
            fig.update_layout(**PL, title=f"1RM — {selected}", yaxis_title="lb", height=450)
            st.plotly_chart(fig, use_container_width=True, key="chart_progression")

            model = forecast["model"]
            if model:
                c1, c2, c3 = st.columns(3)
                c1.metric("Current e1RM", f"{forecast['current_1rm'] or 0} lb")
                c2.metric(f"In {weeks} weeks", f"{preds['predicted'].iloc[-1]} lb" if not preds.empty else "—")
                c3.metric("Fit (R²)", f"{model['r_squared']:.2f}")
                if preds.empty:
                    st.caption("Too little history or too weak a fit (R² < 0.1) to forecast.")
                else:
                    st.caption(f"Forecast assumes {forecast['training_age']} gains and a ceiling for that level.")
            else:
                st.caption("Not enough history for a forecast.")

            disp = hist[["date", "max_weight", "epley_1rm", "brzycki_1rm", "total_sets"]].copy()
            disp.columns = ["Date", "Max", "Epley", "Brzycki", "Sets"]
            st.dataframe(disp.round(1).iloc[::-1], hide_index=True, use_container_width=True)


# ══════════════════════════════════════════════════════════════════════
# 📉 TRENDS
# ══════════════════════════════════════════════════════════════════════
elif page == "📉 Trends":
    st.markdown("## 📉 Trends")
    st.caption("Average top weight of the last 4 sessions vs. the 4 before.")
    trends = training_trends(sessions)
    c1, c2, c3 = st.columns(3)
    with c1:
        st.markdown("### 📈 Improving")
        for t in trends["improving"]:
            st.metric(t["exercise"], f"{t['recent_avg']} lb", f"{t['change']:+.1f}%")
        if not trends["improving"]:
            st.caption("None")
    with c2:
        st.markdown("### ⏸️ Stalling")
        for t in trends["stalling"]:
            st.metric(t["exercise"], f"{t['current_max']} lb", f"~{t['weeks']} weeks", delta_color="off")
        if not trends["stalling"]:
            st.caption("None")
    with c3:
        st.markdown("### 📉 Declining")
        for t in trends["declining"]:
            st.metric(t["exercise"], f"{t['recent_avg']} lb", f"{t['change']:+.1f}%")
        if not trends["declining"]:
            st.caption("None")


# ══════════════════════════════════════════════════════════════════════
# 🏆 PRs
# ══════════════════════════════════════════════════════════════════════
elif page == "🏆 PRs":
    st.markdown("## 🏆 Personal Records")
    prs = personal_records(sessions)
    if not prs:
        st.info("No PRs yet.")
    else:
        cols = st.columns(3)
        medals = ["🥇", "🥈", "🥉"]
        for medal, col, pr in zip(medals, cols, prs[:3]):
            with col:
                st.markdown(f"### {medal} {pr['exercise'][:25]}")
                st.metric("e1RM", f"{pr['estimated_1rm']} lb")
                st.caption(f"{pr['weight']:g}lb × {pr['reps']} · {pr['date']}")
        st.divider()
        disp = pd.DataFrame(prs)[["exercise", "weight", "reps", "estimated_1rm", "date"]]
        disp.columns = ["Exercise", "Weight", "Reps", "e1RM", "Date"]
        st.dataframe(disp, hide_index=True, use_container_width=True)


# ══════════════════════════════════════════════════════════════════════
# 🎯 MUSCLE BALANCE
# ══════════════════════════════════════════════════════════════════════
elif page == "🎯 Muscle Balance":
    st.markdown("## 🎯 Muscle Balance")
    window = st.radio("Window", list(TIME_WINDOWS), index=list(TIME_WINDOWS).index("all"),
                      format_func=WINDOW_LABELS.get, horizontal=True)
    mv = muscle_volume(sessions, mapping, window)
    axes = mv["radar_groups"]
    if not axes or mv["total_volume"] == 0:
        st.info("No mapped volume in this window.")
    else:
        vals = [mv["normalized"][a] for a in axes]
        fig = go.Figure()
        fig.add_trace(go.Scatterpolar(
            r=vals + [vals[0]], theta=axes + [axes[0]],
            fill="toself", name="Volume %",
            fillcolor="rgba(239, 68, 68, 0.2)", line_color="#ef4444",
        ))
        fig.update_layout(
            polar=dict(
                bgcolor="rgba(0,0,0,0)",
                radialaxis=dict(range=[0, max(vals) * 1.1], gridcolor="#2d3748",
                                tickfont=dict(color="#94a3b8")),
                angularaxis=dict(gridcolor="#2d3748", tickfont=dict(color="#e2e8f0", size=12)),
            ),
            **PL, height=500, showlegend=False,
        )
        st.plotly_chart(fig, use_container_width=True, key="radar_muscles")
        st.caption(f"{mv['session_count']} sessions · {mv['total_volume']:,.0f} lb weighted volume")

        flags = muscle_balance_flags(mv["normalized"])
        c1, c2 = st.columns(2)
        c1.markdown("**⚠️ Underworked:** " + (", ".join(flags["underworked"]) or "none"))
        c2.markdown("**🔥 Overworked:** " + (", ".join(flags["overworked"]) or "none"))


# ══════════════════════════════════════════════════════════════════════
# 🤖 AI COACH
# ══════════════════════════════════════════════════════════════════════
elif page == "🤖 AI Coach":
    st.markdown("## 🤖 AI Coach")
    client = GeminiClient()
    if not client.configured:
        st.info("Set GEMINI_API_KEY to enable the coach. Analytics pages work without it.")
    else:
        if "chat" not in st.session_state:
            st.session_state.chat = []
        for msg in st.session_state.chat:
            with st.chat_message(msg["role"]):
                st.markdown(msg["text"])

        question = st.chat_input("Ask about your training...")
        if question:
            st.session_state.chat.append({"role": "user", "text": question})
            with st.chat_message("user"):
                st.markdown(question)
            prompt = build_system_prompt(analysis_for_prompt(sessions, mapping))
            with st.chat_message("assistant"):
                try:
                    answer = client.generate(prompt, question)
                except LLMRateLimited:
                    answer = "⏳ Rate limited, try again in a moment."
                except LLMError as e:
                    answer = f"❌ {e}"
                st.markdown(answer)
            st.session_state.chat.append({"role": "assistant", "text": answer})
