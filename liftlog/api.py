"""
Liftlog Analytics — HTTP API

Flask app serving the session snapshot and the analytics computed from it,
plus the AI coach chat endpoint.

Run with ``python -m liftlog.api``.
"""
import logging
import re

from flask import Blueprint, Flask, current_app, jsonify, request

from liftlog import analytics
from liftlog.coach import analysis_for_prompt, build_system_prompt
from liftlog.config import (
    CEILING_MULTIPLIERS,
    DEFAULT_FORECAST_WEEKS,
    LOG_LEVEL,
    MAX_FORECAST_WEEKS,
    PORT,
    TIME_WINDOWS,
    load_muscle_mapping,
)
from liftlog.llm_client import GeminiClient, LLMNotConfigured, LLMRateLimited, LLMError
from liftlog.prediction import forecast_exercise
from liftlog.sessions import SessionStore

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 10 * 1024
HTML_TAG = re.compile(r"<[^>]*>")

api_bp = Blueprint("api", __name__, url_prefix="/api")


def _store() -> SessionStore:
    return current_app.extensions["liftlog_store"]


def _mapping() -> dict:
    mapping = current_app.extensions.get("liftlog_mapping")
    if mapping is None:
        mapping = load_muscle_mapping()
        current_app.extensions["liftlog_mapping"] = mapping
    return mapping


def _sessions():
    return _store().snapshot.sessions


# ── Sessions ─────────────────────────────────────────────────────────

@api_bp.route("/health")
def health():
    return jsonify({"ok": True})


@api_bp.route("/sessions")
def list_sessions():
    return jsonify([s.summary() for s in _sessions()])


@api_bp.route("/session/<path:session_id>")
def get_session(session_id):
    if HTML_TAG.search(session_id):
        return jsonify(error="Invalid session id"), 400
    session = _store().find_session(session_id)
    if session is None:
        return jsonify(error="Session not found"), 404
    return jsonify(session.to_dict())


@api_bp.route("/exercises")
def list_exercises():
    return jsonify(_store().exercise_names())


@api_bp.route("/exercise/<path:name>/progression")
def exercise_progression(name):
    return jsonify(analytics.exercise_progression(_sessions(), name))


@api_bp.route("/exercise/<path:name>/prediction")
def exercise_prediction(name):
    raw = request.args.get("weeks", str(DEFAULT_FORECAST_WEEKS))
    try:
        weeks = int(raw)
    except ValueError:
        return jsonify(error="'weeks' must be an integer"), 400
    weeks = max(1, min(MAX_FORECAST_WEEKS, weeks))

    # "auto" infers the level from the whole history
    training_age = request.args.get("training_age", "auto")
    if training_age == "auto":
        training_age = None
    elif training_age not in CEILING_MULTIPLIERS:
        levels = ", ".join(["auto", *CEILING_MULTIPLIERS])
        return jsonify(error=f"'training_age' must be one of: {levels}"), 400
    return jsonify(forecast_exercise(_sessions(), name, weeks, training_age))


# ── Analytics ────────────────────────────────────────────────────────

@api_bp.route("/analytics/training-age")
def training_age():
    return jsonify(analytics.infer_training_age(_sessions()))


@api_bp.route("/analytics/trends")
def trends():
    return jsonify(analytics.training_trends(_sessions()))


@api_bp.route("/analytics/prs")
def prs():
    return jsonify(analytics.personal_records(_sessions()))


@api_bp.route("/analytics/muscle-volume")
def muscle_volume():
    window = request.args.get("window", "all")
    if window not in TIME_WINDOWS:
        return jsonify(error=f"Unknown window '{window}'", allowed=list(TIME_WINDOWS)), 400
    result = analytics.muscle_volume(_sessions(), _mapping(), window)
    result["balance"] = analytics.muscle_balance_flags(result["normalized"])
    return jsonify(result)


@api_bp.route("/reload")
def reload_data():
    try:
        snap = _store().reload()
    except Exception as e:
        return jsonify(error=f"Reload failed: {e}"), 500
    return jsonify({"ok": True, "rows": len(snap.rows), "sessions": len(snap.sessions)})


# ── Coach chat ───────────────────────────────────────────────────────

@api_bp.route("/chat", methods=["POST"])
def chat():
    if (request.content_length or 0) > MAX_BODY_BYTES:
        return too_large()
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify(error="Request body must be a JSON object"), 400
    user_message = data.get("userMessage")
    if not isinstance(user_message, str) or not user_message.strip():
        return jsonify(error="Missing 'userMessage' in request body"), 400

    llm = current_app.extensions["liftlog_llm"]
    if not getattr(llm, "configured", True):
        return jsonify({
            "response": "The AI coach is not configured. Set GEMINI_API_KEY on the "
                        "server to enable chat; the analytics endpoints work without it.",
            "model": "none",
        })

    system_prompt = data.get("systemPrompt")
    if not system_prompt:
        system_prompt = build_system_prompt(analysis_for_prompt(_sessions(), _mapping()))

    try:
        text = llm.generate(system_prompt, user_message)
    except LLMRateLimited:
        logger.warning("Chat rate limited")
        return jsonify(error="Rate limit exceeded, try again in a moment"), 429
    except LLMNotConfigured:
        return jsonify({"response": "The AI coach is not configured.", "model": "none"})
    except LLMError as e:
        logger.error("Chat failed: %s", e)
        return jsonify(error="Failed to generate a response"), 500
    return jsonify({"response": text, "model": getattr(llm, "model", "unknown")})


def too_large(_e=None):
    return jsonify(error="Request body too large (max 10KB)"), 413


def create_app(store: SessionStore | None = None, llm=None, mapping: dict | None = None) -> Flask:
    """
    Build the Flask app.

    Without an explicit ``store`` the CSV at LIFTLOG_CSV_PATH is loaded; a
    failed load is logged and the app starts with an empty snapshot so
    /api/reload can recover later.
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_BODY_BYTES

    if store is None:
        store = SessionStore()
        try:
            store.reload()
        except Exception:
            logger.error("Starting with no data; fix the CSV and call /api/reload")

    app.extensions["liftlog_store"] = store
    app.extensions["liftlog_llm"] = llm if llm is not None else GeminiClient()
    app.extensions["liftlog_mapping"] = mapping
    app.register_blueprint(api_bp)
    app.register_error_handler(413, too_large)
    return app


def main():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    logger.info("Serving on port %d", PORT)
    app.run(host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    main()
