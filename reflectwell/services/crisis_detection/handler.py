"""Crisis Detection HTTP handler.

Exposes entry analysis to the journaling/chat UI and the administrative
interface to operations dashboards.

No raw subject identifiers or entry text in logs - use hash_pii() and
hash_text_for_audit(). Internal errors never reach the end user: an
indeterminate analysis returns level "error" with a generic supportive
message.
"""
import asyncio
import logging
import os
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import Flask, jsonify, request

from reflectwell.shared.models import AnalysisRequest, CrisisLevel
from reflectwell.shared.utils import configure_pii_salt, hash_optional_pii
from .alert_publisher import AlertEventPublisher
from .alert_registry import AlertCooldownRegistry
from .clock import SystemClock
from .config import DEFAULT_CORPUS, AnalysisThresholds, DetectionConfig, load_corpus_file
from .engine import CrisisDetectionEngine
from .history import InMemoryMoodHistory, MoodHistoryProvider
from .recommendations import recommend
from .resources import resources_for

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 to naive UTC, the form every clock in the service uses."""
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be an ISO-8601 string, got {value!r}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# One loop for the process: a history fetch that outlives its timeout
# keeps running instead of being cancelled when a request returns.
event_loop = asyncio.new_event_loop()
_loop_started = threading.Event()
event_loop.call_soon(_loop_started.set)
threading.Thread(
    target=event_loop.run_forever,
    name="crisis-detection-loop",
    daemon=True,
).start()
_loop_started.wait()


def _run(coro):
    return asyncio.run_coroutine_threadsafe(coro, event_loop).result()


app = Flask(__name__)

pii_salt = os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars")
configure_pii_salt(pii_salt)

# A bad corpus file must stop startup, not degrade silently
corpus_path = os.getenv("PATTERN_CORPUS_PATH")
corpus = load_corpus_file(corpus_path) if corpus_path else DEFAULT_CORPUS

config = DetectionConfig(
    alert_cooldown_hours=float(os.getenv("ALERT_COOLDOWN_HOURS", "24")),
    history_timeout_seconds=float(os.getenv("HISTORY_TIMEOUT_SECONDS", "2.0")),
    word_boundary_matching=_env_flag("WORD_BOUNDARY_MATCHING", "true"),
)
thresholds = AnalysisThresholds()
clock = SystemClock()

mood_history = InMemoryMoodHistory()
alert_publisher = AlertEventPublisher(
    stream_name=os.getenv("KINESIS_STREAM_NAME", "reflectwell-crisis-alerts"),
    enabled=_env_flag("ALERT_PUBLISHING_ENABLED", "false"),
    corpus_version=corpus.version,
)
engine = CrisisDetectionEngine(
    corpus=corpus,
    thresholds=thresholds,
    config=config,
    clock=clock,
    history_provider=MoodHistoryProvider(mood_history, config=config, clock=clock),
    alert_registry=AlertCooldownRegistry(
        cooldown=timedelta(hours=config.alert_cooldown_hours),
        clock=clock,
    ),
    alert_sink=alert_publisher,
)


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint for the load balancer."""
    return jsonify({
        "status": "healthy",
        "service": "crisis-detection",
        "corpus_version": corpus.version,
    }), 200


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check - verifies the analysis loop is running."""
    if not event_loop.is_running():
        return jsonify({"status": "not_ready", "reason": "event_loop_stopped"}), 503
    return jsonify({"status": "ready", "corpus_version": corpus.version}), 200


@app.route("/analyze", methods=["POST"])
def analyze_entry():
    """Analyze a journal or chat entry.

    Request Body:
        {
            "text": "Entry text",
            "mood": 1-10 (optional),
            "energy": 1-10 (optional),
            "subject_id": "user_123" (optional),
            "timestamp": "2025-01-15T12:00:00" (optional)
        }

    Response:
        AnalysisResult as JSON, plus "resources" when a recommendation
        exists.

    Error Handling:
        Invalid input returns 400. Anything unexpected returns 200 with
        level "error" and the generic fallback message, so the UI always
        has something supportive to show.
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        logger.warning("ANALYZE_REQUEST_INVALID", extra={"reason": "empty_body"})
        return jsonify({"error": "Request body required"}), 400

    text = data.get("text")
    if not isinstance(text, str):
        logger.warning("ANALYZE_REQUEST_INVALID", extra={"reason": "missing_text"})
        return jsonify({"error": "Missing required field: text"}), 400

    try:
        analysis_request = AnalysisRequest(
            text=text,
            mood=data.get("mood"),
            energy=data.get("energy"),
            subject_id=data.get("subject_id"),
            timestamp=_parse_timestamp(data.get("timestamp")),
        )
    except (TypeError, ValueError) as e:
        logger.warning(
            "ANALYZE_REQUEST_INVALID",
            extra={"reason": "validation_failed", "error": str(e)}
        )
        return jsonify({"error": str(e)}), 400

    try:
        result = _run(engine.analyze_entry(analysis_request))

        if analysis_request.mood is not None and analysis_request.subject_id is not None:
            mood_history.record(
                analysis_request.subject_id,
                analysis_request.mood,
                analysis_request.timestamp or clock.now(),
            )

        body = result.to_dict()
        if result.level == CrisisLevel.ERROR:
            # Internal error details stay in the logs
            body.pop("error", None)
        if result.recommendation is not None:
            body["resources"] = resources_for(result.recommendation)
        return jsonify(body), 200

    except Exception as e:
        logger.error(
            "ANALYZE_HANDLER_ERROR",
            extra={
                "subject_id_hash": hash_optional_pii(analysis_request.subject_id),
                "error": str(e),
                "error_type": type(e).__name__,
                "action": "RETURNING_FALLBACK",
            }
        )
        fallback = recommend(CrisisLevel.ERROR)
        return jsonify({
            "level": CrisisLevel.ERROR.value,
            "score": 0,
            "should_alert": False,
            "recommendation": fallback.to_dict(),
            "resources": resources_for(fallback),
        }), 200


@app.route("/analyze/realtime", methods=["POST"])
def analyze_realtime():
    """Immediate-tier scan for text as it is typed.

    Request Body:
        {"text": "Partial entry text"}
    """
    data = request.get_json(silent=True)
    text = data.get("text") if isinstance(data, dict) else None
    if not isinstance(text, str):
        return jsonify({"error": "Missing required field: text"}), 400
    return jsonify(engine.quick_analyze(text).to_dict()), 200


@app.route("/alerts/clear", methods=["POST"])
def clear_alerts():
    """Privacy reset - forget all alert history."""
    engine.clear_alert_history()
    logger.info("ALERT_HISTORY_RESET_REQUESTED")
    return "", 204


@app.route("/stats", methods=["GET"])
def stats():
    """Read-only stats for operational dashboards."""
    return jsonify(engine.get_analysis_stats()), 200


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    port = int(os.getenv("PORT", "8002"))
    app.run(host="0.0.0.0", port=port, debug=False)
