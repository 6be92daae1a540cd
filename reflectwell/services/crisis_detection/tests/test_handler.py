"""Tests for the Crisis Detection HTTP handler."""
import asyncio
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from reflectwell.services.crisis_detection import handler
from reflectwell.services.crisis_detection.config import DetectionConfig
from reflectwell.services.crisis_detection.history import HistoricalContextProvider


class _SlowHistory(HistoricalContextProvider):
    """Finishes after the engine has stopped waiting for it."""

    def __init__(self):
        self.finished = threading.Event()

    async def fetch(self, subject_id):
        await asyncio.sleep(0.1)
        self.finished.set()
        return None


@pytest.fixture
def client():
    handler.app.config["TESTING"] = True
    with handler.app.test_client() as client:
        yield client


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"
        assert response.get_json()["corpus_version"] == handler.corpus.version

    def test_ready(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.get_json()["status"] == "ready"
        assert response.get_json()["corpus_version"] == handler.corpus.version

    def test_not_ready_without_running_loop(self, client):
        stopped = asyncio.new_event_loop()
        try:
            with patch.object(handler, "event_loop", stopped):
                response = client.get("/ready")
        finally:
            stopped.close()

        assert response.status_code == 503
        assert response.get_json()["reason"] == "event_loop_stopped"


class TestAnalyze:
    """Tests for POST /analyze."""

    def test_explicit_crisis_entry(self, client):
        response = client.post("/analyze", json={
            "text": "I want to kill myself and I have a plan",
            "subject_id": "handler_user_b",
        })

        body = response.get_json()
        assert response.status_code == 200
        assert body["level"] == "immediate"
        assert body["should_alert"] is True
        assert body["recommendation"]["primary"] == "immediate_crisis_resources"
        assert body["resources"]["primary"][0]["id"] == "us_988"

    def test_short_entry(self, client):
        response = client.post("/analyze", json={"text": "Feeling okay today."})

        body = response.get_json()
        assert body["level"] == "none"
        assert body["reason"] == "entry_too_short"
        assert body["recommendation"] is None
        assert "resources" not in body

    def test_mood_feeds_history(self, client):
        """After three low-mood entries the fourth sees a low average."""
        entry = {
            "text": "Today I cleaned the kitchen and answered some emails from work colleagues.",
            "mood": 2,
            "subject_id": "handler_history_user",
        }
        for _ in range(3):
            early = client.post("/analyze", json=entry).get_json()
            assert early["historical_pattern"] is None

        body = client.post("/analyze", json=entry).get_json()

        descriptions = [t["description"] for t in body["triggers"]]
        assert "Consistently low mood over time" in descriptions
        assert body["historical_pattern"] == "stable"
        assert body["score"] == 4.5
        assert body["level"] == "concerning"

    def test_offset_timestamps_feed_history(self, client):
        """Timestamps with a UTC offset are stored as naive UTC and stay usable."""
        local = timezone(timedelta(hours=2))
        entry = {
            "text": "Today I cleaned the kitchen and answered some emails from work colleagues.",
            "mood": 2,
            "subject_id": "handler_offset_user",
        }
        for _ in range(3):
            entry["timestamp"] = datetime.now(local).isoformat()
            early = client.post("/analyze", json=entry)
            assert early.status_code == 200
            assert "+" not in early.get_json()["timestamp"]

        entry["timestamp"] = datetime.now(local).isoformat()
        body = client.post("/analyze", json=entry).get_json()

        descriptions = [t["description"] for t in body["triggers"]]
        assert "Consistently low mood over time" in descriptions
        assert body["historical_pattern"] == "stable"

    def test_parse_timestamp_converts_to_utc(self):
        assert handler._parse_timestamp("2025-01-15T14:00:00+02:00") == datetime(2025, 1, 15, 12, 0)
        assert handler._parse_timestamp("2025-01-15T14:00:00") == datetime(2025, 1, 15, 14, 0)
        assert handler._parse_timestamp(None) is None

    def test_non_string_timestamp(self, client):
        response = client.post("/analyze", json={"text": "hello", "timestamp": 1736942400})
        assert response.status_code == 400

    def test_slow_history_finishes_after_response(self, client):
        """A history fetch that times out keeps running once the request returns."""
        history = _SlowHistory()
        with patch.object(handler.engine, "config", DetectionConfig(history_timeout_seconds=0.01)), \
                patch.object(handler.engine, "history_provider", history):
            response = client.post("/analyze", json={
                "text": "I have been feeling so exhausted after work every single evening.",
                "subject_id": "handler_slow_history_user",
            })

        assert response.status_code == 200
        assert response.get_json()["historical_pattern"] is None
        assert history.finished.wait(2)

    def test_missing_body(self, client):
        response = client.post("/analyze", data="not json", content_type="text/plain")
        assert response.status_code == 400

    def test_non_object_body(self, client):
        response = client.post("/analyze", json=["I want to kill myself"])
        assert response.status_code == 400

    def test_missing_text(self, client):
        response = client.post("/analyze", json={"mood": 4})

        assert response.status_code == 400
        assert "text" in response.get_json()["error"]

    def test_mood_out_of_range(self, client):
        response = client.post("/analyze", json={"text": "hello", "mood": 11})
        assert response.status_code == 400

    def test_mood_not_a_number(self, client):
        response = client.post("/analyze", json={"text": "hello", "mood": "low"})
        assert response.status_code == 400

    def test_bad_timestamp(self, client):
        response = client.post("/analyze", json={"text": "hello", "timestamp": "yesterday"})
        assert response.status_code == 400

    def test_unexpected_failure_returns_fallback(self, client):
        """The UI always gets a supportive message, never a 500."""
        with patch.object(handler.engine, "analyze_entry", side_effect=RuntimeError("boom")):
            response = client.post("/analyze", json={
                "text": "I have been feeling so exhausted after work every single evening.",
            })

        body = response.get_json()
        assert response.status_code == 200
        assert body["level"] == "error"
        assert body["recommendation"]["primary"] == "general_support_resources"
        assert "boom" not in response.get_data(as_text=True)


class TestRealtime:
    """Tests for POST /analyze/realtime."""

    def test_quick_analyze(self, client):
        response = client.post("/analyze/realtime", json={"text": "I want to kill myself"})

        body = response.get_json()
        assert response.status_code == 200
        assert body["level"] == "immediate"
        assert body["score"] == 13.0

    def test_missing_text(self, client):
        response = client.post("/analyze/realtime", json={})
        assert response.status_code == 400


class TestAdmin:
    """Tests for the administrative endpoints."""

    def test_clear_alerts(self, client):
        client.post("/analyze", json={
            "text": "I have been feeling so exhausted after work every single evening.",
            "subject_id": "handler_clear_user",
        })

        response = client.post("/alerts/clear")

        assert response.status_code == 204
        stats = client.get("/stats").get_json()
        assert stats["active_alert_count"] == 0
        assert stats["last_analysis"] is None

    def test_stats(self, client):
        response = client.get("/stats")

        body = response.get_json()
        assert response.status_code == 200
        assert body["threshold_config"]["concerning_threshold"] == 4
        assert body["corpus_version"] == handler.corpus.version
