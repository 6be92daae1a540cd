"""Alert event publisher - the engine's alert sink.

Puts `{subject, level, recommendation}` events on a Kinesis stream when an
analysis decides to alert. Delivery (banners, emails, hotline routing)
belongs to whoever consumes the stream.

Publishing failure never raises: the analysis result is returned to the
caller either way, and failures are logged at CRITICAL for follow-up.
"""
import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from reflectwell.shared.models import CrisisLevel, RecommendationBundle
from reflectwell.shared.utils import hash_pii

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertEvent:
    """Immutable alert event for downstream notification delivery."""
    event_id: str
    subject_id_hash: str
    level: CrisisLevel
    recommendation: Optional[RecommendationBundle] = None
    corpus_version: str = ""
    event_type: str = "crisis.alert.raised"
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_kinesis_payload(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat() + "Z",
            "source": "crisis-detection",
            "data": {
                "subject_id_hash": self.subject_id_hash,
                "level": self.level.value,
                "recommendation": (
                    self.recommendation.to_dict() if self.recommendation else None
                ),
                "corpus_version": self.corpus_version,
            },
        }


class AlertEventPublisher:
    """Publishes alert events to Kinesis.

    Failure Handling:
        - Disabled publisher or missing client returns False
        - put_record errors are logged at CRITICAL and return False
    """

    def __init__(
        self,
        stream_name: str = "reflectwell-crisis-alerts",
        enabled: bool = True,
        region: Optional[str] = None,
        corpus_version: str = "",
    ):
        """Initialize publisher.

        Args:
            stream_name: Kinesis stream name
            enabled: Whether publishing is enabled (disable for local dev)
            region: AWS region (defaults to AWS_REGION env var)
            corpus_version: Pattern corpus version stamped on every event
        """
        self.stream_name = stream_name
        self.enabled = enabled
        self.region = region or os.getenv("AWS_REGION", "us-east-1")
        self.corpus_version = corpus_version
        self._kinesis_client = None

        logger.info(
            "ALERT_PUBLISHER_INITIALIZED",
            extra={
                "stream_name": stream_name,
                "enabled": enabled,
                "region": self.region,
            }
        )

    @property
    def kinesis_client(self):
        """Lazy initialization of Kinesis client."""
        if self._kinesis_client is None and self.enabled:
            try:
                import boto3
                self._kinesis_client = boto3.client(
                    "kinesis",
                    region_name=self.region,
                )
            except Exception as e:
                logger.error(
                    "KINESIS_CLIENT_INIT_FAILED",
                    extra={"error": str(e), "error_type": type(e).__name__}
                )
        return self._kinesis_client

    def build_event(
        self,
        subject_id: str,
        level: CrisisLevel,
        recommendation: Optional[RecommendationBundle],
    ) -> AlertEvent:
        return AlertEvent(
            event_id=f"evt_{uuid.uuid4().hex[:12]}",
            subject_id_hash=hash_pii(subject_id),
            level=level,
            recommendation=recommendation,
            corpus_version=self.corpus_version,
        )

    def publish_alert(
        self,
        subject_id: Optional[str],
        level: CrisisLevel,
        recommendation: Optional[RecommendationBundle],
    ) -> bool:
        """Publish one alert event.

        Args:
            subject_id: Raw subject identifier (hashed before it leaves here)
            level: Crisis level that triggered the alert
            recommendation: Bundle shown to the subject

        Returns:
            True if published successfully, False otherwise
        """
        if not self.enabled:
            logger.info(
                "ALERT_PUBLISH_SKIPPED",
                extra={"level": level.value, "reason": "publishing_disabled"}
            )
            return False

        event = self.build_event(subject_id or "anonymous", level, recommendation)
        payload = event.to_kinesis_payload()

        try:
            if self.kinesis_client is None:
                logger.critical(
                    "ALERT_EVENT_FALLBACK_LOG",
                    extra={
                        "event_id": event.event_id,
                        "payload": json.dumps(payload),
                        "reason": "kinesis_client_unavailable",
                        "action": "MANUAL_PROCESSING_REQUIRED",
                    }
                )
                return False

            response = self.kinesis_client.put_record(
                StreamName=self.stream_name,
                Data=json.dumps(payload),
                PartitionKey=event.subject_id_hash,  # Same subject -> same shard
            )

            log = logger.critical if level == CrisisLevel.IMMEDIATE else logger.warning
            log(
                "ALERT_EVENT_PUBLISHED",
                extra={
                    "event_id": event.event_id,
                    "subject_id_hash": event.subject_id_hash,
                    "level": level.value,
                    "shard_id": response.get("ShardId"),
                    "sequence_number": response.get("SequenceNumber"),
                }
            )
            return True

        except Exception as e:
            logger.critical(
                "ALERT_EVENT_PUBLISH_FAILED",
                extra={
                    "event_id": event.event_id,
                    "subject_id_hash": event.subject_id_hash,
                    "level": level.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                    "payload": json.dumps(payload),
                }
            )
            return False
