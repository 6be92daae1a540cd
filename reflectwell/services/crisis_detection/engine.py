"""Crisis detection engine - full entry analysis pipeline.

AnalysisRequest -> content scan -> [historical context] -> score fusion
-> level classification -> alert cooldown -> recommendation -> AnalysisResult

Every collaborator is injected so the engine can be tested in isolation.
The engine never raises from analyze_entry(): any failure comes back as a
CrisisLevel.ERROR result, which callers must treat as indeterminate.
"""
import asyncio
import logging
import time
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union

from reflectwell.shared.models import (
    AnalysisRequest,
    AnalysisResult,
    Confidence,
    CrisisLevel,
    RecommendationBundle,
    Urgency,
)
from reflectwell.shared.utils import hash_optional_pii, hash_text_for_audit
from .alert_registry import AlertCooldownRegistry
from .classifier import LevelClassifier
from .clock import ClockSource, SystemClock
from .config import (
    DEFAULT_CORPUS,
    AnalysisThresholds,
    DetectionConfig,
    PatternCorpus,
    threshold_config,
)
from .content_analyzer import ContentAnalyzer
from .fusion import ScoreFusionEngine
from .history import HistoricalContextProvider, fetch_with_timeout
from .realtime import QuickAnalysis, RealTimeAnalyzer
from .recommendations import recommend

logger = logging.getLogger(__name__)

ENTRY_TOO_SHORT = "entry_too_short"


class CrisisDetectionEngine:
    """Scores journal/chat entries for crisis indicators.

    The alert registry is the only shared mutable state; everything else
    is pure, so many analyses for different subjects can run concurrently.
    """

    def __init__(
        self,
        corpus: Optional[PatternCorpus] = None,
        thresholds: Optional[AnalysisThresholds] = None,
        config: Optional[DetectionConfig] = None,
        clock: Optional[ClockSource] = None,
        history_provider: Optional[HistoricalContextProvider] = None,
        alert_registry: Optional[AlertCooldownRegistry] = None,
        alert_sink: Optional[Any] = None,
    ):
        """Initialize engine with its collaborators.

        Args:
            corpus: Pattern corpus (defaults to the built-in corpus)
            thresholds: Level thresholds
            config: Detection behavior configuration
            clock: Time source for timestamps and cooldowns
            history_provider: Historical context collaborator (optional)
            alert_registry: Cooldown registry (built from config if omitted)
            alert_sink: Object with publish_alert(subject_id, level, recommendation)
        """
        self.corpus = corpus or DEFAULT_CORPUS
        self.thresholds = thresholds or AnalysisThresholds()
        self.config = config or DetectionConfig()
        self.clock = clock or SystemClock()
        self.history_provider = history_provider
        self.alert_registry = alert_registry or AlertCooldownRegistry(
            cooldown=timedelta(hours=self.config.alert_cooldown_hours),
            clock=self.clock,
        )
        self.alert_sink = alert_sink

        self.content_analyzer = ContentAnalyzer(self.corpus, self.config)
        self.fusion = ScoreFusionEngine(self.config)
        self.classifier = LevelClassifier(self.thresholds)
        self.realtime = RealTimeAnalyzer(self.corpus, self.thresholds, self.config)

        self._last_analysis: Optional[AnalysisResult] = None

        logger.info(
            "CRISIS_ENGINE_INITIALIZED",
            extra={
                "corpus_version": self.corpus.version,
                "history_enabled": history_provider is not None,
                "alert_sink_enabled": alert_sink is not None,
                "cooldown_hours": self.config.alert_cooldown_hours,
            }
        )

    async def analyze_entry(
        self,
        request: Union[AnalysisRequest, str],
        mood: Optional[float] = None,
        energy: Optional[float] = None,
        subject_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> AnalysisResult:
        """Run the full pipeline on one entry.

        Accepts either an AnalysisRequest or the raw text plus metadata.

        Returns:
            AnalysisResult; level is ERROR if anything went wrong

        Logs:
            - CRISIS_ANALYSIS_STARTED: Before analysis begins
            - CRISIS_IMMEDIATE_DETECTED: Immediate level (critical)
            - CRISIS_ANALYSIS_COMPLETED: After analysis finishes
            - CRISIS_ANALYSIS_ERROR: On any failure
        """
        start_time = time.perf_counter()
        try:
            if not isinstance(request, AnalysisRequest):
                request = AnalysisRequest(
                    text=request,
                    mood=mood,
                    energy=energy,
                    subject_id=subject_id,
                    timestamp=timestamp,
                )
            return await self._analyze(request, start_time)
        except Exception as e:
            logger.error(
                "CRISIS_ANALYSIS_ERROR",
                extra={
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "RETURNING_INDETERMINATE",
                }
            )
            return AnalysisResult(
                level=CrisisLevel.ERROR,
                composite_score=0.0,
                confidence=Confidence.LOW,
                urgency=Urgency.NONE,
                should_alert=False,
                recommendation=recommend(CrisisLevel.ERROR),
                error=str(e),
                timestamp=self.clock.now(),
            )

    async def _analyze(self, request: AnalysisRequest, start_time: float) -> AnalysisResult:
        text = request.text
        subject_id = request.subject_id
        subject_id_hash = hash_optional_pii(subject_id)
        timestamp = request.timestamp or self.clock.now()

        logger.info(
            "CRISIS_ANALYSIS_STARTED",
            extra={
                "subject_id_hash": subject_id_hash,
                "text_hash": hash_text_for_audit(text),
                "text_length": len(text),
                "mood_provided": request.mood is not None,
            }
        )

        if len(text) < self.config.minimum_entry_length:
            if not (
                self.config.short_entry_crisis_override
                and self.content_analyzer.contains_hard_trigger(text)
            ):
                logger.info(
                    "CRISIS_ANALYSIS_SKIPPED",
                    extra={"subject_id_hash": subject_id_hash, "reason": ENTRY_TOO_SHORT}
                )
                return AnalysisResult(
                    level=CrisisLevel.NONE,
                    composite_score=0.0,
                    confidence=Confidence.LOW,
                    urgency=Urgency.NONE,
                    reason=ENTRY_TOO_SHORT,
                    timestamp=timestamp,
                )
            logger.warning(
                "SHORT_ENTRY_CRISIS_OVERRIDE",
                extra={"subject_id_hash": subject_id_hash, "text_length": len(text)}
            )

        content = self.content_analyzer.analyze(text)

        historical_context = None
        if subject_id is not None:
            historical_context = await fetch_with_timeout(
                self.history_provider,
                subject_id,
                self.config.history_timeout_seconds,
            )

        fused = self.fusion.fuse(
            raw_score=content.raw_score,
            content_triggers=content.triggers,
            protective_factors=content.protective_factors,
            mood=request.mood,
            historical_context=historical_context,
        )
        classification = self.classifier.classify(fused.composite_score, fused.triggers)
        level = classification.level

        should_alert = self.alert_registry.check_and_record(subject_id, level)
        recommendation = recommend(level)

        result = AnalysisResult(
            level=level,
            composite_score=fused.composite_score,
            confidence=classification.confidence,
            urgency=classification.urgency,
            should_alert=should_alert,
            triggers=fused.triggers,
            protective_factors=content.protective_factors,
            historical_context=historical_context,
            recommendation=recommendation,
            description=classification.description,
            timestamp=timestamp,
        )

        if should_alert and self.alert_sink is not None:
            await self._publish_alert(subject_id, level, recommendation)

        latency_ms = (time.perf_counter() - start_time) * 1000
        if level == CrisisLevel.IMMEDIATE:
            logger.critical(
                "CRISIS_IMMEDIATE_DETECTED",
                extra={
                    "subject_id_hash": subject_id_hash,
                    "composite_score": fused.composite_score,
                    "hard_trigger": content.has_hard_trigger,
                    "should_alert": should_alert,
                    "latency_ms": latency_ms,
                }
            )

        logger.info(
            "CRISIS_ANALYSIS_COMPLETED",
            extra={
                "subject_id_hash": subject_id_hash,
                "level": level.value,
                "raw_score": content.raw_score,
                "composite_score": fused.composite_score,
                "protective_reduction": fused.protective_reduction,
                "historical_influence": fused.historical_influence,
                "trigger_count": len(fused.triggers),
                "should_alert": should_alert,
                "latency_ms": latency_ms,
            }
        )

        self._last_analysis = result
        return result

    async def _publish_alert(
        self,
        subject_id: Optional[str],
        level: CrisisLevel,
        recommendation: Optional[RecommendationBundle],
    ) -> None:
        """Hand the alert to the sink off the event loop; never raises."""
        try:
            published = await asyncio.to_thread(
                self.alert_sink.publish_alert, subject_id, level, recommendation
            )
        except Exception as e:
            logger.critical(
                "ALERT_SINK_FAILED",
                extra={
                    "subject_id_hash": hash_optional_pii(subject_id),
                    "level": level.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "MANUAL_REVIEW_REQUIRED",
                }
            )
            return
        if published is False:
            logger.error(
                "ALERT_NOT_DELIVERED",
                extra={
                    "subject_id_hash": hash_optional_pii(subject_id),
                    "level": level.value,
                }
            )

    def quick_analyze(self, text: str) -> QuickAnalysis:
        """Synchronous immediate-tier scan for streaming input."""
        return self.realtime.quick_analyze(text)

    def clear_alert_history(self) -> None:
        """Privacy reset: forget every alert record and the cached last analysis."""
        self.alert_registry.clear()
        self._last_analysis = None

    def get_analysis_stats(self) -> Dict[str, Any]:
        """Read-only introspection for operational dashboards."""
        last = self._last_analysis
        return {
            "last_analysis": last.to_dict() if last is not None else None,
            "active_alert_count": self.alert_registry.active_count(),
            "threshold_config": threshold_config(self.thresholds, self.config),
            "corpus_version": self.corpus.version,
        }
