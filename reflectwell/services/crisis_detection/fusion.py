"""Score fusion - combines content, mood and history into one score.

composite = max(0, raw + protective_reduction + mood_adj + history_adj)

Protective reduction is bounded by max_protective_reduction no matter how
many categories match, and the composite never goes below zero.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from reflectwell.shared.models import (
    HistoricalContext,
    ProtectiveFactorMatch,
    SeverityTier,
    TrendDirection,
    Trigger,
    TriggerSource,
)
from .config import DetectionConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FusionResult:
    """Composite score with a breakdown of every adjustment."""
    composite_score: float
    triggers: List[Trigger] = field(default_factory=list)
    protective_reduction: float = 0.0
    mood_adjustment: float = 0.0
    historical_adjustment: float = 0.0
    historical_influence: str = "not_available"


class ScoreFusionEngine:
    """Fuses a raw content score with protective factors, mood and history."""

    def __init__(self, config: Optional[DetectionConfig] = None):
        self.config = config or DetectionConfig()

    def protective_reduction(self, protective_factors: Sequence[ProtectiveFactorMatch]) -> float:
        """Matched categories times protective_factor_weight, floored at
        max_protective_reduction.

        Both values are negative, so max() bounds the magnitude.
        """
        total = len(protective_factors) * self.config.protective_factor_weight
        return max(total, self.config.max_protective_reduction)

    def fuse(
        self,
        raw_score: float,
        content_triggers: Sequence[Trigger],
        protective_factors: Sequence[ProtectiveFactorMatch],
        mood: Optional[float] = None,
        historical_context: Optional[HistoricalContext] = None,
    ) -> FusionResult:
        """Combine all contributions into a non-negative composite score.

        Args:
            raw_score: Unclamped content score
            content_triggers: Triggers from the content scan
            protective_factors: Matched protective categories
            mood: Self-reported mood (1-10), if provided
            historical_context: Subject's mood history summary, if available

        Returns:
            FusionResult; triggers are the content triggers followed by
            synthetic mood and history triggers
        """
        triggers = list(content_triggers)
        reduction = self.protective_reduction(protective_factors)

        mood_adjustment = 0.0
        threshold = self.config.mood_threshold_score
        if mood is not None and mood < threshold:
            mood_adjustment = (threshold - mood) * self.config.mood_adjustment_factor
            triggers.append(Trigger(
                tier=SeverityTier.CONCERNING,
                subscore=mood_adjustment,
                description=f"Low mood score: {mood:g}/10",
                source=TriggerSource.MOOD,
            ))

        historical_adjustment = 0.0
        if historical_context is not None:
            if historical_context.recent_trend == TrendDirection.DECLINING:
                historical_adjustment += self.config.declining_trend_adjustment
                triggers.append(Trigger(
                    tier=SeverityTier.ESCALATING,
                    subscore=self.config.declining_trend_adjustment,
                    description="Declining pattern over recent entries",
                    source=TriggerSource.HISTORY,
                ))
            if historical_context.average_mood < threshold:
                historical_adjustment += self.config.low_average_mood_adjustment
                triggers.append(Trigger(
                    tier=SeverityTier.ESCALATING,
                    subscore=self.config.low_average_mood_adjustment,
                    description="Consistently low mood over time",
                    source=TriggerSource.HISTORY,
                ))

        composite = max(0.0, raw_score + reduction + mood_adjustment + historical_adjustment)

        logger.debug(
            "SCORE_FUSED",
            extra={
                "raw_score": raw_score,
                "protective_reduction": reduction,
                "mood_adjustment": mood_adjustment,
                "historical_adjustment": historical_adjustment,
                "composite_score": composite,
            }
        )

        return FusionResult(
            composite_score=composite,
            triggers=triggers,
            protective_reduction=reduction,
            mood_adjustment=mood_adjustment,
            historical_adjustment=historical_adjustment,
            historical_influence="included" if historical_context is not None else "not_available",
        )
