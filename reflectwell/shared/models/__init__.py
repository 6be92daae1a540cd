"""Shared domain models for the Reflectwell platform."""
from .crisis import (
    CrisisLevel,
    SeverityTier,
    Confidence,
    Urgency,
    TrendDirection,
    TriggerSource,
    Trigger,
    ProtectiveFactorMatch,
    HistoricalContext,
    RecommendationBundle,
    AnalysisRequest,
    AnalysisResult,
)

__all__ = [
    "CrisisLevel",
    "SeverityTier",
    "Confidence",
    "Urgency",
    "TrendDirection",
    "TriggerSource",
    "Trigger",
    "ProtectiveFactorMatch",
    "HistoricalContext",
    "RecommendationBundle",
    "AnalysisRequest",
    "AnalysisResult",
]
