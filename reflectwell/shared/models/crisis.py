"""Crisis level and analysis result domain models.

This file defines the core enums and data structures shared by the crisis
detection engine and its HTTP surface. Every result type exposes to_dict()
so it can be returned to the journaling UI as JSON.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class CrisisLevel(Enum):
    """Intervention level assigned to one analysis.

    ERROR is indeterminate, not a variant of NONE: callers should fall back
    to generic supportive messaging when they see it.
    """
    NONE = "none"
    CONCERNING = "concerning"       # Supportive check-in
    ESCALATING = "escalating"       # Professional support suggested
    IMMEDIATE = "immediate"         # Crisis resources shown right away
    ERROR = "error"


class SeverityTier(Enum):
    """Pattern corpus tiers, ordered from most to least severe."""
    IMMEDIATE = "immediate"
    ESCALATING = "escalating"
    CONCERNING = "concerning"


class Confidence(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Urgency(Enum):
    NONE = "none"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class TrendDirection(Enum):
    """Direction of a subject's mood over the lookback window."""
    STABLE = "stable"
    DECLINING = "declining"
    IMPROVING = "improving"


class TriggerSource(Enum):
    """Where a trigger's contribution to the composite score came from."""
    CONTENT = "content"
    MOOD = "mood"
    HISTORY = "history"


@dataclass(frozen=True)
class Trigger:
    """A single contribution to the composite score.

    Content triggers carry the matched corpus strings; mood and history
    triggers are synthetic and carry none.
    """
    tier: SeverityTier
    subscore: float
    description: str
    source: TriggerSource = TriggerSource.CONTENT
    matched_strings: Tuple[str, ...] = ()

    @property
    def is_hard_trigger(self) -> bool:
        """True for immediate-tier matches found in the text itself."""
        return (
            self.source == TriggerSource.CONTENT
            and self.tier == SeverityTier.IMMEDIATE
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier.value,
            "source": self.source.value,
            "matched_strings": list(self.matched_strings),
            "subscore": round(self.subscore, 3),
            "description": self.description,
        }


@dataclass(frozen=True)
class ProtectiveFactorMatch:
    """A protective-factor category detected in the text."""
    category: str
    matches: Tuple[str, ...]
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "matches": list(self.matches),
            "description": self.description,
        }


@dataclass(frozen=True)
class HistoricalContext:
    """Summary of a subject's recent mood history over the lookback window."""
    pattern: TrendDirection
    average_mood: float
    recent_trend: TrendDirection
    days_analyzed: int
    entries_analyzed: int
    sustained_low_days: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern.value,
            "average_mood": round(self.average_mood, 2),
            "recent_trend": self.recent_trend.value,
            "days_analyzed": self.days_analyzed,
            "entries_analyzed": self.entries_analyzed,
            "sustained_low_days": self.sustained_low_days,
        }


@dataclass(frozen=True)
class RecommendationBundle:
    """Resource categories and supportive message for one crisis level."""
    primary_resource_category: str
    secondary_resource_category: str
    self_care_category: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary_resource_category,
            "secondary": self.secondary_resource_category,
            "self_care": self.self_care_category,
            "message": self.message,
        }


@dataclass(frozen=True)
class AnalysisRequest:
    """One journal or chat entry submitted for analysis.

    Mood and energy are self-reported on a 1-10 scale.
    """
    text: str
    mood: Optional[float] = None
    energy: Optional[float] = None
    subject_id: Optional[str] = None
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.text, str):
            raise ValueError(f"Entry text must be a string, got {type(self.text).__name__}")
        for name in ("mood", "energy"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not 1 <= value <= 10:
                raise ValueError(f"{name} must be 1-10, got {value}")


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of a full entry analysis.

    Immutable - results are cached for stats and published to the alert
    sink, so they cannot be modified after creation.
    """
    level: CrisisLevel
    composite_score: float
    confidence: Confidence
    urgency: Urgency
    should_alert: bool = False
    triggers: List[Trigger] = field(default_factory=list)
    protective_factors: List[ProtectiveFactorMatch] = field(default_factory=list)
    historical_context: Optional[HistoricalContext] = None
    recommendation: Optional[RecommendationBundle] = None
    description: str = ""
    reason: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if self.composite_score < 0:
            raise ValueError(f"Composite score must be >= 0, got {self.composite_score}")

    @property
    def historical_pattern(self) -> Optional[TrendDirection]:
        if self.historical_context is None:
            return None
        return self.historical_context.pattern

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        result = {
            "level": self.level.value,
            "score": round(self.composite_score, 3),
            "confidence": self.confidence.value,
            "urgency": self.urgency.value,
            "should_alert": self.should_alert,
            "triggers": [t.to_dict() for t in self.triggers],
            "protective_factors": [p.to_dict() for p in self.protective_factors],
            "historical_pattern": (
                self.historical_pattern.value if self.historical_pattern else None
            ),
            "recommendation": (
                self.recommendation.to_dict() if self.recommendation else None
            ),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.description:
            result["description"] = self.description
        if self.reason:
            result["reason"] = self.reason
        if self.error:
            result["error"] = self.error
        return result
