"""Level classifier - maps a composite score to an intervention level."""
from dataclasses import dataclass
from typing import Optional, Sequence

from reflectwell.shared.models import Confidence, CrisisLevel, Trigger, Urgency
from .config import AnalysisThresholds


@dataclass(frozen=True)
class LevelClassification:
    level: CrisisLevel
    confidence: Confidence
    urgency: Urgency
    description: str


IMMEDIATE = LevelClassification(
    CrisisLevel.IMMEDIATE, Confidence.HIGH, Urgency.CRITICAL,
    "Immediate crisis intervention recommended",
)
ESCALATING = LevelClassification(
    CrisisLevel.ESCALATING, Confidence.MEDIUM, Urgency.HIGH,
    "Escalating mental health concerns detected",
)
CONCERNING = LevelClassification(
    CrisisLevel.CONCERNING, Confidence.MEDIUM, Urgency.MODERATE,
    "Mental health support may be beneficial",
)
NO_CONCERN = LevelClassification(
    CrisisLevel.NONE, Confidence.LOW, Urgency.NONE,
    "No significant crisis indicators detected",
)


class LevelClassifier:
    """Deterministic threshold table.

    An immediate-tier content trigger forces IMMEDIATE before any score
    comparison, so protective dampening can never hide explicit crisis
    language.
    """

    def __init__(self, thresholds: Optional[AnalysisThresholds] = None):
        self.thresholds = thresholds or AnalysisThresholds()

    def classify(self, composite_score: float, triggers: Sequence[Trigger]) -> LevelClassification:
        if any(t.is_hard_trigger for t in triggers):
            return IMMEDIATE
        if composite_score >= self.thresholds.IMMEDIATE_MIN:
            return IMMEDIATE
        if composite_score >= self.thresholds.ESCALATING_MIN:
            return ESCALATING
        if composite_score >= self.thresholds.CONCERNING_MIN:
            return CONCERNING
        return NO_CONCERN
