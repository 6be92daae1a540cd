"""Real-time lightweight analyzer for keystroke/paragraph feedback.

Scans only the immediate tier's keywords and phrases. No history, no
protective dampening, no alert registry, no I/O - cheap enough to run
synchronously on every keystroke.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from reflectwell.shared.models import CrisisLevel, SeverityTier
from .config import DEFAULT_CORPUS, AnalysisThresholds, DetectionConfig, PatternCorpus
from .content_analyzer import PatternMatcher, normalize_text


@dataclass(frozen=True)
class QuickAnalysis:
    level: CrisisLevel
    score: float
    matches: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "score": self.score,
            "matches": list(self.matches),
        }


class RealTimeAnalyzer:
    """Immediate-tier-only scan. Levels are NONE, CONCERNING or IMMEDIATE."""

    def __init__(
        self,
        corpus: Optional[PatternCorpus] = None,
        thresholds: Optional[AnalysisThresholds] = None,
        config: Optional[DetectionConfig] = None,
    ):
        corpus = corpus or DEFAULT_CORPUS
        self.thresholds = thresholds or AnalysisThresholds()
        self.config = config or DetectionConfig()
        immediate = corpus.tier(SeverityTier.IMMEDIATE)
        word_boundary = self.config.word_boundary_matching
        self._keywords = PatternMatcher(immediate.keywords, word_boundary)
        self._phrases = PatternMatcher(immediate.phrases, word_boundary)

    def quick_analyze(self, text: str) -> QuickAnalysis:
        if len(text) < self.config.realtime_minimum_length:
            return QuickAnalysis(level=CrisisLevel.NONE, score=0)

        normalized = normalize_text(text)
        keyword_matches = self._keywords.find(normalized)
        phrase_matches = self._phrases.find(normalized)
        score = (
            len(keyword_matches) * self.config.realtime_keyword_weight
            + len(phrase_matches) * self.config.realtime_phrase_weight
        )

        if score >= self.thresholds.REALTIME_IMMEDIATE_MIN:
            level = CrisisLevel.IMMEDIATE
        elif score >= self.thresholds.REALTIME_CONCERNING_MIN:
            level = CrisisLevel.CONCERNING
        else:
            level = CrisisLevel.NONE

        return QuickAnalysis(level=level, score=score, matches=keyword_matches + phrase_matches)
