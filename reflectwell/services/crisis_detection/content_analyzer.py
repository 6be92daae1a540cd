"""Content analyzer - scans one entry against the pattern corpus.

Produces per-tier triggers, protective factor matches and a raw score.
No dampening or clamping happens here; that is the fusion step's job.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from reflectwell.shared.models import (
    ProtectiveFactorMatch,
    SeverityTier,
    Trigger,
    TriggerSource,
)
from .config import DEFAULT_CORPUS, DetectionConfig, PatternCorpus

logger = logging.getLogger(__name__)


TIER_DESCRIPTIONS: Dict[SeverityTier, str] = {
    SeverityTier.IMMEDIATE: "Direct crisis language detected",
    SeverityTier.ESCALATING: "Escalating distress patterns detected",
    SeverityTier.CONCERNING: "Mental health concerns detected",
}

# Curly quotes typed on mobile keyboards would otherwise miss "can't", "i'm", ...
_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'"})


def normalize_text(text: str) -> str:
    """Lower-case, straighten apostrophes and collapse whitespace."""
    return " ".join(text.translate(_APOSTROPHES).lower().split())


class PatternMatcher:
    """Matches a fixed list of corpus strings against normalized text.

    With word boundaries, "die" won't match "diet" and "cutting" won't
    match "cuttings". Without them, plain substring containment is used.
    """

    def __init__(self, patterns: Sequence[str], word_boundary: bool = True):
        self.patterns = tuple(patterns)
        self.word_boundary = word_boundary
        self._compiled: List[Tuple[str, re.Pattern]] = []
        if word_boundary:
            for pattern in self.patterns:
                # Lookarounds instead of \b so patterns ending in punctuation still anchor
                self._compiled.append(
                    (pattern, re.compile(rf"(?<!\w){re.escape(pattern)}(?!\w)"))
                )

    def find(self, normalized_text: str) -> List[str]:
        """Return the patterns present in the text, in corpus order."""
        if not self.word_boundary:
            return [p for p in self.patterns if p in normalized_text]
        return [p for p, regex in self._compiled if regex.search(normalized_text)]


@dataclass(frozen=True)
class TextStats:
    word_count: int
    sentence_count: int
    character_count: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "word_count": self.word_count,
            "sentence_count": self.sentence_count,
            "character_count": self.character_count,
        }


@dataclass(frozen=True)
class ContentAnalysis:
    """Raw, undampened content scan of one entry."""
    raw_score: float
    text_stats: TextStats
    triggers: List[Trigger] = field(default_factory=list)
    protective_factors: List[ProtectiveFactorMatch] = field(default_factory=list)

    @property
    def has_hard_trigger(self) -> bool:
        return any(t.is_hard_trigger for t in self.triggers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_score": self.raw_score,
            "triggers": [t.to_dict() for t in self.triggers],
            "protective_factors": [p.to_dict() for p in self.protective_factors],
            "text_stats": self.text_stats.to_dict(),
        }


class ContentAnalyzer:
    """Scans entry text for tiered crisis language and protective factors.

    Patterns are compiled once at construction; analyze() is pure and
    safe to call from any number of concurrent analyses.
    """

    def __init__(
        self,
        corpus: Optional[PatternCorpus] = None,
        config: Optional[DetectionConfig] = None,
    ):
        """Initialize analyzer with a corpus.

        Args:
            corpus: Pattern corpus (defaults to the built-in corpus)
            config: Detection behavior, used for the matching mode
        """
        self.corpus = corpus or DEFAULT_CORPUS
        self.config = config or DetectionConfig()
        word_boundary = self.config.word_boundary_matching

        self._tier_matchers = [
            (pattern_set, PatternMatcher(pattern_set.all_patterns, word_boundary))
            for pattern_set in self.corpus.ordered_tiers()
        ]
        self._factor_matchers = [
            (category, PatternMatcher(category.keywords, word_boundary))
            for category in self.corpus.protective_factors
        ]

        logger.info(
            "CONTENT_ANALYZER_INITIALIZED",
            extra={
                "corpus_version": self.corpus.version,
                "tier_pattern_counts": {
                    p.tier.value: len(p.all_patterns) for p, _ in self._tier_matchers
                },
                "protective_categories": len(self._factor_matchers),
                "word_boundary_matching": word_boundary,
            }
        )

    def analyze(self, text: str) -> ContentAnalysis:
        """Scan text and return triggers, protective factors and raw score.

        Args:
            text: Raw entry text

        Returns:
            ContentAnalysis with unclamped raw_score
        """
        normalized = normalize_text(text)

        triggers: List[Trigger] = []
        raw_score = 0.0
        for pattern_set, matcher in self._tier_matchers:
            # find() yields each corpus string at most once
            matches = matcher.find(normalized)
            if not matches:
                continue
            subscore = len(matches) * pattern_set.weight
            raw_score += subscore
            triggers.append(Trigger(
                tier=pattern_set.tier,
                subscore=subscore,
                description=TIER_DESCRIPTIONS[pattern_set.tier],
                source=TriggerSource.CONTENT,
                matched_strings=tuple(matches),
            ))

        protective_factors: List[ProtectiveFactorMatch] = []
        for category, matcher in self._factor_matchers:
            matches = matcher.find(normalized)
            if matches:
                protective_factors.append(ProtectiveFactorMatch(
                    category=category.name,
                    matches=tuple(matches),
                    description=category.description,
                ))

        sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
        stats = TextStats(
            word_count=len(normalized.split()),
            sentence_count=len(sentences),
            character_count=len(text),
        )

        return ContentAnalysis(
            raw_score=raw_score,
            text_stats=stats,
            triggers=triggers,
            protective_factors=protective_factors,
        )

    def contains_hard_trigger(self, text: str) -> bool:
        """Cheap check for any immediate-tier match, used on short entries."""
        normalized = normalize_text(text)
        for pattern_set, matcher in self._tier_matchers:
            if pattern_set.tier == SeverityTier.IMMEDIATE:
                return bool(matcher.find(normalized))
        return False
