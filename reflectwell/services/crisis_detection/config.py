"""Crisis detection configuration: pattern corpus and scoring thresholds.

The corpus is hard-coded and versioned so that every change to the crisis
vocabulary goes through review. A JSON document with the same shape can
replace it at startup (see load_corpus_file); any malformed definition is
fatal, since a corrupted corpus would silently misclassify crisis content.
"""
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

from reflectwell.shared.models import SeverityTier

logger = logging.getLogger(__name__)


class CorpusConfigurationError(ValueError):
    """Raised when the pattern corpus or protective factors are malformed."""
    pass


def _normalize_strings(values: Iterable[str], owner: str, field_name: str) -> Tuple[str, ...]:
    """Lower-case and de-duplicate corpus strings, preserving order."""
    if not isinstance(values, (list, tuple, set, frozenset)):
        raise CorpusConfigurationError(
            f"{owner}.{field_name} must be a list of strings, got {type(values).__name__}"
        )
    seen = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise CorpusConfigurationError(f"{owner}.{field_name} contains an empty or non-string entry: {value!r}")
        normalized = " ".join(value.lower().split())
        if normalized not in seen:
            seen.append(normalized)
    return tuple(seen)


@dataclass(frozen=True)
class PatternSet:
    """Keyword/phrase lists for one severity tier.

    Each distinct matched string contributes `weight` to the raw score.
    """
    tier: SeverityTier
    weight: float
    keywords: Tuple[str, ...] = ()
    phrases: Tuple[str, ...] = ()
    contextual_flags: Tuple[str, ...] = ()
    escalation_patterns: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.tier, SeverityTier):
            raise CorpusConfigurationError(f"Unknown severity tier: {self.tier!r}")
        if isinstance(self.weight, bool) or not isinstance(self.weight, (int, float)) or self.weight <= 0:
            raise CorpusConfigurationError(
                f"Tier {self.tier.value} weight must be a positive number, got {self.weight!r}"
            )
        owner = self.tier.value
        for name in ("keywords", "phrases", "contextual_flags", "escalation_patterns"):
            object.__setattr__(self, name, _normalize_strings(getattr(self, name), owner, name))

    @property
    def all_patterns(self) -> Tuple[str, ...]:
        return self.keywords + self.phrases + self.contextual_flags + self.escalation_patterns


@dataclass(frozen=True)
class ProtectiveFactorCategory:
    """Language that indicates coping, planning or self-care.

    Every matched category reduces the composite score by
    DetectionConfig.protective_factor_weight.
    """
    name: str
    keywords: Tuple[str, ...]
    description: str = "Positive coping indicator"

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise CorpusConfigurationError(f"Protective factor category needs a name, got {self.name!r}")
        object.__setattr__(self, "keywords", _normalize_strings(self.keywords, self.name, "keywords"))


@dataclass(frozen=True)
class PatternCorpus:
    """Immutable set of tier patterns and protective factor categories."""
    version: str
    tiers: Tuple[PatternSet, ...]
    protective_factors: Tuple[ProtectiveFactorCategory, ...] = ()

    def __post_init__(self):
        if not isinstance(self.version, str) or not self.version:
            raise CorpusConfigurationError("Pattern corpus requires a version string")
        object.__setattr__(self, "tiers", tuple(self.tiers))
        object.__setattr__(self, "protective_factors", tuple(self.protective_factors))

        seen_tiers = [t.tier for t in self.tiers]
        for tier in SeverityTier:
            if seen_tiers.count(tier) != 1:
                raise CorpusConfigurationError(
                    f"Pattern corpus must define tier {tier.value} exactly once"
                )
        names = [c.name for c in self.protective_factors]
        if len(names) != len(set(names)):
            raise CorpusConfigurationError("Duplicate protective factor category names")

    def tier(self, tier: SeverityTier) -> PatternSet:
        for pattern_set in self.tiers:
            if pattern_set.tier == tier:
                return pattern_set
        raise KeyError(tier)

    def ordered_tiers(self) -> Tuple[PatternSet, ...]:
        """Tiers from most to least severe."""
        return tuple(self.tier(t) for t in SeverityTier)


@dataclass(frozen=True)
class AnalysisThresholds:
    """Composite score thresholds for intervention levels."""
    IMMEDIATE_MIN: float = 8.0        # Crisis resources immediately
    ESCALATING_MIN: float = 6.0       # Professional support suggested
    CONCERNING_MIN: float = 4.0       # Supportive check-in
    REALTIME_IMMEDIATE_MIN: float = 8.0
    REALTIME_CONCERNING_MIN: float = 4.0

    def __post_init__(self):
        if not self.IMMEDIATE_MIN >= self.ESCALATING_MIN >= self.CONCERNING_MIN > 0:
            raise ValueError(
                "Thresholds must satisfy IMMEDIATE_MIN >= ESCALATING_MIN >= CONCERNING_MIN > 0"
            )
        if not self.REALTIME_IMMEDIATE_MIN >= self.REALTIME_CONCERNING_MIN > 0:
            raise ValueError("Real-time thresholds must satisfy IMMEDIATE >= CONCERNING > 0")


@dataclass(frozen=True)
class DetectionConfig:
    """Configuration for crisis detection behavior."""

    # Entries shorter than this are not analyzed
    minimum_entry_length: int = 50
    # Immediate-tier language in a short entry still runs the full pipeline
    short_entry_crisis_override: bool = True

    # Real-time (keystroke) analysis
    realtime_minimum_length: int = 20
    realtime_keyword_weight: float = 5.0
    realtime_phrase_weight: float = 8.0

    # Mood on a 1-10 scale; below this is concerning
    mood_threshold_score: float = 3.0
    mood_adjustment_factor: float = 1.5

    # Historical pattern analysis
    history_days_back: int = 14
    minimum_entries_for_pattern: int = 3
    mood_threshold_days: int = 7
    trend_delta_threshold: float = 1.0
    declining_trend_adjustment: float = 2.0
    low_average_mood_adjustment: float = 3.0
    history_timeout_seconds: float = 2.0

    # Protective factor influence
    protective_factor_weight: float = -2.0
    max_protective_reduction: float = -4.0

    # Same subject + level alerts are suppressed for this long
    alert_cooldown_hours: float = 24.0

    # Whole-word matching; False falls back to plain substring containment
    word_boundary_matching: bool = True

    def __post_init__(self):
        if self.minimum_entry_length < 0 or self.realtime_minimum_length < 0:
            raise ValueError("Minimum lengths must be >= 0")
        if self.protective_factor_weight > 0 or self.max_protective_reduction > 0:
            raise ValueError("Protective factor weights must be <= 0")
        if self.alert_cooldown_hours <= 0:
            raise ValueError(f"Alert cooldown must be positive, got {self.alert_cooldown_hours}")
        if self.history_timeout_seconds <= 0:
            raise ValueError(f"History timeout must be positive, got {self.history_timeout_seconds}")
        if self.history_days_back <= 0 or self.minimum_entries_for_pattern <= 0:
            raise ValueError("History window and minimum entries must be positive")


# Crisis language corpus
# Updated: 2025-01-15 - dropped "last time" from immediate keywords (matched ordinary narration)
CORPUS_VERSION = "2025.01.15"

IMMEDIATE_PATTERNS = PatternSet(
    tier=SeverityTier.IMMEDIATE,
    weight=10,
    keywords=(
        # Direct suicidal ideation
        "kill myself",
        "end my life",
        "take my own life",
        "suicide",
        "better off dead",
        "want to die",
        "wish i was dead",
        "end it all",
        "not worth living",
        "done with life",
        # Self-harm references
        "hurt myself",
        "harm myself",
        "cut myself",
        "self harm",
        "self-harm",
        "make the pain stop",
        "punish myself",
        # Finality language
        "goodbye world",
        "final goodbye",
        "won't be around",
        "burden on everyone",
        "everyone would be better without me",
        "can't go on",
        "no way out",
        "no escape",
        # Methods
        "pills to end",
        "jump off",
        "overdose",
        "hanging myself",
    ),
    phrases=(
        "I want to kill myself",
        "I can't take this anymore",
        "there's no point in living",
        "everyone would be better off without me",
        "I'm going to end it",
        "I don't want to be alive",
        "I wish I could just disappear forever",
        "I'm planning to hurt myself",
        "I can't see any way out of this",
    ),
    # Planning indicators
    contextual_flags=(
        "made my mind up",
        "have a plan",
        "written letters",
        "said goodbye",
        "giving things away",
        "putting affairs in order",
    ),
)

ESCALATING_PATTERNS = PatternSet(
    tier=SeverityTier.ESCALATING,
    weight=7,
    keywords=(
        # Hopelessness without direct ideation
        "hopeless",
        "pointless",
        "meaningless",
        "worthless",
        "useless",
        "failure",
        "disappointment",
        "waste of space",
        "nobody cares",
        "all alone",
        "completely isolated",
        # Overwhelming emotions
        "can't cope",
        "falling apart",
        "breaking down",
        "drowning",
        "suffocating",
        "trapped",
        "stuck forever",
        "nothing helps",
        "nothing works",
        "tried everything",
        # Future negation
        "no future",
        "no hope",
        "never going to change",
        "always going to be like this",
        "permanent",
        "forever broken",
        "can't be fixed",
    ),
    phrases=(
        "I'm completely broken",
        "nothing will ever get better",
        "I'm a total failure",
        "I can't handle this anymore",
        "I feel completely alone",
        "there's no hope for me",
        "I'm too damaged to be helped",
        "I'll never be happy",
        "everything is falling apart",
    ),
    escalation_patterns=(
        "getting worse every day",
        "spiraling out of control",
        "can't stop the thoughts",
        "losing my mind",
        "breaking point",
    ),
)

CONCERNING_PATTERNS = PatternSet(
    tier=SeverityTier.CONCERNING,
    weight=4,
    keywords=(
        # Depression indicators
        "depressed",
        "sad all the time",
        "empty inside",
        "numb",
        "exhausted",
        "drained",
        "no energy",
        "can't get out of bed",
        "sleeping all day",
        # Anxiety indicators
        "panic attacks",
        "constant anxiety",
        "can't breathe",
        "heart racing",
        "overthinking everything",
        "catastrophizing",
        "worst case scenario",
        # Isolation
        "avoiding everyone",
        "don't want to see people",
        "hiding from the world",
        "pushing people away",
        "too much effort to socialize",
    ),
    phrases=(
        "I'm really struggling",
        "having a hard time",
        "feeling overwhelmed",
        "can't seem to cope",
        "everything feels too much",
        "I'm not doing well",
        "really difficult period",
        "barely hanging on",
    ),
)

PROTECTIVE_FACTORS: Tuple[ProtectiveFactorCategory, ...] = (
    ProtectiveFactorCategory(
        name="copingMentions",
        description="Using healthy coping strategies",
        keywords=(
            "talked to my therapist",
            "called my friend",
            "reached out",
            "using coping skills",
            "trying to cope",
            "working through this",
            "therapy helped",
            "medication helping",
            "support group",
            "family is supportive",
            "have people who care",
        ),
    ),
    ProtectiveFactorCategory(
        name="futurePlanning",
        description="Making plans for the future",
        keywords=(
            "tomorrow i will",
            "next week",
            "planning to",
            "looking forward",
            "goals for",
            "working towards",
            "hoping to",
            "excited about",
            "making plans",
            "scheduling",
            "appointment next",
        ),
    ),
    ProtectiveFactorCategory(
        name="problemSolving",
        description="Actively working on solutions",
        keywords=(
            "trying to figure out",
            "working on solutions",
            "brainstorming",
            "talking through options",
            "making a plan",
            "taking steps",
            "seeking help",
            "researching",
            "considering options",
        ),
    ),
    ProtectiveFactorCategory(
        name="temporaryLanguage",
        description="Recognizing current challenges as temporary",
        keywords=(
            "this week",
            "lately",
            "recently",
            "right now",
            "at the moment",
            "temporary",
            "hoping it passes",
            "rough patch",
            "difficult time",
            "going through a phase",
        ),
    ),
    ProtectiveFactorCategory(
        name="selfCareActions",
        description="Engaging in self-care activities",
        keywords=(
            "took a walk",
            "went for a walk",
            "called a friend",
            "practiced breathing",
            "took medication",
            "ate something",
            "showered",
            "exercised",
            "meditated",
            "journaled",
            "listened to music",
        ),
    ),
)

DEFAULT_CORPUS = PatternCorpus(
    version=CORPUS_VERSION,
    tiers=(IMMEDIATE_PATTERNS, ESCALATING_PATTERNS, CONCERNING_PATTERNS),
    protective_factors=PROTECTIVE_FACTORS,
)


def corpus_from_dict(data: Mapping[str, Any]) -> PatternCorpus:
    """Build a validated PatternCorpus from a JSON-style mapping.

    Expected shape:
        {
            "version": "2025.01.15",
            "tiers": {
                "immediate": {"weight": 10, "keywords": [...], "phrases": [...],
                              "contextual_flags": [...], "escalation_patterns": [...]},
                "escalating": {...},
                "concerning": {...}
            },
            "protective_factors": {
                "copingMentions": {"keywords": [...], "description": "..."}
            }
        }

    Raises:
        CorpusConfigurationError: On any missing or malformed field
    """
    if not isinstance(data, Mapping):
        raise CorpusConfigurationError("Corpus document must be a JSON object")

    tiers_data = data.get("tiers")
    if not isinstance(tiers_data, Mapping):
        raise CorpusConfigurationError("Corpus document requires a 'tiers' object")

    tiers = []
    for tier_name, tier_data in tiers_data.items():
        try:
            tier = SeverityTier(tier_name)
        except ValueError:
            raise CorpusConfigurationError(f"Unknown severity tier: {tier_name!r}") from None
        if not isinstance(tier_data, Mapping):
            raise CorpusConfigurationError(f"Tier {tier_name} must be an object")
        unknown = set(tier_data) - {"weight", "keywords", "phrases", "contextual_flags", "escalation_patterns"}
        if unknown:
            raise CorpusConfigurationError(f"Tier {tier_name} has unknown fields: {sorted(unknown)}")
        tiers.append(PatternSet(
            tier=tier,
            weight=tier_data.get("weight"),
            keywords=tier_data.get("keywords", ()),
            phrases=tier_data.get("phrases", ()),
            contextual_flags=tier_data.get("contextual_flags", ()),
            escalation_patterns=tier_data.get("escalation_patterns", ()),
        ))

    factors_data = data.get("protective_factors", {})
    if not isinstance(factors_data, Mapping):
        raise CorpusConfigurationError("'protective_factors' must be an object")
    factors = []
    for name, factor_data in factors_data.items():
        if not isinstance(factor_data, Mapping):
            raise CorpusConfigurationError(f"Protective factor {name} must be an object")
        unknown = set(factor_data) - {"keywords", "description"}
        if unknown:
            raise CorpusConfigurationError(
                f"Protective factor {name} has unknown fields: {sorted(unknown)}"
            )
        factors.append(ProtectiveFactorCategory(
            name=name,
            keywords=factor_data.get("keywords", ()),
            description=factor_data.get("description", "Positive coping indicator"),
        ))

    return PatternCorpus(
        version=data.get("version"),
        tiers=tuple(tiers),
        protective_factors=tuple(factors),
    )


def load_corpus_file(path: Union[str, Path]) -> PatternCorpus:
    """Load and validate a corpus JSON document.

    Raises:
        CorpusConfigurationError: If the file is unreadable or malformed
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.critical(
            "PATTERN_CORPUS_LOAD_FAILED",
            extra={"path": str(path), "error": str(e), "error_type": type(e).__name__}
        )
        raise CorpusConfigurationError(f"Could not read pattern corpus {path}: {e}") from e

    corpus = corpus_from_dict(data)
    logger.info(
        "PATTERN_CORPUS_LOADED",
        extra={
            "path": str(path),
            "corpus_version": corpus.version,
            "protective_categories": len(corpus.protective_factors),
        }
    )
    return corpus


def threshold_config(thresholds: AnalysisThresholds, config: DetectionConfig) -> Dict[str, Any]:
    """Flattened view of the active thresholds for stats endpoints."""
    return {
        "immediate_threshold": thresholds.IMMEDIATE_MIN,
        "escalating_threshold": thresholds.ESCALATING_MIN,
        "concerning_threshold": thresholds.CONCERNING_MIN,
        "realtime_immediate_threshold": thresholds.REALTIME_IMMEDIATE_MIN,
        "realtime_concerning_threshold": thresholds.REALTIME_CONCERNING_MIN,
        **asdict(config),
    }
