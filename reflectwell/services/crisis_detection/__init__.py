"""Crisis Detection Service: heuristic triage for journal and chat entries.

Scores free-form writing for self-harm/suicide crisis indicators, fuses the
score with mood and historical trend, classifies it into an intervention
level and suppresses repeat alerts. It recommends caution; it never makes
a clinical judgment.

Components:
- config.py: Pattern corpus, thresholds and corpus loading
- content_analyzer.py: Tiered keyword/phrase scan and protective factors
- history.py: Historical context provider and mood trend aggregation
- fusion.py: Composite score with protective/mood/history adjustments
- classifier.py: Score -> intervention level
- alert_registry.py: Per-subject alert cooldown
- recommendations.py / resources.py: Level -> resources and message
- realtime.py: Keystroke-speed immediate-tier scan
- engine.py: CrisisDetectionEngine pipeline
- alert_publisher.py: Kinesis alert events
- handler.py: Flask HTTP endpoints

Usage:
    from reflectwell.services.crisis_detection import CrisisDetectionEngine
    engine = CrisisDetectionEngine()
    result = await engine.analyze_entry(AnalysisRequest(text=..., mood=4))
"""

from .alert_publisher import AlertEvent, AlertEventPublisher
from .alert_registry import AlertCooldownRegistry, AlertRecord
from .classifier import LevelClassification, LevelClassifier
from .clock import ClockSource, ManualClock, SystemClock
from .config import (
    DEFAULT_CORPUS,
    AnalysisThresholds,
    CorpusConfigurationError,
    DetectionConfig,
    PatternCorpus,
    PatternSet,
    ProtectiveFactorCategory,
    corpus_from_dict,
    load_corpus_file,
)
from .content_analyzer import ContentAnalysis, ContentAnalyzer
from .engine import CrisisDetectionEngine
from .fusion import FusionResult, ScoreFusionEngine
from .history import (
    HistoricalContextProvider,
    InMemoryMoodHistory,
    MoodEntry,
    MoodHistoryProvider,
    MoodHistorySource,
)
from .realtime import QuickAnalysis, RealTimeAnalyzer
from .recommendations import recommend

__all__ = [
    "AlertEvent",
    "AlertEventPublisher",
    "AlertCooldownRegistry",
    "AlertRecord",
    "LevelClassification",
    "LevelClassifier",
    "ClockSource",
    "ManualClock",
    "SystemClock",
    "DEFAULT_CORPUS",
    "AnalysisThresholds",
    "CorpusConfigurationError",
    "DetectionConfig",
    "PatternCorpus",
    "PatternSet",
    "ProtectiveFactorCategory",
    "corpus_from_dict",
    "load_corpus_file",
    "ContentAnalysis",
    "ContentAnalyzer",
    "CrisisDetectionEngine",
    "FusionResult",
    "ScoreFusionEngine",
    "HistoricalContextProvider",
    "InMemoryMoodHistory",
    "MoodEntry",
    "MoodHistoryProvider",
    "MoodHistorySource",
    "QuickAnalysis",
    "RealTimeAnalyzer",
    "recommend",
]
