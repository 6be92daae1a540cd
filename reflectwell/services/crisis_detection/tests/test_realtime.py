"""Tests for RealTimeAnalyzer."""
import pytest

from reflectwell.shared.models import CrisisLevel
from reflectwell.services.crisis_detection.config import DetectionConfig
from reflectwell.services.crisis_detection.realtime import RealTimeAnalyzer


@pytest.fixture
def analyzer():
    return RealTimeAnalyzer()


class TestQuickAnalyze:

    def test_keyword_and_phrase(self, analyzer):
        """Keyword counts 5, phrase counts 8."""
        result = analyzer.quick_analyze("I want to kill myself")

        assert result.level == CrisisLevel.IMMEDIATE
        assert result.score == 13.0
        assert result.matches == ["kill myself", "i want to kill myself"]

    def test_single_keyword_is_concerning(self, analyzer):
        result = analyzer.quick_analyze("thinking about an overdose lately")

        assert result.level == CrisisLevel.CONCERNING
        assert result.score == 5.0

    def test_two_keywords_reach_immediate(self, analyzer):
        result = analyzer.quick_analyze("suicide and self harm on my mind")

        assert result.level == CrisisLevel.IMMEDIATE
        assert result.score == 10.0

    def test_too_short(self, analyzer):
        """Below 20 characters there is nothing to analyze yet."""
        result = analyzer.quick_analyze("kill myself")

        assert result.level == CrisisLevel.NONE
        assert result.score == 0
        assert result.matches == []

    def test_only_immediate_tier_scanned(self, analyzer):
        """Escalating language is left to the full analysis."""
        result = analyzer.quick_analyze("I feel hopeless and worthless today")

        assert result.level == CrisisLevel.NONE
        assert result.score == 0

    def test_custom_minimum_length(self):
        analyzer = RealTimeAnalyzer(config=DetectionConfig(realtime_minimum_length=5))

        result = analyzer.quick_analyze("suicide")

        assert result.level == CrisisLevel.CONCERNING

    def test_to_dict(self, analyzer):
        body = analyzer.quick_analyze("I want to kill myself").to_dict()

        assert body == {
            "level": "immediate",
            "score": 13.0,
            "matches": ["kill myself", "i want to kill myself"],
        }
