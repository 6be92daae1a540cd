"""Tests for pattern corpus and threshold configuration.

A malformed corpus must fail loudly at load time - it would otherwise
silently misclassify crisis content.
"""
import json

import pytest

from reflectwell.shared.models import SeverityTier
from reflectwell.services.crisis_detection.config import (
    DEFAULT_CORPUS,
    AnalysisThresholds,
    CorpusConfigurationError,
    DetectionConfig,
    PatternCorpus,
    PatternSet,
    ProtectiveFactorCategory,
    corpus_from_dict,
    load_corpus_file,
    threshold_config,
)


def _minimal_document():
    return {
        "version": "test.1",
        "tiers": {
            "immediate": {"weight": 10, "keywords": ["Kill Myself"], "contextual_flags": ["have a plan"]},
            "escalating": {"weight": 7, "keywords": ["hopeless"]},
            "concerning": {"weight": 4, "keywords": []},
        },
        "protective_factors": {
            "copingMentions": {"keywords": ["called my friend"], "description": "Coping"},
        },
    }


class TestDefaultCorpus:
    """Tests for the built-in corpus."""

    def test_defines_every_tier_once(self):
        """Each severity tier should be present exactly once."""
        tiers = [p.tier for p in DEFAULT_CORPUS.tiers]
        assert sorted(t.value for t in tiers) == ["concerning", "escalating", "immediate"]

    def test_tier_weights(self):
        """Tier weights should follow severity."""
        assert DEFAULT_CORPUS.tier(SeverityTier.IMMEDIATE).weight == 10
        assert DEFAULT_CORPUS.tier(SeverityTier.ESCALATING).weight == 7
        assert DEFAULT_CORPUS.tier(SeverityTier.CONCERNING).weight == 4

    def test_phrases_are_lowercased(self):
        """Phrases are stored lower-cased for matching."""
        phrases = DEFAULT_CORPUS.tier(SeverityTier.IMMEDIATE).phrases
        assert "i want to kill myself" in phrases
        assert all(p == p.lower() for p in phrases)

    def test_protective_categories(self):
        """All five protective categories should be present with keywords."""
        names = [c.name for c in DEFAULT_CORPUS.protective_factors]
        assert names == [
            "copingMentions",
            "futurePlanning",
            "problemSolving",
            "temporaryLanguage",
            "selfCareActions",
        ]
        assert all(c.keywords for c in DEFAULT_CORPUS.protective_factors)

    def test_ordered_tiers_most_severe_first(self):
        ordered = [p.tier for p in DEFAULT_CORPUS.ordered_tiers()]
        assert ordered == [SeverityTier.IMMEDIATE, SeverityTier.ESCALATING, SeverityTier.CONCERNING]

    def test_corpus_is_immutable(self):
        """Corpus should be frozen."""
        with pytest.raises(Exception):  # FrozenInstanceError
            DEFAULT_CORPUS.version = "tampered"


class TestPatternSetValidation:
    """Tests for PatternSet construction."""

    def test_duplicates_removed_preserving_order(self):
        pattern_set = PatternSet(
            tier=SeverityTier.CONCERNING,
            weight=4,
            keywords=("Numb", "numb", "drained"),
        )
        assert pattern_set.keywords == ("numb", "drained")

    def test_zero_weight_rejected(self):
        with pytest.raises(CorpusConfigurationError):
            PatternSet(tier=SeverityTier.CONCERNING, weight=0)

    def test_string_instead_of_list_rejected(self):
        """A bare string would otherwise be scanned character by character."""
        with pytest.raises(CorpusConfigurationError):
            PatternSet(tier=SeverityTier.CONCERNING, weight=4, keywords="numb")

    def test_empty_entry_rejected(self):
        with pytest.raises(CorpusConfigurationError):
            PatternSet(tier=SeverityTier.CONCERNING, weight=4, keywords=("numb", "  "))

    def test_unnamed_protective_category_rejected(self):
        with pytest.raises(CorpusConfigurationError):
            ProtectiveFactorCategory(name="", keywords=("reached out",))

    def test_missing_tier_rejected(self):
        with pytest.raises(CorpusConfigurationError):
            PatternCorpus(
                version="x",
                tiers=(PatternSet(tier=SeverityTier.IMMEDIATE, weight=10),),
            )


class TestCorpusFromDict:
    """Tests for loading a corpus document."""

    def test_valid_document(self):
        corpus = corpus_from_dict(_minimal_document())

        assert corpus.version == "test.1"
        assert corpus.tier(SeverityTier.IMMEDIATE).keywords == ("kill myself",)
        assert corpus.tier(SeverityTier.CONCERNING).keywords == ()
        assert corpus.protective_factors[0].keywords == ("called my friend",)
        assert corpus.protective_factors[0].description == "Coping"

    def test_unknown_tier_rejected(self):
        document = _minimal_document()
        document["tiers"]["urgent"] = {"weight": 9, "keywords": ["x"]}

        with pytest.raises(CorpusConfigurationError, match="Unknown severity tier"):
            corpus_from_dict(document)

    def test_missing_tier_rejected(self):
        document = _minimal_document()
        del document["tiers"]["concerning"]

        with pytest.raises(CorpusConfigurationError):
            corpus_from_dict(document)

    def test_missing_weight_rejected(self):
        document = _minimal_document()
        del document["tiers"]["escalating"]["weight"]

        with pytest.raises(CorpusConfigurationError):
            corpus_from_dict(document)

    def test_unknown_tier_field_rejected(self):
        """Typos like 'keyword' must not be silently ignored."""
        document = _minimal_document()
        document["tiers"]["escalating"]["keyword"] = ["trapped"]

        with pytest.raises(CorpusConfigurationError, match="unknown fields"):
            corpus_from_dict(document)

    def test_unknown_protective_field_rejected(self):
        """A misspelled 'keyword' must not leave the category empty."""
        document = _minimal_document()
        document["protective_factors"]["selfCareActions"] = {"keyword": ["went for a walk"]}

        with pytest.raises(CorpusConfigurationError, match="unknown fields"):
            corpus_from_dict(document)

    def test_protective_weight_not_a_corpus_field(self):
        """The per-category reduction comes from DetectionConfig."""
        document = _minimal_document()
        document["protective_factors"]["copingMentions"]["weight"] = -3

        with pytest.raises(CorpusConfigurationError):
            corpus_from_dict(document)

    def test_missing_version_rejected(self):
        document = _minimal_document()
        del document["version"]

        with pytest.raises(CorpusConfigurationError):
            corpus_from_dict(document)


class TestLoadCorpusFile:
    """Tests for reading a corpus from disk."""

    def test_load_valid_file(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(json.dumps(_minimal_document()), encoding="utf-8")

        corpus = load_corpus_file(path)

        assert corpus.version == "test.1"

    def test_invalid_json_is_fatal(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(CorpusConfigurationError):
            load_corpus_file(path)

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(CorpusConfigurationError):
            load_corpus_file(tmp_path / "missing.json")


class TestThresholdValidation:
    """Tests for threshold and behavior configuration."""

    def test_default_thresholds(self):
        thresholds = AnalysisThresholds()
        assert thresholds.IMMEDIATE_MIN == 8
        assert thresholds.ESCALATING_MIN == 6
        assert thresholds.CONCERNING_MIN == 4

    def test_inverted_thresholds_rejected(self):
        with pytest.raises(ValueError):
            AnalysisThresholds(IMMEDIATE_MIN=3, ESCALATING_MIN=6)

    def test_positive_protective_reduction_rejected(self):
        with pytest.raises(ValueError):
            DetectionConfig(max_protective_reduction=1)

    def test_zero_cooldown_rejected(self):
        with pytest.raises(ValueError):
            DetectionConfig(alert_cooldown_hours=0)

    def test_threshold_config_flattens_both(self):
        flattened = threshold_config(AnalysisThresholds(), DetectionConfig())

        assert flattened["immediate_threshold"] == 8
        assert flattened["minimum_entry_length"] == 50
        assert flattened["max_protective_reduction"] == -4
