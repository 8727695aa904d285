"""
Unit tests for the multi-model consensus.

Tests the weighted median, spread confidence, outlier detection, the
degraded paths (zero and one model) and the derived model scores.
"""

import logging

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from derisk.core.consensus import (
    AIModelScore,
    ConsensusMethod,
    compute_consensus,
    compute_contagion_adjusted_score,
    compute_rule_based_score,
    confidence_from_spread,
    detect_outliers,
    external_model_score,
    weighted_median,
)
from derisk.core.severity import AlertLevel


class TestWeightedMedian:
    """Tests for the confidence-weighted median."""

    @pytest.mark.unit
    @pytest.mark.scoring
    @pytest.mark.parametrize("weight", [0.01, 1.0, 50.0])
    def test_single_element_returned_regardless_of_weight(self, weight):
        assert weighted_median([(42, weight)]) == 42

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_heavy_weight_pulls_median(self):
        assert weighted_median([(10, 1), (20, 1), (30, 5)]) == 30

    @pytest.mark.unit
    def test_unsorted_input(self):
        assert weighted_median([(30, 1), (10, 1), (20, 1)]) == 20

    @pytest.mark.unit
    def test_empty_raises(self):
        with pytest.raises(ValueError):
            weighted_median([])


class TestConfidenceFromSpread:
    """Tests for the agreement banding."""

    @pytest.mark.unit
    @pytest.mark.scoring
    @pytest.mark.parametrize("spread,expected", [
        (0, 100),
        (3, 95),
        (10, 85),
        (15, 70),
        (25, 50),
        (35, 30),
        (40, 20),
        (85, 20),
    ])
    def test_bands(self, spread, expected):
        assert confidence_from_spread(spread) == expected


class TestDetectOutliers:
    """Tests for leave-one-out outlier detection."""

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_far_model_flagged(self, model_score_factory):
        assert detect_outliers(model_score_factory([10, 12, 95])) == ["model-2"]

    @pytest.mark.unit
    def test_fewer_than_three_models(self, model_score_factory):
        assert detect_outliers(model_score_factory([10, 95])) == []

    @pytest.mark.unit
    def test_identical_scores(self, model_score_factory):
        assert detect_outliers(model_score_factory([60, 60, 60])) == []

    @pytest.mark.unit
    def test_near_unanimous_not_flagged(self, model_score_factory):
        assert detect_outliers(model_score_factory([50, 50, 50, 51])) == []

    @pytest.mark.unit
    def test_even_spread_not_flagged(self, model_score_factory):
        """Both extremes tie for farthest from the mean."""
        assert detect_outliers(model_score_factory([40, 50, 60])) == []

    @pytest.mark.unit
    def test_flags_at_most_one_model(self, model_score_factory):
        assert detect_outliers(model_score_factory([55, 25, 63])) == ["model-1"]
        assert detect_outliers(model_score_factory([10, 12, 95, 97])) == []


class TestComputeConsensus:
    """Tests for the consensus algorithm."""

    @pytest.mark.unit
    @pytest.mark.smoke
    def test_no_models_gives_neutral_default(self, caplog):
        with caplog.at_level(logging.WARNING, logger="derisk.consensus"):
            result = compute_consensus([])

        assert result.consensus_score == 50
        assert result.confidence_level == 0
        assert result.method is ConsensusMethod.FALLBACK_ONLY
        assert "no risk model available" in caplog.text

    @pytest.mark.unit
    def test_all_unavailable_gives_neutral_default(self):
        models = [external_model_score(None), AIModelScore("other", 90, 0.9, available=False)]
        result = compute_consensus(models)
        assert (result.consensus_score, result.confidence_level) == (50, 0)
        assert result.method is ConsensusMethod.FALLBACK_ONLY
        assert len(result.scores) == 2

    @pytest.mark.unit
    def test_single_model_passthrough(self):
        result = compute_consensus([AIModelScore("only", 70, 0.8), external_model_score(None)])
        assert result.consensus_score == 70
        assert result.confidence_level == 80
        assert result.method is ConsensusMethod.SINGLE_MODEL
        assert result.spread == 0

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_unanimous_models(self, model_score_factory):
        result = compute_consensus(model_score_factory([60, 60, 60]))
        assert result.consensus_score == 60
        assert result.spread == 0
        assert result.confidence_level == 100
        assert result.outliers == ()
        assert result.method is ConsensusMethod.MULTI_AI

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_outlier_excluded_and_penalized(self, model_score_factory):
        result = compute_consensus(model_score_factory([10, 12, 95]))
        assert result.outliers == ("model-2",)
        assert result.consensus_score == 10
        assert result.spread == 85
        assert result.confidence_level == 20 - 10

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_even_spread_keeps_every_model(self, model_score_factory):
        result = compute_consensus(model_score_factory([40, 50, 60]))
        assert result.outliers == ()
        assert result.consensus_score == 50
        assert result.confidence_level == 70

    @pytest.mark.unit
    def test_two_models(self, model_score_factory):
        result = compute_consensus(model_score_factory([40, 50]))
        assert result.consensus_score == 40
        assert result.confidence_level == 85

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_derived_alert_fields(self, model_score_factory):
        result = compute_consensus(model_score_factory([95, 95]))
        assert result.alert_level is AlertLevel.CRITICAL
        assert result.circuit_breaker_triggered

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_score_in_range(self):
        result = compute_consensus([AIModelScore("a", 250, 1.0), AIModelScore("b", 300, 1.0)])
        assert 0 <= result.consensus_score <= 100


class TestDerivedModels:
    """Tests for the rule-based, contagion-adjusted and external models."""

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_rule_based_calm(self, healthy_protocols):
        model = compute_rule_based_score(healthy_protocols, 4000)
        assert model.score == 15
        assert model.confidence == 0.7
        assert model.model == "Rule-Based"

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_rule_based_crash(self, stressed_protocols):
        """Every protocol critical (55) plus +20 for a sub-1000 price."""
        assert compute_rule_based_score(stressed_protocols, 900).score == 75

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_rule_based_mixed_bands(self, protocol_factory):
        """Aave warning 40, Compound 20, Maker caution 30, weighted 50/25/25."""
        assert compute_rule_based_score(protocol_factory(), 1700).score == 33

    @pytest.mark.unit
    def test_rule_based_missing_protocols_are_critical(self):
        assert compute_rule_based_score([], 4000).score == 55

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_contagion_adjusted_blend(self):
        model = compute_contagion_adjusted_score(50, 80)
        assert model.score == 59
        assert model.confidence == 0.6

    @pytest.mark.unit
    def test_external_model(self):
        assert external_model_score(72).confidence == 0.95
        assert external_model_score(72, fallback=True).confidence == 0.7
        assert external_model_score(130).score == 100

    @pytest.mark.unit
    def test_external_model_unavailable(self):
        model = external_model_score(None)
        assert not model.available
        assert model.model == "External AI"
