"""
Unit tests for protocol normalization, severity classification and score
rounding helpers.
"""

import math

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from derisk.core.protocols import (
    Protocol,
    ProtocolMetric,
    build_protocol_metrics,
    normalize_protocol_name,
    tvl_by_protocol,
)
from derisk.core.scoring import clamp_score, round_half_up, round_score
from derisk.core.severity import AlertLevel, alert_level_for_score, is_circuit_breaker_score


class TestNormalizeProtocolName:
    """Tests for mapping free-form names onto Protocol."""

    @pytest.mark.unit
    @pytest.mark.parametrize("name,expected", [
        ("Aave V3", Protocol.AAVE),
        ("aave-v3", Protocol.AAVE),
        ("AAVE", Protocol.AAVE),
        ("Compound V3", Protocol.COMPOUND),
        ("compound_v2", Protocol.COMPOUND),
        ("MakerDAO", Protocol.MAKER),
        ("Maker", Protocol.MAKER),
        ("maker dao", Protocol.MAKER),
    ])
    def test_known_spellings(self, name, expected):
        assert normalize_protocol_name(name) is expected

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["Uniswap", "Curve", "", None, "  "])
    def test_unknown_names_return_none(self, name):
        assert normalize_protocol_name(name) is None

    @pytest.mark.unit
    def test_protocol_member_passes_through(self):
        assert normalize_protocol_name(Protocol.COMPOUND) is Protocol.COMPOUND


class TestProtocolMetric:
    """Tests for metric construction and clamping."""

    @pytest.mark.unit
    def test_negative_tvl_clamped_to_zero(self):
        assert ProtocolMetric("Aave V3", -5e9).tvl == 0.0

    @pytest.mark.unit
    def test_risk_score_clamped(self):
        assert ProtocolMetric("Aave V3", 1e9, risk_score=150).risk_score == 100
        assert ProtocolMetric("Aave V3", 1e9, risk_score=-3).risk_score == 0

    @pytest.mark.unit
    def test_protocol_property(self):
        assert ProtocolMetric("MakerDAO", 1e9).protocol is Protocol.MAKER
        assert ProtocolMetric("Lido", 1e9).protocol is None

    @pytest.mark.unit
    def test_build_protocol_metrics_uses_display_names(self):
        metrics = build_protocol_metrics(1e9, 2e9, 3e9, {Protocol.MAKER: 55})
        assert [m.name for m in metrics] == ["Aave V3", "Compound V3", "MakerDAO"]
        assert metrics[2].risk_score == 55
        assert metrics[0].risk_score == 0

    @pytest.mark.unit
    def test_tvl_by_protocol_fills_missing(self):
        totals = tvl_by_protocol([ProtocolMetric("Aave V3", 4e9), ProtocolMetric("Uniswap", 9e9)])
        assert totals == {Protocol.AAVE: 4e9, Protocol.COMPOUND: 0.0, Protocol.MAKER: 0.0}

    @pytest.mark.unit
    def test_tvl_by_protocol_sums_duplicates(self):
        totals = tvl_by_protocol([ProtocolMetric("Aave V2", 1e9), ProtocolMetric("Aave V3", 2e9)])
        assert totals[Protocol.AAVE] == pytest.approx(3e9)


class TestAlertLevel:
    """Tests for the global severity vocabulary."""

    @pytest.mark.unit
    @pytest.mark.scoring
    @pytest.mark.parametrize("score,expected", [
        (0, AlertLevel.NONE),
        (40, AlertLevel.NONE),
        (41, AlertLevel.WATCH),
        (60, AlertLevel.WATCH),
        (61, AlertLevel.WARNING),
        (80, AlertLevel.WARNING),
        (81, AlertLevel.CRITICAL),
        (100, AlertLevel.CRITICAL),
    ])
    def test_bands_are_strictly_greater(self, score, expected):
        assert alert_level_for_score(score) is expected

    @pytest.mark.unit
    @pytest.mark.scoring
    def test_circuit_breaker_boundary(self):
        assert not is_circuit_breaker_score(80)
        assert is_circuit_breaker_score(81)

    @pytest.mark.unit
    def test_priority_orders_critical_first(self):
        levels = sorted(AlertLevel, key=lambda level: level.priority)
        assert levels == [AlertLevel.CRITICAL, AlertLevel.WARNING, AlertLevel.WATCH, AlertLevel.NONE]

    @pytest.mark.unit
    def test_actionable_levels(self):
        assert AlertLevel.WARNING.is_actionable
        assert AlertLevel.CRITICAL.is_actionable
        assert not AlertLevel.WATCH.is_actionable
        assert not AlertLevel.NONE.is_actionable


class TestScoring:
    """Tests for rounding and clamping helpers."""

    @pytest.mark.unit
    @pytest.mark.parametrize("value,expected", [(2.5, 3), (3.5, 4), (41.8, 42), (0.49, 0)])
    def test_round_score_halves_up(self, value, expected):
        assert round_score(value) == expected

    @pytest.mark.unit
    def test_round_half_up_decimals(self):
        assert round_half_up(0.125, 2) == pytest.approx(0.13)
        assert round_half_up(12.34, 1) == pytest.approx(12.3)

    @pytest.mark.unit
    @pytest.mark.parametrize("value,expected", [(-10, 0), (150, 100), (55.5, 56), (float("nan"), 0)])
    def test_clamp_score(self, value, expected):
        assert clamp_score(value) == expected

    @pytest.mark.unit
    def test_clamp_score_returns_int(self):
        assert isinstance(clamp_score(42.2), int)
        assert not math.isnan(clamp_score(float("nan")))
