"""
Pytest configuration and fixtures for the DeRisk systemic risk engine.

This file contains shared fixtures used across all test modules.
Fixtures follow the pattern: factory functions returning fresh objects.
"""

import pytest
import sys
from pathlib import Path
from typing import Dict, List

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from derisk.backtest.events import DailySnapshot, HistoricalEvent
from derisk.core.consensus import AIModelScore
from derisk.core.depeg import StablecoinPrice
from derisk.core.protocols import ProtocolMetric, build_protocol_metrics


# =============================================================================
# PATH FIXTURES
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


# =============================================================================
# PROTOCOL FIXTURES
# =============================================================================

@pytest.fixture
def healthy_protocols() -> List[ProtocolMetric]:
    """Large, diversified TVL with Aave as the biggest protocol."""
    return build_protocol_metrics(30e9, 10e9, 20e9)


@pytest.fixture
def stressed_protocols() -> List[ProtocolMetric]:
    """Collapsed TVL, every protocol inside its critical band."""
    return build_protocol_metrics(3e9, 0.4e9, 1.5e9)


@pytest.fixture
def protocol_factory():
    """
    Factory fixture for creating protocol metric lists.

    Usage:
        def test_something(protocol_factory):
            protocols = protocol_factory(aave=5e9, maker=0)
    """
    def _create(aave: float = 10e9, compound: float = 5e9, maker: float = 5e9,
                risk_scores: Dict = None) -> List[ProtocolMetric]:
        return build_protocol_metrics(aave, compound, maker, risk_scores)

    return _create


# =============================================================================
# MODEL SCORE FIXTURES
# =============================================================================

@pytest.fixture
def model_score_factory():
    """
    Factory fixture for AIModelScore lists.

    Usage:
        models = model_score_factory([10, 12, 95])
    """
    def _create(scores: List[float], confidence: float = 0.8) -> List[AIModelScore]:
        return [
            AIModelScore(model=f"model-{i}", score=score, confidence=confidence)
            for i, score in enumerate(scores)
        ]

    return _create


# =============================================================================
# STABLECOIN FIXTURES
# =============================================================================

@pytest.fixture
def pegged_stablecoins() -> List[StablecoinPrice]:
    return [
        StablecoinPrice("USDT", 1.0, "fiat-backed"),
        StablecoinPrice("USDC", 1.0, "fiat-backed"),
        StablecoinPrice("DAI", 1.0, "crypto-backed"),
    ]


# =============================================================================
# BACKTEST FIXTURES
# =============================================================================

@pytest.fixture
def snapshot_factory():
    """
    Factory fixture for DailySnapshot.

    Usage:
        snapshot = snapshot_factory(days_before_event=2, UST=0.94)
    """
    def _create(date: str = "2024-01-01", days_before_event: int = 0,
                aave_tvl: float = 30e9, compound_tvl: float = 10e9,
                maker_tvl: float = 20e9, reference_price: float = 4000,
                notes: str = "", **stablecoins) -> DailySnapshot:
        return DailySnapshot(
            date=date,
            days_before_event=days_before_event,
            aave_tvl=aave_tvl,
            compound_tvl=compound_tvl,
            maker_tvl=maker_tvl,
            reference_price=reference_price,
            stablecoin_prices=stablecoins,
            notes=notes,
        )

    return _create


@pytest.fixture
def calm_event(snapshot_factory) -> HistoricalEvent:
    """Synthetic event whose every day scores below the WATCH band."""
    return HistoricalEvent(
        key="calm",
        name="Calm Market",
        event_date="2024-01-05",
        description="Nothing happens.",
        actual_losses_usd=1e9,
        snapshots=(
            snapshot_factory("2024-01-01", 4, USDC=1.0, USDT=1.0),
            snapshot_factory("2024-01-03", 2, USDC=1.0, USDT=1.0),
            snapshot_factory("2024-01-05", 0, USDC=1.0, USDT=1.0),
        ),
    )


@pytest.fixture
def policy_factory():
    """Loss-prevention policy with overridable fractions."""
    def _create(**fractions) -> Dict:
        policy = {
            "early_lead_days": 3,
            "late_lead_days": 1,
            "circuit_breaker": {"early": 0.66, "late": 0.50, "same_day": 0.25},
            "alert_only": {"early": 0.40, "late": 0.25, "same_day": 0.0},
        }
        for key, value in fractions.items():
            if isinstance(value, dict):
                policy[key].update(value)
            else:
                policy[key] = value
        return policy

    return _create
