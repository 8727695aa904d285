"""
DeRisk Systemic Risk Engine.

Scores cross-protocol DeFi risk from lending protocol TVL, a reference asset
price and stablecoin pegs, and replays historical crises to measure how early
the engine would have alerted.

Quick Start:
    from derisk import assess_risk, build_protocol_metrics, run_all_backtests

    protocols = build_protocol_metrics(12e9, 3e9, 7e9)
    assessment = assess_risk(protocols, reference_price=2400, external_score=55)
    print(f"Risk {assessment.score}/100 [{assessment.alert_level.value}]")

    report = run_all_backtests()
    print(f"Detected {report.events_detected}/{report.total_events} events")
"""

__version__ = "1.0.0"

# Core engines
from .core.protocols import (
    Protocol,
    ProtocolMetric,
    build_protocol_metrics,
    normalize_protocol_name,
)
from .core.severity import AlertLevel, alert_level_for_score, is_circuit_breaker_score
from .core.contagion import ContagionAnalysis, analyze_contagion, simulate_cascade
from .core.depeg import DepegAnalysis, StablecoinPrice, analyze_depeg_risk
from .core.consensus import (
    AIModelScore,
    ConsensusResult,
    compute_consensus,
    compute_contagion_adjusted_score,
    compute_rule_based_score,
)
from .core.pipeline import RiskAssessment, assess_risk

# Backtesting
from .backtest import (
    HISTORICAL_EVENTS,
    BacktestReport,
    BacktestResult,
    backtest_event,
    get_event,
    run_all_backtests,
)

__all__ = [
    # Version
    "__version__",
    # Protocols
    "Protocol",
    "ProtocolMetric",
    "build_protocol_metrics",
    "normalize_protocol_name",
    # Severity
    "AlertLevel",
    "alert_level_for_score",
    "is_circuit_breaker_score",
    # Contagion
    "ContagionAnalysis",
    "analyze_contagion",
    "simulate_cascade",
    # Depeg
    "DepegAnalysis",
    "StablecoinPrice",
    "analyze_depeg_risk",
    # Consensus
    "AIModelScore",
    "ConsensusResult",
    "compute_consensus",
    "compute_contagion_adjusted_score",
    "compute_rule_based_score",
    # Pipeline
    "RiskAssessment",
    "assess_risk",
    # Backtesting
    "HISTORICAL_EVENTS",
    "BacktestReport",
    "BacktestResult",
    "backtest_event",
    "get_event",
    "run_all_backtests",
]
