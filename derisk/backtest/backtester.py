"""
Historical Backtesting.

Replays curated pre-crisis timelines through the scoring engine and reports
how early the system would have alerted, whether the circuit breaker would
have fired, and the share of losses it could have avoided.

Each day is scored with a "max-signal" strategy: the highest of the stress
heuristic, the rule-based model and the contagion-adjusted model, floored by
the depeg score when depeg stress is material. The live pipeline uses
compute_consensus instead; the two strategies are independent.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from derisk.backtest.events import (
    CURVE_EXPLOIT,
    EULER_HACK,
    FTX_COLLAPSE,
    HISTORICAL_EVENTS,
    TERRA_LUNA,
    DailySnapshot,
    HistoricalEvent,
)
from derisk.config.settings import LOSS_PREVENTION_POLICY
from derisk.config.thresholds import (
    DEPEG_FLOOR,
    FALSE_POSITIVE_HORIZON_DAYS,
    HEURISTIC_BASELINE,
    HEURISTIC_CONCENTRATION_BANDS,
    HEURISTIC_CONTAGION_WEIGHT,
    HEURISTIC_DEPEG_BANDS,
    HEURISTIC_DEPEG_WEIGHT,
    HEURISTIC_REFERENCE_PRICE_BANDS,
    HEURISTIC_TVL_BANDS,
    HISTORICAL_DEPEG_OVERRIDE,
)
from derisk.core.consensus import (
    compute_contagion_adjusted_score,
    compute_rule_based_score,
    confidence_from_spread,
)
from derisk.core.contagion import analyze_contagion
from derisk.core.depeg import analyze_depeg_risk, peg_deviation
from derisk.core.scoring import clamp_score, round_score
from derisk.core.severity import AlertLevel, alert_level_for_score, is_circuit_breaker_score

logger = logging.getLogger("derisk.backtest")


@dataclass(frozen=True)
class BacktestDayResult:
    date: str
    days_before_event: int
    risk_score: int
    contagion_risk: int
    depeg_risk: int
    heuristic_score: int
    consensus_score: int
    confidence_level: int
    circuit_breaker_triggered: bool
    alert_level: AlertLevel
    notes: str = ""


@dataclass(frozen=True)
class BacktestResult:
    event: str
    event_date: str
    actual_losses_usd: float
    description: str
    timeline: Tuple[BacktestDayResult, ...]
    first_alert_date: str
    first_alert_days_before: int
    circuit_breaker_date: Optional[str]
    circuit_breaker_days_before: int
    prevented_losses_usd: float
    effectiveness: int
    peak_risk_score: int
    false_positives: int


@dataclass(frozen=True)
class BacktestReport:
    results: Tuple[BacktestResult, ...]
    total_prevented_losses: float
    average_lead_time: float
    average_effectiveness: float
    events_detected: int
    total_events: int


# =============================================================================
# DAY SCORING
# =============================================================================

def historical_depeg_override(stablecoin_prices: Mapping[str, float]) -> Optional[int]:
    """
    Depeg score implied by observed historical coin prices.

    Only coins at least 2% off peg count; each scores deviation x 200 capped
    at 100, and the worst coin wins. Returns None when no coin qualifies, in
    which case the inferred depeg score stands.
    """
    scores = [
        min(100, round_score(peg_deviation(price) * HISTORICAL_DEPEG_OVERRIDE["multiplier"]))
        for price in stablecoin_prices.values()
        if peg_deviation(price) >= HISTORICAL_DEPEG_OVERRIDE["min_deviation"]
    ]
    if not scores:
        return None
    return max(scores)


def _upper_band_points(value: float, bands) -> int:
    for upper, points in bands:
        if value < upper:
            return points
    return 0


def _deviation_band_points(deviation: float, bands) -> int:
    for minimum, points in bands:
        if deviation >= minimum:
            return points
    return 0


def compute_stress_heuristic_score(
    snapshot: DailySnapshot,
    contagion_risk: float,
    depeg_risk: float
) -> int:
    """
    Holistic stress score for one day.

    Stacks TVL health, reference price stress, per-coin peg deviation,
    weighted contagion and depeg risk, and Aave concentration on a
    baseline of 10. Clamped to [0, 100].
    """
    total_tvl = snapshot.total_tvl

    score = HEURISTIC_BASELINE
    score += _upper_band_points(total_tvl, HEURISTIC_TVL_BANDS)
    score += _upper_band_points(snapshot.reference_price, HEURISTIC_REFERENCE_PRICE_BANDS)

    for symbol, bands in HEURISTIC_DEPEG_BANDS.items():
        price = snapshot.stablecoin_prices.get(symbol)
        if price is not None:
            score += _deviation_band_points(peg_deviation(price), bands)

    score += round_score(contagion_risk * HEURISTIC_CONTAGION_WEIGHT)
    score += round_score(depeg_risk * HEURISTIC_DEPEG_WEIGHT)

    if total_tvl > 0:
        aave_share = snapshot.aave_tvl / total_tvl
        for share, points in HEURISTIC_CONCENTRATION_BANDS:
            if aave_share > share:
                score += points

    return clamp_score(score)


def score_day(snapshot: DailySnapshot) -> BacktestDayResult:
    """Score one historical day with the max-signal strategy."""
    protocols = snapshot.protocol_metrics()
    contagion = analyze_contagion(protocols)
    depeg = analyze_depeg_risk(snapshot.reference_price, protocols)

    depeg_risk = depeg.depeg_risk_score
    override = historical_depeg_override(snapshot.stablecoin_prices)
    if override is not None:
        depeg_risk = override

    rule_based = compute_rule_based_score(protocols, snapshot.reference_price)
    contagion_adjusted = compute_contagion_adjusted_score(
        rule_based.score, contagion.aggregate_contagion_risk
    )
    heuristic = compute_stress_heuristic_score(
        snapshot, contagion.aggregate_contagion_risk, depeg_risk
    )

    components = [heuristic, rule_based.score, contagion_adjusted.score]
    depeg_floor = 0
    if depeg_risk > DEPEG_FLOOR["trigger"]:
        depeg_floor = round_score(depeg_risk * DEPEG_FLOOR["ratio"])
    final_score = clamp_score(max(components + [depeg_floor]))

    spread = float(np.ptp(components))
    result = BacktestDayResult(
        date=snapshot.date,
        days_before_event=snapshot.days_before_event,
        risk_score=rule_based.score,
        contagion_risk=contagion.aggregate_contagion_risk,
        depeg_risk=depeg_risk,
        heuristic_score=heuristic,
        consensus_score=final_score,
        confidence_level=confidence_from_spread(spread),
        circuit_breaker_triggered=is_circuit_breaker_score(final_score),
        alert_level=alert_level_for_score(final_score),
        notes=snapshot.notes,
    )
    logger.debug(
        "%s D-%d: heuristic=%d rule=%d adjusted=%d depeg=%d -> %d %s",
        snapshot.date, snapshot.days_before_event, heuristic, rule_based.score,
        contagion_adjusted.score, depeg_risk, final_score, result.alert_level.value,
    )
    return result


# =============================================================================
# EVENT REPLAY
# =============================================================================

def prevented_fraction(
    first_alert_days_before: int,
    circuit_breaker_days_before: Optional[int],
    policy: Optional[Dict] = None
) -> float:
    """
    Share of losses assumed avoided given how early the system reacted.

    A circuit breaker outranks a plain alert; a breaker firing on the event
    day itself still earns the same-day share.
    """
    policy = policy or LOSS_PREVENTION_POLICY
    early = policy["early_lead_days"]
    late = policy["late_lead_days"]

    if circuit_breaker_days_before is not None:
        fractions = policy["circuit_breaker"]
        lead = circuit_breaker_days_before
    else:
        fractions = policy["alert_only"]
        lead = first_alert_days_before

    if lead >= early:
        return fractions["early"]
    if lead >= late:
        return fractions["late"]
    return fractions["same_day"]


def _first(timeline: Sequence[BacktestDayResult], levels) -> Optional[BacktestDayResult]:
    for day in timeline:
        if day.alert_level in levels:
            return day
    return None


def backtest_event(event: HistoricalEvent, policy: Optional[Dict] = None) -> BacktestResult:
    """
    Replay one historical event.

    Args:
        event: Curated event with its daily snapshots
        policy: Loss-prevention policy; defaults to settings.LOSS_PREVENTION_POLICY

    Returns:
        BacktestResult with the scored timeline and the summary metrics
    """
    timeline = tuple(score_day(snapshot) for snapshot in event.snapshots)
    if not timeline:
        logger.warning("%s has no snapshots", event.name)

    first_alert = (
        _first(timeline, (AlertLevel.WARNING, AlertLevel.CRITICAL))
        or _first(timeline, (AlertLevel.WATCH,))
    )
    first_alert_date = first_alert.date if first_alert else event.event_date
    first_alert_days_before = first_alert.days_before_event if first_alert else 0

    breaker = next((day for day in timeline if day.circuit_breaker_triggered), None)
    breaker_date = breaker.date if breaker else None
    breaker_days_before = breaker.days_before_event if breaker else None

    fraction = prevented_fraction(first_alert_days_before, breaker_days_before, policy)
    false_positives = sum(
        1 for day in timeline
        if day.days_before_event > FALSE_POSITIVE_HORIZON_DAYS and day.alert_level.is_actionable
    )

    result = BacktestResult(
        event=event.name,
        event_date=event.event_date,
        actual_losses_usd=event.actual_losses_usd,
        description=event.description,
        timeline=timeline,
        first_alert_date=first_alert_date,
        first_alert_days_before=first_alert_days_before,
        circuit_breaker_date=breaker_date,
        circuit_breaker_days_before=breaker_days_before or 0,
        prevented_losses_usd=event.actual_losses_usd * fraction,
        effectiveness=round_score(fraction * 100),
        peak_risk_score=max((day.consensus_score for day in timeline), default=0),
        false_positives=false_positives,
    )

    logger.info(
        "%s: first alert %s (D-%d), breaker %s, effectiveness %d%%",
        event.name, first_alert_date, first_alert_days_before,
        breaker_date or "not triggered", result.effectiveness,
    )
    return result


def run_all_backtests(
    events: Sequence[HistoricalEvent] = HISTORICAL_EVENTS,
    policy: Optional[Dict] = None
) -> BacktestReport:
    """Replay every event and aggregate the results."""
    results = tuple(backtest_event(event, policy) for event in events)

    if results:
        average_lead_time = float(np.mean([r.first_alert_days_before for r in results]))
        average_effectiveness = float(np.mean([r.effectiveness for r in results]))
    else:
        average_lead_time = 0.0
        average_effectiveness = 0.0

    return BacktestReport(
        results=results,
        total_prevented_losses=sum(r.prevented_losses_usd for r in results),
        average_lead_time=average_lead_time,
        average_effectiveness=average_effectiveness,
        events_detected=sum(1 for r in results if r.first_alert_days_before > 0),
        total_events=len(results),
    )


def backtest_terra_luna(policy: Optional[Dict] = None) -> BacktestResult:
    return backtest_event(TERRA_LUNA, policy)


def backtest_ftx(policy: Optional[Dict] = None) -> BacktestResult:
    return backtest_event(FTX_COLLAPSE, policy)


def backtest_euler(policy: Optional[Dict] = None) -> BacktestResult:
    return backtest_event(EULER_HACK, policy)


def backtest_curve(policy: Optional[Dict] = None) -> BacktestResult:
    return backtest_event(CURVE_EXPLOIT, policy)


# =============================================================================
# TABULAR EXPORT
# =============================================================================

TIMELINE_COLUMNS: List[str] = [
    "event", "date", "days_before_event", "consensus_score", "heuristic_score",
    "risk_score", "contagion_risk", "depeg_risk", "confidence_level",
    "alert_level", "circuit_breaker_triggered", "notes",
]


def timeline_frame(result: BacktestResult) -> pd.DataFrame:
    """One row per scored day, tagged with the event name."""
    rows = []
    for day in result.timeline:
        rows.append({
            "event": result.event,
            "date": day.date,
            "days_before_event": day.days_before_event,
            "consensus_score": day.consensus_score,
            "heuristic_score": day.heuristic_score,
            "risk_score": day.risk_score,
            "contagion_risk": day.contagion_risk,
            "depeg_risk": day.depeg_risk,
            "confidence_level": day.confidence_level,
            "alert_level": day.alert_level.value,
            "circuit_breaker_triggered": day.circuit_breaker_triggered,
            "notes": day.notes,
        })
    return pd.DataFrame(rows, columns=TIMELINE_COLUMNS)


def report_frame(report: BacktestReport) -> pd.DataFrame:
    """One summary row per event."""
    return pd.DataFrame([
        {
            "event": r.event,
            "event_date": r.event_date,
            "first_alert_date": r.first_alert_date,
            "first_alert_days_before": r.first_alert_days_before,
            "circuit_breaker_date": r.circuit_breaker_date,
            "circuit_breaker_days_before": r.circuit_breaker_days_before,
            "peak_risk_score": r.peak_risk_score,
            "actual_losses_usd": r.actual_losses_usd,
            "prevented_losses_usd": r.prevented_losses_usd,
            "effectiveness": r.effectiveness,
            "false_positives": r.false_positives,
        }
        for r in report.results
    ])
