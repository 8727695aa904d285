"""
Multi-Model Consensus Scoring.

Combines independent risk scores into one consensus score with an agreement
metric:
1. Keep models that produced a score (available=True)
2. Flag at most one outlier: the model farthest from the mean, when it sits
   more than 1.5 standard deviations from the mean of the other models
3. Confidence-weighted median over the non-outliers
4. Confidence level from the score spread, minus 10 per outlier

Model sources:
- External AI score (supplied by the caller)
- Rule-based score from per-protocol TVL bands
- Contagion-adjusted score blending a base score with contagion risk
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np

from derisk.config.thresholds import (
    CONTAGION_ADJUSTED_WEIGHTS,
    MODEL_CONFIDENCE,
    MODEL_NAMES,
    NEUTRAL_SCORE,
    OUTLIER_CONFIDENCE_PENALTY,
    OUTLIER_STD_MULTIPLIER,
    REFERENCE_PRICE_ADJUSTMENTS,
    RULE_BASED_BAND_POINTS,
    RULE_BASED_BASE_SCORE,
    RULE_BASED_THRESHOLDS,
    SPREAD_CONFIDENCE_BANDS,
    SPREAD_CONFIDENCE_FLOOR,
    SPREAD_CONFIDENCE_SLOPE,
)
from derisk.core.protocols import ProtocolMetric, tvl_by_protocol
from derisk.core.scoring import clamp_score
from derisk.core.severity import AlertLevel, alert_level_for_score, is_circuit_breaker_score

logger = logging.getLogger("derisk.consensus")


class ConsensusMethod(str, Enum):
    MULTI_AI = "multi-ai"
    SINGLE_MODEL = "single-model"
    FALLBACK_ONLY = "fallback-only"


@dataclass(frozen=True)
class AIModelScore:
    """One model's opinion on aggregate risk."""
    model: str
    score: float
    confidence: float
    latency_ms: float = 0.0
    available: bool = True


@dataclass(frozen=True)
class ConsensusResult:
    consensus_score: int
    confidence_level: int
    scores: Tuple[AIModelScore, ...]
    spread: float
    outliers: Tuple[str, ...]
    method: ConsensusMethod

    @property
    def alert_level(self) -> AlertLevel:
        return alert_level_for_score(self.consensus_score)

    @property
    def circuit_breaker_triggered(self) -> bool:
        return is_circuit_breaker_score(self.consensus_score)


# =============================================================================
# STATISTICS
# =============================================================================

def weighted_median(pairs: Sequence[Tuple[float, float]]) -> float:
    """
    Weighted median of (score, weight) pairs.

    Sorts by score and returns the first score at which the cumulative
    weight reaches half of the total weight.
    """
    if not pairs:
        raise ValueError("weighted_median() requires at least one pair")

    ordered = sorted(pairs, key=lambda p: p[0])
    half = sum(weight for _, weight in ordered) / 2
    cumulative = 0.0
    for score, weight in ordered:
        cumulative += weight
        if cumulative >= half:
            return score
    return ordered[-1][0]


def confidence_from_spread(spread: float) -> int:
    """Agreement level: 100 for identical scores, floor 20 for wide spreads."""
    for max_spread, confidence in SPREAD_CONFIDENCE_BANDS:
        if spread <= max_spread:
            return confidence
    return int(max(SPREAD_CONFIDENCE_FLOOR, 100 - SPREAD_CONFIDENCE_SLOPE * spread))


def detect_outliers(models: Sequence[AIModelScore]) -> List[str]:
    """
    Name of the model whose score deviates from the others, if any.

    Only the model farthest from the mean is a candidate, and nobody is
    flagged when two or more models tie for farthest. The candidate is
    compared with the mean and population standard deviation of the
    remaining models. Comparing against statistics that include the
    candidate can never flag anything with three models, since no point of
    a three-point sample lies more than sqrt(2) deviations from its mean.
    """
    if len(models) < 3:
        return []

    scores = np.array([m.score for m in models], dtype=float)
    distances = np.abs(scores - scores.mean())
    farthest = np.flatnonzero(np.isclose(distances, distances.max()))
    if len(farthest) != 1:
        return []

    candidate = int(farthest[0])
    others = np.delete(scores, candidate)
    std = others.std()
    if std > 0 and abs(scores[candidate] - others.mean()) > OUTLIER_STD_MULTIPLIER * std:
        return [models[candidate].model]
    return []


# =============================================================================
# CONSENSUS
# =============================================================================

def compute_consensus(model_scores: Sequence[AIModelScore]) -> ConsensusResult:
    """
    Run the consensus algorithm over model scores.

    Never raises: with no available model the result is the neutral score 50
    at 0% confidence (absence of signal is not absence of risk).
    """
    model_scores = tuple(model_scores)
    available = [m for m in model_scores if m.available]

    if not available:
        logger.warning("no risk model available; using neutral consensus score %d", NEUTRAL_SCORE)
        return ConsensusResult(
            consensus_score=NEUTRAL_SCORE,
            confidence_level=0,
            scores=model_scores,
            spread=0,
            outliers=(),
            method=ConsensusMethod.FALLBACK_ONLY,
        )

    if len(available) == 1:
        only = available[0]
        return ConsensusResult(
            consensus_score=clamp_score(only.score),
            confidence_level=clamp_score(only.confidence * 100),
            scores=model_scores,
            spread=0,
            outliers=(),
            method=ConsensusMethod.SINGLE_MODEL,
        )

    scores = np.array([m.score for m in available], dtype=float)
    spread = float(scores.max() - scores.min())
    outliers = detect_outliers(available)

    pairs = [(m.score, m.confidence) for m in available if m.model not in outliers]
    consensus = weighted_median(pairs)

    confidence = confidence_from_spread(spread) - OUTLIER_CONFIDENCE_PENALTY * len(outliers)

    logger.debug(
        "consensus over %d models: mean=%.1f std=%.1f spread=%.1f outliers=%s",
        len(available), scores.mean(), scores.std(), spread, outliers,
    )

    return ConsensusResult(
        consensus_score=clamp_score(consensus),
        confidence_level=clamp_score(confidence),
        scores=model_scores,
        spread=spread,
        outliers=tuple(outliers),
        method=ConsensusMethod.MULTI_AI,
    )


# =============================================================================
# DERIVED MODELS
# =============================================================================

def _band_points(tvl: float, thresholds: dict) -> int:
    for band in ("critical", "warning", "caution"):
        if tvl < thresholds[band]:
            return RULE_BASED_BAND_POINTS[band]
    return 0


def _reference_price_adjustment(reference_price: float) -> int:
    for upper, points in REFERENCE_PRICE_ADJUSTMENTS:
        if reference_price < upper:
            return points
    return 0


def compute_rule_based_score(
    protocols: Sequence[ProtocolMetric],
    reference_price: float
) -> AIModelScore:
    """
    Deterministic score from TVL bands and reference price stress.

    Per protocol: base 15, +40 / +20 / +10 below the critical / warning /
    caution TVL bands, plus a uniform reference price adjustment.
    Aggregated 50/25/25 across Aave, Compound and Maker. A protocol missing
    from the input counts as zero TVL.
    """
    tvls = tvl_by_protocol(protocols)
    price_adj = _reference_price_adjustment(reference_price)

    weighted = 0.0
    total_weight = 0
    for protocol, thresholds in RULE_BASED_THRESHOLDS.items():
        score = min(100, RULE_BASED_BASE_SCORE + _band_points(tvls[protocol], thresholds))
        score = min(100, score + price_adj)
        weighted += score * thresholds["weight"]
        total_weight += thresholds["weight"]

    return AIModelScore(
        model=MODEL_NAMES["rule_based"],
        score=clamp_score(weighted / total_weight),
        confidence=MODEL_CONFIDENCE["rule_based"],
    )


def compute_contagion_adjusted_score(base_score: float, contagion_risk: float) -> AIModelScore:
    """Blend a base score with contagion risk (70/30)."""
    adjusted = (
        base_score * CONTAGION_ADJUSTED_WEIGHTS["base"]
        + contagion_risk * CONTAGION_ADJUSTED_WEIGHTS["contagion"]
    )
    return AIModelScore(
        model=MODEL_NAMES["contagion_adjusted"],
        score=clamp_score(adjusted),
        confidence=MODEL_CONFIDENCE["contagion_adjusted"],
    )


def external_model_score(score, fallback: bool = False, latency_ms: float = 0.0) -> AIModelScore:
    """
    Wrap the externally produced AI score.

    A None score marks the model unavailable. `fallback` lowers confidence
    when the external service answered from its own rule-based fallback.
    """
    if score is None:
        return AIModelScore(
            model=MODEL_NAMES["external"],
            score=NEUTRAL_SCORE,
            confidence=0.0,
            latency_ms=latency_ms,
            available=False,
        )
    key = "external_fallback" if fallback else "external"
    return AIModelScore(
        model=MODEL_NAMES["external"],
        score=clamp_score(score),
        confidence=MODEL_CONFIDENCE[key],
        latency_ms=latency_ms,
    )
