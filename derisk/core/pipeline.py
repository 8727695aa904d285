"""
Risk Assessment Pipeline.

One evaluation cycle: protocol metrics + reference price (+ optional external
AI score) -> consensus score, with the contagion and depeg analyses attached
as an explainability side-channel.

Fetching the inputs and publishing the result belong to the caller.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from derisk.core.consensus import (
    ConsensusResult,
    compute_consensus,
    compute_contagion_adjusted_score,
    compute_rule_based_score,
    external_model_score,
)
from derisk.core.contagion import ContagionAnalysis, analyze_contagion
from derisk.core.depeg import DepegAnalysis, analyze_depeg_risk
from derisk.core.protocols import ProtocolMetric
from derisk.core.severity import AlertLevel

logger = logging.getLogger("derisk.pipeline")


@dataclass(frozen=True)
class RiskAssessment:
    consensus: ConsensusResult
    contagion: ContagionAnalysis
    depeg: DepegAnalysis

    @property
    def score(self) -> int:
        return self.consensus.consensus_score

    @property
    def alert_level(self) -> AlertLevel:
        return self.consensus.alert_level

    @property
    def circuit_breaker_triggered(self) -> bool:
        return self.consensus.circuit_breaker_triggered


def assess_risk(
    protocols: Sequence[ProtocolMetric],
    reference_price: float,
    external_score: Optional[float] = None,
    external_fallback: bool = False
) -> RiskAssessment:
    """
    Score systemic risk for one cycle.

    Args:
        protocols: Protocol metrics (name, TVL, optional prior risk score)
        reference_price: Reference asset price in USD
        external_score: Score from the external AI model, or None if unavailable
        external_fallback: True when the external service used its own fallback

    Returns:
        RiskAssessment. Always defined; see compute_consensus for the
        degraded cases.
    """
    contagion = analyze_contagion(protocols)
    depeg = analyze_depeg_risk(reference_price, protocols)

    external = external_model_score(external_score, fallback=external_fallback)
    rule_based = compute_rule_based_score(protocols, reference_price)
    base = external.score if external.available else rule_based.score
    contagion_adjusted = compute_contagion_adjusted_score(base, contagion.aggregate_contagion_risk)

    consensus = compute_consensus([external, rule_based, contagion_adjusted])
    assessment = RiskAssessment(consensus=consensus, contagion=contagion, depeg=depeg)

    logger.info(
        "risk assessment: score=%d level=%s confidence=%d%% contagion=%d depeg=%d",
        assessment.score, assessment.alert_level.value, consensus.confidence_level,
        contagion.aggregate_contagion_risk, depeg.depeg_risk_score,
    )
    if assessment.circuit_breaker_triggered:
        logger.warning("circuit breaker threshold crossed (score=%d)", assessment.score)

    return assessment
