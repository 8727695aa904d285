"""
Cross-Protocol Contagion Simulator.

Models how a TVL shock on one protocol cascades into the others through
shared collateral, common depositors and liquidation spirals, using the
static correlation / transmission tables in config.thresholds.

Scenarios run per call:
- Moderate stress: 20% shock on each protocol
- Severe stress: 50% shock on the largest protocol by TVL
- Blast radius: 30% shock on each protocol, USD lost system-wide
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from derisk.config.thresholds import (
    CONTAGION_CHANNELS,
    CONTAGION_SPEED,
    CORRELATIONS,
    DEFAULT_CONTAGION_SPEED,
    SHOCK_SCENARIOS,
    SYSTEMIC_RISK_RULES,
)
from derisk.core.protocols import Protocol, ProtocolMetric, normalize_protocol_name
from derisk.core.scoring import clamp_score, round_half_up

logger = logging.getLogger("derisk.contagion")


@dataclass(frozen=True)
class CascadeStep:
    """Second-order impact on one protocol."""
    protocol: str
    estimated_tvl_drop_percent: float
    estimated_loss_usd: float
    mechanism: str


@dataclass(frozen=True)
class ContagionScenario:
    """Outcome of shocking one trigger protocol."""
    trigger: str
    trigger_protocol: str
    trigger_drop_percent: float
    cascade: Tuple[CascadeStep, ...]
    total_system_loss_usd: float
    time_to_contagion: str
    systemic_risk_score: int


@dataclass(frozen=True)
class ContagionAnalysis:
    """All scenarios plus the aggregate contagion risk."""
    correlation_matrix: Mapping[Protocol, Mapping[Protocol, float]]
    scenarios: Tuple[ContagionScenario, ...]
    aggregate_contagion_risk: int
    blast_radius: Mapping[Protocol, float] = field(default_factory=lambda: MappingProxyType({}))
    worst_case_system_loss: float = 0.0


def _empty_scenario(trigger_label: str, drop_percent: float) -> ContagionScenario:
    return ContagionScenario(
        trigger=f"{trigger_label} TVL drops {drop_percent:g}%",
        trigger_protocol=trigger_label,
        trigger_drop_percent=drop_percent,
        cascade=(),
        total_system_loss_usd=0.0,
        time_to_contagion="N/A",
        systemic_risk_score=0,
    )


def _systemic_risk_score(
    total_loss: float,
    trigger: ProtocolMetric,
    protocols: Sequence[ProtocolMetric]
) -> int:
    """
    Score cascade severity.

    loss share of system TVL x3 (33% loss = 100), +15 if the trigger holds
    more than 60% of TVL, +10 if the average input risk score exceeds 40.
    Share-based terms are skipped when system TVL is zero.
    """
    rules = SYSTEMIC_RISK_RULES
    total_tvl = sum(p.tvl for p in protocols)

    score = 0
    if total_tvl > 0:
        loss_percent = total_loss / total_tvl * 100
        score = clamp_score(loss_percent * rules["loss_multiplier"])
        if trigger.tvl / total_tvl > rules["dominance_share"]:
            score = clamp_score(score + rules["dominance_boost"])

    avg_risk = float(np.mean([p.risk_score for p in protocols])) if protocols else 0.0
    if avg_risk > rules["elevated_avg_risk"]:
        score = clamp_score(score + rules["elevated_risk_boost"])

    return score


def simulate_cascade(
    trigger_protocol: Union[Protocol, str],
    drop_percent: float,
    protocols: Sequence[ProtocolMetric]
) -> ContagionScenario:
    """
    Simulate what happens if `trigger_protocol` loses `drop_percent` of its TVL.

    Args:
        trigger_protocol: Protocol member or free-form name ("Aave V3")
        drop_percent: Shock size in percent of the trigger's TVL
        protocols: Current protocol metrics

    Returns:
        ContagionScenario. Unknown or absent triggers give a zero-valued
        scenario with an empty cascade.
    """
    trigger_key = normalize_protocol_name(trigger_protocol)
    label = trigger_key.value if trigger_key else str(trigger_protocol)

    trigger = None
    if trigger_key is not None:
        trigger = next((p for p in protocols if p.protocol is trigger_key), None)
    if trigger is None:
        logger.warning("trigger protocol %r not present in metrics; no cascade", trigger_protocol)
        return _empty_scenario(label, drop_percent)

    total_loss = trigger.tvl * (drop_percent / 100)
    cascade: List[CascadeStep] = []

    channels = CONTAGION_CHANNELS.get(trigger_key, {})
    for other in protocols:
        other_key = other.protocol
        if other_key is None or other_key is trigger_key:
            continue
        channel = channels.get(other_key)
        if channel is None:
            continue

        impact_percent = drop_percent * channel.rate
        loss = other.tvl * (impact_percent / 100)
        cascade.append(CascadeStep(
            protocol=other.name,
            estimated_tvl_drop_percent=round_half_up(impact_percent, 1),
            estimated_loss_usd=loss,
            mechanism=channel.mechanism,
        ))
        total_loss += loss

    score = _systemic_risk_score(total_loss, trigger, protocols)
    logger.debug(
        "cascade %s -%s%%: loss=%.0f steps=%d score=%d",
        trigger_key.value, drop_percent, total_loss, len(cascade), score,
    )

    return ContagionScenario(
        trigger=f"{trigger.name} TVL drops {drop_percent:g}%",
        trigger_protocol=trigger.name,
        trigger_drop_percent=drop_percent,
        cascade=tuple(cascade),
        total_system_loss_usd=total_loss,
        time_to_contagion=CONTAGION_SPEED.get(trigger_key, DEFAULT_CONTAGION_SPEED),
        systemic_risk_score=score,
    )


def _largest_protocol(protocols: Sequence[ProtocolMetric]) -> Optional[ProtocolMetric]:
    if not protocols:
        return None
    return max(protocols, key=lambda p: p.tvl)


def analyze_contagion(protocols: Sequence[ProtocolMetric]) -> ContagionAnalysis:
    """
    Full contagion analysis across all supported protocols.

    Aggregate risk weights the worst scenario at 60% and the scenario
    average at 40%.
    """
    moderate = SHOCK_SCENARIOS["moderate"]["drop_percent"]
    severe = SHOCK_SCENARIOS["severe"]["drop_percent"]
    blast = SHOCK_SCENARIOS["blast_radius"]["drop_percent"]

    scenarios = [simulate_cascade(protocol, moderate, protocols) for protocol in Protocol]

    largest = _largest_protocol(protocols)
    if largest is not None:
        scenarios.append(simulate_cascade(largest.protocol or largest.name, severe, protocols))

    blast_radius = MappingProxyType({
        protocol: simulate_cascade(protocol, blast, protocols).total_system_loss_usd
        for protocol in Protocol
    })

    worst = max(scenarios, key=lambda s: s.systemic_risk_score)
    avg_risk = float(np.mean([s.systemic_risk_score for s in scenarios]))
    aggregate = clamp_score(
        worst.systemic_risk_score * SYSTEMIC_RISK_RULES["aggregate_worst_weight"]
        + avg_risk * SYSTEMIC_RISK_RULES["aggregate_mean_weight"]
    )

    logger.debug(
        "contagion aggregate=%d worst=%s loss=%.0f",
        aggregate, worst.trigger, worst.total_system_loss_usd,
    )

    return ContagionAnalysis(
        correlation_matrix=CORRELATIONS,
        scenarios=tuple(scenarios),
        aggregate_contagion_risk=aggregate,
        blast_radius=blast_radius,
        worst_case_system_loss=worst.total_system_loss_usd,
    )
