"""
Stablecoin Depeg Early Warning.

Classifies stablecoin deviation from the $1.00 peg and rolls it into a 0-100
depeg risk score weighted by peg mechanism (algorithmic > crypto-backed >
fiat-backed).

No stablecoin price feed is available to the core, so by default prices are
inferred from macro stress signals:
- Reference asset (ETH) crash -> vault liquidations stress the crypto-backed coin
- Aggregate lending TVL collapse -> redemption pressure on fiat-backed coins
- Low vault collateral TVL -> extra stress on the crypto-backed coin
Observed prices can be passed in instead and are analyzed as given.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from derisk.config.thresholds import (
    COLLATERAL_PROTOCOL,
    DEFAULT_RISK_FACTOR,
    DEPEG_SCORE_SCALE,
    DEPEG_SEVERITY_THRESHOLDS,
    JITTER_DIVISOR,
    JITTER_MODULUS,
    MECHANISM_RISK,
    PRICE_DECIMALS,
    STABLECOIN_ESTIMATION,
    STABLECOIN_PROFILES,
)
from derisk.core.protocols import ProtocolMetric, tvl_by_protocol
from derisk.core.scoring import clamp_score, round_half_up
from derisk.core.severity import AlertLevel

logger = logging.getLogger("derisk.depeg")

PEG = 1.0
DEVIATION_DECIMALS = 10


def peg_deviation(price: float) -> float:
    """Absolute distance from peg, rounded so 0.995 and 1.005 sit on the same band edge."""
    return round(abs(price - PEG), DEVIATION_DECIMALS)


@dataclass(frozen=True)
class StablecoinPrice:
    symbol: str
    price: float
    mechanism: str

    @property
    def deviation(self) -> float:
        return peg_deviation(self.price)


@dataclass(frozen=True)
class DepegAlert:
    """A stablecoin trading at least 0.5% away from its peg."""
    symbol: str
    current_price: float
    deviation_percent: float
    severity: AlertLevel
    mechanism: str
    risk_factor: str


@dataclass(frozen=True)
class DepegAnalysis:
    stablecoins: Tuple[StablecoinPrice, ...]
    alerts: Tuple[DepegAlert, ...]
    depeg_risk_score: int
    worst_depeg: str
    avg_deviation: float


def _band_shock(value: float, bands: Sequence[Tuple[float, float]]) -> float:
    """Return the shock of the first band whose upper bound exceeds value."""
    for upper, shock in bands:
        if value < upper:
            return shock
    return 0.0


def estimate_stablecoin_prices(
    reference_price: float,
    protocols: Sequence[ProtocolMetric]
) -> List[StablecoinPrice]:
    """
    Infer stablecoin prices from the reference price and protocol TVL.

    A small deterministic variation derived from the reference price's last
    digit is added last. It is flavor for the demo feed only: it carries no
    risk information and must not be used as a random source.

    Returns:
        USDT, USDC (fiat-backed) and DAI (crypto-backed), rounded to 4 decimals
    """
    tvls = tvl_by_protocol(protocols)
    total_tvl = sum(tvls.values())
    collateral_tvl = tvls[COLLATERAL_PROTOCOL]
    micro = (reference_price % JITTER_MODULUS) / JITTER_DIVISOR

    prices = []
    for symbol, profile in STABLECOIN_ESTIMATION.items():
        price = PEG
        price += _band_shock(reference_price, profile["reference_price_bands"])
        price += _band_shock(total_tvl, profile["total_tvl_bands"])
        price += _band_shock(collateral_tvl, profile["collateral_tvl_bands"])
        jitter = profile["jitter"]
        price += jitter["scale"] * (micro + jitter["offset"])

        prices.append(StablecoinPrice(
            symbol=symbol,
            price=round_half_up(price, PRICE_DECIMALS),
            mechanism=profile["mechanism"],
        ))
    return prices


def classify_deviation(deviation: float) -> Optional[AlertLevel]:
    """Map an absolute peg deviation to WATCH / WARNING / CRITICAL, or None."""
    for band in DEPEG_SEVERITY_THRESHOLDS:
        if deviation >= band["deviation"]:
            return AlertLevel(band["severity"])
    return None


def _build_alert(coin: StablecoinPrice, severity: AlertLevel) -> DepegAlert:
    profile = STABLECOIN_PROFILES.get(coin.symbol, {})
    return DepegAlert(
        symbol=coin.symbol,
        current_price=coin.price,
        deviation_percent=round_half_up(coin.deviation * 100, 2),
        severity=severity,
        mechanism=coin.mechanism,
        risk_factor=profile.get("risk_factor", DEFAULT_RISK_FACTOR),
    )


def depeg_risk_score(stablecoins: Sequence[StablecoinPrice]) -> int:
    """Sum of deviation(%) x mechanism multiplier x 10, clamped to 100."""
    raw = sum(
        coin.deviation * 100 * MECHANISM_RISK.get(coin.mechanism, 1.0) * DEPEG_SCORE_SCALE
        for coin in stablecoins
    )
    return clamp_score(raw)


def analyze_depeg_risk(
    reference_price: float,
    protocols: Sequence[ProtocolMetric],
    stablecoins: Optional[Sequence[StablecoinPrice]] = None
) -> DepegAnalysis:
    """
    Analyze stablecoins for depeg risk.

    Args:
        reference_price: Reference asset price in USD (ETH)
        protocols: Current protocol metrics, used for price inference
        stablecoins: Observed prices. When omitted, prices are inferred.

    Returns:
        DepegAnalysis with alerts ordered CRITICAL, WARNING, WATCH
    """
    if stablecoins is None:
        stablecoins = estimate_stablecoin_prices(reference_price, protocols)
    stablecoins = tuple(stablecoins)

    alerts = []
    for coin in stablecoins:
        severity = classify_deviation(coin.deviation)
        if severity is not None:
            alerts.append(_build_alert(coin, severity))
    alerts.sort(key=lambda a: a.severity.priority)

    score = depeg_risk_score(stablecoins)

    if stablecoins:
        worst = max(stablecoins, key=lambda c: c.deviation).symbol
        avg_deviation = round_half_up(float(np.mean([c.deviation for c in stablecoins])), 4)
    else:
        worst = ""
        avg_deviation = 0.0

    for alert in alerts:
        logger.info(
            "depeg alert [%s] %s %.2f%% off peg",
            alert.severity.value, alert.symbol, alert.deviation_percent,
        )
    logger.debug("depeg score=%d worst=%s avg=%.4f", score, worst, avg_deviation)

    return DepegAnalysis(
        stablecoins=stablecoins,
        alerts=tuple(alerts),
        depeg_risk_score=score,
        worst_depeg=worst,
        avg_deviation=avg_deviation,
    )
