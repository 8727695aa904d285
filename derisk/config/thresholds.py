"""
Systemic Risk Scoring Thresholds and Justifications.

Every constant used by the contagion simulator, the depeg monitor, the
consensus aggregator and the backtesting harness lives here, calibrated on
DeFi stress events from 2022-2023:
- Terra/Luna collapse (May 2022): UST depeg cascading into Aave, Compound, Maker
- FTX collapse (Nov 2022): cross-protocol TVL outflows
- USDC depeg (Mar 2023): simultaneous impact on all lending protocols
- Curve/Vyper exploit (Jul 2023): CRV liquidation pressure on Aave

Each band carries:
- the numeric threshold (or rate)
- the score / shock applied when the band matches
- a justification for why the value was chosen

The correlation and contagion tables form the static knowledge base. They are
exposed as read-only mappings and are safe to share between threads.
"""

from dataclasses import dataclass
from types import MappingProxyType

from derisk.core.protocols import Protocol


# =============================================================================
# SEVERITY SCALE
# =============================================================================

# Single source of truth for alert levels. A score strictly above the bound
# earns the level.
SEVERITY_THRESHOLDS = MappingProxyType({
    "CRITICAL": 80,
    "WARNING": 60,
    "WATCH": 40,
})

CIRCUIT_BREAKER_THRESHOLD = SEVERITY_THRESHOLDS["CRITICAL"]

NEUTRAL_SCORE = 50


# =============================================================================
# CORRELATION / CONTAGION KNOWLEDGE BASE
# =============================================================================

@dataclass(frozen=True)
class ContagionChannel:
    """Directed transmission channel: target drops by source_drop * rate."""
    rate: float
    mechanism: str


# 90-day rolling TVL correlations observed during stress windows.
CORRELATIONS = MappingProxyType({
    Protocol.AAVE: MappingProxyType({
        Protocol.AAVE: 1.0,
        Protocol.COMPOUND: 0.87,
        Protocol.MAKER: 0.72,
    }),
    Protocol.COMPOUND: MappingProxyType({
        Protocol.AAVE: 0.87,
        Protocol.COMPOUND: 1.0,
        Protocol.MAKER: 0.65,
    }),
    Protocol.MAKER: MappingProxyType({
        Protocol.AAVE: 0.72,
        Protocol.COMPOUND: 0.65,
        Protocol.MAKER: 1.0,
    }),
})

CONTAGION_CHANNELS = MappingProxyType({
    Protocol.AAVE: MappingProxyType({
        Protocol.COMPOUND: ContagionChannel(
            rate=0.45,
            mechanism="Collateral liquidations on Aave push sell pressure into Compound markets",
        ),
        Protocol.MAKER: ContagionChannel(
            rate=0.35,
            mechanism="ETH collateral repricing weakens Maker vaults and pressures the DAI peg",
        ),
    }),
    Protocol.COMPOUND: MappingProxyType({
        Protocol.AAVE: ContagionChannel(
            rate=0.40,
            mechanism="Depositors flee lending markets together; liquidations overlap",
        ),
        Protocol.MAKER: ContagionChannel(
            rate=0.25,
            mechanism="Falling borrow demand for DAI erodes peg support",
        ),
    }),
    Protocol.MAKER: MappingProxyType({
        Protocol.AAVE: ContagionChannel(
            rate=0.50,
            mechanism="DAI depeg reprices DAI collateral across every lending market",
        ),
        Protocol.COMPOUND: ContagionChannel(
            rate=0.45,
            mechanism="DAI instability drains Compound pool utilization",
        ),
    }),
})

# Observed time from trigger to measurable cascade.
CONTAGION_SPEED = MappingProxyType({
    Protocol.AAVE: "< 2 hours",
    Protocol.COMPOUND: "2-6 hours",
    Protocol.MAKER: "1-4 hours",
})

DEFAULT_CONTAGION_SPEED = "2-6 hours"

SHOCK_SCENARIOS = MappingProxyType({
    "moderate": {
        "drop_percent": 20,
        "justification": "Typical single-protocol TVL drawdown in a stress week "
                        "(Aave during FTX, Compound during Terra).",
    },
    "severe": {
        "drop_percent": 50,
        "justification": "Applied to the largest protocol only. Comparable to the "
                        "peak-to-trough drawdown of lending TVL in May 2022.",
    },
    "blast_radius": {
        "drop_percent": 30,
        "justification": "Failure scenario used to size USD at risk per protocol.",
    },
})

SYSTEMIC_RISK_RULES = MappingProxyType({
    "loss_multiplier": 3,          # 33% system loss maps to 100
    "dominance_share": 0.60,
    "dominance_boost": 15,
    "elevated_avg_risk": 40,
    "elevated_risk_boost": 10,
    "aggregate_worst_weight": 0.6,
    "aggregate_mean_weight": 0.4,
})


# =============================================================================
# STABLECOIN DEPEG THRESHOLDS
# =============================================================================

DEPEG_SEVERITY_THRESHOLDS = (
    {
        "severity": "CRITICAL",
        "deviation": 0.05,
        "justification": "5% off peg. USDC reached 13% during SVB; beyond 5% "
                        "redemptions and liquidations become disorderly.",
    },
    {
        "severity": "WARNING",
        "deviation": 0.02,
        "justification": "2% off peg. UST crossed this four days before its collapse.",
    },
    {
        "severity": "WATCH",
        "deviation": 0.005,
        "justification": "0.5% off peg. Above normal market-making noise for "
                        "major stablecoins.",
    },
)

MECHANISM_RISK = MappingProxyType({
    "algorithmic": 2.0,
    "crypto-backed": 1.5,
    "fiat-backed": 1.0,
})

DEPEG_SCORE_SCALE = 10

STABLECOIN_PROFILES = MappingProxyType({
    "USDT": {
        "mechanism": "fiat-backed",
        "risk_factor": "Largest stablecoin by supply. Reserve transparency is "
                       "disputed; a depeg would spread through every DeFi market.",
    },
    "USDC": {
        "mechanism": "fiat-backed",
        "risk_factor": "Main DeFi collateral. Fell to $0.87 on SVB exposure in "
                       "March 2023; directly hits Aave and Compound.",
    },
    "DAI": {
        "mechanism": "crypto-backed",
        "risk_factor": "Backed by Maker vaults. Depends on ETH collateral health "
                       "and breaks during liquidation cascades.",
    },
    "UST": {
        "mechanism": "algorithmic",
        "risk_factor": "Algorithmic peg with no hard collateral. Death-spiralled "
                       "in May 2022.",
    },
})

DEFAULT_RISK_FACTOR = "Stablecoin peg deviation detected"

# Estimation of peg stress from macro signals when no price feed is available.
# Each band list is evaluated top to bottom; the first matching bound applies.
# Shocks are price deltas (negative = below peg).
STABLECOIN_ESTIMATION = MappingProxyType({
    "USDT": {
        "mechanism": "fiat-backed",
        "reference_price_bands": (),
        "total_tvl_bands": ((10e9, -0.01), (20e9, -0.002)),
        "collateral_tvl_bands": (),
        "jitter": {"scale": 1.0, "offset": -0.0004},
    },
    "USDC": {
        "mechanism": "fiat-backed",
        "reference_price_bands": ((1000, -0.005), (1500, -0.002)),
        "total_tvl_bands": ((10e9, -0.02), (20e9, -0.005)),
        "collateral_tvl_bands": (),
        "jitter": {"scale": -0.5, "offset": 0.0},
    },
    "DAI": {
        "mechanism": "crypto-backed",
        "reference_price_bands": ((1000, -0.03), (1500, -0.01), (2000, -0.003)),
        "total_tvl_bands": (),
        "collateral_tvl_bands": ((2e9, -0.02), (4e9, -0.005)),
        "jitter": {"scale": 2.0, "offset": -0.0005},
    },
})

# Vault collateral backing the crypto-backed coin.
COLLATERAL_PROTOCOL = Protocol.MAKER

# Cosmetic variation: (reference_price mod JITTER_MODULUS) / JITTER_DIVISOR.
# Not a risk signal and not a randomness source.
JITTER_MODULUS = 10
JITTER_DIVISOR = 10000

PRICE_DECIMALS = 4


# =============================================================================
# CONSENSUS THRESHOLDS
# =============================================================================

OUTLIER_STD_MULTIPLIER = 1.5

# (max spread, confidence) evaluated in order; wider spreads fall through to
# the linear tail max(floor, 100 - slope * spread).
SPREAD_CONFIDENCE_BANDS = (
    (0, 100),
    (5, 95),
    (10, 85),
    (20, 70),
    (30, 50),
)
SPREAD_CONFIDENCE_FLOOR = 20
SPREAD_CONFIDENCE_SLOPE = 2
OUTLIER_CONFIDENCE_PENALTY = 10

MODEL_CONFIDENCE = MappingProxyType({
    "external": 0.95,
    "external_fallback": 0.70,
    "rule_based": 0.70,
    "contagion_adjusted": 0.60,
})

MODEL_NAMES = MappingProxyType({
    "external": "External AI",
    "rule_based": "Rule-Based",
    "contagion_adjusted": "Contagion-Adjusted",
})


# =============================================================================
# RULE-BASED MODEL
# =============================================================================

RULE_BASED_THRESHOLDS = MappingProxyType({
    Protocol.AAVE: {
        "critical": 5e9,
        "warning": 15e9,
        "caution": 20e9,
        "weight": 50,
        "justification": "Largest lending market; half of the aggregate weight.",
    },
    Protocol.COMPOUND: {
        "critical": 500e6,
        "warning": 1e9,
        "caution": 2e9,
        "weight": 25,
        "justification": "Smaller lending market with the same liquidation mechanics.",
    },
    Protocol.MAKER: {
        "critical": 2e9,
        "warning": 4e9,
        "caution": 6e9,
        "weight": 25,
        "justification": "CDP system; collateral depth protects the DAI peg.",
    },
})

RULE_BASED_BASE_SCORE = 15
RULE_BASED_BAND_POINTS = MappingProxyType({
    "critical": 40,
    "warning": 20,
    "caution": 10,
})

# Uniform stress added to every protocol score.
REFERENCE_PRICE_ADJUSTMENTS = ((1000, 20), (1500, 10), (2000, 5))

CONTAGION_ADJUSTED_WEIGHTS = MappingProxyType({
    "base": 0.7,
    "contagion": 0.3,
})


# =============================================================================
# BACKTEST STRESS HEURISTIC
# =============================================================================

HEURISTIC_BASELINE = 10

# (upper bound exclusive, points)
HEURISTIC_TVL_BANDS = (
    (10e9, 35),
    (15e9, 25),
    (20e9, 15),
    (25e9, 8),
    (30e9, 4),
)

HEURISTIC_REFERENCE_PRICE_BANDS = (
    (1100, 30),
    (1300, 22),
    (1500, 15),
    (1800, 10),
    (2200, 5),
    (2700, 3),
)

# (minimum deviation inclusive, points), evaluated from the widest deviation.
HEURISTIC_DEPEG_BANDS = MappingProxyType({
    "UST": (
        (0.5, 50),
        (0.2, 45),
        (0.1, 35),
        (0.05, 28),
        (0.02, 20),
        (0.01, 15),
        (0.005, 8),
        (0.002, 3),
    ),
    "USDC": (
        (0.1, 40),
        (0.05, 30),
        (0.02, 20),
        (0.01, 10),
        (0.005, 5),
    ),
    "USDT": (
        (0.02, 15),
        (0.01, 10),
        (0.005, 5),
    ),
})

HEURISTIC_CONTAGION_WEIGHT = 0.20
HEURISTIC_DEPEG_WEIGHT = 0.15

# Cumulative: a share above 0.8 earns both bonuses.
HEURISTIC_CONCENTRATION_BANDS = ((0.7, 5), (0.8, 8))

# Historical coin prices override the inferred depeg score past this deviation.
HISTORICAL_DEPEG_OVERRIDE = MappingProxyType({
    "min_deviation": 0.02,
    "multiplier": 200,
})

DEPEG_FLOOR = MappingProxyType({
    "trigger": 20,
    "ratio": 0.8,
})

FALSE_POSITIVE_HORIZON_DAYS = 10
