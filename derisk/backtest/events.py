"""
Curated historical crisis timelines.

Daily protocol TVL, ETH price and stablecoin prices leading into four DeFi
stress events, taken from DeFi Llama archives and on-chain price records.
Days are sparse: the datasets sample the run-up rather than every day.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from derisk.core.protocols import ProtocolMetric, build_protocol_metrics


@dataclass(frozen=True)
class DailySnapshot:
    """Market state on one day before (or on) an event."""
    date: str
    days_before_event: int
    aave_tvl: float
    compound_tvl: float
    maker_tvl: float
    reference_price: float
    stablecoin_prices: Mapping[str, float] = field(default_factory=dict)
    notes: str = ""

    @property
    def total_tvl(self) -> float:
        return self.aave_tvl + self.compound_tvl + self.maker_tvl

    def protocol_metrics(self) -> List[ProtocolMetric]:
        return build_protocol_metrics(self.aave_tvl, self.compound_tvl, self.maker_tvl)


@dataclass(frozen=True)
class HistoricalEvent:
    key: str
    name: str
    event_date: str
    description: str
    actual_losses_usd: float
    snapshots: Tuple[DailySnapshot, ...]


def _day(date, days_before, aave, compound, maker, eth, notes, **stablecoins) -> DailySnapshot:
    return DailySnapshot(
        date=date,
        days_before_event=days_before,
        aave_tvl=aave,
        compound_tvl=compound,
        maker_tvl=maker,
        reference_price=eth,
        stablecoin_prices={symbol.upper(): price for symbol, price in stablecoins.items()},
        notes=notes,
    )


# =============================================================================
# TERRA / LUNA (May 2022)
# =============================================================================

TERRA_LUNA = HistoricalEvent(
    key="terra-luna",
    name="Terra/Luna Collapse",
    event_date="2022-05-09",
    description="UST lost its algorithmic peg, LUNA hyperinflated and about $60B of "
                "market value disappeared. Shared collateral liquidations spread the "
                "damage to every major lending protocol.",
    actual_losses_usd=60e9,
    snapshots=(
        _day("2022-04-09", 30, 12.8e9, 8.2e9, 17.5e9, 3230, "Normal market conditions",
             ust=1.0, usdc=1.0, usdt=1.0),
        _day("2022-04-19", 20, 12.2e9, 7.8e9, 16.8e9, 2960, "TVL drifting lower, soft market",
             ust=0.999, usdc=1.0, usdt=1.0),
        _day("2022-04-29", 10, 11.4e9, 7.1e9, 15.5e9, 2700, "Anchor deposits shrinking, large holders exiting",
             ust=0.997, usdc=1.0, usdt=0.999),
        _day("2022-05-01", 8, 11.1e9, 6.9e9, 15.0e9, 2600, "Anchor withdrawals spike, $2B out in 48h",
             ust=0.993, usdc=1.0, usdt=0.999),
        _day("2022-05-03", 6, 10.8e9, 6.7e9, 14.5e9, 2500, "Large UST sells into Curve 3pool",
             ust=0.988, usdc=1.001, usdt=0.999),
        _day("2022-05-05", 4, 10.2e9, 6.3e9, 13.8e9, 2400, "UST at $0.982, first clear depeg signal",
             ust=0.982, usdc=1.001, usdt=0.998),
        _day("2022-05-06", 3, 9.8e9, 6.0e9, 13.2e9, 2300, "UST unstable at $0.975, LFG deploys BTC reserves",
             ust=0.975, usdc=1.001, usdt=0.998),
        _day("2022-05-07", 2, 9.5e9, 5.8e9, 12.8e9, 2200, "UST depeg confirmed at $0.94, Curve pool imbalanced",
             ust=0.94, usdc=1.002, usdt=0.998),
        _day("2022-05-08", 1, 8.8e9, 5.2e9, 11.5e9, 1900, "UST crashes to $0.68, LUNA supply explodes, DeFi bank run",
             ust=0.68, usdc=1.003, usdt=0.997),
        _day("2022-05-09", 0, 7.5e9, 4.5e9, 10.0e9, 1700, "Collapse: UST $0.30, LUNA near zero",
             ust=0.30, usdc=1.005, usdt=0.995),
    ),
)


# =============================================================================
# FTX / ALAMEDA (November 2022)
# =============================================================================

FTX_COLLAPSE = HistoricalEvent(
    key="ftx",
    name="FTX/Alameda Contagion",
    event_date="2022-11-10",
    description="FTX collapsed after customer funds were misused. Alameda Research "
                "liquidations drove DeFi-wide TVL outflows above $8B.",
    actual_losses_usd=8e9,
    snapshots=(
        _day("2022-10-30", 11, 5.8e9, 3.2e9, 8.1e9, 1580, "Normal conditions before FTX",
             usdc=1.0, usdt=0.999),
        _day("2022-11-01", 9, 5.7e9, 3.1e9, 8.0e9, 1550, "Alameda balance sheet report published",
             usdc=1.0, usdt=0.999),
        _day("2022-11-03", 7, 5.5e9, 3.0e9, 7.8e9, 1520, "Market reacting to Alameda exposure",
             usdc=1.0, usdt=0.998),
        _day("2022-11-05", 5, 5.2e9, 2.8e9, 7.4e9, 1450, "Binance announces FTT sale",
             usdc=1.0, usdt=0.997),
        _day("2022-11-07", 3, 4.8e9, 2.5e9, 6.8e9, 1350, "FTT down 80%, DeFi outflows accelerate",
             usdc=1.001, usdt=0.995),
        _day("2022-11-08", 2, 4.3e9, 2.2e9, 6.2e9, 1200, "FTX halts withdrawals, Alameda liquidations begin",
             usdc=1.002, usdt=0.993),
        _day("2022-11-09", 1, 3.9e9, 2.0e9, 5.8e9, 1100, "Binance walks away from the FTX deal",
             usdc=1.003, usdt=0.99),
        _day("2022-11-10", 0, 3.5e9, 1.8e9, 5.2e9, 1070, "FTX files for bankruptcy, $8B+ customer funds missing",
             usdc=1.003, usdt=0.985),
    ),
)


# =============================================================================
# EULER FINANCE (March 2023)
# =============================================================================

EULER_HACK = HistoricalEvent(
    key="euler",
    name="Euler Finance Hack",
    event_date="2023-03-13",
    description="$197M flash loan exploit of the Euler lending protocol, landing in "
                "the middle of the SVB banking crisis and the USDC depeg to $0.87.",
    actual_losses_usd=197e6,
    snapshots=(
        _day("2023-03-06", 7, 6.2e9, 2.8e9, 7.5e9, 1560, "Normal DeFi operations",
             usdc=1.0, usdt=1.0),
        _day("2023-03-08", 5, 6.1e9, 2.7e9, 7.3e9, 1540, "Banking stress around SVB",
             usdc=1.0, usdt=1.0),
        _day("2023-03-10", 3, 5.8e9, 2.5e9, 6.8e9, 1430, "SVB closed; Circle has $3.3B there, USDC slips",
             usdc=0.99, usdt=0.999),
        _day("2023-03-11", 2, 5.2e9, 2.2e9, 6.0e9, 1380, "USDC at $0.87, DAI follows to $0.90",
             usdc=0.87, usdt=0.998),
        _day("2023-03-12", 1, 5.5e9, 2.4e9, 6.5e9, 1470, "Fed backstop announced, USDC recovering",
             usdc=0.97, usdt=1.0),
        _day("2023-03-13", 0, 5.3e9, 2.3e9, 6.3e9, 1500, "Euler exploited for $197M via flash loan",
             usdc=0.995, usdt=1.0),
    ),
)


# =============================================================================
# CURVE / VYPER (July 2023)
# =============================================================================

CURVE_EXPLOIT = HistoricalEvent(
    key="curve",
    name="Curve Pool Exploit",
    event_date="2023-07-30",
    description="A Vyper compiler reentrancy bug was exploited across several Curve "
                "pools. $70M stolen; CRV liquidation risk threatened Aave.",
    actual_losses_usd=70e6,
    snapshots=(
        _day("2023-07-23", 7, 7.8e9, 2.5e9, 5.8e9, 1850, "Normal operations, CRV borrow positions building",
             usdc=1.0, usdt=1.0),
        _day("2023-07-25", 5, 7.7e9, 2.5e9, 5.7e9, 1840, "Vyper vulnerability disclosed, not yet exploited",
             usdc=1.0, usdt=1.0),
        _day("2023-07-27", 3, 7.5e9, 2.4e9, 5.6e9, 1820, "Informed liquidity leaving Curve pools",
             usdc=1.0, usdt=1.0),
        _day("2023-07-29", 1, 7.2e9, 2.3e9, 5.4e9, 1780, "CRV falling, Aave CRV borrowers near liquidation",
             usdc=1.0, usdt=0.999),
        _day("2023-07-30", 0, 6.5e9, 2.1e9, 5.0e9, 1650, "Curve pools exploited, $70M stolen",
             usdc=1.0, usdt=0.998),
    ),
)


HISTORICAL_EVENTS: Tuple[HistoricalEvent, ...] = (
    TERRA_LUNA,
    FTX_COLLAPSE,
    EULER_HACK,
    CURVE_EXPLOIT,
)

EVENTS_BY_KEY: Dict[str, HistoricalEvent] = {event.key: event for event in HISTORICAL_EVENTS}


def get_event(key: str) -> HistoricalEvent:
    """Look up a curated event by key ("terra-luna", "ftx", "euler", "curve")."""
    try:
        return EVENTS_BY_KEY[key]
    except KeyError:
        raise KeyError(f"Unknown event '{key}'. Available: {', '.join(EVENTS_BY_KEY)}") from None
