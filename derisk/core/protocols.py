"""
Supported protocols and the per-cycle protocol metric.

Protocol names arrive from data providers in many spellings ("Aave V3",
"aave-v3", "MakerDAO"). They are normalized once, here, into a closed
enumeration; everything downstream works with Protocol members.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from derisk.core.scoring import clamp_score


class Protocol(str, Enum):
    AAVE = "aave"
    COMPOUND = "compound"
    MAKER = "maker"

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]


DISPLAY_NAMES = {
    Protocol.AAVE: "Aave V3",
    Protocol.COMPOUND: "Compound V3",
    Protocol.MAKER: "MakerDAO",
}

_VERSION_SUFFIX = re.compile(r"[\s_-]*v\d+\b")
_ORG_SUFFIX = re.compile(r"[\s_-]*dao\b")


def normalize_protocol_name(name: Union[str, Protocol, None]) -> Optional[Protocol]:
    """
    Map a free-form protocol name onto a supported Protocol.

    Strips version ("V3") and organizational ("DAO") suffixes, then matches
    the remaining key exactly or as the leading word.

    Returns:
        The Protocol member, or None for unsupported names
    """
    if isinstance(name, Protocol):
        return name
    if not name:
        return None

    key = name.strip().lower()
    key = _VERSION_SUFFIX.sub("", key)
    key = _ORG_SUFFIX.sub("", key)
    key = key.strip(" _-")

    for protocol in Protocol:
        if key == protocol.value:
            return protocol
    for protocol in Protocol:
        if re.match(rf"{protocol.value}\b", key):
            return protocol
    return None


@dataclass(frozen=True)
class ProtocolMetric:
    """TVL snapshot for one protocol in one evaluation cycle."""
    name: str
    tvl: float
    risk_score: float = 0

    def __post_init__(self):
        tvl = float(self.tvl)
        object.__setattr__(self, "tvl", tvl if tvl > 0 else 0.0)
        object.__setattr__(self, "risk_score", clamp_score(self.risk_score))

    @property
    def protocol(self) -> Optional[Protocol]:
        return normalize_protocol_name(self.name)


def build_protocol_metrics(
    aave_tvl: float,
    compound_tvl: float,
    maker_tvl: float,
    risk_scores: Optional[Dict[Protocol, float]] = None
) -> List[ProtocolMetric]:
    """Build the standard three-protocol metric list."""
    risk_scores = risk_scores or {}
    tvls = {
        Protocol.AAVE: aave_tvl,
        Protocol.COMPOUND: compound_tvl,
        Protocol.MAKER: maker_tvl,
    }
    return [
        ProtocolMetric(protocol.display_name, tvl, risk_scores.get(protocol, 0))
        for protocol, tvl in tvls.items()
    ]


def tvl_by_protocol(protocols: Iterable[ProtocolMetric]) -> Dict[Protocol, float]:
    """
    Sum TVL per supported protocol.

    Every Protocol is present in the result; missing ones report 0.
    Unsupported names are ignored.
    """
    totals = {protocol: 0.0 for protocol in Protocol}
    for metric in protocols:
        protocol = metric.protocol
        if protocol is not None:
            totals[protocol] += metric.tvl
    return totals
