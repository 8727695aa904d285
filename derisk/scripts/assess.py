"""
Live Risk Assessment.

Scores one cycle from protocol TVLs and the reference price and prints the
summary. Exits with CIRCUIT_BREAKER_EXIT_CODE when the circuit breaker
fires so shell automation can gate on it.

Usage:
    derisk-assess --aave-tvl 12e9 --compound-tvl 3e9 --maker-tvl 7e9 \
        --reference-price 2400 --external-score 55
"""

import argparse
import logging
from typing import List, Optional

from derisk.config.settings import LOG_FORMAT, LOG_LEVEL
from derisk.core.pipeline import assess_risk
from derisk.core.protocols import build_protocol_metrics
from derisk.reporting.formatters import format_risk_assessment

CIRCUIT_BREAKER_EXIT_CODE = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="derisk-assess",
        description="Score systemic DeFi risk for one cycle",
    )
    parser.add_argument("--aave-tvl", type=float, required=True, help="Aave TVL in USD")
    parser.add_argument("--compound-tvl", type=float, required=True, help="Compound TVL in USD")
    parser.add_argument("--maker-tvl", type=float, required=True, help="Maker TVL in USD")
    parser.add_argument("--reference-price", type=float, required=True, help="ETH price in USD")
    parser.add_argument("--external-score", type=float, help="Score from the external AI model (0-100)")
    parser.add_argument(
        "--external-fallback",
        action="store_true",
        help="The external score came from the service's own fallback",
    )
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Logging level (default: %(default)s)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    protocols = build_protocol_metrics(args.aave_tvl, args.compound_tvl, args.maker_tvl)
    assessment = assess_risk(
        protocols,
        args.reference_price,
        external_score=args.external_score,
        external_fallback=args.external_fallback,
    )
    print(format_risk_assessment(assessment))

    if assessment.circuit_breaker_triggered:
        return CIRCUIT_BREAKER_EXIT_CODE
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
