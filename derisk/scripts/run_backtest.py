"""
Historical Backtest Runner.

Replays one or all curated crisis events and prints the timelines and the
combined report.

Usage:
    derisk-backtest                 # all events
    derisk-backtest terra-luna
    derisk-backtest all --csv timelines.csv
"""

import argparse
import logging
from typing import List, Optional

import pandas as pd

from derisk.backtest.backtester import (
    backtest_event,
    report_frame,
    run_all_backtests,
    timeline_frame,
)
from derisk.backtest.events import EVENTS_BY_KEY, HISTORICAL_EVENTS
from derisk.config.settings import LOG_FORMAT, LOG_LEVEL
from derisk.reporting.formatters import format_backtest_report, format_backtest_result

logger = logging.getLogger("derisk.backtest")

ALL_EVENTS = "all"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="derisk-backtest",
        description="Replay historical DeFi crises through the risk engine",
    )
    parser.add_argument(
        "event",
        nargs="?",
        default=ALL_EVENTS,
        choices=list(EVENTS_BY_KEY) + [ALL_EVENTS],
        help="Event to replay (default: all)",
    )
    parser.add_argument("--csv", metavar="PATH", help="Write the day timelines to a CSV file")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Logging level (default: %(default)s)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    if args.event == ALL_EVENTS:
        events = HISTORICAL_EVENTS
    else:
        events = (EVENTS_BY_KEY[args.event],)

    results = []
    for event in events:
        result = backtest_event(event)
        results.append(result)
        print(format_backtest_result(result))
        print()

    if len(events) > 1:
        report = run_all_backtests(events)
        print(format_backtest_report(report))
        logger.debug("report summary:\n%s", report_frame(report).to_string(index=False))

    if args.csv:
        frame = pd.concat([timeline_frame(r) for r in results], ignore_index=True)
        frame.to_csv(args.csv, index=False)
        print(f"\nTimeline written to {args.csv} ({len(frame)} rows)")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
