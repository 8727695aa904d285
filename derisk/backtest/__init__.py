"""Historical crisis replay."""

from .events import (
    HISTORICAL_EVENTS,
    DailySnapshot,
    HistoricalEvent,
    get_event,
)
from .backtester import (
    BacktestDayResult,
    BacktestReport,
    BacktestResult,
    backtest_curve,
    backtest_euler,
    backtest_event,
    backtest_ftx,
    backtest_terra_luna,
    report_frame,
    run_all_backtests,
    score_day,
    timeline_frame,
)

__all__ = [
    # Data
    "HISTORICAL_EVENTS",
    "DailySnapshot",
    "HistoricalEvent",
    "get_event",
    # Replay
    "BacktestDayResult",
    "BacktestReport",
    "BacktestResult",
    "backtest_curve",
    "backtest_euler",
    "backtest_event",
    "backtest_ftx",
    "backtest_terra_luna",
    "run_all_backtests",
    "score_day",
    # Export
    "report_frame",
    "timeline_frame",
]
