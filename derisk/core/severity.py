"""
Alert severity vocabulary.

The consensus result, the live assessment, the depeg monitor, the backtester
and every text renderer classify scores through this module only.
"""

from enum import Enum

from derisk.config.thresholds import CIRCUIT_BREAKER_THRESHOLD, SEVERITY_THRESHOLDS


class AlertLevel(str, Enum):
    NONE = "NONE"
    WATCH = "WATCH"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"

    @property
    def priority(self) -> int:
        """Sort key: CRITICAL first."""
        return _PRIORITY[self]

    @property
    def is_actionable(self) -> bool:
        return self in (AlertLevel.WARNING, AlertLevel.CRITICAL)


_PRIORITY = {
    AlertLevel.CRITICAL: 0,
    AlertLevel.WARNING: 1,
    AlertLevel.WATCH: 2,
    AlertLevel.NONE: 3,
}


def alert_level_for_score(score: float) -> AlertLevel:
    """Classify a 0-100 risk score (> 80 CRITICAL, > 60 WARNING, > 40 WATCH)."""
    for level in (AlertLevel.CRITICAL, AlertLevel.WARNING, AlertLevel.WATCH):
        if score > SEVERITY_THRESHOLDS[level.value]:
            return level
    return AlertLevel.NONE


def is_circuit_breaker_score(score: float) -> bool:
    return score > CIRCUIT_BREAKER_THRESHOLD
