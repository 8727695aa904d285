"""
Runtime settings.

Logging and loss-prevention policy, overridable through environment
variables.
"""

import os

LOG_LEVEL = os.getenv("DERISK_LOG_LEVEL", "INFO")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Share of actual losses assumed avoided, by how early the alarm fired.
# Illustrative policy values, not derived from data.
LOSS_PREVENTION_POLICY = {
    "early_lead_days": int(os.getenv("DERISK_EARLY_LEAD_DAYS", 3)),
    "late_lead_days": int(os.getenv("DERISK_LATE_LEAD_DAYS", 1)),
    "circuit_breaker": {
        "early": float(os.getenv("DERISK_PREVENTED_BREAKER_EARLY", 0.66)),
        "late": float(os.getenv("DERISK_PREVENTED_BREAKER_LATE", 0.50)),
        "same_day": float(os.getenv("DERISK_PREVENTED_BREAKER_SAME_DAY", 0.25)),
    },
    "alert_only": {
        "early": float(os.getenv("DERISK_PREVENTED_ALERT_EARLY", 0.40)),
        "late": float(os.getenv("DERISK_PREVENTED_ALERT_LATE", 0.25)),
        "same_day": float(os.getenv("DERISK_PREVENTED_ALERT_SAME_DAY", 0.0)),
    },
}
