"""
Unit tests for environment-driven settings.
"""

import importlib

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import derisk.config.settings as settings


@pytest.fixture
def reload_settings(monkeypatch):
    """Reload settings under a patched environment, restoring it afterwards."""
    def _reload(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(settings)

    yield _reload
    monkeypatch.undo()
    importlib.reload(settings)


class TestSettings:

    @pytest.mark.unit
    @pytest.mark.smoke
    def test_default_policy(self, reload_settings):
        policy = reload_settings().LOSS_PREVENTION_POLICY
        assert policy["early_lead_days"] == 3
        assert policy["late_lead_days"] == 1
        assert policy["circuit_breaker"] == {"early": 0.66, "late": 0.50, "same_day": 0.25}
        assert policy["alert_only"] == {"early": 0.40, "late": 0.25, "same_day": 0.0}

    @pytest.mark.unit
    def test_env_overrides(self, reload_settings):
        reloaded = reload_settings(
            DERISK_LOG_LEVEL="DEBUG",
            DERISK_EARLY_LEAD_DAYS="5",
            DERISK_PREVENTED_BREAKER_EARLY="0.9",
        )
        assert reloaded.LOG_LEVEL == "DEBUG"
        assert reloaded.LOSS_PREVENTION_POLICY["early_lead_days"] == 5
        assert reloaded.LOSS_PREVENTION_POLICY["circuit_breaker"]["early"] == 0.9

    @pytest.mark.unit
    def test_log_format_names_logger(self):
        assert "%(name)s" in settings.LOG_FORMAT
