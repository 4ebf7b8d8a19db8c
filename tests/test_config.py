"""Tests for environment-driven settings."""

from decimal import Decimal

import pytest

from payroll_core.calculators.types import ProrationMethod
from payroll_core.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Test loading settings and deriving the calculator configuration."""

    def test_defaults(self, monkeypatch):
        """Unset variables fall back to the documented defaults."""
        for key in ("STANDARD_WEEKLY_HOURS", "OVERTIME_MULTIPLIER", "BALANCE_TOLERANCE", "LOG_LEVEL"):
            monkeypatch.delenv(key, raising=False)

        settings = Settings.from_env()
        assert settings.standard_weekly_hours == Decimal("40")
        assert settings.overtime_multiplier == Decimal("1.5")
        assert settings.balance_tolerance == Decimal("0.01")
        assert settings.log_level == "INFO"

    def test_calculation_config_from_env(self, monkeypatch):
        monkeypatch.setenv("STANDARD_WEEKLY_HOURS", "37.5")
        monkeypatch.setenv("OVERTIME_MULTIPLIER", "2")
        monkeypatch.setenv("DEFAULT_PRORATION_METHOD", "working_days")
        monkeypatch.setenv("ENGINE_VERSION", "2.0.0")

        config = get_settings().calculation_config()
        assert config.standard_weekly_hours == Decimal("37.5")
        assert config.overtime_multiplier == Decimal("2")
        assert config.default_proration_method == ProrationMethod.WORKING_DAYS
        assert config.engine_version == "2.0.0"

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()
