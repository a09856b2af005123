"""Tests for environment configuration."""

import pytest
from pydantic import ValidationError

from expense_tracker.config import AppSettings, get_settings, validate_all_settings


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self, monkeypatch):
        """Test defaults without any environment."""
        monkeypatch.delenv("EXPENSE_TRACKER_STORAGE_BACKEND", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.storage_backend == "json"
        assert settings.budget_alert_threshold == 0.9
        assert settings.trend_months == 6
        assert settings.default_currency_code == "USD"

    def test_environment_prefix(self, monkeypatch):
        """Test values are read from prefixed environment variables."""
        monkeypatch.setenv("EXPENSE_TRACKER_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("EXPENSE_TRACKER_BUDGET_ALERT_THRESHOLD", "0.75")
        monkeypatch.setenv("EXPENSE_TRACKER_DEFAULT_CURRENCY_CODE", "gbp")
        settings = AppSettings(_env_file=None)
        assert settings.storage_backend == "memory"
        assert settings.budget_alert_threshold == 0.75
        assert settings.default_currency_code == "GBP"

    def test_invalid_values(self):
        """Test out-of-range settings are rejected."""
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, budget_alert_threshold=1.5)
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, storage_backend="postgres")


class TestValidateAllSettings:
    """Tests for the startup settings check."""

    def test_memory_backend_needs_no_sheets(self, monkeypatch):
        """Test Google Sheets is only checked when selected."""
        monkeypatch.setenv("EXPENSE_TRACKER_STORAGE_BACKEND", "memory")
        get_settings.cache_clear()
        try:
            results = validate_all_settings()
        finally:
            get_settings.cache_clear()
        assert results == {"app": True}
