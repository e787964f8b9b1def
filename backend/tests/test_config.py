"""
Tests for settings and logging configuration.
"""

import logging
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

# Add backend to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from roofgrid.core.config import Settings, configure_logging, get_settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, settings):
        """Defaults are metric with advanced pitch correction."""
        assert settings.unit_system == "metric"
        assert settings.pitch_correction_method == "advanced"
        assert settings.waste_factor_percent == 10.0
        assert settings.area_precision == 2
        assert settings.geometry_validation is True

    def test_environment_override(self, monkeypatch):
        """ROOFGRID_ variables override defaults."""
        monkeypatch.setenv("ROOFGRID_WASTE_FACTOR_PERCENT", "12")
        monkeypatch.setenv("ROOFGRID_UNIT_SYSTEM", "imperial")
        configured = Settings()
        assert configured.waste_factor_percent == 12.0
        assert configured.unit_system == "imperial"

    def test_invalid_method_rejected(self):
        """An unknown correction method fails validation."""
        with pytest.raises(ValidationError):
            Settings(pitch_correction_method="guess")

    def test_price_fallback(self, settings):
        """Unlisted materials fall back to the unknown price."""
        assert settings.material_price("metal") == 8.0
        assert settings.material_price("slate") == settings.material_price("unknown")
        assert settings.labor_price("slate") == settings.labor_price("unknown")

    def test_get_settings_is_cached(self):
        """get_settings returns one shared instance."""
        assert get_settings() is get_settings()


class TestConfigureLogging:
    """Tests for the logging helper."""

    def test_applies_level(self, monkeypatch):
        """The configured level name is passed to basicConfig."""
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

        configure_logging(Settings(log_level="debug"))

        assert calls["level"] == logging.DEBUG
