"""Tests for engine configuration management."""

import logging
import os
import tempfile
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from corpus_planner.config import (
    EngineDefaults,
    EngineSettings,
    configure_logging,
    get_global_settings,
    get_settings,
    reset_global_settings,
)


class TestEngineSettings:
    """Test cases for EngineSettings class."""

    def test_defaults(self):
        """Test settings defaults without any environment."""
        with patch.dict(os.environ, {}, clear=True):
            settings = EngineSettings(_env_file=None)

            assert settings.default_inflation_rate == 6.0
            assert settings.default_mf_return == 12.0
            assert settings.monte_carlo_std_dev == 8.0
            assert settings.log_level == "INFO"

    def test_settings_loads_from_env_file(self):
        """Test that settings can load from a .env file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".env", delete=False) as f:
            f.write("DEFAULT_INFLATION_RATE=5.5\n")
            f.write("DEFAULT_WITHDRAWAL_RATE=6\n")
            f.write("LOG_LEVEL=debug\n")
            temp_env_file = f.name

        try:
            with patch.dict(os.environ, {}, clear=True):
                settings = get_settings(temp_env_file)

                assert settings.default_inflation_rate == 5.5
                assert settings.default_withdrawal_rate == 6
                assert settings.log_level == "DEBUG"
        finally:
            os.unlink(temp_env_file)

    def test_unrelated_environment_ignored(self):
        """Test variables the engine does not read are ignored."""
        with patch.dict(os.environ, {"APP_ENV": "invalid-env"}, clear=True):
            settings = EngineSettings(_env_file=None)

        assert "app_env" not in EngineSettings.model_fields
        assert not hasattr(settings, "app_env")

    def test_log_level_validation(self):
        """Test LOG_LEVEL validation."""
        with patch.dict(os.environ, {"LOG_LEVEL": "LOUD"}, clear=True):
            with pytest.raises(ValidationError) as exc_info:
                EngineSettings(_env_file=None)

            assert "LOG_LEVEL must be one of" in str(exc_info.value)

    def test_negative_rate_rejected(self):
        """Test rates may not be negative."""
        with patch.dict(os.environ, {"DEFAULT_MF_RETURN": "-2"}, clear=True):
            with pytest.raises(ValidationError) as exc_info:
                EngineSettings(_env_file=None)

            assert "Rates must be non-negative" in str(exc_info.value)

    def test_max_simulations_validation(self):
        """Test the simulation ceiling must be positive."""
        with patch.dict(os.environ, {"MONTE_CARLO_MAX_SIMULATIONS": "0"}, clear=True):
            with pytest.raises(ValidationError):
                EngineSettings(_env_file=None)

    def test_to_defaults(self):
        """Test conversion into immutable engine defaults."""
        with patch.dict(
            os.environ,
            {"DEFAULT_EPF_RETURN": "8.25", "DEFAULT_CORPUS_RETURN_RATE": "9"},
            clear=True,
        ):
            defaults = EngineSettings(_env_file=None).to_defaults()

        assert isinstance(defaults, EngineDefaults)
        assert defaults.epf_return == 8.25
        assert defaults.corpus_return_rate == 9
        assert defaults.fd_return == 7.0


class TestEngineDefaults:
    """Test the immutable defaults."""

    def test_frozen(self):
        defaults = EngineDefaults()
        with pytest.raises(ValidationError):
            defaults.inflation_rate = 3

    def test_shipped_values(self):
        defaults = EngineDefaults()
        assert defaults.ppf_return == 7.1
        assert defaults.epf_return == 8.15
        assert defaults.withdrawal_rate == 8.0
        assert (defaults.current_age, defaults.retirement_age, defaults.life_expectancy) == (
            35,
            60,
            85,
        )


class TestGlobalSettings:
    """Test the cached global settings."""

    def test_cached_until_reset(self):
        with patch.dict(os.environ, {}, clear=True):
            first = get_global_settings()
            assert get_global_settings() is first
            reset_global_settings()
            assert get_global_settings() is not first

    def test_configure_logging(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True):
            configure_logging(EngineSettings(_env_file=None))
        assert logging.getLogger("corpus_planner").level == logging.WARNING
        logging.getLogger("corpus_planner").setLevel(logging.NOTSET)
