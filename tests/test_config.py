"""Tests for portfolio_api.core.config module."""

import logging
import os
from unittest.mock import patch

import pytest

from portfolio_api.core.config import HRPConfig, resolve_hrp_config, resolve_log_level
from portfolio_api.domain.exceptions import DataValidationError


class TestResolveHRPConfig:
    """Tests for resolve_hrp_config."""

    def test_defaults(self) -> None:
        """Without env vars the documented defaults apply."""
        config = resolve_hrp_config()

        assert config.min_data_ratio == 0.5
        assert config.trading_days_per_year == 252
        assert config.risk_free_rate == 0.02

    def test_env_override(self) -> None:
        """Env vars override every parameter."""
        env = {
            "HRP_MIN_DATA_RATIO": "0.8",
            "HRP_TRADING_DAYS_PER_YEAR": "250",
            "HRP_RISK_FREE_RATE": "0.065",
        }
        with patch.dict(os.environ, env):
            config = resolve_hrp_config()

        assert config == HRPConfig(min_data_ratio=0.8, trading_days_per_year=250, risk_free_rate=0.065)

    def test_empty_value_uses_default(self) -> None:
        """An empty variable is treated as unset."""
        with patch.dict(os.environ, {"HRP_RISK_FREE_RATE": ""}):
            assert resolve_hrp_config().risk_free_rate == 0.02

    def test_unparseable_value_raises(self) -> None:
        """A non-numeric value is rejected."""
        with patch.dict(os.environ, {"HRP_TRADING_DAYS_PER_YEAR": "many"}):
            with pytest.raises(DataValidationError):
                resolve_hrp_config()

    @pytest.mark.parametrize("ratio", ["0", "1.5", "-0.2"])
    def test_out_of_range_ratio_raises(self, ratio) -> None:
        """min_data_ratio must be in (0, 1]."""
        with patch.dict(os.environ, {"HRP_MIN_DATA_RATIO": ratio}):
            with pytest.raises(DataValidationError):
                resolve_hrp_config()


class TestResolveLogLevel:
    """Tests for resolve_log_level."""

    def test_default_info(self) -> None:
        """INFO when unset."""
        assert resolve_log_level() == logging.INFO

    def test_case_insensitive(self) -> None:
        """Level names are case-insensitive."""
        with patch.dict(os.environ, {"LOG_LEVEL": "debug"}):
            assert resolve_log_level() == logging.DEBUG

    def test_invalid_raises(self) -> None:
        """Unknown level names are rejected."""
        with patch.dict(os.environ, {"LOG_LEVEL": "chatty"}):
            with pytest.raises(DataValidationError):
                resolve_log_level()
