"""Configuration for the HRP engine.

Values are read from the environment at call time, so tests and callers
can override them without reloading modules.
"""

import logging
import os
from dataclasses import dataclass

from portfolio_api.domain.constants import (
    DEFAULT_MIN_DATA_RATIO,
    DEFAULT_RISK_FREE_RATE,
    TRADING_DAYS_PER_YEAR,
)
from portfolio_api.domain.exceptions import DataValidationError

# Environment variable names
ENV_MIN_DATA_RATIO = "HRP_MIN_DATA_RATIO"
ENV_TRADING_DAYS_PER_YEAR = "HRP_TRADING_DAYS_PER_YEAR"
ENV_RISK_FREE_RATE = "HRP_RISK_FREE_RATE"
ENV_LOG_LEVEL = "LOG_LEVEL"

# Defaults
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class HRPConfig:
    """Parameters of one HRP analysis.

    Attributes:
        min_data_ratio: Alignment exclusion ratio relative to the longest series
        trading_days_per_year: Converts sample counts to years
        risk_free_rate: Annual risk-free rate for Sharpe and Sortino
    """

    min_data_ratio: float = DEFAULT_MIN_DATA_RATIO
    trading_days_per_year: int = TRADING_DAYS_PER_YEAR
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE

    def __post_init__(self) -> None:
        """Validate ranges."""
        if not 0 < self.min_data_ratio <= 1:
            raise DataValidationError(
                f"min_data_ratio must be in (0, 1], got {self.min_data_ratio}",
                field="min_data_ratio",
                value=self.min_data_ratio,
            )
        if self.trading_days_per_year <= 0:
            raise DataValidationError(
                f"trading_days_per_year must be positive, got {self.trading_days_per_year}",
                field="trading_days_per_year",
                value=self.trading_days_per_year,
            )


def _read_env(name: str, cast: type, default):
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise DataValidationError(
            f"Invalid value for {name}: {raw!r}",
            field=name,
            value=raw,
        ) from e


def resolve_hrp_config() -> HRPConfig:
    """Resolve the HRP configuration from the environment.

    Reads:
    - HRP_MIN_DATA_RATIO: alignment exclusion ratio (default: 0.5)
    - HRP_TRADING_DAYS_PER_YEAR: trading days per year (default: 252)
    - HRP_RISK_FREE_RATE: annual risk-free rate (default: 0.02)

    Returns:
        HRPConfig

    Raises:
        DataValidationError: if a variable is set to an invalid value
    """
    return HRPConfig(
        min_data_ratio=_read_env(ENV_MIN_DATA_RATIO, float, DEFAULT_MIN_DATA_RATIO),
        trading_days_per_year=_read_env(ENV_TRADING_DAYS_PER_YEAR, int, TRADING_DAYS_PER_YEAR),
        risk_free_rate=_read_env(ENV_RISK_FREE_RATE, float, DEFAULT_RISK_FREE_RATE),
    )


def resolve_log_level() -> int:
    """Resolve the logging level from LOG_LEVEL (default: INFO)."""
    name = os.environ.get(ENV_LOG_LEVEL, "") or DEFAULT_LOG_LEVEL
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise DataValidationError(f"Invalid value for {ENV_LOG_LEVEL}: {name!r}", field=ENV_LOG_LEVEL, value=name)
    return level
