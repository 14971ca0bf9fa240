"""Pytest configuration and fixtures for all tests.

This module ensures tests run in isolation from production environment variables.
"""

import os

import numpy as np
import pandas as pd
import pytest

# Environment variables that change engine behaviour
HRP_ENV_VARS = [
    "HRP_MIN_DATA_RATIO",
    "HRP_TRADING_DAYS_PER_YEAR",
    "HRP_RISK_FREE_RATE",
    "LOG_LEVEL",
]

MOCK_SYMBOLS = ["AAPL", "MSFT", "GOOGL", "AMZN", "NVDA"]


@pytest.fixture(autouse=True)
def isolate_from_env():
    """Clear HRP env vars before each test so defaults apply.

    This fixture runs automatically for every test (autouse=True).
    It saves original values, clears them for the test, then restores after.
    """
    original_values = {}
    for var in HRP_ENV_VARS:
        if var in os.environ:
            original_values[var] = os.environ.pop(var)

    yield

    for var, value in original_values.items():
        os.environ[var] = value


def create_mock_prices(
    symbols: list[str],
    days: int = 300,
    seed: int = 42,
) -> dict[str, list[dict]]:
    """Create mock price histories for testing.

    Each symbol gets a different volatility so HRP produces varied weights.
    """
    rng = np.random.default_rng(seed)
    dates = pd.bdate_range(end="2025-06-30", periods=days).strftime("%Y-%m-%d").tolist()

    prices = {}
    for i, symbol in enumerate(symbols):
        volatility = 0.01 + (i * 0.005)
        returns = rng.normal(0.0005, volatility, days)
        closes = 100 * np.exp(np.cumsum(returns))
        prices[symbol] = [{"date": d, "close": float(c)} for d, c in zip(dates, closes)]

    return prices


@pytest.fixture()
def mock_prices() -> dict[str, list[dict]]:
    return create_mock_prices(MOCK_SYMBOLS)


@pytest.fixture()
def price_factory():
    """Factory for custom mock price histories."""
    return create_mock_prices
