"""Domain constants for portfolio_api.

This module centralizes all magic numbers and configuration defaults
used by the HRP engine.
"""

# ============================================================================
# Alignment Constants
# ============================================================================

# Assets with fewer returns than this fraction of the longest series are excluded
DEFAULT_MIN_DATA_RATIO = 0.5

# HRP needs at least two assets to cluster and bisect
MIN_ASSETS_FOR_HRP = 2

# Covariance needs at least two aligned observations (T - 1 denominator)
MIN_OBSERVATIONS = 2


# ============================================================================
# Numerical Constants
# ============================================================================

# Floor applied to asset and cluster variances before inversion
VARIANCE_EPSILON = 1e-10

# Deviations at or below this are treated as zero, and Sharpe floors its deviation here
ZERO_DEVIATION_TOLERANCE = 1e-14


# ============================================================================
# Backtest Constants
# ============================================================================

# Trading days in a year (converts sample counts to years)
TRADING_DAYS_PER_YEAR = 252

# Annual risk-free rate used by Sharpe and Sortino
DEFAULT_RISK_FREE_RATE = 0.02


# ============================================================================
# Strategy Names
# ============================================================================

STRATEGY_HRP = "HRP"
STRATEGY_EQUAL_WEIGHT = "Equal Weight"
STRATEGY_INVERSE_VOLATILITY = "Inverse Volatility"
DEFAULT_BENCHMARK_NAME = "Benchmark"

# Keys used for the three weight sets of an analysis
WEIGHT_SET_HRP = "hrp"
WEIGHT_SET_EQUAL = "equal_weight"
WEIGHT_SET_INVERSE_VOL = "inverse_volatility"
