"""Backtest engine: cumulative returns and performance ratios.

Computes, for a fixed weight vector held over aligned simple returns:
- Total return and CAGR
- Annualized volatility
- Sharpe and Sortino ratios (annualized, net of a risk-free rate)
- Max drawdown and Calmar ratio
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from portfolio_api.domain.constants import (
    DEFAULT_RISK_FREE_RATE,
    TRADING_DAYS_PER_YEAR,
    ZERO_DEVIATION_TOLERANCE,
)
from portfolio_api.domain.entities.backtest import BacktestMetrics, DrawdownResult
from portfolio_api.domain.exceptions import DataValidationError

# Row order of the comparison table
METRIC_NAMES = [
    "total_return",
    "cagr",
    "volatility",
    "sharpe_ratio",
    "sortino_ratio",
    "max_drawdown",
    "calmar_ratio",
]


@dataclass(frozen=True, eq=False)
class BacktestResult:
    """Result of holding one weight vector over the aligned window."""

    name: str
    weights: np.ndarray
    daily_returns: np.ndarray  # length T

    # Length T + 1: starts at 1.0 on the day before the first return
    cumulative_returns: np.ndarray

    # Length T + 1, aligned with cumulative_returns (first entry may be None)
    dates: list
    metrics: BacktestMetrics
    drawdown: DrawdownResult

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "weights": self.weights.tolist(),
            "daily_returns": self.daily_returns.tolist(),
            "cumulative_returns": self.cumulative_returns.tolist(),
            "dates": list(self.dates),
            "metrics": self.metrics.to_dict(),
        }


@dataclass(frozen=True, eq=False)
class StrategyComparison:
    """Backtests of several strategies over the identical date range."""

    backtests: list[BacktestResult]

    # index = metric names, columns = strategy names
    table: pd.DataFrame

    def get(self, name: str) -> BacktestResult:
        for backtest in self.backtests:
            if backtest.name == name:
                return backtest
        raise KeyError(name)


def _sample_std(values: np.ndarray) -> float:
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def _validate_trading_days(trading_days: int) -> None:
    if trading_days <= 0:
        raise DataValidationError(
            f"trading_days must be positive, got {trading_days}",
            field="trading_days",
            value=trading_days,
        )


def compute_portfolio_returns(
    weights: np.ndarray,
    returns: pd.DataFrame | np.ndarray,
) -> np.ndarray:
    """Daily portfolio returns: weighted sum of asset returns per row.

    Args:
        weights: Weight per asset (column order of returns)
        returns: T x N simple returns

    Returns:
        Array of T portfolio returns
    """
    w = np.asarray(weights, dtype=float)
    values = np.asarray(returns, dtype=float)
    if values.ndim != 2 or values.shape[1] != len(w):
        raise DataValidationError(
            f"Returns matrix with shape {values.shape} does not match {len(w)} weights",
            field="weights",
        )
    return values @ w


def compute_cumulative_returns(returns: np.ndarray) -> np.ndarray:
    """Compound daily returns into a wealth curve starting at 1.0.

    cum[0] = 1 and cum[t] = cum[t-1] * (1 + returns[t-1]).
    """
    r = np.asarray(returns, dtype=float)
    return np.concatenate(([1.0], np.cumprod(1.0 + r)))


def compute_sharpe_ratio(
    returns: np.ndarray,
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
    trading_days: int = TRADING_DAYS_PER_YEAR,
) -> float:
    """Compute annualized Sharpe ratio.

    Sharpe = sqrt(trading_days) * mean(r - rf_daily) / std(r)

    A zero deviation gives 0.0 when the mean excess return is also zero.
    Otherwise the deviation is floored at ZERO_DEVIATION_TOLERANCE, so a
    riskless series that lags or beats the risk-free rate gets a large
    finite ratio with the sign of its excess return.

    Args:
        returns: Daily returns
        risk_free_rate: Annual risk-free rate
        trading_days: Trading days per year

    Returns:
        Annualized Sharpe ratio
    """
    _validate_trading_days(trading_days)
    r = np.asarray(returns, dtype=float)
    if len(r) < 2:
        return 0.0

    excess = r - risk_free_rate / trading_days
    mean_excess = float(np.mean(excess))
    std = _sample_std(r)

    if std <= ZERO_DEVIATION_TOLERANCE:
        if abs(mean_excess) <= ZERO_DEVIATION_TOLERANCE:
            return 0.0
        std = ZERO_DEVIATION_TOLERANCE

    return mean_excess / std * math.sqrt(trading_days)


def compute_sortino_ratio(
    returns: np.ndarray,
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
    trading_days: int = TRADING_DAYS_PER_YEAR,
) -> float:
    """Compute annualized Sortino ratio.

    The denominator is the downside deviation: the root mean square of
    the negative excess returns. With no negative days the ratio is
    math.inf ("no measured downside risk").

    Args:
        returns: Daily returns
        risk_free_rate: Annual risk-free rate
        trading_days: Trading days per year

    Returns:
        Annualized Sortino ratio
    """
    _validate_trading_days(trading_days)
    r = np.asarray(returns, dtype=float)
    if len(r) < 2:
        return 0.0

    excess = r - risk_free_rate / trading_days
    mean_excess = float(np.mean(excess))

    negative = excess[excess < 0]
    if len(negative) == 0:
        return math.inf

    downside = float(np.sqrt(np.mean(negative * negative)))
    if downside <= ZERO_DEVIATION_TOLERANCE:
        return 0.0

    return mean_excess / downside * math.sqrt(trading_days)


def compute_max_drawdown(cumulative: np.ndarray) -> DrawdownResult:
    """Compute maximum drawdown of a wealth curve.

    Scans forward, raising the peak whenever a new high is reached.

    Args:
        cumulative: Cumulative returns (wealth curve)

    Returns:
        DrawdownResult with the drawdown as a positive fraction and the
        indices of its peak and trough
    """
    if len(cumulative) == 0:
        return DrawdownResult(max_drawdown=0.0, peak_index=0, trough_index=0)

    max_dd = 0.0
    peak = float(cumulative[0])
    peak_index = 0
    dd_start = 0
    dd_end = 0

    for i in range(1, len(cumulative)):
        value = float(cumulative[i])
        if value > peak:
            peak = value
            peak_index = i

        drawdown = (peak - value) / peak if peak > 0 else 0.0
        if drawdown > max_dd:
            max_dd = drawdown
            dd_start = peak_index
            dd_end = i

    return DrawdownResult(max_drawdown=max_dd, peak_index=dd_start, trough_index=dd_end)


def compute_cagr(
    cumulative: np.ndarray,
    trading_days: int = TRADING_DAYS_PER_YEAR,
) -> float:
    """Compute compound annual growth rate.

    CAGR = (final_value / initial_value)^(1/years) - 1

    Args:
        cumulative: Cumulative returns (wealth curve)
        trading_days: Trading days per year

    Returns:
        CAGR as a decimal
    """
    _validate_trading_days(trading_days)
    if len(cumulative) < 2:
        return 0.0

    years = (len(cumulative) - 1) / trading_days
    if years <= 0:
        return 0.0

    total = float(cumulative[-1]) / float(cumulative[0])
    if total <= 0:
        return -1.0  # Total loss

    return total ** (1.0 / years) - 1.0


def compute_annualized_volatility(
    returns: np.ndarray,
    trading_days: int = TRADING_DAYS_PER_YEAR,
) -> float:
    """Sample standard deviation of daily returns times sqrt(trading_days)."""
    _validate_trading_days(trading_days)
    return _sample_std(np.asarray(returns, dtype=float)) * math.sqrt(trading_days)


def compute_calmar_ratio(cagr: float, max_drawdown: float) -> float:
    """Calmar ratio CAGR / max drawdown (0.0 when there is no drawdown)."""
    if max_drawdown == 0:
        return 0.0
    return cagr / max_drawdown


def run_backtest(
    weights: np.ndarray,
    returns: pd.DataFrame | np.ndarray,
    dates: Sequence | None = None,
    name: str = "Strategy",
    risk_free_rate: float = DEFAULT_RISK_FREE_RATE,
    trading_days: int = TRADING_DAYS_PER_YEAR,
    start_date: Any = None,
) -> BacktestResult:
    """Run a buy-and-hold backtest of one weight vector.

    Args:
        weights: Weight per asset (column order of returns)
        returns: T x N aligned simple returns
        dates: T dates, one per return row (defaults to the DataFrame index)
        name: Strategy name
        risk_free_rate: Annual risk-free rate
        trading_days: Trading days per year
        start_date: Date of the 1.0 starting value, if known

    Returns:
        BacktestResult with daily and cumulative returns and metrics
    """
    _validate_trading_days(trading_days)

    if dates is None:
        dates = list(returns.index) if isinstance(returns, pd.DataFrame) else []

    daily = compute_portfolio_returns(weights, returns)
    cumulative = compute_cumulative_returns(daily)

    drawdown = compute_max_drawdown(cumulative)
    cagr = compute_cagr(cumulative, trading_days)

    metrics = BacktestMetrics(
        total_return=float(cumulative[-1] - 1.0),
        cagr=cagr,
        volatility=compute_annualized_volatility(daily, trading_days),
        sharpe_ratio=compute_sharpe_ratio(daily, risk_free_rate, trading_days),
        sortino_ratio=compute_sortino_ratio(daily, risk_free_rate, trading_days),
        max_drawdown=drawdown.max_drawdown,
        calmar_ratio=compute_calmar_ratio(cagr, drawdown.max_drawdown),
    )

    return BacktestResult(
        name=name,
        weights=np.asarray(weights, dtype=float),
        daily_returns=daily,
        cumulative_returns=cumulative,
        dates=[start_date, *dates],
        metrics=metrics,
        drawdown=drawdown,
    )


def compare_strategies(backtests: list[BacktestResult]) -> StrategyComparison:
    """Assemble a metric-by-strategy table.

    Args:
        backtests: Backtest results with unique names

    Returns:
        StrategyComparison whose table has one row per metric and one
        column per strategy
    """
    names = [backtest.name for backtest in backtests]
    if len(set(names)) != len(names):
        raise DataValidationError(f"Strategy names must be unique, got {names}", field="name")

    table = pd.DataFrame(
        {backtest.name: backtest.metrics.to_dict() for backtest in backtests},
        index=METRIC_NAMES,
        columns=names,
    )
    return StrategyComparison(backtests=list(backtests), table=table)
