"""Formatting utilities for display and logging."""

import math

from portfolio_api.domain.entities.backtest import BacktestMetrics


def format_percentage(value: float, decimals: int = 2) -> str:
    """Format a fraction as a percentage.

    Args:
        value: Fraction (0.1234 -> "12.34%")
        decimals: Digits after the decimal point

    Returns:
        Percentage string
    """
    return f"{value * 100:.{decimals}f}%"


def format_ratio(value: float) -> str:
    """Format a ratio with two decimals ("inf" / "-inf" for infinities)."""
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return f"{value:.2f}"


def format_metrics(metrics: BacktestMetrics) -> list[dict]:
    """Format backtest metrics as display rows.

    Args:
        metrics: Metrics of one strategy

    Returns:
        List of {"name", "value", "is_positive"} rows
    """
    return [
        {
            "name": "Total Return",
            "value": format_percentage(metrics.total_return),
            "is_positive": metrics.total_return > 0,
        },
        {
            "name": "CAGR",
            "value": format_percentage(metrics.cagr),
            "is_positive": metrics.cagr > 0,
        },
        {
            "name": "Volatility",
            "value": format_percentage(metrics.volatility),
            "is_positive": False,
        },
        {
            "name": "Sharpe Ratio",
            "value": format_ratio(metrics.sharpe_ratio),
            "is_positive": metrics.sharpe_ratio > 0,
        },
        {
            "name": "Sortino Ratio",
            "value": format_ratio(metrics.sortino_ratio),
            "is_positive": metrics.sortino_ratio > 0,
        },
        {
            "name": "Max Drawdown",
            "value": format_percentage(metrics.max_drawdown),
            "is_positive": False,
        },
        {
            "name": "Calmar Ratio",
            "value": format_ratio(metrics.calmar_ratio),
            "is_positive": metrics.calmar_ratio > 0,
        },
    ]
