"""Backtest-related domain entities."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class DrawdownResult:
    """Worst peak-to-trough decline of a cumulative-return series."""

    max_drawdown: float  # positive fraction, e.g. 0.20 for a 20% drawdown
    peak_index: int
    trough_index: int


@dataclass(frozen=True)
class BacktestMetrics:
    """Performance metrics of one strategy (all returns as fractions)."""

    total_return: float
    cagr: float
    volatility: float  # annualized
    sharpe_ratio: float
    sortino_ratio: float  # math.inf when there are no negative days
    max_drawdown: float
    calmar_ratio: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_return": self.total_return,
            "cagr": self.cagr,
            "volatility": self.volatility,
            "sharpe_ratio": self.sharpe_ratio,
            "sortino_ratio": self.sortino_ratio,
            "max_drawdown": self.max_drawdown,
            "calmar_ratio": self.calmar_ratio,
        }

    def __str__(self) -> str:
        """Pretty print metrics."""
        return (
            f"Return: {self.total_return*100:.2f}% | "
            f"CAGR: {self.cagr*100:.2f}% | "
            f"Vol: {self.volatility*100:.2f}% | "
            f"Sharpe: {self.sharpe_ratio:.3f} | "
            f"Sortino: {self.sortino_ratio:.3f} | "
            f"MaxDD: {self.max_drawdown*100:.2f}% | "
            f"Calmar: {self.calmar_ratio:.3f}"
        )
