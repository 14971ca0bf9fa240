"""Domain entities - pure dataclasses with no external dependencies.

These entities represent the values flowing through the HRP pipeline.
They are frozen: every stage produces new values instead of mutating.
"""

from portfolio_api.domain.entities.allocation import (
    ClusterNode,
    ClusterTree,
    ExcludedSymbol,
    LinkageRecord,
    RiskContributionEntry,
    WeightEntry,
)
from portfolio_api.domain.entities.backtest import BacktestMetrics, DrawdownResult

__all__ = [
    # Allocation
    "ExcludedSymbol",
    "LinkageRecord",
    "ClusterNode",
    "ClusterTree",
    "WeightEntry",
    "RiskContributionEntry",
    # Backtest
    "BacktestMetrics",
    "DrawdownResult",
]
