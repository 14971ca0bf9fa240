"""Domain services - pure numerical logic with no I/O.

Each module is one stage of the HRP pipeline; they depend only on
domain entities, numpy, pandas and scipy.
"""

from portfolio_api.domain.services.backtest import (
    BacktestResult,
    StrategyComparison,
    compare_strategies,
    run_backtest,
)
from portfolio_api.domain.services.clustering import (
    build_cluster_tree,
    get_quasi_diagonal_order,
    hierarchical_cluster,
)
from portfolio_api.domain.services.correlation import (
    compute_correlation_distance,
    compute_correlation_matrix,
    compute_covariance_matrix,
)
from portfolio_api.domain.services.returns import (
    AlignedReturns,
    align_returns,
    compute_log_returns,
    compute_simple_returns,
)
from portfolio_api.domain.services.risk import compute_risk_contributions
from portfolio_api.domain.services.weights import (
    equal_weights,
    inverse_volatility_weights,
    recursive_bisection,
)

__all__ = [
    # Returns
    "AlignedReturns",
    "compute_log_returns",
    "compute_simple_returns",
    "align_returns",
    # Correlation
    "compute_correlation_matrix",
    "compute_covariance_matrix",
    "compute_correlation_distance",
    # Clustering
    "hierarchical_cluster",
    "build_cluster_tree",
    "get_quasi_diagonal_order",
    # Weights
    "recursive_bisection",
    "equal_weights",
    "inverse_volatility_weights",
    # Risk
    "compute_risk_contributions",
    # Backtest
    "BacktestResult",
    "StrategyComparison",
    "run_backtest",
    "compare_strategies",
]
