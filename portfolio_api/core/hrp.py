"""Hierarchical Risk Parity (HRP) analysis.

Implementation of López de Prado's HRP algorithm (2016) for
risk-based portfolio allocation using hierarchical clustering, plus a
backtest comparison against equal-weight, inverse-volatility and an
optional benchmark.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from portfolio_api.core.config import HRPConfig, resolve_hrp_config
from portfolio_api.core.utils.formatting import format_percentage
from portfolio_api.domain.constants import (
    DEFAULT_BENCHMARK_NAME,
    MIN_OBSERVATIONS,
    STRATEGY_EQUAL_WEIGHT,
    STRATEGY_HRP,
    STRATEGY_INVERSE_VOLATILITY,
    WEIGHT_SET_EQUAL,
    WEIGHT_SET_HRP,
    WEIGHT_SET_INVERSE_VOL,
)
from portfolio_api.domain.entities.allocation import (
    ClusterTree,
    ExcludedSymbol,
    LinkageRecord,
    RiskContributionEntry,
    WeightEntry,
)
from portfolio_api.domain.exceptions import InsufficientDataError
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
    linkage_to_hierarchy,
)
from portfolio_api.domain.services.correlation import (
    compute_correlation_distance,
    compute_correlation_matrix,
    compute_covariance_matrix,
)
from portfolio_api.domain.services.returns import (
    PriceHistory,
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

logger = logging.getLogger(__name__)

# ============================================================================
# Data structures
# ============================================================================


@dataclass(frozen=True, eq=False)
class HRPAnalysis:
    """Result of a full HRP analysis."""

    # Symbols that survived alignment (original asset order)
    symbols: list[str]

    # Symbols excluded (insufficient data)
    excluded: list[ExcludedSymbol]

    # N x N matrices labelled by symbol
    correlation: pd.DataFrame
    covariance: pd.DataFrame
    distance: pd.DataFrame

    # Dendrogram
    linkage: list[LinkageRecord]
    cluster_tree: ClusterTree
    sort_order: list[int]
    hierarchy: dict

    # "hrp" / "equal_weight" / "inverse_volatility" -> entries sorted by weight descending
    weights: dict[str, list[WeightEntry]]

    # Same weight sets in original asset order
    raw_weights: dict[str, np.ndarray]

    # Risk contributions of the HRP weights (original asset order)
    risk_contributions: list[RiskContributionEntry]

    # Aligned simple returns (T x N) for backtesting, one date per row
    returns: pd.DataFrame
    dates: list

    # Date of the last price before the first aligned return, if known
    start_date: Any = None

    # Log-return window length minus simple-return window length
    alignment_offset: int = 0


# ============================================================================
# Helpers
# ============================================================================


def format_weights(weights: np.ndarray, symbols: list[str]) -> list[WeightEntry]:
    """Label weights with symbols, sorted by weight descending."""
    entries = [
        WeightEntry(symbol=symbol, weight=float(weight), percentage=format_percentage(float(weight)))
        for symbol, weight in zip(symbols, weights)
    ]
    return sorted(entries, key=lambda entry: entry.weight, reverse=True)


def _resolve_start_date(records: Sequence[Mapping[str, Any]], first_date: Any) -> Any:
    """Find the date of the price preceding the first aligned return."""
    for i, record in enumerate(records):
        if record["date"] == first_date:
            return records[i - 1]["date"] if i > 0 else None
    return None


def _align_benchmark(
    benchmark: Sequence[Mapping[str, Any]],
    dates: list,
    name: str,
) -> pd.Series:
    """Put benchmark simple returns on the analysis dates.

    Dates the benchmark has no return for are filled with 0.0.
    """
    series = compute_simple_returns({name: benchmark})[name]
    series = series[~series.index.duplicated(keep="last")]
    aligned = series.reindex(pd.Index(dates, dtype=object))

    missing = int(aligned.isna().sum())
    if missing == len(dates):
        raise InsufficientDataError(
            f"Benchmark {name} has no returns on the aligned dates",
            required=1,
            available=0,
        )
    if missing:
        logger.warning(f"Benchmark {name} missing {missing}/{len(dates)} aligned dates, filled with 0")

    return aligned.fillna(0.0).rename(name)


# ============================================================================
# High-level API
# ============================================================================


def run_hrp_analysis(
    prices: PriceHistory,
    config: HRPConfig | None = None,
) -> HRPAnalysis:
    """Run the full HRP pipeline on price histories.

    Full HRP algorithm:
    1. Log returns -> align -> correlation and covariance matrices
    2. Convert correlation to distance matrix
    3. Hierarchical clustering (single linkage)
    4. Quasi-diagonal ordering from the cluster tree
    5. Recursive bisection for weight allocation

    Simple returns are aligned separately for backtesting. Both views skip
    the same price steps, so they keep the same assets and window.

    Args:
        prices: Dict mapping symbol -> ordered list of {"date", "close"} records
        config: Parameters (defaults to resolve_hrp_config())

    Returns:
        HRPAnalysis

    Raises:
        InsufficientAssetsError: if fewer than 2 assets survive alignment
        InsufficientDataError: if fewer than 2 aligned observations remain
    """
    if config is None:
        config = resolve_hrp_config()

    # Step 1: Log returns for correlation/covariance
    log_aligned = align_returns(compute_log_returns(prices), config.min_data_ratio)
    symbols = log_aligned.symbols

    if log_aligned.n_observations < MIN_OBSERVATIONS:
        raise InsufficientDataError(
            f"Need at least {MIN_OBSERVATIONS} aligned observations, got {log_aligned.n_observations}",
            required=MIN_OBSERVATIONS,
            available=log_aligned.n_observations,
        )

    # Step 1b: Simple returns for the backtest, restricted to the same assets
    simple_aligned = align_returns(
        compute_simple_returns({symbol: prices[symbol] for symbol in symbols}),
        config.min_data_ratio,
    )
    # Both views skip the same price steps, so windows and survivors match
    offset = log_aligned.n_observations - simple_aligned.n_observations

    dates = simple_aligned.dates
    start_date = _resolve_start_date(prices[symbols[0]], dates[0]) if dates else None

    # Step 2: Correlation, covariance and distance
    correlation = compute_correlation_matrix(log_aligned.returns)
    covariance = compute_covariance_matrix(log_aligned.returns)
    distance = compute_correlation_distance(correlation)

    # Step 3: Hierarchical clustering
    linkage = hierarchical_cluster(distance)

    # Step 4: Quasi-diagonal order
    tree = build_cluster_tree(linkage, len(symbols))
    sort_order = get_quasi_diagonal_order(linkage, len(symbols))

    # Step 5: Weights
    raw_weights = {
        WEIGHT_SET_HRP: recursive_bisection(covariance, sort_order),
        WEIGHT_SET_EQUAL: equal_weights(len(symbols)),
        WEIGHT_SET_INVERSE_VOL: inverse_volatility_weights(covariance),
    }

    contributions = compute_risk_contributions(raw_weights[WEIGHT_SET_HRP], covariance)

    logger.info(
        f"HRP analysis complete: {len(symbols)} assets, "
        f"{log_aligned.n_observations} observations, {len(log_aligned.excluded)} excluded"
    )

    return HRPAnalysis(
        symbols=symbols,
        excluded=log_aligned.excluded,
        correlation=correlation,
        covariance=covariance,
        distance=distance,
        linkage=linkage,
        cluster_tree=tree,
        sort_order=sort_order,
        hierarchy=linkage_to_hierarchy(linkage, symbols),
        weights={key: format_weights(weights, symbols) for key, weights in raw_weights.items()},
        raw_weights=raw_weights,
        risk_contributions=[
            RiskContributionEntry(
                symbol=symbol,
                contribution=float(rc),
                percentage=format_percentage(float(rc)),
            )
            for symbol, rc in zip(symbols, contributions)
        ],
        returns=simple_aligned.returns,
        dates=dates,
        start_date=start_date,
        alignment_offset=offset,
    )


def run_backtest_comparison(
    analysis: HRPAnalysis,
    benchmark: Sequence[Mapping[str, Any]] | None = None,
    benchmark_name: str = DEFAULT_BENCHMARK_NAME,
    config: HRPConfig | None = None,
) -> StrategyComparison:
    """Backtest HRP against equal-weight, inverse-volatility and a benchmark.

    Every strategy is evaluated over the identical aligned date range.
    The benchmark, if given, is a single-asset strategy held at 100%.

    Args:
        analysis: Result of run_hrp_analysis
        benchmark: Optional benchmark price history ({"date", "close"} records)
        benchmark_name: Column name of the benchmark strategy
        config: Parameters (defaults to resolve_hrp_config())

    Returns:
        StrategyComparison with per-strategy results and the metric table
    """
    if config is None:
        config = resolve_hrp_config()

    strategies = [
        (STRATEGY_HRP, WEIGHT_SET_HRP),
        (STRATEGY_EQUAL_WEIGHT, WEIGHT_SET_EQUAL),
        (STRATEGY_INVERSE_VOLATILITY, WEIGHT_SET_INVERSE_VOL),
    ]

    backtests: list[BacktestResult] = [
        run_backtest(
            weights=analysis.raw_weights[key],
            returns=analysis.returns,
            dates=analysis.dates,
            name=name,
            risk_free_rate=config.risk_free_rate,
            trading_days=config.trading_days_per_year,
            start_date=analysis.start_date,
        )
        for name, key in strategies
    ]

    if benchmark:
        benchmark_returns = _align_benchmark(benchmark, analysis.dates, benchmark_name)
        backtests.append(
            run_backtest(
                weights=np.array([1.0]),
                returns=benchmark_returns.to_frame(),
                dates=analysis.dates,
                name=benchmark_name,
                risk_free_rate=config.risk_free_rate,
                trading_days=config.trading_days_per_year,
                start_date=analysis.start_date,
            )
        )

    for backtest in backtests:
        logger.info(f"{backtest.name}: {backtest.metrics}")

    return compare_strategies(backtests)
