"""Portfolio allocation endpoints."""

import math
from dataclasses import replace

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from portfolio_api.core.config import HRPConfig, resolve_hrp_config
from portfolio_api.core.hrp import HRPAnalysis, run_backtest_comparison, run_hrp_analysis
from portfolio_api.core.utils.formatting import format_metrics
from portfolio_api.domain.constants import DEFAULT_BENCHMARK_NAME
from portfolio_api.domain.exceptions import DataValidationError, InsufficientDataError

router = APIRouter()


# ============================================================================
# Request / Response models
# ============================================================================


class PricePoint(BaseModel):
    """One daily close."""

    date: str = Field(..., description="Trading date (YYYY-MM-DD)")
    close: float | None = Field(None, description="Closing price; missing or non-positive closes are skipped")


class HRPAllocationRequest(BaseModel):
    """Request model for HRP allocation endpoint."""

    prices: dict[str, list[PricePoint]] = Field(
        ...,
        description="Price history per symbol, oldest first",
    )
    min_data_ratio: float | None = Field(
        None,
        gt=0,
        le=1,
        description="Exclude assets with fewer returns than this fraction of the longest series (default 0.5)",
    )


class HRPBacktestRequest(HRPAllocationRequest):
    """Request model for HRP backtest comparison endpoint."""

    benchmark: list[PricePoint] | None = Field(
        None,
        description="Optional benchmark index price history, held as a 100% single-asset strategy",
    )
    benchmark_name: str = Field(
        DEFAULT_BENCHMARK_NAME,
        min_length=1,
        description="Strategy name for the benchmark (e.g. NIFTY 50)",
    )
    risk_free_rate: float | None = Field(
        None,
        ge=-1,
        le=1,
        description="Annual risk-free rate for Sharpe/Sortino (default 0.02)",
    )


class WeightModel(BaseModel):
    symbol: str
    weight: float
    percentage: str


class ExcludedSymbolModel(BaseModel):
    symbol: str
    length: int
    required: int


class RiskContributionModel(BaseModel):
    symbol: str
    contribution: float
    percentage: str


class LinkageModel(BaseModel):
    left: int
    right: int
    distance: float
    size: int


class HRPAllocationResponse(BaseModel):
    """Response model for HRP allocation endpoint."""

    symbols: list[str] = Field(..., description="Symbols included in the analysis")
    excluded: list[ExcludedSymbolModel] = Field(
        ...,
        description="Symbols excluded due to insufficient data",
    )
    weights: dict[str, list[WeightModel]] = Field(
        ...,
        description="hrp / equal_weight / inverse_volatility weights, sorted descending",
    )
    risk_contributions: list[RiskContributionModel] = Field(
        ...,
        description="Share of portfolio variance per asset under HRP weights",
    )
    sort_order: list[int] = Field(..., description="Quasi-diagonal order (indices into symbols)")
    linkage: list[LinkageModel] = Field(..., description="Single-linkage merge events")
    correlation: list[list[float]] = Field(..., description="Correlation matrix (symbol order)")
    hierarchy: dict = Field(..., description="Nested dendrogram for visualization")
    n_observations: int = Field(..., description="Aligned return observations")


class StrategyBacktestModel(BaseModel):
    name: str
    dates: list[str | None]
    cumulative_returns: list[float]
    metrics: dict[str, float | None] = Field(
        ...,
        description="Metrics as fractions; null where the value is infinite",
    )
    formatted_metrics: list[dict]


class HRPBacktestResponse(BaseModel):
    """Response model for HRP backtest comparison endpoint."""

    strategies: list[StrategyBacktestModel]
    comparison: dict[str, dict[str, float | None]] = Field(
        ...,
        description="metric -> strategy -> value",
    )


# ============================================================================
# Dependency injection for testability
# ============================================================================


def get_hrp_config() -> HRPConfig:
    """Get the HRP configuration from the environment."""
    return resolve_hrp_config()


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


def _to_price_history(prices: dict[str, list[PricePoint]]) -> dict[str, list[dict]]:
    return {symbol: [point.model_dump() for point in points] for symbol, points in prices.items()}


def _analyze(request: HRPAllocationRequest, config: HRPConfig) -> HRPAnalysis:
    try:
        return run_hrp_analysis(_to_price_history(request.prices), config)
    except InsufficientDataError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except DataValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/hrp", response_model=HRPAllocationResponse)
def allocate_hrp(
    request: HRPAllocationRequest,
    config: HRPConfig = Depends(get_hrp_config),
) -> HRPAllocationResponse:
    """Compute HRP portfolio allocation for the given price histories.

    The algorithm (López de Prado, 2016):
    1. Compute log returns and align them to a common window
    2. Compute correlation matrix from aligned returns
    3. Convert correlation to distance matrix
    4. Hierarchical clustering to group similar assets
    5. Recursive bisection to allocate weights by inverse variance

    Equal-weight and inverse-volatility weights are returned alongside.

    Raises:
        HTTPException 400: if fewer than 2 symbols have sufficient data
    """
    if request.min_data_ratio is not None:
        config = replace(config, min_data_ratio=request.min_data_ratio)

    analysis = _analyze(request, config)

    return HRPAllocationResponse(
        symbols=analysis.symbols,
        excluded=[ExcludedSymbolModel(**vars(e)) for e in analysis.excluded],
        weights={
            key: [WeightModel(**vars(entry)) for entry in entries]
            for key, entries in analysis.weights.items()
        },
        risk_contributions=[RiskContributionModel(**vars(rc)) for rc in analysis.risk_contributions],
        sort_order=analysis.sort_order,
        linkage=[LinkageModel(**vars(record)) for record in analysis.linkage],
        correlation=analysis.correlation.to_numpy().tolist(),
        hierarchy=analysis.hierarchy,
        n_observations=len(analysis.returns),
    )


@router.post("/hrp/backtest", response_model=HRPBacktestResponse)
def backtest_hrp(
    request: HRPBacktestRequest,
    config: HRPConfig = Depends(get_hrp_config),
) -> HRPBacktestResponse:
    """Backtest HRP against equal-weight, inverse-volatility and a benchmark.

    All strategies are buy-and-hold over the identical aligned date range.

    Raises:
        HTTPException 400: if fewer than 2 symbols have sufficient data, or
            the benchmark has no data on the aligned dates
    """
    if request.min_data_ratio is not None:
        config = replace(config, min_data_ratio=request.min_data_ratio)
    if request.risk_free_rate is not None:
        config = replace(config, risk_free_rate=request.risk_free_rate)

    analysis = _analyze(request, config)

    benchmark = [point.model_dump() for point in request.benchmark] if request.benchmark else None
    try:
        comparison = run_backtest_comparison(
            analysis,
            benchmark=benchmark,
            benchmark_name=request.benchmark_name,
            config=config,
        )
    except InsufficientDataError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except DataValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return HRPBacktestResponse(
        strategies=[
            StrategyBacktestModel(
                name=backtest.name,
                dates=backtest.dates,
                cumulative_returns=backtest.cumulative_returns.tolist(),
                metrics={k: _finite_or_none(v) for k, v in backtest.metrics.to_dict().items()},
                formatted_metrics=format_metrics(backtest.metrics),
            )
            for backtest in comparison.backtests
        ],
        comparison={
            metric: {name: _finite_or_none(float(value)) for name, value in row.items()}
            for metric, row in comparison.table.to_dict(orient="index").items()
        },
    )
