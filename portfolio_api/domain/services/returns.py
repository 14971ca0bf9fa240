"""Return computation and alignment.

Two independent views of the same price history are produced:
- log returns ln(P_t / P_{t-1}), used for correlation and covariance
- simple returns P_t / P_{t-1} - 1, used for compounding in backtests

Any step where either close is missing or non-positive is skipped.
Each return is labelled with the date of P_t.
"""

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from portfolio_api.domain.constants import DEFAULT_MIN_DATA_RATIO, MIN_ASSETS_FOR_HRP
from portfolio_api.domain.entities.allocation import ExcludedSymbol
from portfolio_api.domain.exceptions import DataValidationError, InsufficientAssetsError

logger = logging.getLogger(__name__)

# symbol -> ordered [{"date": ..., "close": ...}, ...]
PriceHistory = Mapping[str, Sequence[Mapping[str, Any]]]


@dataclass(frozen=True)
class AlignedReturns:
    """Returns of the surviving assets on a common, most-recent window."""

    symbols: list[str]

    # T x N, index = dates, columns = symbols
    returns: pd.DataFrame

    excluded: list[ExcludedSymbol] = field(default_factory=list)

    @property
    def dates(self) -> list:
        return list(self.returns.index)

    @property
    def n_observations(self) -> int:
        return len(self.returns)


def _as_close(value: Any) -> float:
    if value is None:
        return math.nan
    return float(value)


def _compute_returns(
    prices: PriceHistory,
    transform: Callable[[np.ndarray], np.ndarray],
) -> dict[str, pd.Series]:
    returns: dict[str, pd.Series] = {}

    for symbol, records in prices.items():
        if not records or len(records) < 2:
            returns[symbol] = pd.Series([], index=pd.Index([], dtype=object), dtype=float, name=symbol)
            continue

        dates = np.array([record["date"] for record in records], dtype=object)
        closes = np.array([_as_close(record.get("close")) for record in records], dtype=float)

        prev_close = closes[:-1]
        curr_close = closes[1:]
        # NaN compares False, so missing closes drop out here too
        valid = (prev_close > 0) & (curr_close > 0)

        values = transform(curr_close[valid] / prev_close[valid])
        returns[symbol] = pd.Series(
            values,
            index=pd.Index(dates[1:][valid], dtype=object),
            dtype=float,
            name=symbol,
        )

    return returns


def compute_log_returns(prices: PriceHistory) -> dict[str, pd.Series]:
    """Compute per-asset log returns ln(P_t / P_{t-1}).

    Args:
        prices: Dict mapping symbol -> ordered list of {"date", "close"} records

    Returns:
        Dict mapping symbol -> Series of log returns indexed by date
    """
    return _compute_returns(prices, np.log)


def compute_simple_returns(prices: PriceHistory) -> dict[str, pd.Series]:
    """Compute per-asset simple returns P_t / P_{t-1} - 1.

    Args:
        prices: Dict mapping symbol -> ordered list of {"date", "close"} records

    Returns:
        Dict mapping symbol -> Series of simple returns indexed by date
    """
    return _compute_returns(prices, lambda ratio: ratio - 1.0)


def align_returns(
    returns: Mapping[str, pd.Series],
    min_ratio: float = DEFAULT_MIN_DATA_RATIO,
) -> AlignedReturns:
    """Align return series onto a common, most-recent window.

    Assets with fewer than floor(max_length * min_ratio) returns are
    excluded. The survivors are truncated to the shortest surviving
    length, keeping the most recent observations.

    Args:
        returns: Dict mapping symbol -> return Series (oldest first)
        min_ratio: Minimum length relative to the longest series, in (0, 1]

    Returns:
        AlignedReturns with the surviving symbols in input order

    Raises:
        DataValidationError: if min_ratio is out of range
        InsufficientAssetsError: if fewer than 2 assets survive
    """
    if not 0 < min_ratio <= 1:
        raise DataValidationError(
            f"min_ratio must be in (0, 1], got {min_ratio}",
            field="min_ratio",
            value=min_ratio,
        )

    if not returns:
        raise InsufficientAssetsError(
            f"Need at least {MIN_ASSETS_FOR_HRP} assets for HRP analysis, got 0",
            required=MIN_ASSETS_FOR_HRP,
            available=0,
        )

    lengths = {symbol: len(series) for symbol, series in returns.items()}
    max_length = max(lengths.values())
    min_required = int(math.floor(max_length * min_ratio))

    included: list[str] = []
    excluded: list[ExcludedSymbol] = []
    for symbol, length in lengths.items():
        if length >= min_required:
            included.append(symbol)
        else:
            excluded.append(ExcludedSymbol(symbol=symbol, length=length, required=min_required))

    if excluded:
        logger.warning(
            f"Excluded {len(excluded)} assets with insufficient data: "
            f"{', '.join(str(e) for e in excluded)}"
        )

    if len(included) < MIN_ASSETS_FOR_HRP:
        raise InsufficientAssetsError(
            f"Need at least {MIN_ASSETS_FOR_HRP} assets for HRP analysis, "
            f"but only {len(included)} survived alignment",
            required=MIN_ASSETS_FOR_HRP,
            available=len(included),
            excluded=excluded,
        )

    align_length = min(lengths[symbol] for symbol in included)

    columns = {
        symbol: returns[symbol].to_numpy(dtype=float)[lengths[symbol] - align_length :]
        for symbol in included
    }
    date_source = returns[included[0]]
    dates = date_source.index[lengths[included[0]] - align_length :]

    frame = pd.DataFrame(columns, index=pd.Index(dates, name="date"), columns=included)

    logger.info(f"Aligned {len(included)} assets to {align_length} observations")

    return AlignedReturns(symbols=included, returns=frame, excluded=excluded)
