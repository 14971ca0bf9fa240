"""Correlation, covariance and distance matrices.

Only the upper triangle is computed; the lower triangle is its mirror, so
the matrices are exactly symmetric.
"""

import numpy as np
import pandas as pd

from portfolio_api.domain.constants import MIN_OBSERVATIONS
from portfolio_api.domain.exceptions import DataValidationError, InsufficientDataError


def _centered(returns: pd.DataFrame) -> np.ndarray:
    if len(returns) < MIN_OBSERVATIONS:
        raise InsufficientDataError(
            f"Need at least {MIN_OBSERVATIONS} observations, got {len(returns)}",
            required=MIN_OBSERVATIONS,
            available=len(returns),
        )
    values = returns.to_numpy(dtype=float)
    return values - values.mean(axis=0)


def _mirror_upper(matrix: np.ndarray) -> np.ndarray:
    upper = np.triu(matrix, k=1)
    return upper + upper.T


def pearson_correlation(x: np.ndarray, y: np.ndarray) -> float:
    """Pearson correlation of two equally long series.

    Returns 0.0 instead of NaN when either series has zero variance.
    """
    n = min(len(x), len(y))
    if n < 2:
        return 0.0

    dx = np.asarray(x[:n], dtype=float)
    dy = np.asarray(y[:n], dtype=float)
    dx = dx - dx.mean()
    dy = dy - dy.mean()

    denominator = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))
    if denominator == 0:
        return 0.0

    return float(np.sum(dx * dy) / denominator)


def compute_correlation_matrix(returns: pd.DataFrame) -> pd.DataFrame:
    """Compute the Pearson correlation matrix of aligned returns.

    Args:
        returns: T x N DataFrame (rows = dates, columns = symbols)

    Returns:
        N x N correlation DataFrame with a diagonal of exactly 1
    """
    centered = _centered(returns)
    cross = centered.T @ centered
    sum_squares = np.diag(cross)
    denominator = np.sqrt(np.outer(sum_squares, sum_squares))

    # Pairs involving a zero-variance series get correlation 0
    safe = np.where(denominator == 0, 1.0, denominator)
    corr = np.where(denominator == 0, 0.0, cross / safe)
    corr = np.clip(_mirror_upper(corr), -1.0, 1.0)
    np.fill_diagonal(corr, 1.0)

    return pd.DataFrame(corr, index=returns.columns, columns=returns.columns)


def compute_covariance_matrix(returns: pd.DataFrame) -> pd.DataFrame:
    """Compute the sample covariance matrix (T - 1 denominator).

    Args:
        returns: T x N DataFrame (rows = dates, columns = symbols)

    Returns:
        N x N covariance DataFrame; the diagonal holds each asset's variance
    """
    centered = _centered(returns)
    cov = (centered.T @ centered) / (len(returns) - 1)

    variances = np.sum(centered * centered, axis=0) / (len(returns) - 1)
    cov = _mirror_upper(cov)
    np.fill_diagonal(cov, variances)

    return pd.DataFrame(cov, index=returns.columns, columns=returns.columns)


def compute_correlation_distance(corr: pd.DataFrame | np.ndarray) -> pd.DataFrame:
    """Convert correlation matrix to distance matrix.

    Distance formula: d[i,j] = sqrt(0.5 * (1 - corr[i,j]))

    This maps correlation:
    - corr = 1.0 (perfect positive) -> d = 0
    - corr = 0.0 (uncorrelated) -> d = 0.707
    - corr = -1.0 (perfect negative) -> d = 1.0

    Args:
        corr: Symmetric correlation matrix (DataFrame or array)

    Returns:
        Distance matrix (DataFrame) with a zero diagonal
    """
    values = np.asarray(corr, dtype=float)
    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise DataValidationError(
            f"Correlation matrix must be square, got shape {values.shape}",
            field="corr",
        )
    if not np.allclose(values, values.T):
        raise DataValidationError("Correlation matrix must be symmetric", field="corr")

    dist = np.sqrt(np.clip(0.5 * (1.0 - values), 0.0, 1.0))
    np.fill_diagonal(dist, 0.0)

    if isinstance(corr, pd.DataFrame):
        return pd.DataFrame(dist, index=corr.index, columns=corr.columns)
    return pd.DataFrame(dist)


def get_variances(cov: pd.DataFrame | np.ndarray) -> np.ndarray:
    """Get the diagonal of a covariance matrix (per-asset variances)."""
    return np.diag(np.asarray(cov, dtype=float)).copy()
