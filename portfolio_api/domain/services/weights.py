"""Weight allocation: HRP recursive bisection and comparison baselines.

Recursive bisection only ever needs the variance of nested sub-clusters,
never the inverse of the full covariance matrix, so it stays stable when
the covariance matrix is ill-conditioned or singular.
"""

import logging

import numpy as np
import pandas as pd

from portfolio_api.domain.constants import VARIANCE_EPSILON
from portfolio_api.domain.exceptions import DataValidationError

logger = logging.getLogger(__name__)


def _as_covariance(cov: pd.DataFrame | np.ndarray) -> np.ndarray:
    values = np.asarray(cov, dtype=float)
    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise DataValidationError(
            f"Covariance matrix must be square, got shape {values.shape}",
            field="cov",
        )
    if not np.allclose(values, values.T):
        raise DataValidationError("Covariance matrix must be symmetric", field="cov")
    return values


def _get_cluster_variance(cov: np.ndarray, indices: list[int]) -> float:
    """Compute variance of an equally weighted cluster.

    Cluster variance = w' * Cov_sub * w with w = 1/k for each of the
    k members, clamped to VARIANCE_EPSILON.

    Args:
        cov: Full covariance matrix
        indices: Original indices of the assets in the cluster

    Returns:
        Cluster variance
    """
    if len(indices) == 1:
        variance = float(cov[indices[0], indices[0]])
    else:
        cov_slice = cov[np.ix_(indices, indices)]
        w = np.full(len(indices), 1.0 / len(indices))
        variance = float(w @ cov_slice @ w)

    if variance < VARIANCE_EPSILON:
        logger.warning(f"Cluster variance {variance:.3e} clamped to {VARIANCE_EPSILON:.0e}")
        return VARIANCE_EPSILON

    return variance


def recursive_bisection(
    cov: pd.DataFrame | np.ndarray,
    sort_order: list[int],
) -> np.ndarray:
    """Allocate weights via recursive bisection.

    The algorithm:
    1. Start with all weight (1.0) on the full ordered list
    2. Split the range at its midpoint
    3. Scale each half inversely proportional to its cluster variance
    4. Repeat on each half until reaching individual assets

    Ranges are kept on an explicit worklist, so portfolio size is not
    limited by call-stack depth.

    Args:
        cov: Covariance matrix (original asset order)
        sort_order: Quasi-diagonal order of assets

    Returns:
        Weights in original asset order (non-negative, sum to 1.0)
    """
    values = _as_covariance(cov)
    n = len(sort_order)

    if sorted(sort_order) != list(range(values.shape[0])):
        raise DataValidationError(
            "Sort order must be a permutation of the covariance indices",
            field="sort_order",
            value=sort_order,
        )
    if n == 0:
        return np.array([], dtype=float)
    if n == 1:
        return np.array([1.0])

    # Indexed by position in sort_order
    weights = np.ones(n)
    clusters = [(0, n)]

    while clusters:
        start, end = clusters.pop()

        if end - start <= 1:
            continue

        mid = (start + end) // 2
        left_indices = sort_order[start:mid]
        right_indices = sort_order[mid:end]

        left_var = _get_cluster_variance(values, left_indices)
        right_var = _get_cluster_variance(values, right_indices)

        total_inv_var = 1.0 / left_var + 1.0 / right_var
        left_alloc = (1.0 / left_var) / total_inv_var
        right_alloc = 1.0 - left_alloc

        weights[start:mid] *= left_alloc
        weights[mid:end] *= right_alloc

        if mid - start > 1:
            clusters.append((start, mid))
        if end - mid > 1:
            clusters.append((mid, end))

    original = np.zeros(n)
    original[np.asarray(sort_order)] = weights

    return original / original.sum()


def equal_weights(n: int) -> np.ndarray:
    """Equal weights: 1/n for every asset."""
    if n <= 0:
        return np.array([], dtype=float)
    return np.full(n, 1.0 / n)


def inverse_volatility_weights(cov: pd.DataFrame | np.ndarray) -> np.ndarray:
    """Inverse-volatility weights (1/sigma_i) / sum(1/sigma_j).

    Variances are clamped to VARIANCE_EPSILON before taking the root.

    Args:
        cov: Covariance matrix

    Returns:
        Weights in original asset order (sum to 1.0)
    """
    variances = np.diag(_as_covariance(cov))
    if np.any(variances < VARIANCE_EPSILON):
        logger.warning(
            f"{int(np.sum(variances < VARIANCE_EPSILON))} asset variances clamped "
            f"to {VARIANCE_EPSILON:.0e}"
        )
    inv_vols = 1.0 / np.sqrt(np.maximum(variances, VARIANCE_EPSILON))
    return inv_vols / inv_vols.sum()
