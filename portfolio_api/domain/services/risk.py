"""Risk contribution of each asset to total portfolio variance."""

import numpy as np
import pandas as pd

from portfolio_api.domain.exceptions import DataValidationError


def _validate(weights: np.ndarray, cov: np.ndarray) -> None:
    if cov.ndim != 2 or cov.shape[0] != cov.shape[1]:
        raise DataValidationError(
            f"Covariance matrix must be square, got shape {cov.shape}",
            field="cov",
        )
    if not np.allclose(cov, cov.T):
        raise DataValidationError("Covariance matrix must be symmetric", field="cov")
    if weights.shape != (cov.shape[0],):
        raise DataValidationError(
            f"Expected {cov.shape[0]} weights, got {weights.shape[0]}",
            field="weights",
        )


def portfolio_variance(weights: np.ndarray, cov: pd.DataFrame | np.ndarray) -> float:
    """Portfolio variance w' * Cov * w."""
    w = np.asarray(weights, dtype=float)
    values = np.asarray(cov, dtype=float)
    _validate(w, values)
    return float(w @ values @ w)


def compute_risk_contributions(
    weights: np.ndarray,
    cov: pd.DataFrame | np.ndarray,
) -> np.ndarray:
    """Compute each asset's share of total portfolio variance.

    RC_i = w_i * (Cov * w)_i / (w' * Cov * w)

    Contributions sum to 1 whenever portfolio variance is nonzero; if
    portfolio volatility is 0 every contribution is 0.

    Args:
        weights: Portfolio weights (original asset order)
        cov: Covariance matrix

    Returns:
        Risk contribution per asset
    """
    w = np.asarray(weights, dtype=float)
    values = np.asarray(cov, dtype=float)
    _validate(w, values)

    marginal = values @ w
    variance = float(w @ marginal)

    if variance <= 0:
        return np.zeros_like(w)

    return w * marginal / variance
