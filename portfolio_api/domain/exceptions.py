"""Custom exceptions for portfolio_api domain.

This module defines domain-specific exceptions so callers can tell
"not enough data" apart from "malformed input".

Degenerate variances and undefined ratios are not errors: they are
resolved numerically (epsilon clamping, 0 / infinity conventions).
"""

from typing import Any


class PortfolioAPIError(Exception):
    """Base exception for all portfolio_api errors."""

    pass


# ============================================================================
# Data errors
# ============================================================================


class DataError(PortfolioAPIError):
    """Base class for data-related errors."""

    pass


class InsufficientDataError(DataError):
    """Raised when there's not enough data to perform an operation.

    Examples:
    - Fewer than two aligned observations for a covariance matrix
    - Benchmark with no returns on the aligned dates
    """

    def __init__(self, message: str, required: int | None = None, available: int | None = None):
        super().__init__(message)
        self.required = required
        self.available = available


class InsufficientAssetsError(InsufficientDataError):
    """Raised when fewer than two assets survive return alignment.

    The message is meant to be shown to the caller verbatim.
    """

    def __init__(
        self,
        message: str,
        required: int = 2,
        available: int = 0,
        excluded: list[Any] | None = None,
    ):
        super().__init__(message, required=required, available=available)
        self.excluded = excluded or []


class DataValidationError(DataError):
    """Raised when data fails validation.

    Examples:
    - Non-square or asymmetric matrix
    - Weight vector length does not match the number of assets
    - Out-of-range configuration values
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value
