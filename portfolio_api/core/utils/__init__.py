"""Shared utility functions for portfolio_api core modules."""

from portfolio_api.core.utils.formatting import format_metrics, format_percentage, format_ratio

__all__ = [
    "format_metrics",
    "format_percentage",
    "format_ratio",
]
