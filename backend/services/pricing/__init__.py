"""
Price guidance service.

This module handles:
    - Percentile statistics over historical completed-job prices
"""

from .price_guidance import (
    DEFAULT_GUIDANCE,
    compute_guidance,
    get_price_guidance,
    percentile,
)

__all__ = [
    "DEFAULT_GUIDANCE",
    "compute_guidance",
    "get_price_guidance",
    "percentile",
]
