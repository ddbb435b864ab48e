"""
Percentile price guidance over completed-job prices.

The median (p50) seeds the estimated price of quick-book jobs; p10/p50/p90
are shown to customers as guidance when posting a job.
"""

import math
from typing import Dict, Sequence

from jobs.models import PriceHistory

DEFAULT_GUIDANCE = {"p10": 50.0, "p50": 100.0, "p90": 200.0, "data_points": 0}


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """
    Linearly interpolated percentile of an ascending sequence.

    The rank index is ``(p / 100) * (n - 1)``; the value is interpolated between
    the floor and ceiling ranks, clamped to the last element when the ceiling
    falls off the end.
    """
    if not sorted_values:
        raise ValueError("percentile() requires at least one value")

    index = (p / 100.0) * (len(sorted_values) - 1)
    lower = math.floor(index)
    upper = math.ceil(index)
    weight = index - lower

    if upper >= len(sorted_values):
        return float(sorted_values[-1])
    return float(sorted_values[lower]) * (1 - weight) + float(sorted_values[upper]) * weight


def compute_guidance(prices: Sequence[float]) -> Dict[str, float]:
    if not prices:
        return dict(DEFAULT_GUIDANCE)

    ordered = sorted(float(price) for price in prices)
    return {
        "p10": percentile(ordered, 10),
        "p50": percentile(ordered, 50),
        "p90": percentile(ordered, 90),
        "data_points": len(ordered),
    }


def get_price_guidance(category_id: int) -> Dict[str, float]:
    """Price guidance for a category from its completed-job price history."""
    prices = PriceHistory.objects.filter(category_id=category_id).values_list("price", flat=True)
    return compute_guidance(list(prices))
