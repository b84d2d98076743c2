"""
Shared helpers for statistics and formatting.
"""

import math


def calculate_percentile(sorted_values: list[float], percentile: float) -> float:
    """
    Percentile of an ascending list using linear interpolation.

    The rank is percentile/100 * (n - 1); fractional ranks blend the two
    neighbouring values. For [10, 20, ..., 100], p50 is 55.0 and p95 is 95.5.

    Args:
        sorted_values: Values sorted ascending
        percentile: Percentile in the range 0-100

    Returns:
        Interpolated value, or 0.0 for an empty list
    """
    if not sorted_values:
        return 0.0

    index = (percentile / 100) * (len(sorted_values) - 1)
    lower = math.floor(index)
    upper = math.ceil(index)

    if lower == upper:
        return float(sorted_values[lower])

    weight = index - lower
    return sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight


def split_evenly(total: float, count: int) -> float:
    """Share of a batch total attributed to each of count items."""
    if count <= 0:
        return 0.0
    return total / count


def format_cost(cost: float) -> str:
    """Format a USD amount with four decimals, e.g. $0.0123."""
    return f"${cost:.4f}"


def format_latency(latency_ms: float) -> str:
    """Format a latency as milliseconds below one second, else seconds."""
    if latency_ms < 1000:
        return f"{latency_ms:.0f}ms"
    return f"{latency_ms / 1000:.2f}s"
