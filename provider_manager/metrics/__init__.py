"""
Metrics module: Cost calculation, operation tracking and reporting.

This module provides:
- CostCalculator: Token and per-query pricing for adapters
- CostTracker: Thread-safe log of every attempted provider operation
- CostAlert: Daily spending limit with a callback
- Reporter functions: statistics, percentiles and the text cost report

Example usage:
    from provider_manager.metrics import CostTracker, CostAlert

    tracker = CostTracker()
    tracker.set_cost_alert(CostAlert(
        use_case=UseCase.SEMANTIC_ANALYSIS,
        daily_limit=5.0,
        on_exceeded=lambda stats: print(f"Over budget: ${stats.total_cost:.2f}"),
    ))
"""

from provider_manager.metrics.cost import (
    CostBreakdown,
    CostCalculator,
    calculate_cost,
    get_cost_calculator,
)
from provider_manager.metrics.reporter import (
    build_cost_statistics,
    build_performance_metrics,
    render_cost_report,
)
from provider_manager.metrics.store import (
    AttemptFailure,
    CostAlert,
    CostTracker,
    TrackedOperation,
)

__all__ = [
    # Cost calculation
    "CostBreakdown",
    "CostCalculator",
    "calculate_cost",
    "get_cost_calculator",
    # Tracking
    "AttemptFailure",
    "CostAlert",
    "CostTracker",
    "TrackedOperation",
    # Reporting
    "build_cost_statistics",
    "build_performance_metrics",
    "render_cost_report",
]
