"""
Metrics Reporter

Derives CostStatistics and PerformanceMetrics from tracked operations and
renders the plain-text cost report. Functions here are pure: they take a
list of operations and never touch the tracker's lock.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from provider_manager.registry.use_cases import UseCase
from provider_manager.schemas.metrics import (
    CostReportConfig,
    CostStatistics,
    PerformanceMetrics,
)
from provider_manager.utils import calculate_percentile, format_cost

if TYPE_CHECKING:
    from provider_manager.metrics.store import TrackedOperation


PERIOD_LENGTHS: dict[str, timedelta] = {
    "hourly": timedelta(hours=1),
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
}


def _most_common(values: list[str]) -> str:
    """Statistical mode; ties resolve to the value seen first."""
    if not values:
        return ""
    return Counter(values).most_common(1)[0][0]


def build_cost_statistics(operations: list["TrackedOperation"]) -> CostStatistics:
    """
    Aggregate cost statistics over operations.

    Returns:
        CostStatistics, all zeros for an empty list
    """
    if not operations:
        return CostStatistics()

    total = len(operations)
    successful = sum(1 for op in operations if op.success)
    total_cost = sum(op.cost for op in operations)
    total_latency = sum(op.latency_ms for op in operations)

    return CostStatistics(
        provider=_most_common([op.provider for op in operations]),
        model=_most_common([op.model for op in operations]),
        total_requests=total,
        successful_requests=successful,
        failed_requests=total - successful,
        total_cost=total_cost,
        average_cost_per_request=total_cost / total,
        average_latency_ms=total_latency / total,
        success_rate=successful / total,
        total_tokens=sum(op.tokens or 0 for op in operations),
        total_prompt_tokens=sum(op.prompt_tokens or 0 for op in operations),
        total_completion_tokens=sum(op.completion_tokens or 0 for op in operations),
    )


def build_performance_metrics(
    operations: list["TrackedOperation"],
    use_case: UseCase,
) -> PerformanceMetrics:
    """
    Latency distribution and error rate over operations.

    Percentiles use linear interpolation over the sorted latencies.
    """
    use_case_name = UseCase(use_case).value
    if not operations:
        return PerformanceMetrics(use_case=use_case_name)

    latencies = sorted(op.latency_ms for op in operations)
    failures = [op for op in operations if not op.success]
    last_failure = failures[-1] if failures else None

    return PerformanceMetrics(
        use_case=use_case_name,
        provider=_most_common([op.provider for op in operations]),
        model=_most_common([op.model for op in operations]),
        requests=len(operations),
        average_latency_ms=sum(latencies) / len(latencies),
        p50_latency_ms=calculate_percentile(latencies, 50),
        p95_latency_ms=calculate_percentile(latencies, 95),
        p99_latency_ms=calculate_percentile(latencies, 99),
        error_rate=len(failures) / len(operations),
        last_error=last_failure.error if last_failure else None,
        last_error_time=last_failure.timestamp if last_failure else None,
    )


def period_window(period: str, now: datetime) -> tuple[datetime, datetime]:
    """Rolling (start, end) window for a report period ending at now."""
    return now - PERIOD_LENGTHS[period], now


def filter_by_date_range(
    operations: list["TrackedOperation"],
    start: datetime | None = None,
    end: datetime | None = None,
) -> list["TrackedOperation"]:
    """Operations with start <= timestamp <= end; open bounds when None."""
    return [
        op
        for op in operations
        if (start is None or op.timestamp >= start)
        and (end is None or op.timestamp <= end)
    ]


def _group(
    operations: list["TrackedOperation"], attribute: str
) -> dict[str, list["TrackedOperation"]]:
    grouped: dict[str, list["TrackedOperation"]] = {}
    for op in operations:
        grouped.setdefault(str(getattr(op, attribute)), []).append(op)
    return grouped


def render_cost_report(
    operations: list["TrackedOperation"],
    config: CostReportConfig,
    start: datetime,
    end: datetime,
) -> str:
    """
    Render the plain-text cost report.

    Example output:
        Cost Report (daily)
        Period: 2024-05-01T10:00:00+00:00 to 2024-05-02T10:00:00+00:00
        Total Cost: $0.0123
        Total Requests: 42

        By Use Case:
          - query-enhancement: $0.0040 (30 requests, avg $0.0001)
          - semantic-analysis: $0.0083 (12 requests, avg $0.0007)
    """
    if not operations:
        return f"No operations found for period: {config.period}"

    total_cost = sum(op.cost for op in operations)
    lines = [
        f"Cost Report ({config.period})",
        f"Period: {start.isoformat()} to {end.isoformat()}",
        f"Total Cost: {format_cost(total_cost)}",
        f"Total Requests: {len(operations)}",
        "",
    ]

    if config.group_by == "use_case":
        lines.append("By Use Case:")
        for use_case in UseCase:
            group = [op for op in operations if op.use_case == use_case]
            if not group:
                continue
            cost = sum(op.cost for op in group)
            lines.append(
                f"  - {use_case.value}: {format_cost(cost)} "
                f"({len(group)} requests, avg {format_cost(cost / len(group))})"
            )
    else:
        title = "By Provider:" if config.group_by == "provider" else "By Model:"
        lines.append(title)
        for name, group in _group(operations, config.group_by).items():
            cost = sum(op.cost for op in group)
            lines.append(f"  - {name}: {format_cost(cost)} ({len(group)} requests)")

    return "\n".join(lines) + "\n"
