"""
Cost Tracker for Provider Operations

Append-only, in-memory log of every attempted provider operation (primary
calls, fallbacks and discovery calls, successful or not). All statistics,
percentile metrics and reports are derived from the log on demand.

Per-use-case cost alerts are evaluated after every tracked operation: when
the use case's cost over the trailing 24 hours exceeds the alert's daily
limit, the alert callback is invoked with statistics for that window. The
callback fires on every qualifying operation, not once per crossing.

The tracker is thread-safe using threading.Lock; alert callbacks run
outside the lock so they may call back into the tracker.
"""

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from provider_manager.metrics import reporter
from provider_manager.registry.use_cases import UseCase
from provider_manager.schemas.metrics import (
    CostReportConfig,
    CostStatistics,
    PerformanceMetrics,
)

logger = logging.getLogger(__name__)

ALERT_WINDOW = timedelta(hours=24)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TrackedOperation:
    """
    One attempted provider operation.

    Attributes:
        use_case: Use case the call was routed for
        provider: Provider that was called
        model: Model reported by the response, or requested on failure
        cost: Cost in USD (0.0 for failures)
        latency_ms: Time spent on the attempt in milliseconds
        tokens: Total tokens, if the provider reported usage
        prompt_tokens: Prompt tokens, if reported
        completion_tokens: Completion tokens, if reported
        success: Whether the attempt succeeded
        timestamp: When the attempt was tracked (UTC)
        error: Failure message for unsuccessful attempts
    """

    use_case: UseCase
    provider: str
    model: str
    cost: float
    latency_ms: float
    success: bool
    timestamp: datetime
    tokens: int | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    error: str | None = None


@dataclass
class AttemptFailure:
    """
    Stand-in response for a failed attempt.

    Carries what the tracker needs when the provider produced no response.
    """

    model: str = ""
    latency_ms: float = 0.0
    cost: float = 0.0
    usage: Any = None


@dataclass
class CostAlert:
    """
    Daily spending limit for one use case.

    Attributes:
        use_case: Use case whose spend is watched
        daily_limit: USD limit over the trailing 24 hours
        on_exceeded: Called with CostStatistics of the trailing window
    """

    use_case: UseCase
    daily_limit: float
    on_exceeded: Callable[[CostStatistics], None] = field(repr=False)


class CostTracker:
    """
    Thread-safe in-memory operation log.

    Example:
        tracker = CostTracker()
        tracker.track(UseCase.RAG_QA, "openai", response)
        stats = tracker.get_stats(UseCase.RAG_QA)
        print(f"{stats.total_requests} requests, ${stats.total_cost:.4f}")
    """

    def __init__(
        self,
        enabled: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the tracker.

        Args:
            enabled: When False, track() is a no-op
            clock: Source of the current UTC datetime (injectable for tests)
        """
        self.enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()
        self._operations: list[TrackedOperation] = []
        self._alerts: dict[UseCase, CostAlert] = {}

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def track(
        self,
        use_case: UseCase,
        provider: str,
        response: Any,
        error: BaseException | str | None = None,
    ) -> TrackedOperation | None:
        """
        Record one attempted operation and evaluate the use case's alert.

        Args:
            use_case: Use case the call was routed for
            provider: Provider that was called
            response: Provider response, or AttemptFailure for failures.
                      Read for model, cost, latency_ms and usage.
            error: Failure cause; its presence marks the attempt failed

        Returns:
            The tracked operation, or None when tracking is disabled
        """
        if not self.enabled:
            return None

        usage = getattr(response, "usage", None)
        operation = TrackedOperation(
            use_case=UseCase(use_case),
            provider=provider,
            model=getattr(response, "model", None) or "",
            cost=getattr(response, "cost", 0.0) or 0.0,
            latency_ms=getattr(response, "latency_ms", 0.0) or 0.0,
            tokens=getattr(usage, "total_tokens", None),
            prompt_tokens=getattr(usage, "prompt_tokens", None),
            completion_tokens=getattr(usage, "completion_tokens", None),
            success=error is None,
            timestamp=self._clock(),
            error=None if error is None else (str(error) or type(error).__name__),
        )

        with self._lock:
            self._operations.append(operation)

        self._check_cost_alert(operation.use_case)
        return operation

    def _check_cost_alert(self, use_case: UseCase) -> None:
        with self._lock:
            alert = self._alerts.get(use_case)
            if alert is None:
                return
            window_start = self._clock() - ALERT_WINDOW
            recent = [
                op
                for op in self._operations
                if op.use_case == use_case and op.timestamp > window_start
            ]

        daily_cost = sum(op.cost for op in recent)
        if daily_cost <= alert.daily_limit:
            return

        logger.warning(
            f"Cost alert for {use_case.value}: ${daily_cost:.4f} over the last 24h "
            f"exceeds limit ${alert.daily_limit:.4f}"
        )
        try:
            alert.on_exceeded(reporter.build_cost_statistics(recent))
        except Exception:
            logger.exception(f"Cost alert callback failed for {use_case.value}")

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    def set_cost_alert(self, alert: CostAlert) -> None:
        """Install or replace the alert for alert.use_case."""
        with self._lock:
            self._alerts[UseCase(alert.use_case)] = alert
        logger.info(
            f"Cost alert set for {UseCase(alert.use_case).value}: "
            f"${alert.daily_limit:.4f}/day"
        )

    def remove_cost_alert(self, use_case: UseCase) -> None:
        with self._lock:
            self._alerts.pop(UseCase(use_case), None)

    def get_cost_alert(self, use_case: UseCase) -> CostAlert | None:
        with self._lock:
            return self._alerts.get(UseCase(use_case))

    # -------------------------------------------------------------------------
    # Derived statistics
    # -------------------------------------------------------------------------

    @property
    def operations(self) -> list[TrackedOperation]:
        """Snapshot of the log in tracking order."""
        with self._lock:
            return list(self._operations)

    def _by_use_case(self) -> dict[UseCase, list[TrackedOperation]]:
        grouped: dict[UseCase, list[TrackedOperation]] = {}
        for op in self.operations:
            grouped.setdefault(op.use_case, []).append(op)
        # Enum declaration order
        return {uc: grouped[uc] for uc in UseCase if uc in grouped}

    def get_stats(
        self, use_case: UseCase | None = None
    ) -> CostStatistics | dict[UseCase, CostStatistics]:
        """
        Cost statistics for one use case, or per use case.

        Args:
            use_case: Use case to report; None for every use case that
                      has at least one tracked operation

        Returns:
            CostStatistics, or a dict of them keyed by use case
        """
        if use_case is not None:
            use_case = UseCase(use_case)
            return reporter.build_cost_statistics(
                [op for op in self.operations if op.use_case == use_case]
            )

        return {
            uc: reporter.build_cost_statistics(ops)
            for uc, ops in self._by_use_case().items()
        }

    def get_performance_metrics(
        self, use_case: UseCase | None = None
    ) -> PerformanceMetrics | dict[UseCase, PerformanceMetrics]:
        """
        Latency percentiles and error rate for one use case, or per use case.
        """
        if use_case is not None:
            use_case = UseCase(use_case)
            return reporter.build_performance_metrics(
                [op for op in self.operations if op.use_case == use_case],
                use_case,
            )

        return {
            uc: reporter.build_performance_metrics(ops, uc)
            for uc, ops in self._by_use_case().items()
        }

    def _in_range(
        self,
        start: datetime | None,
        end: datetime | None,
    ) -> list[TrackedOperation]:
        return reporter.filter_by_date_range(self.operations, start, end)

    def get_total_cost(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> float:
        """Summed cost of operations tracked within [start, end]."""
        return sum(op.cost for op in self._in_range(start, end))

    def get_total_requests(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> int:
        """Number of operations tracked within [start, end]."""
        return len(self._in_range(start, end))

    def get_provider_counts(self) -> dict[str, int]:
        """Tracked attempts per provider."""
        return dict(Counter(op.provider for op in self.operations))

    def generate_cost_report(self, config: CostReportConfig | None = None) -> str:
        """
        Render a plain-text cost report over a rolling window ending now.

        Args:
            config: Window and grouping, defaults to daily by use case

        Returns:
            Report text, or a "No operations found" line for an empty window
        """
        config = config or CostReportConfig()
        start, end = reporter.period_window(config.period, self._clock())
        ops = reporter.filter_by_date_range(self.operations, start, end)
        return reporter.render_cost_report(ops, config, start, end)

    # -------------------------------------------------------------------------
    # Housekeeping
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        """Drop every tracked operation. Alerts are kept."""
        with self._lock:
            self._operations.clear()

    def clear_older_than(self, cutoff: datetime) -> int:
        """
        Drop operations tracked at or before cutoff.

        Returns:
            Number of operations removed
        """
        with self._lock:
            before = len(self._operations)
            self._operations = [op for op in self._operations if op.timestamp > cutoff]
            removed = before - len(self._operations)

        if removed:
            logger.info(f"Pruned {removed} tracked operations older than {cutoff.isoformat()}")
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._operations)
