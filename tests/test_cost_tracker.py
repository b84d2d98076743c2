"""
Cost Tracker Tests

Validates operation tracking, derived statistics, cost alerts and the
plain-text cost report.

Test Categories:
1. TestTracking - Recording successes and failures
2. TestStatistics - CostStatistics and PerformanceMetrics
3. TestCostAlerts - Trailing-24h alert evaluation
4. TestCostReport - Report rendering
5. TestHousekeeping - Date range queries and pruning
"""

from datetime import timedelta

import pytest

from provider_manager.dispatcher.ports import TextGenerationResponse, TokenUsage
from provider_manager.metrics.store import AttemptFailure, CostAlert, CostTracker
from provider_manager.registry.use_cases import UseCase
from provider_manager.schemas.metrics import CostReportConfig
from provider_manager.utils import calculate_percentile


def _response(cost: float = 0.001, latency_ms: float = 100.0, model: str = "gpt-3.5-turbo"):
    return TextGenerationResponse(
        content="ok",
        model=model,
        usage=TokenUsage(prompt_tokens=10, completion_tokens=5),
        cost=cost,
        latency_ms=latency_ms,
    )


class TestTracking:
    """Tests for CostTracker.track()."""

    def test_track_success(self, tracker, clock):
        op = tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.002))

        assert op.success is True
        assert op.provider == "openai"
        assert op.model == "gpt-3.5-turbo"
        assert op.cost == pytest.approx(0.002)
        assert op.tokens == 15
        assert op.prompt_tokens == 10
        assert op.completion_tokens == 5
        assert op.timestamp == clock.now
        assert op.error is None
        assert len(tracker) == 1

    def test_track_failure(self, tracker):
        op = tracker.track(
            UseCase.RAG_QA,
            "openai",
            AttemptFailure(model="gpt-4", latency_ms=12.0),
            error=RuntimeError("boom"),
        )

        assert op.success is False
        assert op.error == "boom"
        assert op.cost == 0.0
        assert op.latency_ms == 12.0
        assert op.tokens is None

    def test_failure_without_message_uses_type_name(self, tracker):
        op = tracker.track(UseCase.RAG_QA, "openai", AttemptFailure(), error=TimeoutError())

        assert op.error == "TimeoutError"

    def test_disabled_tracker_records_nothing(self, clock):
        tracker = CostTracker(enabled=False, clock=clock)

        assert tracker.track(UseCase.RAG_QA, "openai", _response()) is None
        assert len(tracker) == 0

    def test_operations_snapshot_is_a_copy(self, tracker):
        tracker.track(UseCase.RAG_QA, "openai", _response())
        tracker.operations.clear()

        assert len(tracker) == 1


class TestStatistics:
    """Tests for get_stats() and get_performance_metrics()."""

    def test_stats_for_empty_use_case_are_zero(self, tracker):
        stats = tracker.get_stats(UseCase.EMBEDDINGS)

        assert stats.total_requests == 0
        assert stats.total_cost == 0.0
        assert stats.success_rate == 0.0

    def test_stats_aggregate_successes_and_failures(self, tracker):
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.002, latency_ms=100))
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.004, latency_ms=300))
        tracker.track(
            UseCase.RAG_QA,
            "anthropic",
            AttemptFailure(model="claude-3-haiku-20240307", latency_ms=200),
            error="timeout",
        )

        stats = tracker.get_stats(UseCase.RAG_QA)

        assert stats.total_requests == 3
        assert stats.successful_requests == 2
        assert stats.failed_requests == 1
        assert stats.total_cost == pytest.approx(0.006)
        assert stats.average_cost_per_request == pytest.approx(0.002)
        assert stats.average_latency_ms == pytest.approx(200.0)
        assert stats.success_rate == pytest.approx(2 / 3)
        assert stats.provider == "openai"
        assert stats.model == "gpt-3.5-turbo"
        assert stats.total_tokens == 30

    def test_stats_for_all_use_cases_in_declaration_order(self, tracker):
        tracker.track(UseCase.WEB_SEARCH, "serper", _response())
        tracker.track(UseCase.QUERY_ENHANCEMENT, "openai", _response())

        stats = tracker.get_stats()

        assert list(stats) == [UseCase.QUERY_ENHANCEMENT, UseCase.WEB_SEARCH]
        assert stats[UseCase.WEB_SEARCH].provider == "serper"

    def test_percentiles_use_linear_interpolation(self, tracker):
        for latency in range(10, 101, 10):
            tracker.track(UseCase.RAG_QA, "openai", _response(latency_ms=float(latency)))

        metrics = tracker.get_performance_metrics(UseCase.RAG_QA)

        assert metrics.requests == 10
        assert metrics.p50_latency_ms == pytest.approx(55.0)
        assert metrics.p95_latency_ms == pytest.approx(95.5)
        assert metrics.p99_latency_ms == pytest.approx(99.1)
        assert metrics.average_latency_ms == pytest.approx(55.0)
        assert metrics.error_rate == 0.0

    def test_performance_reports_last_error(self, tracker, clock):
        tracker.track(UseCase.RAG_QA, "openai", AttemptFailure(), error="first")
        clock.advance(minutes=5)
        tracker.track(UseCase.RAG_QA, "openai", AttemptFailure(), error="second")
        tracker.track(UseCase.RAG_QA, "openai", _response())

        metrics = tracker.get_performance_metrics(UseCase.RAG_QA)

        assert metrics.use_case == "rag-qa"
        assert metrics.error_rate == pytest.approx(2 / 3)
        assert metrics.last_error == "second"
        assert metrics.last_error_time == clock.now

    def test_provider_counts(self, tracker):
        tracker.track(UseCase.RAG_QA, "openai", _response())
        tracker.track(UseCase.RAG_QA, "openai", _response())
        tracker.track(UseCase.WEB_SEARCH, "serper", _response())

        assert tracker.get_provider_counts() == {"openai": 2, "serper": 1}


class TestPercentile:
    """Tests for calculate_percentile()."""

    def test_empty_is_zero(self):
        assert calculate_percentile([], 95) == 0.0

    def test_single_value(self):
        assert calculate_percentile([42.0], 99) == 42.0

    def test_bounds(self):
        values = [1.0, 2.0, 3.0]
        assert calculate_percentile(values, 0) == 1.0
        assert calculate_percentile(values, 100) == 3.0


class TestCostAlerts:
    """Tests for the trailing-24h cost alert."""

    def test_alert_fires_on_every_qualifying_operation(self, tracker):
        fired = []
        tracker.set_cost_alert(CostAlert(UseCase.RAG_QA, 0.05, fired.append))

        for _ in range(3):
            tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.03))

        # 0.03 is under the limit; 0.06 and 0.09 exceed it
        assert len(fired) == 2
        assert fired[0].total_requests == 2
        assert fired[1].total_cost == pytest.approx(0.09)

    def test_alert_only_watches_its_use_case(self, tracker):
        fired = []
        tracker.set_cost_alert(CostAlert(UseCase.RAG_QA, 0.01, fired.append))

        tracker.track(UseCase.SEMANTIC_ANALYSIS, "openai", _response(cost=1.0))

        assert fired == []

    def test_alert_window_is_trailing_24_hours(self, tracker, clock):
        fired = []
        tracker.set_cost_alert(CostAlert(UseCase.RAG_QA, 0.05, fired.append))

        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.04))
        clock.advance(hours=25)
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.04))

        assert fired == []

    def test_spend_equal_to_limit_does_not_fire(self, tracker):
        fired = []
        tracker.set_cost_alert(CostAlert(UseCase.RAG_QA, 0.5, fired.append))

        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.5))

        assert fired == []

    def test_removed_alert_no_longer_fires(self, tracker):
        fired = []
        tracker.set_cost_alert(CostAlert(UseCase.RAG_QA, 0.01, fired.append))
        tracker.remove_cost_alert(UseCase.RAG_QA)

        tracker.track(UseCase.RAG_QA, "openai", _response(cost=1.0))

        assert fired == []
        assert tracker.get_cost_alert(UseCase.RAG_QA) is None

    def test_callback_errors_are_logged_not_raised(self, tracker, caplog):
        def explode(stats):
            raise RuntimeError("pager down")

        tracker.set_cost_alert(CostAlert(UseCase.RAG_QA, 0.01, explode))

        op = tracker.track(UseCase.RAG_QA, "openai", _response(cost=1.0))

        assert op is not None
        assert "Cost alert callback failed" in caplog.text

    def test_callback_may_read_tracker(self, tracker):
        seen = []
        tracker.set_cost_alert(
            CostAlert(UseCase.RAG_QA, 0.01, lambda stats: seen.append(len(tracker)))
        )

        tracker.track(UseCase.RAG_QA, "openai", _response(cost=1.0))

        assert seen == [1]


class TestCostReport:
    """Tests for generate_cost_report()."""

    def test_empty_report(self, tracker):
        report = tracker.generate_cost_report(CostReportConfig(period="weekly"))

        assert report == "No operations found for period: weekly"

    def test_report_by_use_case(self, tracker, clock):
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.002))
        tracker.track(UseCase.QUERY_ENHANCEMENT, "openai", _response(cost=0.001))
        tracker.track(UseCase.QUERY_ENHANCEMENT, "groq", _response(cost=0.001))

        report = tracker.generate_cost_report()
        start = clock.now - timedelta(days=1)

        assert report == (
            "Cost Report (daily)\n"
            f"Period: {start.isoformat()} to {clock.now.isoformat()}\n"
            "Total Cost: $0.0040\n"
            "Total Requests: 3\n"
            "\n"
            "By Use Case:\n"
            "  - query-enhancement: $0.0020 (2 requests, avg $0.0010)\n"
            "  - rag-qa: $0.0020 (1 requests, avg $0.0020)\n"
        )

    def test_report_by_provider(self, tracker):
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.002))
        tracker.track(UseCase.RAG_QA, "groq", _response(cost=0.001))

        report = tracker.generate_cost_report(CostReportConfig(group_by="provider"))

        assert "By Provider:\n" in report
        assert "  - openai: $0.0020 (1 requests)\n" in report
        assert "  - groq: $0.0010 (1 requests)\n" in report

    def test_report_by_model(self, tracker):
        tracker.track(UseCase.RAG_QA, "openai", _response(model="gpt-4", cost=0.01))

        report = tracker.generate_cost_report(CostReportConfig(group_by="model"))

        assert "By Model:\n  - gpt-4: $0.0100 (1 requests)\n" in report

    def test_report_excludes_operations_outside_period(self, tracker, clock):
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.5))
        clock.advance(days=2)
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.001))

        report = tracker.generate_cost_report()

        assert "Total Requests: 1\n" in report
        assert "Total Cost: $0.0010\n" in report

    def test_report_config_rejects_unknown_period(self):
        with pytest.raises(ValueError):
            CostReportConfig(period="yearly")


class TestHousekeeping:
    """Tests for date range queries, clear() and clear_older_than()."""

    def test_totals_within_inclusive_range(self, tracker, clock):
        first = clock.now
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.001))
        clock.advance(hours=1)
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.002))
        clock.advance(hours=1)
        tracker.track(UseCase.RAG_QA, "openai", _response(cost=0.004))

        end = first + timedelta(hours=1)
        assert tracker.get_total_cost(first, end) == pytest.approx(0.003)
        assert tracker.get_total_requests(first, end) == 2
        assert tracker.get_total_requests() == 3
        assert tracker.get_total_cost(start=end) == pytest.approx(0.006)

    def test_clear_older_than(self, tracker, clock):
        tracker.track(UseCase.RAG_QA, "openai", _response())
        clock.advance(days=2)
        tracker.track(UseCase.RAG_QA, "openai", _response())

        removed = tracker.clear_older_than(clock.now - timedelta(days=1))

        assert removed == 1
        assert len(tracker) == 1

    def test_clear_keeps_alerts(self, tracker):
        tracker.set_cost_alert(CostAlert(UseCase.RAG_QA, 1.0, lambda stats: None))
        tracker.track(UseCase.RAG_QA, "openai", _response())

        tracker.clear()

        assert len(tracker) == 0
        assert tracker.get_cost_alert(UseCase.RAG_QA) is not None
