"""
Pydantic Schemas for Cost and Performance Metrics

Derived views over the CostTracker operation log:
- CostStatistics: counts, cost, latency, success rate and token totals
- PerformanceMetrics: latency percentiles and error rate per use case
- CostReportConfig: window and grouping for the text cost report

All values are computed on demand from tracked operations and are
never stored.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# STATISTICS MODELS
# =============================================================================


class CostStatistics(BaseModel):
    """
    Aggregated cost statistics for a set of tracked operations.

    The provider and model fields report the most frequent value among
    the included operations; they are only meaningful when one provider
    dominates the set.

    Example:
        {
            "provider": "openai",
            "model": "gpt-3.5-turbo",
            "total_requests": 12,
            "successful_requests": 11,
            "failed_requests": 1,
            "total_cost": 0.0042,
            "average_cost_per_request": 0.00035,
            "average_latency_ms": 412.7,
            "success_rate": 0.9167,
            "total_tokens": 2300,
            "total_prompt_tokens": 1800,
            "total_completion_tokens": 500
        }
    """

    provider: str = Field(
        default="",
        description="Most frequent provider among included operations",
    )

    model: str = Field(
        default="",
        description="Most frequent model among included operations",
    )

    total_requests: int = Field(default=0, ge=0, description="Tracked attempts")

    successful_requests: int = Field(default=0, ge=0, description="Successful attempts")

    failed_requests: int = Field(default=0, ge=0, description="Failed attempts")

    total_cost: float = Field(default=0.0, ge=0.0, description="Summed cost in USD")

    average_cost_per_request: float = Field(
        default=0.0,
        ge=0.0,
        description="Total cost divided by total requests",
    )

    average_latency_ms: float = Field(
        default=0.0,
        ge=0.0,
        description="Mean latency in milliseconds",
    )

    success_rate: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Successful requests / total requests",
    )

    total_tokens: int = Field(default=0, ge=0, description="Summed total tokens")

    total_prompt_tokens: int = Field(default=0, ge=0, description="Summed prompt tokens")

    total_completion_tokens: int = Field(
        default=0,
        ge=0,
        description="Summed completion tokens",
    )


class PerformanceMetrics(BaseModel):
    """
    Latency distribution and error rate for one use case.

    Percentiles use linear interpolation over the sorted latencies.
    """

    use_case: str = Field(..., description="Use case the metrics describe")

    provider: str = Field(default="", description="Most frequent provider")

    model: str = Field(default="", description="Most frequent model")

    requests: int = Field(default=0, ge=0, description="Tracked attempts")

    average_latency_ms: float = Field(default=0.0, ge=0.0)

    p50_latency_ms: float = Field(default=0.0, ge=0.0)

    p95_latency_ms: float = Field(default=0.0, ge=0.0)

    p99_latency_ms: float = Field(default=0.0, ge=0.0)

    error_rate: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Failed attempts / total attempts",
    )

    last_error: str | None = Field(
        default=None,
        description="Message of the most recent failure",
    )

    last_error_time: datetime | None = Field(
        default=None,
        description="When the most recent failure was tracked (UTC)",
    )


# =============================================================================
# REPORT CONFIGURATION
# =============================================================================


ReportPeriod = Literal["hourly", "daily", "weekly", "monthly"]
ReportGroupBy = Literal["use_case", "provider", "model"]


class CostReportConfig(BaseModel):
    """
    Rolling window and grouping for generate_cost_report().

    Windows end at "now": hourly = 1h, daily = 24h, weekly = 7d,
    monthly = 30d.
    """

    model_config = ConfigDict(extra="forbid")

    period: ReportPeriod = Field(
        default="daily",
        description="Rolling window ending now",
    )

    group_by: ReportGroupBy = Field(
        default="use_case",
        description="Dimension to break costs down by",
    )
