"""
Schemas module: Pydantic models for metrics, discovery and the API.

This module provides validated data models for the provider manager:
- Cost statistics, performance metrics and report configuration
- Discovery search results merged across providers
- Request/response, error and health models for the operations API

Example usage:
    from provider_manager.schemas import CostReportConfig

    report = manager.generate_cost_report(
        CostReportConfig(period="weekly", group_by="provider")
    )
"""

from provider_manager.schemas.api import (
    # Request models
    UseCaseConfigUpdate,
    GenerateRequest,
    SearchRequest,
    DiscoveryRequest,
    # Response models
    CostReportResponse,
    PruneResponse,
    # Error models
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    # Health models
    ComponentHealth,
    HealthResponse,
)
from provider_manager.schemas.discovery import (
    MultipleSearchResponse,
    ProviderSearchResult,
)
from provider_manager.schemas.metrics import (
    CostReportConfig,
    CostStatistics,
    PerformanceMetrics,
    ReportGroupBy,
    ReportPeriod,
)

__all__ = [
    # Metrics models
    "CostStatistics",
    "PerformanceMetrics",
    "CostReportConfig",
    "ReportPeriod",
    "ReportGroupBy",
    # Discovery models
    "ProviderSearchResult",
    "MultipleSearchResponse",
    # API models
    "UseCaseConfigUpdate",
    "GenerateRequest",
    "SearchRequest",
    "DiscoveryRequest",
    "CostReportResponse",
    "PruneResponse",
    "ErrorCodes",
    "ErrorDetail",
    "ErrorResponse",
    "ComponentHealth",
    "HealthResponse",
]
