"""
Pydantic Schemas for the Operations API

Request and response models for the FastAPI surface in
provider_manager.main:
- UseCaseConfigUpdate: partial update body for PATCH /use-cases/{use_case}
- GenerateRequest / SearchRequest / DiscoveryRequest: dispatch request bodies
- CostReportResponse / PruneResponse: report and housekeeping responses
- Error responses and health check schemas
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from provider_manager.registry.discovery import DiscoveryType
from provider_manager.registry.use_cases import Priority


# =============================================================================
# REQUEST MODELS
# =============================================================================


class UseCaseConfigUpdate(BaseModel):
    """
    Partial update for a use case's routing policy.

    Only the fields present in the request body are applied; the merged
    result is re-validated against UseCaseConfig.

    Example:
        {
            "provider": "groq",
            "model": "llama-3.1-8b-instant",
            "fallback_providers": ["openai"]
        }
    """

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "provider": "groq",
                    "model": "llama-3.1-8b-instant",
                    "fallback_providers": ["openai"],
                },
                {"enable_caching": False},
            ]
        },
    )

    provider: str | None = Field(default=None, min_length=1)
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    priority: Priority | None = None
    fallback_providers: list[str] | None = None
    enable_caching: bool | None = None
    cache_ttl: int | None = Field(default=None, gt=0)

    def to_patch(self) -> dict:
        """Fields explicitly set in the request."""
        return self.model_dump(exclude_unset=True)


class GenerateRequest(BaseModel):
    """
    Request body for POST /generate.

    Example:
        {
            "prompt": "Rewrite as a search query: art grants for painters in NYC",
            "use_case": "query-enhancement"
        }
    """

    prompt: str = Field(..., min_length=1, max_length=50000)
    use_case: str = Field(..., description="Use case whose routing policy applies")
    provider: str | None = Field(default=None, description="Primary provider override")
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    system_prompt: str | None = None
    disable_fallback: bool = False
    disable_cache: bool = False

    @field_validator("prompt")
    @classmethod
    def validate_prompt_not_whitespace(cls, v: str) -> str:
        """Ensure prompt is not empty or whitespace only."""
        if not v.strip():
            raise ValueError("Prompt cannot be empty or whitespace only")
        return v


class SearchRequest(BaseModel):
    """Request body for POST /search."""

    query: str = Field(..., min_length=1, max_length=2000)
    use_case: str = Field(default="web-search")
    provider: str | None = None
    max_results: int = Field(default=10, gt=0, le=100)
    filters: dict[str, Any] | None = None
    disable_fallback: bool = False
    disable_cache: bool = False


class DiscoveryRequest(BaseModel):
    """Request body for POST /search/multiple."""

    query: str = Field(..., min_length=1, max_length=2000)
    discovery_type: DiscoveryType = Field(default=DiscoveryType.SEARCH_ENGINES)
    max_results_per_provider: int | None = Field(default=None, gt=0)
    filters: dict[str, Any] | None = None
    deduplicate_urls: bool = True
    enabled_providers: list[str] | None = None


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class CostReportResponse(BaseModel):
    """Rendered text cost report."""

    period: str = Field(..., description="Rolling window of the report")
    group_by: str = Field(..., description="Breakdown dimension")
    report: str = Field(..., description="Plain-text report body")


class PruneResponse(BaseModel):
    """Result of dropping tracked operations older than the retention window."""

    removed: int = Field(..., ge=0, description="Operations deleted")
    remaining: int = Field(..., ge=0, description="Operations still tracked")
    retention_days: int = Field(..., ge=0)


# =============================================================================
# ERROR MODELS
# =============================================================================


class ErrorCodes:
    """
    Standard error codes for API responses.

    These codes enable programmatic error handling by clients
    without parsing human-readable messages.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_USE_CASE = "UNKNOWN_USE_CASE"
    PROVIDER_NOT_CONFIGURED = "PROVIDER_NOT_CONFIGURED"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"
    NO_ELIGIBLE_PROVIDERS = "NO_ELIGIBLE_PROVIDERS"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ErrorDetail(BaseModel):
    """Machine-readable code plus a human-readable message."""

    code: str = Field(
        ...,
        description="Machine-readable error code for programmatic handling",
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    field: str | None = Field(
        default=None,
        description="Field that caused the error (for validation errors)",
    )


class ErrorResponse(BaseModel):
    """
    Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "UNKNOWN_USE_CASE",
                "message": "No configuration found for use case: translation"
            }
        }
    """

    error: ErrorDetail = Field(..., description="Error details")

    request_id: str | None = Field(
        default=None,
        description="Request ID for tracking and support",
    )


# =============================================================================
# HEALTH MODELS
# =============================================================================


class ComponentHealth(BaseModel):
    """
    Health status of an individual system component.

    Reported for the router, the tracker and each registered provider.
    """

    name: str = Field(
        ...,
        description="Component name (e.g., 'router', 'openai', 'serper')",
    )

    status: Literal["healthy", "degraded", "unhealthy"] = Field(...)

    message: str | None = Field(
        default=None,
        description="Additional status information or error details",
    )


class HealthResponse(BaseModel):
    """
    Response from the /health endpoint.

    Example:
        {
            "status": "degraded",
            "service": "provider-manager",
            "version": "0.1.0",
            "components": [
                {"name": "router", "status": "healthy"},
                {"name": "openai", "status": "unhealthy", "message": "Not configured"}
            ],
            "uptime_seconds": 3600.5
        }
    """

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        ...,
        description="Overall service health status",
    )

    service: str = Field(default="provider-manager")

    version: str = Field(..., description="Application version")

    components: list[ComponentHealth] = Field(default_factory=list)

    uptime_seconds: float | None = Field(default=None, ge=0.0)
