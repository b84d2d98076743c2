"""
Provider Manager: FastAPI Operations Service

This module wires the reference adapters into a ProviderManager and exposes
a small HTTP surface over it:
- /health: Health check with one component per registered provider
- /config: Non-sensitive configuration values
- /use-cases: Read and patch per-use-case routing policies
- /generate, /search, /search/multiple: Thin dispatch endpoints
- /metrics/*: Cost statistics, performance metrics, reports and pruning
- /cache: Response cache control

The application uses a lifespan context manager to:
1. Load configuration and configure logging
2. Build the ProviderManager and register adapters for configured keys
3. Install a daily cost alert per use case when a threshold is set
"""

from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import timedelta
import logging
import time

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from provider_manager import __version__
from provider_manager.adapters import (
    AnthropicExtractionAdapter,
    AnthropicTextAdapter,
    GroqTextAdapter,
    OpenAIEmbeddingAdapter,
    OpenAIExtractionAdapter,
    OpenAITextAdapter,
    SerperSearchAdapter,
)
from provider_manager.adapters.serper_adapter import SERPER_SEARCH_URL
from provider_manager.config import Settings, configure_logging, get_settings
from provider_manager.dispatcher.manager import ProviderManager
from provider_manager.errors import (
    AllProvidersFailed,
    NoEligibleProvidersError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    UnknownUseCaseError,
)
from provider_manager.metrics.store import CostAlert, utcnow
from provider_manager.registry.use_cases import UseCase
from provider_manager.schemas import (
    ComponentHealth,
    CostReportConfig,
    CostReportResponse,
    DiscoveryRequest,
    ErrorCodes,
    ErrorResponse,
    GenerateRequest,
    HealthResponse,
    MultipleSearchResponse,
    PruneResponse,
    ReportGroupBy,
    ReportPeriod,
    SearchRequest,
    UseCaseConfigUpdate,
)
from provider_manager.schemas.metrics import CostStatistics

logger = logging.getLogger(__name__)

_start_time: float = 0.0


def _log_budget_breach(use_case: UseCase, limit: float):
    def on_exceeded(stats: CostStatistics) -> None:
        logger.error(
            f"Daily budget of ${limit:.2f} exceeded for {use_case.value}: "
            f"${stats.total_cost:.4f} over {stats.total_requests} requests "
            f"(top provider: {stats.provider}, top model: {stats.model})"
        )

    return on_exceeded


def build_provider_manager(settings: Settings) -> ProviderManager:
    """
    Build a ProviderManager with every adapter whose API key is set.

    Args:
        settings: Application settings

    Returns:
        ProviderManager ready to dispatch
    """
    config = settings.to_manager_config()
    manager = ProviderManager(config)

    openai_creds = config.providers.get("openai")
    if openai_creds is not None and openai_creds.is_configured:
        manager.register_text_provider("openai", OpenAITextAdapter.from_credentials(openai_creds))
        manager.register_embedding_provider(
            "openai", OpenAIEmbeddingAdapter.from_credentials(openai_creds)
        )
        manager.register_extraction_provider(
            "openai", OpenAIExtractionAdapter.from_credentials(openai_creds)
        )

    anthropic_creds = config.providers.get("anthropic")
    if anthropic_creds is not None and anthropic_creds.is_configured:
        manager.register_text_provider(
            "anthropic", AnthropicTextAdapter.from_credentials(anthropic_creds)
        )
        manager.register_extraction_provider(
            "anthropic", AnthropicExtractionAdapter.from_credentials(anthropic_creds)
        )

    groq_creds = config.providers.get("groq")
    if groq_creds is not None and groq_creds.is_configured:
        manager.register_text_provider("groq", GroqTextAdapter.from_credentials(groq_creds))

    serper_creds = config.providers.get("serper")
    if serper_creds is not None and serper_creds.is_configured:
        manager.register_search_provider(
            "serper",
            SerperSearchAdapter(
                serper_creds.api_key.get_secret_value(),
                base_url=serper_creds.base_url or SERPER_SEARCH_URL,
                timeout=serper_creds.timeout or manager.timeouts["search"],
            ),
        )

    if config.cost_alert_threshold is not None:
        for use_case in UseCase:
            manager.set_cost_alert(
                CostAlert(
                    use_case=use_case,
                    daily_limit=config.cost_alert_threshold,
                    on_exceeded=_log_budget_breach(use_case, config.cost_alert_threshold),
                )
            )

    return manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup/shutdown events.

    On startup:
    - Loads configuration from environment
    - Configures logging
    - Builds the ProviderManager unless one was installed on app.state

    On shutdown:
    - Logs shutdown message
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("=" * 60)
    logger.info("Provider Manager starting up...")
    logger.info("=" * 60)
    logger.info(f"Cost tracking: {'enabled' if settings.enable_cost_tracking else 'disabled'}")
    if settings.cost_alert_threshold is not None:
        logger.info(f"Daily cost alert per use case: ${settings.cost_alert_threshold:.2f}")
    logger.info(f"Cost retention: {settings.cost_retention_days} days")
    logger.info(f"Debug mode: {'enabled' if settings.debug else 'disabled'}")

    for name, key in (
        ("OpenAI", settings.openai_api_key),
        ("Anthropic", settings.anthropic_api_key),
        ("Groq", settings.groq_api_key),
        ("Serper", settings.serper_api_key),
    ):
        configured = key is not None and bool(key.get_secret_value())
        logger.info(f"{name} API key: {'configured' if configured else 'not configured'}")

    if getattr(app.state, "manager", None) is None:
        app.state.manager = build_provider_manager(settings)

    manager: ProviderManager = app.state.manager
    for capability, names in manager.registered_providers().items():
        logger.info(f"  - {capability}: {', '.join(names) if names else 'none'}")

    global _start_time
    _start_time = time.time()

    logger.info("=" * 60)
    logger.info("Provider Manager ready to accept requests")

    yield  # Application runs here

    logger.info("Provider Manager shutting down...")


app = FastAPI(
    title="Provider Manager",
    description="Use-case routed dispatch across AI and search providers",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_manager(request: Request) -> ProviderManager:
    """Dependency returning the ProviderManager built at startup."""
    manager = getattr(request.app.state, "manager", None)
    if manager is None:
        raise HTTPException(
            status_code=503,
            detail={
                "code": ErrorCodes.SERVICE_UNAVAILABLE,
                "message": "Provider manager is not initialized",
            },
        )
    return manager


@app.get("/")
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": "Provider Manager",
        "description": "Use-case routed dispatch across AI and search providers",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "config": "/config",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check router, tracker and provider status.",
)
async def health_check(manager: ProviderManager = Depends(get_manager)):
    """
    Health check endpoint for monitoring and orchestration.

    The service is degraded when no provider is registered or when a
    registered provider reports that it has no credentials.
    """
    components = [
        ComponentHealth(
            name="router",
            status="healthy",
            message=f"{len(manager.router.get_all_use_cases())} use cases configured",
        ),
        ComponentHealth(
            name="tracker",
            status="healthy",
            message=(
                f"{len(manager.tracker)} operations tracked"
                if manager.tracker.enabled
                else "Cost tracking disabled"
            ),
        ),
    ]
    overall_status = "healthy"

    pools = (
        ("text", manager.text_providers),
        ("embedding", manager.embedding_providers),
        ("extraction", manager.extraction_providers),
        ("search", manager.search_providers),
    )
    registered = 0
    for capability, pool in pools:
        for name in pool.names():
            registered += 1
            if pool.is_available(name):
                components.append(
                    ComponentHealth(name=f"{name} ({capability})", status="healthy")
                )
            else:
                components.append(
                    ComponentHealth(
                        name=f"{name} ({capability})",
                        status="unhealthy",
                        message="Not configured",
                    )
                )
                overall_status = "degraded"

    if registered == 0:
        overall_status = "degraded"

    uptime = time.time() - _start_time if _start_time > 0 else 0.0

    return HealthResponse(
        status=overall_status,
        version=__version__,
        components=components,
        uptime_seconds=uptime,
    )


@app.get("/config")
async def show_config(
    settings: Settings = Depends(get_settings),
    manager: ProviderManager = Depends(get_manager),
):
    """
    Returns non-sensitive configuration values.

    API keys are SecretStr and are NOT exposed in this endpoint.
    """
    return {
        "cost_tracking": {
            "enabled": settings.enable_cost_tracking,
            "alert_threshold": settings.cost_alert_threshold,
            "retention_days": settings.cost_retention_days,
        },
        "timeouts": manager.timeouts,
        "providers": manager.registered_providers(),
        "server": {
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
        },
        "logging": {"level": settings.log_level},
        "api_keys_configured": {
            "openai": bool(settings.openai_api_key and settings.openai_api_key.get_secret_value()),
            "anthropic": bool(
                settings.anthropic_api_key and settings.anthropic_api_key.get_secret_value()
            ),
            "groq": bool(settings.groq_api_key and settings.groq_api_key.get_secret_value()),
            "serper": bool(settings.serper_api_key and settings.serper_api_key.get_secret_value()),
        },
    }


# =============================================================================
# USE CASE CONFIGURATION
# =============================================================================


@app.get("/use-cases")
async def list_use_cases(manager: ProviderManager = Depends(get_manager)):
    """List the active routing policy of every use case."""
    return {
        use_case.value: config.model_dump(mode="json")
        for use_case, config in manager.get_all_use_case_configs().items()
    }


@app.get(
    "/use-cases/{use_case}",
    responses={404: {"model": ErrorResponse}},
)
async def get_use_case(use_case: str, manager: ProviderManager = Depends(get_manager)):
    return manager.get_use_case_config(use_case).model_dump(mode="json")


@app.patch(
    "/use-cases/{use_case}",
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Update a use case's routing policy",
)
async def update_use_case(
    use_case: str,
    update: UseCaseConfigUpdate,
    manager: ProviderManager = Depends(get_manager),
):
    """
    Apply a partial routing update.

    The change takes effect on the next dispatched call. A merged policy
    that fails validation is rejected and the previous policy stays active.
    """
    updated = manager.update_use_case_config(use_case, update.to_patch())
    logger.info(f"Routing policy for {use_case} updated: {update.to_patch()}")
    return updated.model_dump(mode="json")


# =============================================================================
# DISPATCH
# =============================================================================


@app.post(
    "/generate",
    responses={
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
    summary="Generate text",
)
async def generate_text(request: GenerateRequest, manager: ProviderManager = Depends(get_manager)):
    response = await manager.generate(
        request.prompt,
        request.use_case,
        provider=request.provider,
        disable_fallback=request.disable_fallback,
        disable_cache=request.disable_cache,
        model=request.model,
        temperature=request.temperature,
        max_tokens=request.max_tokens,
        system_prompt=request.system_prompt,
    )
    return asdict(response)


@app.post(
    "/search",
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Search with one provider",
)
async def search(request: SearchRequest, manager: ProviderManager = Depends(get_manager)):
    response = await manager.search(
        request.query,
        request.use_case,
        provider=request.provider,
        disable_fallback=request.disable_fallback,
        disable_cache=request.disable_cache,
        max_results=request.max_results,
        filters=request.filters,
    )
    return asdict(response)


@app.post(
    "/search/multiple",
    response_model=MultipleSearchResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Discovery search across providers",
)
async def search_multiple(
    request: DiscoveryRequest, manager: ProviderManager = Depends(get_manager)
):
    """
    Query every enabled provider of a discovery type and merge the results.

    Individual provider failures are reported in provider_results; the
    request only fails when no provider is eligible.
    """
    return await manager.search_multiple(
        request.query,
        request.discovery_type,
        max_results_per_provider=request.max_results_per_provider,
        filters=request.filters,
        deduplicate_urls=request.deduplicate_urls,
        enabled_providers=request.enabled_providers,
    )


# =============================================================================
# METRICS
# =============================================================================


@app.get("/metrics/costs", summary="Cost statistics")
async def get_cost_stats(
    use_case: str | None = Query(default=None, description="Restrict to one use case"),
    manager: ProviderManager = Depends(get_manager),
):
    stats = manager.get_cost_stats(use_case)
    if isinstance(stats, dict):
        return {uc.value: item.model_dump() for uc, item in stats.items()}
    return stats.model_dump()


@app.get("/metrics/performance", summary="Latency and error metrics")
async def get_performance_metrics(
    use_case: str | None = Query(default=None, description="Restrict to one use case"),
    manager: ProviderManager = Depends(get_manager),
):
    metrics = manager.get_performance_metrics(use_case)
    if isinstance(metrics, dict):
        return {uc.value: item.model_dump(mode="json") for uc, item in metrics.items()}
    return metrics.model_dump(mode="json")


@app.get(
    "/metrics/report",
    response_model=CostReportResponse,
    summary="Plain-text cost report",
)
async def get_cost_report(
    period: ReportPeriod = Query(default="daily"),
    group_by: ReportGroupBy = Query(default="use_case"),
    manager: ProviderManager = Depends(get_manager),
):
    report = manager.generate_cost_report(CostReportConfig(period=period, group_by=group_by))
    return CostReportResponse(period=period, group_by=group_by, report=report)


@app.post(
    "/metrics/prune",
    response_model=PruneResponse,
    summary="Drop tracked operations past the retention window",
)
async def prune_metrics(
    settings: Settings = Depends(get_settings),
    manager: ProviderManager = Depends(get_manager),
):
    cutoff = utcnow() - timedelta(days=settings.cost_retention_days)
    removed = manager.tracker.clear_older_than(cutoff)
    return PruneResponse(
        removed=removed,
        remaining=len(manager.tracker),
        retention_days=settings.cost_retention_days,
    )


@app.delete("/cache", summary="Clear the response cache")
async def clear_cache(manager: ProviderManager = Depends(get_manager)):
    entries = len(manager.cache)
    manager.clear_cache()
    return {"cleared": entries}


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

# Resolved along the exception's MRO, so subclasses win over ProviderError.
_ERROR_STATUS: dict[type[Exception], tuple[int, str]] = {
    UnknownUseCaseError: (404, ErrorCodes.UNKNOWN_USE_CASE),
    ProviderNotConfiguredError: (503, ErrorCodes.PROVIDER_NOT_CONFIGURED),
    ProviderTimeoutError: (504, ErrorCodes.PROVIDER_TIMEOUT),
    ProviderRateLimitError: (429, ErrorCodes.RATE_LIMITED),
    ProviderError: (502, ErrorCodes.PROVIDER_ERROR),
    AllProvidersFailed: (502, ErrorCodes.ALL_PROVIDERS_FAILED),
    NoEligibleProvidersError: (503, ErrorCodes.NO_ELIGIBLE_PROVIDERS),
}


async def provider_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Map dispatch errors to HTTP status codes and error codes.
    """
    status_code, code = next(
        _ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in _ERROR_STATUS
    )
    logger.warning(f"{request.method} {request.url.path} failed: {code}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": str(exc)}},
    )


for _exc_class in _ERROR_STATUS:
    app.add_exception_handler(_exc_class, provider_exception_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors.

    Returns a consistent error response format with the first validation
    error's details for client-side error handling.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": first_error.get("msg", "Validation failed"),
                "field": ".".join(str(loc) for loc in first_error.get("loc", [])),
            }
        },
    )


@app.exception_handler(ValidationError)
async def config_validation_exception_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """
    Handle a routing update whose merged policy is invalid.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": first_error.get("msg", "Validation failed"),
                "field": ".".join(str(loc) for loc in first_error.get("loc", [])),
            }
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions with consistent format.
    """
    detail = exc.detail
    if isinstance(detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": detail})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "HTTP_ERROR", "message": str(detail)}},
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full exception for debugging and returns a generic error
    response to avoid leaking implementation details.
    """
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            }
        },
    )
