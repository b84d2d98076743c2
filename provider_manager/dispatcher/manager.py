"""
Provider Manager - Use-case routed dispatch across AI and search providers.

The manager sits between application code and the registered adapters.
For every call it:
1. Resolves the use case's routing policy from the UseCaseRouter
2. Serves idempotent results from the ResponseCache when enabled
3. Calls the primary provider under a timeout (losing calls are cancelled)
4. Walks the ordered fallback chain when the primary fails
5. Reports every attempt, successful or not, to the CostTracker

Per-operation behavior:

    operation      fallback   cache   timeout
    generate       yes        yes     text
    chat           no         no      text
    embed          no         yes     embedding
    embed_batch    no         no      embedding
    extract        yes        no      extraction
    search         yes        yes     search (social for social-search)

A missing or unconfigured primary provider fails immediately with
ProviderNotConfiguredError; fallbacks only cover a primary that was
actually called and failed.

search_multiple() implements the discovery pattern: one query is sent,
strictly sequentially, to every enabled provider of a discovery type and
the results are merged rather than used as fallbacks.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

from provider_manager.cache import ResponseCache
from provider_manager.config import ProviderManagerConfig
from provider_manager.dispatcher.discovery import deduplicate_by_url, tag_source
from provider_manager.dispatcher.pool import ProviderPool
from provider_manager.dispatcher.ports import (
    ChatMessage,
    EmbeddingOptions,
    EmbeddingProvider,
    EmbeddingResponse,
    ExtractionOptions,
    ExtractionProvider,
    ExtractionResponse,
    Provider,
    SearchOptions,
    SearchProvider,
    SearchResponse,
    SearchResult,
    TextGenerationOptions,
    TextGenerationProvider,
    TextGenerationResponse,
)
from provider_manager.errors import (
    AllProvidersFailed,
    NoEligibleProvidersError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderTimeoutError,
)
from provider_manager.metrics.store import AttemptFailure, CostAlert, CostTracker
from provider_manager.registry.discovery import (
    DISCOVERY_CONFIG,
    DiscoveryProviderConfig,
    DiscoveryType,
    select_discovery_providers,
)
from provider_manager.registry.providers import DEFAULT_TIMEOUTS
from provider_manager.registry.use_cases import UseCase, UseCaseConfig
from provider_manager.router.engine import UseCaseRouter, resolve_use_case
from provider_manager.schemas.discovery import (
    MultipleSearchResponse,
    ProviderSearchResult,
)
from provider_manager.schemas.metrics import (
    CostReportConfig,
    CostStatistics,
    PerformanceMetrics,
)

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Provider)
R = TypeVar("R")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


class ProviderManager:
    """
    Facade over routing, dispatch, fallback, caching and cost tracking.

    Usage:
        manager = ProviderManager(ProviderManagerConfig())
        manager.register_text_provider("openai", OpenAITextAdapter(api_key=...))

        response = await manager.generate(
            "Rewrite as a search query: art grants in NYC",
            UseCase.QUERY_ENHANCEMENT,
        )
        print(manager.get_cost_stats(UseCase.QUERY_ENHANCEMENT))
    """

    def __init__(
        self,
        config: ProviderManagerConfig | None = None,
        *,
        router: UseCaseRouter | None = None,
        tracker: CostTracker | None = None,
        cache: ResponseCache | None = None,
        discovery_config: dict[DiscoveryType, list[DiscoveryProviderConfig]] | None = None,
    ):
        """
        Initialize the manager.

        Args:
            config: Credentials, use case overrides and tracking flag
            router: Pre-built router (defaults to one seeded with config.use_cases)
            tracker: Pre-built tracker (defaults to config.enable_cost_tracking)
            cache: Pre-built response cache
            discovery_config: Discovery table (defaults to DISCOVERY_CONFIG)
        """
        self.config = config if config is not None else ProviderManagerConfig()
        self.router = router if router is not None else UseCaseRouter(self.config.use_cases)
        self.tracker = (
            tracker
            if tracker is not None
            else CostTracker(enabled=self.config.enable_cost_tracking)
        )
        self.cache = cache if cache is not None else ResponseCache()
        self.discovery_config = (
            discovery_config if discovery_config is not None else DISCOVERY_CONFIG
        )
        self.timeouts: dict[str, float] = {**DEFAULT_TIMEOUTS, **self.config.timeouts}

        self.text_providers: ProviderPool[TextGenerationProvider] = ProviderPool("text")
        self.embedding_providers: ProviderPool[EmbeddingProvider] = ProviderPool("embedding")
        self.extraction_providers: ProviderPool[ExtractionProvider] = ProviderPool("extraction")
        self.search_providers: ProviderPool[SearchProvider] = ProviderPool("search")

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register_text_provider(self, name: str, provider: TextGenerationProvider) -> None:
        self.text_providers.register(name, provider)

    def register_embedding_provider(self, name: str, provider: EmbeddingProvider) -> None:
        self.embedding_providers.register(name, provider)

    def register_extraction_provider(self, name: str, provider: ExtractionProvider) -> None:
        self.extraction_providers.register(name, provider)

    def register_search_provider(self, name: str, provider: SearchProvider) -> None:
        self.search_providers.register(name, provider)

    def registered_providers(self) -> dict[str, list[str]]:
        """Registered provider names per capability."""
        return {
            "text": self.text_providers.names(),
            "embedding": self.embedding_providers.names(),
            "extraction": self.extraction_providers.names(),
            "search": self.search_providers.names(),
        }

    # =========================================================================
    # DISPATCH INTERNALS
    # =========================================================================

    def _timeout(self, kind: str, override: float | None) -> float:
        return override if override is not None else self.timeouts[kind]

    async def _call_with_timeout(
        self,
        provider_name: str,
        call: Awaitable[R],
        timeout: float,
    ) -> R:
        """Await call, cancelling it and raising ProviderTimeoutError on expiry."""
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            raise ProviderTimeoutError(provider_name, timeout) from None

    async def _attempt(
        self,
        use_case: UseCase,
        provider_name: str,
        invoke: Callable[[], Awaitable[R]],
        timeout: float,
        model: str | None,
    ) -> R:
        """Run one provider call and track its outcome."""
        start = time.perf_counter()
        try:
            response = await self._call_with_timeout(provider_name, invoke(), timeout)
        except Exception as e:
            latency_ms = _elapsed_ms(start)
            logger.warning(
                f"Provider {provider_name} failed for {use_case.value} "
                f"after {latency_ms:.0f}ms: {_error_message(e)}"
            )
            self.tracker.track(
                use_case,
                provider_name,
                AttemptFailure(model=model or "unknown", latency_ms=latency_ms),
                error=e,
            )
            raise

        self.tracker.track(use_case, provider_name, response)
        logger.debug(
            f"Provider {provider_name} completed {use_case.value}: "
            f"latency={getattr(response, 'latency_ms', 0.0):.0f}ms, "
            f"cost=${getattr(response, 'cost', 0.0):.6f}"
        )
        return response

    async def _dispatch(
        self,
        use_case: UseCase,
        config: UseCaseConfig,
        pool: ProviderPool[P],
        provider_name: str,
        invoke: Callable[[P], Awaitable[R]],
        *,
        timeout: float,
        model: str | None,
        fallback: bool,
    ) -> R:
        """
        Call the primary provider, then walk the fallback chain on failure.

        Args:
            use_case: Use case the call is routed for
            config: Active routing policy of the use case
            pool: Registry of adapters for the operation's capability
            provider_name: Primary provider (call override or config.provider)
            invoke: Builds the provider coroutine for a given adapter
            timeout: Per-attempt timeout in seconds
            model: Requested model, recorded for failed attempts
            fallback: Whether to walk config.fallback_providers on failure

        Raises:
            ProviderNotConfiguredError: Primary missing or unconfigured
            AllProvidersFailed: Primary and every eligible fallback failed
            Exception: The primary's own error when fallback is False
        """
        primary = pool.get_configured(provider_name)
        if primary is None:
            raise ProviderNotConfiguredError(provider_name)

        logger.debug(f"Dispatching {use_case.value} to {provider_name}")
        try:
            return await self._attempt(
                use_case, provider_name, lambda: invoke(primary), timeout, model
            )
        except Exception as e:
            if not fallback:
                raise
            errors = [ProviderError.wrap(provider_name, e)]

        for name in config.fallback_providers:
            if name == provider_name:
                continue
            candidate = pool.get_configured(name)
            if candidate is None:
                logger.debug(f"Skipping fallback {name} for {use_case.value}: not available")
                continue

            logger.info(f"Falling back to {name} for {use_case.value}")
            try:
                return await self._attempt(
                    use_case, name, lambda p=candidate: invoke(p), timeout, model
                )
            except Exception as e:
                errors.append(ProviderError.wrap(name, e))

        logger.error(
            f"All providers failed for {use_case.value}: "
            f"{', '.join(err.provider for err in errors)}"
        )
        raise AllProvidersFailed(use_case, errors)

    def _cache_lookup(
        self,
        operation: str,
        use_case: UseCase,
        payload: Any,
        options: dict[str, Any],
        disable_cache: bool,
    ) -> tuple[str | None, Any]:
        """Return (cache key or None when caching is off, cached value or None)."""
        if disable_cache or not self.router.is_caching_enabled(use_case):
            return None, None

        key = ResponseCache.make_key(operation, use_case, payload, options)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {operation} ({use_case.value})")
        return key, cached

    def _cache_store(self, key: str | None, use_case: UseCase, value: Any) -> None:
        if key is not None:
            self.cache.set(key, value, self.router.get_cache_ttl(use_case))

    @staticmethod
    def _text_options(
        config: UseCaseConfig, overrides: dict[str, Any]
    ) -> TextGenerationOptions:
        values: dict[str, Any] = {
            "model": config.model,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return TextGenerationOptions(**values)

    # =========================================================================
    # TEXT GENERATION
    # =========================================================================

    async def generate(
        self,
        prompt: str,
        use_case: UseCase | str,
        *,
        provider: str | None = None,
        timeout: float | None = None,
        disable_fallback: bool = False,
        disable_cache: bool = False,
        **overrides: Any,
    ) -> TextGenerationResponse:
        """
        Generate text for a prompt.

        Args:
            prompt: Prompt text
            use_case: Use case whose routing policy applies
            provider: Primary provider override
            timeout: Per-attempt timeout in seconds (default 30)
            disable_fallback: Re-raise the primary's error instead of falling back
            disable_cache: Skip cache read and write for this call
            **overrides: TextGenerationOptions fields (model, temperature,
                         max_tokens, top_p, stop, system_prompt, ...)

        Returns:
            TextGenerationResponse from the first provider that succeeded

        Raises:
            ProviderNotConfiguredError: Primary provider missing or unconfigured
            AllProvidersFailed: Primary and every eligible fallback failed
        """
        use_case = resolve_use_case(use_case)
        cache_key, cached = self._cache_lookup(
            "generate", use_case, prompt, {"provider": provider, **overrides}, disable_cache
        )
        if cached is not None:
            return cached

        config = self.router.get_config(use_case)
        options = self._text_options(config, overrides)

        response = await self._dispatch(
            use_case,
            config,
            self.text_providers,
            provider or config.provider,
            lambda p: p.generate(prompt, options),
            timeout=self._timeout("text", timeout),
            model=options.model,
            fallback=not disable_fallback,
        )

        self._cache_store(cache_key, use_case, response)
        return response

    async def chat(
        self,
        messages: list[ChatMessage | dict[str, str]],
        use_case: UseCase | str,
        *,
        provider: str | None = None,
        timeout: float | None = None,
        **overrides: Any,
    ) -> TextGenerationResponse:
        """
        Continue a multi-turn conversation.

        Chat never falls back and is never cached.

        Raises:
            ProviderNotConfiguredError: Provider missing or unconfigured
            ProviderTimeoutError: The call exceeded its timeout
        """
        use_case = resolve_use_case(use_case)
        config = self.router.get_config(use_case)
        options = self._text_options(config, overrides)
        turns = [m if isinstance(m, ChatMessage) else ChatMessage(**m) for m in messages]

        return await self._dispatch(
            use_case,
            config,
            self.text_providers,
            provider or config.provider,
            lambda p: p.chat(turns, options),
            timeout=self._timeout("text", timeout),
            model=options.model,
            fallback=False,
        )

    # =========================================================================
    # EMBEDDINGS
    # =========================================================================

    async def embed(
        self,
        text: str,
        use_case: UseCase | str = UseCase.EMBEDDINGS,
        *,
        provider: str | None = None,
        timeout: float | None = None,
        disable_cache: bool = False,
        **overrides: Any,
    ) -> EmbeddingResponse:
        """
        Embed one text.

        Embeddings never fall back; a model-specific vector space cannot be
        substituted by another provider's vectors.
        """
        use_case = resolve_use_case(use_case)
        cache_key, cached = self._cache_lookup(
            "embed", use_case, text, {"provider": provider, **overrides}, disable_cache
        )
        if cached is not None:
            return cached

        config = self.router.get_config(use_case)
        options = EmbeddingOptions(**{"model": config.model, **overrides})

        response = await self._dispatch(
            use_case,
            config,
            self.embedding_providers,
            provider or config.provider,
            lambda p: p.embed(text, options),
            timeout=self._timeout("embedding", timeout),
            model=options.model,
            fallback=False,
        )

        self._cache_store(cache_key, use_case, response)
        return response

    async def embed_batch(
        self,
        texts: list[str],
        use_case: UseCase | str = UseCase.EMBEDDINGS,
        *,
        provider: str | None = None,
        timeout: float | None = None,
        **overrides: Any,
    ) -> list[EmbeddingResponse]:
        """
        Embed many texts with one provider call.

        One tracked operation is recorded per returned embedding; adapters
        split the batch's cost and latency evenly across the items. A failed
        batch is tracked once and its error re-raised. Not cached, no fallback.
        """
        use_case = resolve_use_case(use_case)
        config = self.router.get_config(use_case)
        provider_name = provider or config.provider

        adapter = self.embedding_providers.get_configured(provider_name)
        if adapter is None:
            raise ProviderNotConfiguredError(provider_name)

        options = EmbeddingOptions(**{"model": config.model, **overrides})
        start = time.perf_counter()
        try:
            responses = await self._call_with_timeout(
                provider_name,
                adapter.embed_batch(texts, options),
                self._timeout("embedding", timeout),
            )
        except Exception as e:
            latency_ms = _elapsed_ms(start)
            logger.warning(
                f"Batch embedding of {len(texts)} texts failed on {provider_name}: "
                f"{_error_message(e)}"
            )
            self.tracker.track(
                use_case,
                provider_name,
                AttemptFailure(model=options.model or "unknown", latency_ms=latency_ms),
                error=e,
            )
            raise

        for response in responses:
            self.tracker.track(use_case, provider_name, response)
        return responses

    # =========================================================================
    # EXTRACTION
    # =========================================================================

    async def extract(
        self,
        content: str,
        schema: dict[str, Any],
        use_case: UseCase | str = UseCase.STRUCTURED_EXTRACTION,
        *,
        provider: str | None = None,
        timeout: float | None = None,
        disable_fallback: bool = False,
        **overrides: Any,
    ) -> ExtractionResponse:
        """
        Extract structured data matching schema from content.

        Falls back like generate(); results are never cached.
        """
        use_case = resolve_use_case(use_case)
        config = self.router.get_config(use_case)

        values: dict[str, Any] = {
            "schema": schema,
            "model": config.model,
            "temperature": config.temperature,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        options = ExtractionOptions(**values)

        return await self._dispatch(
            use_case,
            config,
            self.extraction_providers,
            provider or config.provider,
            lambda p: p.extract(content, options),
            timeout=self._timeout("extraction", timeout),
            model=options.model,
            fallback=not disable_fallback,
        )

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search(
        self,
        query: str,
        use_case: UseCase | str = UseCase.WEB_SEARCH,
        *,
        provider: str | None = None,
        timeout: float | None = None,
        disable_fallback: bool = False,
        disable_cache: bool = False,
        max_results: int = 10,
        filters: dict[str, Any] | None = None,
    ) -> SearchResponse:
        """
        Search with one provider, falling back through the chain on failure.

        Args:
            query: Search query
            use_case: web-search or social-search
            provider: Primary provider override
            timeout: Per-attempt timeout in seconds (15, or 30 for social-search)
            disable_fallback: Re-raise the primary's error instead of falling back
            disable_cache: Skip cache read and write for this call
            max_results: Results requested from the provider
            filters: language, location, date_range and provider-specific keys
        """
        use_case = resolve_use_case(use_case)
        cache_key, cached = self._cache_lookup(
            "search",
            use_case,
            query,
            {"provider": provider, "max_results": max_results, "filters": filters or {}},
            disable_cache,
        )
        if cached is not None:
            return cached

        config = self.router.get_config(use_case)
        options = SearchOptions.from_filters(max_results, filters)
        kind = "social" if use_case == UseCase.SOCIAL_SEARCH else "search"

        response = await self._dispatch(
            use_case,
            config,
            self.search_providers,
            provider or config.provider,
            lambda p: p.search(query, options),
            timeout=self._timeout(kind, timeout),
            model=config.model,
            fallback=not disable_fallback,
        )

        self._cache_store(cache_key, use_case, response)
        return response

    async def search_multiple(
        self,
        query: str,
        discovery_type: DiscoveryType | str = DiscoveryType.SEARCH_ENGINES,
        *,
        max_results_per_provider: int | None = None,
        filters: dict[str, Any] | None = None,
        deduplicate_urls: bool = True,
        enabled_providers: list[str] | None = None,
    ) -> MultipleSearchResponse:
        """
        Query every enabled provider of a discovery type and merge the results.

        Providers are queried strictly one after another in priority order.
        A provider that is unregistered, unconfigured, fails or times out is
        reported in provider_results with success=False and the run carries
        on. Every call is tracked under the web-search use case. All
        providers share the search timeout, social_media included.

        Args:
            query: Query sent to every provider
            discovery_type: search_engines, llm_search or social_media
            max_results_per_provider: Overrides each provider's max_results
            filters: Search filters passed to every provider
            deduplicate_urls: Drop repeated URLs (search_engines only)
            enabled_providers: Narrow the enabled providers to these names
                (an empty list narrows nothing)

        Returns:
            MultipleSearchResponse with merged results and per-provider outcomes

        Raises:
            NoEligibleProvidersError: No enabled provider matches
        """
        discovery_type = DiscoveryType(discovery_type)
        entries = select_discovery_providers(
            discovery_type, enabled_providers, self.discovery_config
        )
        if not entries:
            raise NoEligibleProvidersError(discovery_type)

        timeout = self.timeouts["search"]
        logger.info(
            f"Discovery {discovery_type.value} for '{query}' across "
            f"{[entry.provider for entry in entries]}"
        )

        started = time.perf_counter()
        provider_results: list[ProviderSearchResult] = []
        merged: list[SearchResult] = []
        total_cost = 0.0

        for entry in entries:
            name = entry.provider
            adapter = self.search_providers.get(name)
            if adapter is None:
                provider_results.append(
                    ProviderSearchResult(
                        provider=name, success=False, error=f"Provider {name} not registered"
                    )
                )
                continue
            if not adapter.is_configured():
                provider_results.append(
                    ProviderSearchResult(
                        provider=name, success=False, error=f"Provider {name} not configured"
                    )
                )
                continue

            options = SearchOptions.from_filters(
                max_results_per_provider or entry.max_results, filters
            )
            call_start = time.perf_counter()
            try:
                response = await self._call_with_timeout(
                    name, adapter.search(query, options), timeout
                )
            except Exception as e:
                latency_ms = _elapsed_ms(call_start)
                logger.warning(f"Discovery provider {name} failed: {_error_message(e)}")
                self.tracker.track(
                    UseCase.WEB_SEARCH,
                    name,
                    AttemptFailure(model=name, latency_ms=latency_ms),
                    error=e,
                )
                provider_results.append(
                    ProviderSearchResult(
                        provider=name,
                        success=False,
                        latency_ms=latency_ms,
                        error=_error_message(e),
                    )
                )
                continue

            latency_ms = _elapsed_ms(call_start)
            tagged = tag_source(response.results, name)
            merged.extend(tagged)
            total_cost += response.cost
            self.tracker.track(UseCase.WEB_SEARCH, name, response)

            provider_results.append(
                ProviderSearchResult(
                    provider=name,
                    success=True,
                    results=tagged,
                    total_results=len(tagged),
                    cost=response.cost,
                    latency_ms=latency_ms,
                )
            )
            logger.debug(f"Discovery provider {name} returned {len(tagged)} results")

        deduplicated_count: int | None = None
        if deduplicate_urls:
            deduplicated_count = 0
            if discovery_type == DiscoveryType.SEARCH_ENGINES:
                merged, deduplicated_count = deduplicate_by_url(merged)

        logger.info(
            f"Discovery {discovery_type.value} finished: {len(merged)} results, "
            f"{deduplicated_count or 0} duplicates removed, ${total_cost:.4f}"
        )

        return MultipleSearchResponse(
            query=query,
            discovery_type=discovery_type.value,
            total_results=len(merged),
            provider_results=provider_results,
            results=merged,
            total_cost=total_cost,
            total_latency_ms=_elapsed_ms(started),
            deduplicated_count=deduplicated_count,
        )

    # =========================================================================
    # COST TRACKING AND ADMINISTRATION
    # =========================================================================

    def get_cost_stats(
        self, use_case: UseCase | str | None = None
    ) -> CostStatistics | dict[UseCase, CostStatistics]:
        return self.tracker.get_stats(
            resolve_use_case(use_case) if use_case is not None else None
        )

    def get_performance_metrics(
        self, use_case: UseCase | str | None = None
    ) -> PerformanceMetrics | dict[UseCase, PerformanceMetrics]:
        return self.tracker.get_performance_metrics(
            resolve_use_case(use_case) if use_case is not None else None
        )

    def set_cost_alert(self, alert: CostAlert) -> None:
        self.tracker.set_cost_alert(alert)

    def remove_cost_alert(self, use_case: UseCase | str) -> None:
        self.tracker.remove_cost_alert(resolve_use_case(use_case))

    def generate_cost_report(self, config: CostReportConfig | None = None) -> str:
        return self.tracker.generate_cost_report(config)

    def update_use_case_config(
        self, use_case: UseCase | str, updates: dict[str, Any]
    ) -> UseCaseConfig:
        """Apply a partial routing update; effective for the next call."""
        return self.router.update_config(use_case, updates)

    def get_use_case_config(self, use_case: UseCase | str) -> UseCaseConfig:
        return self.router.get_config(use_case)

    def get_all_use_case_configs(self) -> dict[UseCase, UseCaseConfig]:
        return self.router.get_all_configs()

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Response cache cleared")
