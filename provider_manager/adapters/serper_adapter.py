"""
Serper adapter: Google web search through google.serper.dev.

Serper bills per query, so cost comes from the per-query search pricing
table rather than token usage.
"""

import logging
import time
from typing import Any
from urllib.parse import urlparse

import httpx

from provider_manager.dispatcher.ports import (
    SearchOptions,
    SearchProvider,
    SearchResponse,
    SearchResult,
)
from provider_manager.errors import (
    ProviderError,
    ProviderInvalidResponseError,
    ProviderRateLimitError,
)
from provider_manager.metrics.cost import CostCalculator, get_cost_calculator

logger = logging.getLogger(__name__)

SERPER_SEARCH_URL = "https://google.serper.dev/search"


class SerperSearchAdapter(SearchProvider):
    """
    SearchProvider backed by the Serper API.

    Example:
        adapter = SerperSearchAdapter(api_key="...")
        response = await adapter.search("art grants nyc", SearchOptions(max_results=20))
    """

    name = "serper"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = SERPER_SEARCH_URL,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        calculator: CostCalculator | None = None,
    ):
        """
        Initialize the adapter.

        Args:
            api_key: Serper API key
            base_url: Search endpoint
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (e.g., httpx.MockTransport in tests)
            calculator: Cost calculator for per-query pricing
        """
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport
        self._calculator = calculator or get_cost_calculator()

    def is_configured(self) -> bool:
        return bool(self._api_key)

    @staticmethod
    def _build_payload(query: str, options: SearchOptions) -> dict[str, Any]:
        payload: dict[str, Any] = {"q": query, "num": options.max_results}
        if options.language:
            payload["hl"] = options.language
        if options.location:
            payload["location"] = options.location
        if options.date_range:
            payload["tbs"] = options.date_range  # e.g. "qdr:w" for the past week
        payload.update(options.extra)
        return payload

    @staticmethod
    def _to_result(item: dict[str, Any]) -> SearchResult:
        link = item.get("link")
        domain = urlparse(link).netloc if link else ""
        return SearchResult(
            title=item.get("title", ""),
            url=link,
            snippet=item.get("snippet", ""),
            domain=domain or None,
            published_date=item.get("date"),
            metadata={"position": item.get("position")},
        )

    async def search(self, query: str, options: SearchOptions) -> SearchResponse:
        headers = {"X-API-KEY": self._api_key or "", "Content-Type": "application/json"}
        payload = self._build_payload(query, options)

        start_time = time.perf_counter()
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            try:
                response = await client.post(self._base_url, headers=headers, json=payload)
            except httpx.HTTPError as e:
                logger.error(f"Serper request failed: {e}")
                raise ProviderError(f"Serper request failed: {e}", self.name, e) from e

        latency_ms = (time.perf_counter() - start_time) * 1000

        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise ProviderRateLimitError(
                self.name, float(retry_after) if retry_after and retry_after.isdigit() else None
            )
        if response.status_code in (401, 403):
            raise ProviderError("Serper rejected the API key", self.name)
        if response.is_error:
            raise ProviderError(f"Serper returned HTTP {response.status_code}", self.name)

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderInvalidResponseError(self.name, "body is not JSON", response.text) from e

        organic = body.get("organic") or []
        results = [self._to_result(item) for item in organic[: options.max_results]]

        logger.info(
            f"Serper search: results={len(results)}, latency={latency_ms:.0f}ms"
        )

        return SearchResponse(
            results=results,
            query=query,
            provider=self.name,
            total_results=len(results),
            cost=self._calculator.search_cost(self.name),
            latency_ms=latency_ms,
        )
