"""
Test Fixtures

Shared test data and in-process fake providers for the provider manager
test suite. Fakes record their calls and can be told to fail, hang or
report themselves as unconfigured.
"""

import asyncio

from provider_manager.dispatcher.ports import (
    EmbeddingProvider,
    EmbeddingResponse,
    ExtractionProvider,
    ExtractionResponse,
    SearchProvider,
    SearchResponse,
    SearchResult,
    TextGenerationProvider,
    TextGenerationResponse,
    TokenUsage,
)

# Sample search hits; the serper and google sets share one URL
SERPER_RESULTS = [
    SearchResult(
        title="NYFA Artist Grants",
        url="https://www.nyfa.org/grants",
        snippet="Grants for New York artists",
        domain="www.nyfa.org",
    ),
    SearchResult(
        title="Art Deadline",
        url="https://artdeadline.com/nyc",
        snippet="Open calls in NYC",
        domain="artdeadline.com",
    ),
]

GOOGLE_RESULTS = [
    SearchResult(
        title="NYFA Artist Grants (duplicate)",
        url="https://www.nyfa.org/grants",
        snippet="Grants for New York artists",
        domain="www.nyfa.org",
    ),
    SearchResult(
        title="Creative Capital Awards",
        url="https://creative-capital.org/awards",
        snippet="Awards for innovative artists",
        domain="creative-capital.org",
    ),
]

GRANT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "deadline": {"type": "string"},
        "amount": {"type": "number"},
    },
}

SERPER_PAYLOAD = {
    "searchParameters": {"q": "art grants nyc", "num": 2},
    "organic": [
        {
            "title": "NYFA Artist Grants",
            "link": "https://www.nyfa.org/grants",
            "snippet": "Grants for New York artists",
            "position": 1,
        },
        {
            "title": "Art Deadline",
            "link": "https://artdeadline.com/nyc",
            "snippet": "Open calls in NYC",
            "date": "2 days ago",
            "position": 2,
        },
    ],
}


class FakeProvider:
    """Call recording, failure injection and configuration toggle."""

    def __init__(
        self,
        name: str,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
        configured: bool = True,
        cost: float = 0.001,
        latency_ms: float = 50.0,
    ):
        self.name = name
        self.error = error
        self.delay = delay
        self.configured = configured
        self.cost = cost
        self.latency_ms = latency_ms
        self.calls: list[tuple] = []

    def is_configured(self) -> bool:
        return self.configured

    async def _behave(self, *call) -> None:
        self.calls.append(call)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error


class FakeTextProvider(FakeProvider, TextGenerationProvider):
    def __init__(self, name: str, *, content: str = "generated", **kwargs):
        super().__init__(name, **kwargs)
        self.content = content

    def _response(self, options) -> TextGenerationResponse:
        return TextGenerationResponse(
            content=f"{self.content} by {self.name}",
            model=options.model or "fake-model",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5),
            finish_reason="stop",
            cost=self.cost,
            latency_ms=self.latency_ms,
        )

    async def generate(self, prompt, options):
        await self._behave("generate", prompt, options)
        return self._response(options)

    async def chat(self, messages, options):
        await self._behave("chat", messages, options)
        return self._response(options)


class FakeEmbeddingProvider(FakeProvider, EmbeddingProvider):
    def __init__(self, name: str, *, dimensions: int = 1536, tokens: int = 8, **kwargs):
        super().__init__(name, **kwargs)
        self.dimensions = dimensions
        self.tokens = tokens

    def _response(self, options) -> EmbeddingResponse:
        return EmbeddingResponse(
            embedding=[0.1] * self.dimensions,
            model=options.model or "text-embedding-3-small",
            usage=TokenUsage(prompt_tokens=self.tokens),
            cost=self.cost,
            latency_ms=self.latency_ms,
        )

    async def embed(self, text, options):
        await self._behave("embed", text, options)
        return self._response(options)

    async def embed_batch(self, texts, options):
        await self._behave("embed_batch", texts, options)
        return [self._response(options) for _ in texts]


class FakeExtractionProvider(FakeProvider, ExtractionProvider):
    def __init__(self, name: str, *, data: dict | None = None, **kwargs):
        super().__init__(name, **kwargs)
        self.data = data if data is not None else {"title": "NYFA Artist Grants"}

    async def extract(self, content, options):
        await self._behave("extract", content, options)
        return ExtractionResponse(
            data=dict(self.data),
            model=options.model or "fake-model",
            confidence=0.9,
            usage=TokenUsage(prompt_tokens=40, completion_tokens=12),
            cost=self.cost,
            latency_ms=self.latency_ms,
        )


class FakeSearchProvider(FakeProvider, SearchProvider):
    def __init__(self, name: str, *, results: list[SearchResult] | None = None, **kwargs):
        super().__init__(name, **kwargs)
        self.results = list(results) if results is not None else []

    async def search(self, query, options):
        await self._behave("search", query, options)
        return SearchResponse(
            results=list(self.results[: options.max_results]),
            query=query,
            provider=self.name,
            cost=self.cost,
            latency_ms=self.latency_ms,
        )
