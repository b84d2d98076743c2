"""
Provider Ports - Capability interfaces implemented by adapters.

The manager never talks to a vendor SDK directly. Hosts register adapters
that satisfy one or more of these abstract interfaces:
- TextGenerationProvider: single-prompt completion and multi-turn chat
- EmbeddingProvider: single and batched vector embeddings
- ExtractionProvider: schema-driven structured extraction
- SearchProvider: web or social search

Every response carries the cost (USD) and latency (ms) the adapter
measured so the CostTracker can account for it. A single adapter object
may implement several ports and be registered once per capability.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal


# =============================================================================
# SHARED TYPES
# =============================================================================


@dataclass
class TokenUsage:
    """
    Token usage reported by a provider.

    Used for cost calculation against the provider pricing table.
    """

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __post_init__(self) -> None:
        if not self.total_tokens:
            self.total_tokens = self.prompt_tokens + self.completion_tokens


@dataclass
class ChatMessage:
    """One turn of a chat conversation."""

    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


# =============================================================================
# OPTIONS
# =============================================================================


@dataclass
class TextGenerationOptions:
    """Per-call parameters for generate() and chat()."""

    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop: list[str] | None = None
    system_prompt: str | None = None


@dataclass
class EmbeddingOptions:
    """Per-call parameters for embed() and embed_batch()."""

    model: str | None = None
    dimensions: int | None = None


@dataclass
class ExtractionOptions:
    """
    Per-call parameters for extract().

    Attributes:
        schema: JSON-schema-like description of the expected output
        model: Model override
        temperature: Sampling temperature (low values keep output stable)
        examples: Few-shot examples of input content and expected data
        system_prompt: Instructions prepended to the extraction prompt
    """

    schema: dict[str, Any] = field(default_factory=dict)
    model: str | None = None
    temperature: float | None = None
    examples: list[dict[str, Any]] | None = None
    system_prompt: str | None = None


@dataclass
class SearchOptions:
    """
    Per-call parameters for search().

    Unknown filter keys are kept in extra and passed to the adapter
    untouched.
    """

    max_results: int = 10
    language: str | None = None
    location: str | None = None
    date_range: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_filters(
        cls,
        max_results: int,
        filters: dict[str, Any] | None = None,
    ) -> "SearchOptions":
        """Build options from a loose filter mapping."""
        filters = dict(filters or {})
        return cls(
            max_results=max_results,
            language=filters.pop("language", None),
            location=filters.pop("location", None),
            date_range=filters.pop("date_range", None),
            extra=filters,
        )


# =============================================================================
# RESPONSES
# =============================================================================


@dataclass
class TextGenerationResponse:
    """
    Result of generate() or chat().

    Attributes:
        content: Generated text
        model: Model that produced the text
        usage: Token usage for cost calculation
        finish_reason: Provider stop reason (e.g., "stop", "length")
        cost: Cost of the call in USD
        latency_ms: Provider call time in milliseconds
    """

    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str | None = None
    cost: float = 0.0
    latency_ms: float = 0.0


@dataclass
class EmbeddingResponse:
    """Vector embedding of one input text."""

    embedding: list[float]
    model: str
    dimensions: int = 0
    usage: TokenUsage = field(default_factory=TokenUsage)
    cost: float = 0.0
    latency_ms: float = 0.0

    def __post_init__(self) -> None:
        if not self.dimensions:
            self.dimensions = len(self.embedding)


@dataclass
class ExtractionResponse:
    """
    Structured data extracted from content.

    confidence is the provider's self-assessed certainty in [0, 1].
    """

    data: dict[str, Any]
    model: str
    confidence: float = 1.0
    reasoning: str | None = None
    usage: TokenUsage = field(default_factory=TokenUsage)
    cost: float = 0.0
    latency_ms: float = 0.0


@dataclass
class SearchResult:
    """
    One search hit.

    source is set by the manager during discovery to the name of the
    provider that returned the hit.
    """

    title: str
    url: str | None = None
    snippet: str = ""
    domain: str | None = None
    published_date: str | None = None
    relevance_score: float | None = None
    source: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchResponse:
    """Results of one search() call."""

    results: list[SearchResult]
    query: str
    provider: str
    total_results: int = 0
    cost: float = 0.0
    latency_ms: float = 0.0
    model: str | None = None

    def __post_init__(self) -> None:
        if not self.total_results:
            self.total_results = len(self.results)


# =============================================================================
# PORTS
# =============================================================================


class Provider(ABC):
    """Common surface of every adapter."""

    name: str = "provider"

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the adapter has the credentials it needs to be called."""


class TextGenerationProvider(Provider):
    """Text completion and chat."""

    @abstractmethod
    async def generate(
        self, prompt: str, options: TextGenerationOptions
    ) -> TextGenerationResponse: ...

    @abstractmethod
    async def chat(
        self, messages: list[ChatMessage], options: TextGenerationOptions
    ) -> TextGenerationResponse: ...


class EmbeddingProvider(Provider):
    """
    Vector embeddings.

    embed_batch() returns one response per input text, in input order.
    Implementations split the batch's total cost and latency evenly
    across the returned items.
    """

    @abstractmethod
    async def embed(self, text: str, options: EmbeddingOptions) -> EmbeddingResponse: ...

    @abstractmethod
    async def embed_batch(
        self, texts: list[str], options: EmbeddingOptions
    ) -> list[EmbeddingResponse]: ...


class ExtractionProvider(Provider):
    """Schema-driven structured extraction."""

    @abstractmethod
    async def extract(
        self, content: str, options: ExtractionOptions
    ) -> ExtractionResponse: ...


class SearchProvider(Provider):
    """Web or social search."""

    @abstractmethod
    async def search(self, query: str, options: SearchOptions) -> SearchResponse: ...
