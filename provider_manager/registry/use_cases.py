"""
Use Case Registry

Defines the fixed set of use cases the manager routes for and the default
routing policy of each one:
- query-enhancement / rag-qa: cheap, fast text generation (GPT-3.5)
- semantic-analysis: quality text generation (GPT-4)
- structured-extraction: low-temperature extraction (Claude 3 Haiku)
- embeddings: vector embeddings (text-embedding-3-small)
- web-search / social-search: search providers with ordered fallbacks

Each UseCaseConfig names a primary provider, optional model parameters,
an ordered fallback chain and the caching policy for idempotent results.
Hosts may override any field per use case at construction time or later
through UseCaseRouter.update_config().
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UseCase(str, Enum):
    """Static categories of work, each with its own routing policy."""

    QUERY_ENHANCEMENT = "query-enhancement"  # Fast search query rewriting
    SEMANTIC_ANALYSIS = "semantic-analysis"  # High-quality analysis
    STRUCTURED_EXTRACTION = "structured-extraction"  # Schema-driven extraction
    RAG_QA = "rag-qa"  # Retrieval-augmented answering
    EMBEDDINGS = "embeddings"  # Vector embeddings
    WEB_SEARCH = "web-search"  # Web search and discovery
    SOCIAL_SEARCH = "social-search"  # Social platform search


class Priority(str, Enum):
    """Optimization target recorded with each use case."""

    SPEED = "speed"
    QUALITY = "quality"
    COST = "cost"
    BALANCE = "balance"


class UseCaseConfig(BaseModel):
    """
    Routing policy for a single use case.

    The fallback chain is only walked after the primary provider was
    attempted and failed; a missing or unconfigured primary fails fast.
    """

    model_config = ConfigDict(extra="forbid", use_enum_values=False)

    provider: str = Field(
        ...,
        min_length=1,
        description="Primary provider name",
    )

    model: str | None = Field(
        default=None,
        description="Model to request (provider default when omitted)",
    )

    temperature: float | None = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for text generation",
    )

    max_tokens: int | None = Field(
        default=None,
        gt=0,
        description="Maximum tokens to generate",
    )

    priority: Priority = Field(
        default=Priority.BALANCE,
        description="Optimization target (speed, quality, cost, balance)",
    )

    fallback_providers: list[str] = Field(
        default_factory=list,
        description="Providers tried in order after the primary fails",
    )

    enable_caching: bool = Field(
        default=False,
        description="Cache idempotent results for this use case",
    )

    cache_ttl: int | None = Field(
        default=None,
        gt=0,
        description="Cache time-to-live in seconds",
    )


DEFAULT_CACHE_TTL = 300  # seconds


DEFAULT_USE_CASE_CONFIG: dict[UseCase, UseCaseConfig] = {
    UseCase.QUERY_ENHANCEMENT: UseCaseConfig(
        provider="openai",
        model="gpt-3.5-turbo",
        temperature=0.7,
        max_tokens=200,
        priority=Priority.SPEED,
        fallback_providers=["anthropic"],
        enable_caching=True,
        cache_ttl=300,
    ),
    UseCase.SEMANTIC_ANALYSIS: UseCaseConfig(
        provider="openai",
        model="gpt-4",
        temperature=0.7,
        max_tokens=500,
        priority=Priority.QUALITY,
        fallback_providers=["anthropic"],
        enable_caching=True,
        cache_ttl=600,
    ),
    UseCase.STRUCTURED_EXTRACTION: UseCaseConfig(
        provider="anthropic",
        model="claude-3-haiku-20240307",
        temperature=0.1,  # Low for consistency
        max_tokens=4000,
        priority=Priority.COST,
        fallback_providers=["openai"],
        enable_caching=False,  # Each extraction is unique
    ),
    UseCase.RAG_QA: UseCaseConfig(
        provider="openai",
        model="gpt-3.5-turbo",
        temperature=0.7,
        max_tokens=1000,
        priority=Priority.BALANCE,
        fallback_providers=["anthropic"],
        enable_caching=True,
        cache_ttl=300,
    ),
    UseCase.EMBEDDINGS: UseCaseConfig(
        provider="openai",
        model="text-embedding-3-small",
        priority=Priority.SPEED,
        fallback_providers=[],
        enable_caching=True,
        cache_ttl=3600,  # Embeddings are stable
    ),
    UseCase.WEB_SEARCH: UseCaseConfig(
        provider="serper",
        priority=Priority.BALANCE,
        fallback_providers=["google", "brave"],
        enable_caching=True,
        cache_ttl=1800,
    ),
    UseCase.SOCIAL_SEARCH: UseCaseConfig(
        provider="instagram",
        priority=Priority.BALANCE,
        fallback_providers=["linkedin"],
        enable_caching=True,
        cache_ttl=3600,
    ),
}


def get_default_config(use_case: UseCase) -> UseCaseConfig:
    """
    Return a fresh copy of the default config for a use case.

    Args:
        use_case: The use case to look up

    Returns:
        Deep copy of the compiled-in default UseCaseConfig
    """
    return DEFAULT_USE_CASE_CONFIG[use_case].model_copy(deep=True)
