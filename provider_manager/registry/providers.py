"""
Provider Tables

Static per-provider data consulted by adapters and the dispatcher:
- PROVIDER_PRICING: USD per 1K tokens (input/output) by provider and model
- SEARCH_PRICING: USD per query for search providers
- DEFAULT_MODELS: model used by an adapter when none is requested
- DEFAULT_TIMEOUTS: per-operation timeouts in seconds

Pricing changes frequently; update alongside provider announcements.
"""

from pydantic import BaseModel, Field


class ModelPricing(BaseModel):
    """Token pricing for one model."""

    input_per_1k: float = Field(..., ge=0, description="USD per 1K input tokens")
    output_per_1k: float = Field(default=0.0, ge=0, description="USD per 1K output tokens")


PROVIDER_PRICING: dict[str, dict[str, ModelPricing]] = {
    "openai": {
        "gpt-4": ModelPricing(input_per_1k=0.03, output_per_1k=0.06),
        "gpt-4-turbo": ModelPricing(input_per_1k=0.01, output_per_1k=0.03),
        "gpt-4-turbo-preview": ModelPricing(input_per_1k=0.01, output_per_1k=0.03),
        "gpt-4o": ModelPricing(input_per_1k=0.005, output_per_1k=0.015),
        "gpt-3.5-turbo": ModelPricing(input_per_1k=0.0015, output_per_1k=0.002),
        "gpt-3.5-turbo-16k": ModelPricing(input_per_1k=0.003, output_per_1k=0.004),
        "text-embedding-3-small": ModelPricing(input_per_1k=0.00002),
        "text-embedding-3-large": ModelPricing(input_per_1k=0.00013),
        "text-embedding-ada-002": ModelPricing(input_per_1k=0.0001),
    },
    "anthropic": {
        "claude-3-opus-20240229": ModelPricing(input_per_1k=0.015, output_per_1k=0.075),
        "claude-3-sonnet-20240229": ModelPricing(input_per_1k=0.003, output_per_1k=0.015),
        "claude-3-haiku-20240307": ModelPricing(input_per_1k=0.00025, output_per_1k=0.00125),
    },
    "groq": {
        "llama-3.1-8b-instant": ModelPricing(input_per_1k=0.00005, output_per_1k=0.00008),
        "llama-3.3-70b-versatile": ModelPricing(input_per_1k=0.00059, output_per_1k=0.00079),
    },
}


SEARCH_PRICING: dict[str, float] = {
    "serper": 0.001,  # $1 per 1000 queries
    "google": 0.005,  # $5 per 1000 queries
    "brave": 0.001,
}


DEFAULT_MODELS: dict[str, dict[str, str]] = {
    "openai": {
        "text": "gpt-3.5-turbo",
        "chat": "gpt-3.5-turbo",
        "embedding": "text-embedding-3-small",
        "extraction": "gpt-4o",
    },
    "anthropic": {
        "text": "claude-3-haiku-20240307",
        "chat": "claude-3-haiku-20240307",
        "extraction": "claude-3-haiku-20240307",
    },
    "groq": {
        "text": "llama-3.1-8b-instant",
        "chat": "llama-3.1-8b-instant",
    },
}


DEFAULT_TIMEOUTS: dict[str, float] = {
    "text": 30.0,  # completions and chat
    "embedding": 10.0,
    "extraction": 60.0,  # slow with large content
    "search": 15.0,
    "social": 30.0,  # social scraping is slower
}


def get_pricing(provider: str, model: str) -> ModelPricing | None:
    """
    Look up token pricing for a provider/model pair.

    Args:
        provider: Provider name (e.g., "openai")
        model: Model name as sent to the provider API

    Returns:
        ModelPricing if known, None otherwise
    """
    return PROVIDER_PRICING.get(provider, {}).get(model)


def get_default_model(provider: str, capability: str) -> str | None:
    """Return the adapter default model for a provider capability, if any."""
    return DEFAULT_MODELS.get(provider, {}).get(capability)
