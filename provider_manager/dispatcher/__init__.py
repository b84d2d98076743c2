"""
Dispatcher module: Provider ports, registries and the ProviderManager.

This module provides a unified interface for dispatching work to AI and
search providers. Adapters implement the capability ports; the manager
routes each call by use case, races it against a timeout, falls back
through the configured chain and tracks every attempt.

Key exports:
- TextGenerationProvider / EmbeddingProvider / ExtractionProvider /
  SearchProvider: capability ports implemented by adapters
- Option and response dataclasses exchanged with adapters
- ProviderPool: typed name -> adapter registry
- deduplicate_by_url() / tag_source(): discovery merge helpers

The ProviderManager itself lives in provider_manager.dispatcher.manager.
"""

from provider_manager.dispatcher.ports import (
    # Shared types
    ChatMessage,
    TokenUsage,
    # Options
    EmbeddingOptions,
    ExtractionOptions,
    SearchOptions,
    TextGenerationOptions,
    # Responses
    EmbeddingResponse,
    ExtractionResponse,
    SearchResponse,
    SearchResult,
    TextGenerationResponse,
    # Ports
    EmbeddingProvider,
    ExtractionProvider,
    Provider,
    SearchProvider,
    TextGenerationProvider,
)
from provider_manager.dispatcher.pool import ProviderPool
from provider_manager.dispatcher.discovery import deduplicate_by_url, tag_source

__all__ = [
    # Shared types
    "ChatMessage",
    "TokenUsage",
    # Options
    "TextGenerationOptions",
    "EmbeddingOptions",
    "ExtractionOptions",
    "SearchOptions",
    # Responses
    "TextGenerationResponse",
    "EmbeddingResponse",
    "ExtractionResponse",
    "SearchResult",
    "SearchResponse",
    # Ports
    "Provider",
    "TextGenerationProvider",
    "EmbeddingProvider",
    "ExtractionProvider",
    "SearchProvider",
    # Registry and helpers
    "ProviderPool",
    "deduplicate_by_url",
    "tag_source",
]
