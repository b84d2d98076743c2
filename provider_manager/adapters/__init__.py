"""
Adapters module: Reference provider implementations.

This module contains:
- chat_completions.py: Shared OpenAI-compatible text generation
- openai_adapter.py: OpenAI text, embeddings and extraction (AsyncOpenAI)
- anthropic_adapter.py: Claude text and extraction (AsyncAnthropic)
- groq_adapter.py: Groq Llama text generation (AsyncGroq)
- serper_adapter.py: Serper web search (httpx)
- parsing.py: JSON extraction from model output

Each adapter implements one of the ports in provider_manager.dispatcher.ports
and reports cost from the pricing table.
"""

from provider_manager.adapters.anthropic_adapter import (
    AnthropicExtractionAdapter,
    AnthropicTextAdapter,
)
from provider_manager.adapters.groq_adapter import GroqTextAdapter
from provider_manager.adapters.openai_adapter import (
    OpenAIEmbeddingAdapter,
    OpenAIExtractionAdapter,
    OpenAITextAdapter,
)
from provider_manager.adapters.parsing import parse_json_payload
from provider_manager.adapters.serper_adapter import SerperSearchAdapter

__all__ = [
    "OpenAITextAdapter",
    "OpenAIEmbeddingAdapter",
    "OpenAIExtractionAdapter",
    "AnthropicTextAdapter",
    "AnthropicExtractionAdapter",
    "GroqTextAdapter",
    "SerperSearchAdapter",
    "parse_json_payload",
]
