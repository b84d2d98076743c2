"""
Groq adapter: fast Llama text generation.

Groq provides fast inference for open-source models like Llama 3.1 over an
OpenAI-compatible chat completions API.
"""

import groq
from groq import AsyncGroq

from provider_manager.adapters.chat_completions import ChatCompletionTextAdapter


class GroqTextAdapter(ChatCompletionTextAdapter):
    """Llama text generation and chat via AsyncGroq."""

    name = "groq"
    rate_limit_error = groq.RateLimitError
    api_error = groq.APIError

    def _create_client(self) -> AsyncGroq:
        return AsyncGroq(**self._client_kwargs())
