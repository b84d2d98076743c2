"""
OpenAI adapters: text generation, embeddings and structured extraction.

All three share one lazily created AsyncOpenAI client per adapter and fill
in cost from the pricing table. Register them with the manager under the
name "openai":

    manager.register_text_provider("openai", OpenAITextAdapter(api_key))
    manager.register_embedding_provider("openai", OpenAIEmbeddingAdapter(api_key))
    manager.register_extraction_provider("openai", OpenAIExtractionAdapter(api_key))
"""

import json
import logging
import time
from typing import Any

import openai
from openai import AsyncOpenAI

from provider_manager.adapters.chat_completions import (
    ChatCompletionTextAdapter,
    SDKClientMixin,
    usage_from_completion,
)
from provider_manager.adapters.parsing import clamp_confidence, parse_json_payload
from provider_manager.dispatcher.ports import (
    EmbeddingOptions,
    EmbeddingProvider,
    EmbeddingResponse,
    ExtractionOptions,
    ExtractionProvider,
    ExtractionResponse,
    TokenUsage,
)
from provider_manager.errors import ProviderInvalidResponseError
from provider_manager.registry.providers import get_default_model
from provider_manager.utils import split_evenly

logger = logging.getLogger(__name__)


class OpenAIClientMixin(SDKClientMixin):
    """Lazy AsyncOpenAI client and OpenAI error mapping."""

    name = "openai"
    rate_limit_error = openai.RateLimitError
    api_error = openai.APIError

    def _create_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(**self._client_kwargs())


class OpenAITextAdapter(OpenAIClientMixin, ChatCompletionTextAdapter):
    """GPT text generation and chat."""


class OpenAIEmbeddingAdapter(OpenAIClientMixin, EmbeddingProvider):
    """OpenAI embeddings (text-embedding-3-small by default)."""

    async def embed(self, text: str, options: EmbeddingOptions) -> EmbeddingResponse:
        responses = await self.embed_batch([text], options)
        return responses[0]

    async def embed_batch(
        self, texts: list[str], options: EmbeddingOptions
    ) -> list[EmbeddingResponse]:
        """
        Embed texts with one API call.

        The call's cost, latency and prompt tokens are split evenly across
        the returned embeddings, which come back in input order.
        """
        if not texts:
            return []

        model = options.model or get_default_model(self.name, "embedding")
        params: dict[str, Any] = {"model": model, "input": texts}
        if options.dimensions:
            params["dimensions"] = options.dimensions

        start_time = time.perf_counter()
        try:
            response = await self.client.embeddings.create(**params)
        except self.api_error as e:
            raise self._translate_error(e) from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        prompt_tokens = response.usage.prompt_tokens if response.usage else 0
        total_cost = self._calculator.calculate(self.name, model, prompt_tokens).total_cost_usd

        items = sorted(response.data, key=lambda item: item.index)
        if len(items) != len(texts):
            raise ProviderInvalidResponseError(
                self.name, f"expected {len(texts)} embeddings, got {len(items)}"
            )

        count = len(items)
        base_tokens, remainder = divmod(prompt_tokens, count)

        logger.info(
            f"openai embeddings: model={model}, items={count}, "
            f"latency={latency_ms:.0f}ms, tokens={prompt_tokens}"
        )

        return [
            EmbeddingResponse(
                embedding=list(item.embedding),
                model=model,
                dimensions=len(item.embedding),
                usage=TokenUsage(prompt_tokens=base_tokens + (1 if i < remainder else 0)),
                cost=split_evenly(total_cost, count),
                latency_ms=split_evenly(latency_ms, count),
            )
            for i, item in enumerate(items)
        ]


EXTRACTION_SYSTEM_PROMPT = (
    "You extract structured data from content. Respond with a single JSON object "
    'of the form {"data": <object matching the schema>, "confidence": <number 0-1>, '
    '"reasoning": <short explanation>}. Use null for fields the content does not '
    "support. Do not invent values."
)


class OpenAIExtractionAdapter(OpenAIClientMixin, ExtractionProvider):
    """Schema-driven extraction using JSON mode."""

    def _build_messages(self, content: str, options: ExtractionOptions) -> list[dict[str, str]]:
        system_prompt = options.system_prompt or EXTRACTION_SYSTEM_PROMPT
        messages = [
            {
                "role": "system",
                "content": f"{system_prompt}\n\nSchema:\n{json.dumps(options.schema, indent=2)}",
            }
        ]
        for example in options.examples or []:
            messages.append({"role": "user", "content": str(example.get("input", ""))})
            messages.append(
                {
                    "role": "assistant",
                    "content": json.dumps({"data": example.get("output", {}), "confidence": 1.0}),
                }
            )
        messages.append({"role": "user", "content": content})
        return messages

    async def extract(self, content: str, options: ExtractionOptions) -> ExtractionResponse:
        model = options.model or get_default_model(self.name, "extraction")
        params: dict[str, Any] = {
            "model": model,
            "messages": self._build_messages(content, options),
            "response_format": {"type": "json_object"},
        }
        if options.temperature is not None:
            params["temperature"] = options.temperature

        start_time = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(**params)
        except self.api_error as e:
            raise self._translate_error(e) from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        response_text = response.choices[0].message.content
        parsed = parse_json_payload(response_text)
        if parsed is None:
            raise ProviderInvalidResponseError(
                self.name, "extraction output is not a JSON object", response_text
            )

        # Models sometimes skip the envelope and return the data directly
        envelope = isinstance(parsed.get("data"), dict)
        data = parsed["data"] if envelope else parsed
        usage = usage_from_completion(response.usage)
        cost = self._calculator.calculate(
            self.name, model, usage.prompt_tokens, usage.completion_tokens
        ).total_cost_usd

        logger.info(
            f"openai extraction: model={model}, latency={latency_ms:.0f}ms, "
            f"fields={len(data)}"
        )

        return ExtractionResponse(
            data=data,
            model=model,
            confidence=clamp_confidence(parsed.get("confidence")) if envelope else 0.5,
            reasoning=parsed.get("reasoning") if envelope else None,
            usage=usage,
            cost=cost,
            latency_ms=latency_ms,
        )
