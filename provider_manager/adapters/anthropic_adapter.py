"""
Anthropic adapters: Claude text generation and structured extraction.

Claude serves as the primary extraction provider and the fallback for
several text use cases. Both adapters share one lazily created
AsyncAnthropic client and talk to the Messages API, which takes the
system prompt as a separate parameter and requires max_tokens:

    manager.register_text_provider("anthropic", AnthropicTextAdapter(api_key))
    manager.register_extraction_provider("anthropic", AnthropicExtractionAdapter(api_key))
"""

import json
import logging
import time
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from provider_manager.adapters.chat_completions import SDKClientMixin
from provider_manager.adapters.openai_adapter import EXTRACTION_SYSTEM_PROMPT
from provider_manager.adapters.parsing import clamp_confidence, parse_json_payload
from provider_manager.dispatcher.ports import (
    ChatMessage,
    ExtractionOptions,
    ExtractionProvider,
    ExtractionResponse,
    TextGenerationOptions,
    TextGenerationProvider,
    TextGenerationResponse,
    TokenUsage,
)
from provider_manager.errors import ProviderInvalidResponseError
from provider_manager.registry.providers import get_default_model

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1000
EXTRACTION_MAX_TOKENS = 4000

# Messages API stop reasons mapped to the chat completions vocabulary
STOP_REASONS = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
}


def usage_from_message(usage: Any) -> TokenUsage:
    """Convert Messages API usage (input/output tokens) to TokenUsage."""
    if usage is None:
        return TokenUsage()
    prompt_tokens = getattr(usage, "input_tokens", 0) or 0
    completion_tokens = getattr(usage, "output_tokens", 0) or 0
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )


def message_text(response: Any) -> str:
    """Join the text blocks of a Messages API response."""
    return "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    )


class AnthropicClientMixin(SDKClientMixin):
    """Lazy AsyncAnthropic client and Anthropic error mapping."""

    name = "anthropic"
    rate_limit_error = anthropic.RateLimitError
    api_error = anthropic.APIError

    def _create_client(self) -> AsyncAnthropic:
        return AsyncAnthropic(**self._client_kwargs())

    async def _create_message(self, params: dict[str, Any]) -> tuple[Any, float]:
        start_time = time.perf_counter()
        try:
            response = await self.client.messages.create(**params)
        except self.api_error as e:
            raise self._translate_error(e) from e
        return response, (time.perf_counter() - start_time) * 1000


class AnthropicTextAdapter(AnthropicClientMixin, TextGenerationProvider):
    """Claude text generation and chat."""

    async def generate(
        self, prompt: str, options: TextGenerationOptions
    ) -> TextGenerationResponse:
        return await self._complete(
            [{"role": "user", "content": prompt}], options.system_prompt, options
        )

    async def chat(
        self, messages: list[ChatMessage], options: TextGenerationOptions
    ) -> TextGenerationResponse:
        # System turns go to the system parameter; the rest keep their order
        system_parts = [m.content for m in messages if m.role == "system"]
        if not system_parts and options.system_prompt:
            system_parts = [options.system_prompt]
        payload = [m.to_dict() for m in messages if m.role != "system"]
        return await self._complete(payload, "\n\n".join(system_parts) or None, options)

    async def _complete(
        self,
        messages: list[dict[str, str]],
        system: str | None,
        options: TextGenerationOptions,
    ) -> TextGenerationResponse:
        model = options.model or get_default_model(self.name, "text")
        params: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": options.max_tokens or DEFAULT_MAX_TOKENS,
            "system": system,
            "temperature": options.temperature,
            "top_p": options.top_p,
            "stop_sequences": options.stop,
        }
        params = {key: value for key, value in params.items() if value is not None}

        response, latency_ms = await self._create_message(params)
        usage = usage_from_message(response.usage)
        cost = self._calculator.calculate(
            self.name, model, usage.prompt_tokens, usage.completion_tokens
        ).total_cost_usd

        logger.info(
            f"anthropic completion: model={model}, latency={latency_ms:.0f}ms, "
            f"tokens={usage.total_tokens}"
        )

        return TextGenerationResponse(
            content=message_text(response),
            model=model,
            usage=usage,
            finish_reason=STOP_REASONS.get(response.stop_reason, response.stop_reason),
            cost=cost,
            latency_ms=latency_ms,
        )


class AnthropicExtractionAdapter(AnthropicClientMixin, ExtractionProvider):
    """Schema-driven extraction with Claude (claude-3-haiku by default)."""

    def _build_request(
        self, content: str, options: ExtractionOptions
    ) -> tuple[str, list[dict[str, str]]]:
        system_prompt = options.system_prompt or EXTRACTION_SYSTEM_PROMPT
        system = f"{system_prompt}\n\nSchema:\n{json.dumps(options.schema, indent=2)}"
        messages = []
        for example in options.examples or []:
            messages.append({"role": "user", "content": str(example.get("input", ""))})
            messages.append(
                {
                    "role": "assistant",
                    "content": json.dumps({"data": example.get("output", {}), "confidence": 1.0}),
                }
            )
        messages.append({"role": "user", "content": content})
        return system, messages

    async def extract(self, content: str, options: ExtractionOptions) -> ExtractionResponse:
        model = options.model or get_default_model(self.name, "extraction")
        system, messages = self._build_request(content, options)
        params: dict[str, Any] = {
            "model": model,
            "system": system,
            "messages": messages,
            "max_tokens": EXTRACTION_MAX_TOKENS,
        }
        if options.temperature is not None:
            params["temperature"] = options.temperature

        response, latency_ms = await self._create_message(params)
        response_text = message_text(response)
        parsed = parse_json_payload(response_text)
        if parsed is None:
            raise ProviderInvalidResponseError(
                self.name, "extraction output is not a JSON object", response_text
            )

        envelope = isinstance(parsed.get("data"), dict)
        data = parsed["data"] if envelope else parsed
        usage = usage_from_message(response.usage)
        cost = self._calculator.calculate(
            self.name, model, usage.prompt_tokens, usage.completion_tokens
        ).total_cost_usd

        logger.info(
            f"anthropic extraction: model={model}, latency={latency_ms:.0f}ms, "
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
