"""
Shared text generation over OpenAI-compatible chat completion APIs.

OpenAI and Groq expose the same chat.completions.create() surface through
their async SDKs (AsyncOpenAI, AsyncGroq). ChatCompletionTextAdapter
implements the TextGenerationProvider port once; subclasses only say how
to build their SDK client and which SDK exceptions mean rate limiting.
"""

import logging
import time
from typing import Any

from provider_manager.dispatcher.ports import (
    ChatMessage,
    TextGenerationOptions,
    TextGenerationProvider,
    TextGenerationResponse,
    TokenUsage,
)
from provider_manager.errors import ProviderError, ProviderRateLimitError
from provider_manager.metrics.cost import CostCalculator, get_cost_calculator
from provider_manager.registry.providers import get_default_model

logger = logging.getLogger(__name__)


def usage_from_completion(usage: Any) -> TokenUsage:
    """Convert an SDK usage object (possibly None) to TokenUsage."""
    if usage is None:
        return TokenUsage()
    return TokenUsage(
        prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        total_tokens=getattr(usage, "total_tokens", 0) or 0,
    )


def retry_after_seconds(error: Exception) -> float | None:
    """Read the Retry-After header from an SDK status error, if present."""
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None) or {}
    value = headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class SDKClientMixin:
    """
    Lazy SDK client shared by adapters of one vendor.

    Clients are created on first use to avoid initialization errors
    when API keys are not configured for unused providers.
    """

    name = "provider"

    #: SDK exception raised on HTTP 429
    rate_limit_error: type[Exception] = Exception
    #: Base class of SDK API errors
    api_error: type[Exception] = Exception

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int = 2,
        client: Any = None,
        calculator: CostCalculator | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._client = client
        self._calculator = calculator or get_cost_calculator()

    @classmethod
    def from_credentials(cls, credentials: Any, **kwargs: Any):
        """Build the adapter from a ProviderCredentials entry."""
        api_key = credentials.api_key.get_secret_value() if credentials.api_key else None
        return cls(
            api_key,
            base_url=credentials.base_url,
            timeout=credentials.timeout,
            max_retries=credentials.max_retries,
            **kwargs,
        )

    def is_configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "api_key": self._api_key,
            "max_retries": self._max_retries,
        }
        if self._base_url:
            kwargs["base_url"] = self._base_url
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        return kwargs

    def _create_client(self) -> Any:
        raise NotImplementedError

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
            logger.debug(f"Initialized {self.name} client")
        return self._client

    def _translate_error(self, error: Exception) -> ProviderError:
        if isinstance(error, self.rate_limit_error):
            return ProviderRateLimitError(self.name, retry_after_seconds(error))
        return ProviderError(f"{self.name} API error: {error}", self.name, error)


class ChatCompletionTextAdapter(SDKClientMixin, TextGenerationProvider):
    """TextGenerationProvider over an OpenAI-compatible chat completions API."""

    async def generate(
        self, prompt: str, options: TextGenerationOptions
    ) -> TextGenerationResponse:
        messages: list[dict[str, str]] = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})
        return await self._complete(messages, options)

    async def chat(
        self, messages: list[ChatMessage], options: TextGenerationOptions
    ) -> TextGenerationResponse:
        payload = [message.to_dict() for message in messages]
        if options.system_prompt and not (payload and payload[0]["role"] == "system"):
            payload.insert(0, {"role": "system", "content": options.system_prompt})
        return await self._complete(payload, options)

    async def _complete(
        self,
        messages: list[dict[str, str]],
        options: TextGenerationOptions,
    ) -> TextGenerationResponse:
        model = options.model or get_default_model(self.name, "text")
        params: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "top_p": options.top_p,
            "frequency_penalty": options.frequency_penalty,
            "presence_penalty": options.presence_penalty,
            "stop": options.stop,
        }
        params = {key: value for key, value in params.items() if value is not None}

        start_time = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(**params)
        except self.api_error as e:
            raise self._translate_error(e) from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        choice = response.choices[0]
        usage = usage_from_completion(response.usage)
        cost = self._calculator.calculate(
            self.name, model, usage.prompt_tokens, usage.completion_tokens
        ).total_cost_usd

        logger.info(
            f"{self.name} completion: model={model}, latency={latency_ms:.0f}ms, "
            f"tokens={usage.total_tokens}"
        )

        return TextGenerationResponse(
            content=choice.message.content or "",
            model=model,
            usage=usage,
            finish_reason=choice.finish_reason,
            cost=cost,
            latency_ms=latency_ms,
        )
