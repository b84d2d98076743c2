"""
Provider Pool - Typed registry of adapters for one capability.

The manager keeps one pool per port (text, embedding, extraction,
search). Registering a name that already exists replaces the previous
adapter.
"""

import logging
import threading
from typing import Generic, TypeVar

from provider_manager.dispatcher.ports import Provider

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Provider)


class ProviderPool(Generic[P]):
    """
    Name -> adapter mapping for a single capability.

    Example:
        pool: ProviderPool[TextGenerationProvider] = ProviderPool("text")
        pool.register("openai", OpenAITextAdapter(api_key=...))
        adapter = pool.get_configured("openai")  # None if missing or unconfigured
    """

    def __init__(self, capability: str):
        self.capability = capability
        self._lock = threading.Lock()
        self._providers: dict[str, P] = {}

    def register(self, name: str, provider: P) -> None:
        with self._lock:
            replaced = name in self._providers
            self._providers[name] = provider

        action = "Replaced" if replaced else "Registered"
        logger.info(f"{action} {self.capability} provider: {name}")

    def get(self, name: str) -> P | None:
        with self._lock:
            return self._providers.get(name)

    def get_configured(self, name: str) -> P | None:
        """Return the adapter only if it is registered and reports itself configured."""
        provider = self.get(name)
        if provider is None or not provider.is_configured():
            return None
        return provider

    def is_available(self, name: str) -> bool:
        return self.get_configured(name) is not None

    def names(self) -> list[str]:
        with self._lock:
            return list(self._providers)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)
