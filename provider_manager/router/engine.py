"""
Router Engine - Use-case routing policy.

Maps each UseCase to its active UseCaseConfig: which provider is primary,
which model and sampling parameters to use, the ordered fallback chain and
the caching policy.

Configs are seeded from DEFAULT_USE_CASE_CONFIG, optionally overridden at
construction time, and can be updated at runtime. Updates take effect for
the next call routed for that use case; last write wins.
"""

import logging
import threading
from typing import Any

from pydantic import ValidationError

from provider_manager.errors import UnknownUseCaseError
from provider_manager.registry.use_cases import (
    DEFAULT_CACHE_TTL,
    DEFAULT_USE_CASE_CONFIG,
    UseCase,
    UseCaseConfig,
)

logger = logging.getLogger(__name__)


def resolve_use_case(use_case: UseCase | str) -> UseCase:
    """
    Normalize a use case given as enum member or its string value.

    Raises:
        UnknownUseCaseError: If the value names no known use case
    """
    if isinstance(use_case, UseCase):
        return use_case
    try:
        return UseCase(use_case)
    except ValueError:
        raise UnknownUseCaseError(use_case) from None


class UseCaseRouter:
    """
    Holds exactly one active config per use case.

    Readers always receive copies, so mutating a returned config never
    changes routing. The config map is replaced under a lock on update.

    Usage:
        router = UseCaseRouter({"rag-qa": {"provider": "groq"}})
        router.get_provider(UseCase.RAG_QA)  # "groq"
        router.update_config(UseCase.RAG_QA, {"fallback_providers": ["openai"]})
    """

    def __init__(
        self,
        overrides: dict[UseCase | str, dict[str, Any]] | None = None,
    ):
        """
        Initialize the router.

        Args:
            overrides: Optional per-use-case partial configs merged over
                       the compiled-in defaults.

        Raises:
            UnknownUseCaseError: If an override names an unknown use case
            pydantic.ValidationError: If a merged override is invalid
        """
        self._lock = threading.Lock()
        self._configs: dict[UseCase, UseCaseConfig] = {
            use_case: config.model_copy(deep=True)
            for use_case, config in DEFAULT_USE_CASE_CONFIG.items()
        }

        for use_case, patch in (overrides or {}).items():
            self.update_config(use_case, patch)

    def get_config(self, use_case: UseCase | str) -> UseCaseConfig:
        """
        Return a copy of the active config for a use case.

        Raises:
            UnknownUseCaseError: If the use case has no configuration
        """
        key = resolve_use_case(use_case)
        with self._lock:
            config = self._configs.get(key)
        if config is None:
            raise UnknownUseCaseError(use_case)
        return config.model_copy(deep=True)

    def update_config(
        self,
        use_case: UseCase | str,
        updates: dict[str, Any] | UseCaseConfig,
    ) -> UseCaseConfig:
        """
        Shallow-merge updates onto the current config.

        The merged result is re-validated before it replaces the active
        config, so an invalid update leaves routing unchanged.

        Args:
            use_case: Use case to update
            updates: Partial config fields, or a full UseCaseConfig

        Returns:
            Copy of the new active config

        Raises:
            UnknownUseCaseError: If the use case is unknown
            pydantic.ValidationError: If the merged config is invalid
        """
        key = resolve_use_case(use_case)
        if isinstance(updates, UseCaseConfig):
            updates = updates.model_dump(exclude_unset=True)

        with self._lock:
            current = self._configs.get(key)
            if current is None:
                raise UnknownUseCaseError(use_case)
            try:
                merged = UseCaseConfig.model_validate({**current.model_dump(), **updates})
            except ValidationError:
                logger.warning(f"Rejected invalid config update for {key.value}: {updates}")
                raise
            self._configs[key] = merged

        logger.info(f"Updated config for {key.value}: {sorted(updates)}")
        return merged.model_copy(deep=True)

    def is_caching_enabled(self, use_case: UseCase | str) -> bool:
        return self.get_config(use_case).enable_caching

    def get_cache_ttl(self, use_case: UseCase | str) -> int:
        """Cache TTL in seconds, 300 when the use case sets none."""
        return self.get_config(use_case).cache_ttl or DEFAULT_CACHE_TTL

    def get_provider(self, use_case: UseCase | str) -> str:
        return self.get_config(use_case).provider

    def get_model(self, use_case: UseCase | str) -> str | None:
        return self.get_config(use_case).model

    def get_fallback_providers(self, use_case: UseCase | str) -> list[str]:
        return list(self.get_config(use_case).fallback_providers)

    def get_all_use_cases(self) -> list[UseCase]:
        with self._lock:
            return list(self._configs)

    def get_all_configs(self) -> dict[UseCase, UseCaseConfig]:
        """Copies of every active config keyed by use case."""
        with self._lock:
            return {
                use_case: config.model_copy(deep=True)
                for use_case, config in self._configs.items()
            }
