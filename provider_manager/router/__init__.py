"""
Router module: Use-case routing policy.

This module contains:
- engine.py: UseCaseRouter holding one mutable config per use case

Public API:
- UseCaseRouter: get/update configs, caching policy and fallback chain
- resolve_use_case(): Normalize enum members and string values

Example usage:
    from provider_manager.router import UseCaseRouter
    from provider_manager.registry import UseCase

    router = UseCaseRouter()
    config = router.get_config(UseCase.SEMANTIC_ANALYSIS)
    print(f"{config.provider}/{config.model}")  # openai/gpt-4
"""

from provider_manager.router.engine import UseCaseRouter, resolve_use_case

__all__ = [
    "UseCaseRouter",
    "resolve_use_case",
]
