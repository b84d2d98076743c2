"""
Registry module: Static routing, discovery and provider tables.

This module contains:
- use_cases.py: UseCase enum and the default per-use-case routing policy
- discovery.py: Discovery types and provider participation rules
- providers.py: Pricing, default models and operation timeouts

Public API:
- UseCase, Priority, UseCaseConfig, DEFAULT_USE_CASE_CONFIG
- DiscoveryType, DiscoveryProviderConfig, DISCOVERY_CONFIG
- select_discovery_providers(): Ordered discovery provider selection
- ModelPricing, PROVIDER_PRICING, SEARCH_PRICING, DEFAULT_MODELS, DEFAULT_TIMEOUTS
"""

from provider_manager.registry.discovery import (
    DISCOVERY_CONFIG,
    DiscoveryProviderConfig,
    DiscoveryType,
    select_discovery_providers,
)
from provider_manager.registry.providers import (
    DEFAULT_MODELS,
    DEFAULT_TIMEOUTS,
    PROVIDER_PRICING,
    SEARCH_PRICING,
    ModelPricing,
    get_default_model,
    get_pricing,
)
from provider_manager.registry.use_cases import (
    DEFAULT_CACHE_TTL,
    DEFAULT_USE_CASE_CONFIG,
    Priority,
    UseCase,
    UseCaseConfig,
    get_default_config,
)

__all__ = [
    # Use cases
    "UseCase",
    "Priority",
    "UseCaseConfig",
    "DEFAULT_USE_CASE_CONFIG",
    "DEFAULT_CACHE_TTL",
    "get_default_config",
    # Discovery
    "DiscoveryType",
    "DiscoveryProviderConfig",
    "DISCOVERY_CONFIG",
    "select_discovery_providers",
    # Providers
    "ModelPricing",
    "PROVIDER_PRICING",
    "SEARCH_PRICING",
    "DEFAULT_MODELS",
    "DEFAULT_TIMEOUTS",
    "get_pricing",
    "get_default_model",
]
