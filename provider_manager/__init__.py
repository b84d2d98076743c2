"""
Provider Manager: Use-Case Routing for AI and Search Providers

A cost-aware dispatch layer that sits between application logic and
heterogeneous AI/search backends. Each logical use case selects a provider,
model and caching policy; calls are raced against a timeout, fall back
through an ordered provider chain, and every attempt is recorded for cost
and latency reporting.
"""

from provider_manager.dispatcher.manager import ProviderManager
from provider_manager.config import ProviderCredentials, ProviderManagerConfig
from provider_manager.metrics.store import CostAlert
from provider_manager.registry.discovery import DiscoveryType
from provider_manager.registry.use_cases import UseCase
from provider_manager.schemas.metrics import CostReportConfig

__version__ = "0.1.0"

__all__ = [
    "ProviderManager",
    "ProviderManagerConfig",
    "ProviderCredentials",
    "CostAlert",
    "CostReportConfig",
    "DiscoveryType",
    "UseCase",
    "__version__",
]
