"""
Discovery Provider Registry

Static participation rules for the discovery pattern, where one query is
sent to every enabled provider of a discovery type and the results are
accumulated (not used as fallbacks).

Example workflow for "new york art competitions":
1. Serper is queried and its results collected
2. Google is queried and its results collected
3. Results are merged and duplicate URLs dropped

Lower priority numbers are queried first.
"""

from enum import Enum

from pydantic import BaseModel, Field


class DiscoveryType(str, Enum):
    """Families of providers that can be fanned out to."""

    SEARCH_ENGINES = "search_engines"
    LLM_SEARCH = "llm_search"
    SOCIAL_MEDIA = "social_media"


class DiscoveryProviderConfig(BaseModel):
    """Participation rule for one provider within a discovery type."""

    provider: str = Field(..., description="Registered search provider name")

    max_results: int = Field(
        default=100,
        gt=0,
        description="Results (or posts) requested from this provider",
    )

    enabled: bool = Field(
        default=True,
        description="Whether the provider takes part by default",
    )

    priority: int = Field(
        default=1,
        description="Query order, lower numbers first",
    )

    model: str | None = Field(
        default=None,
        description="Model used by LLM-backed search providers",
    )


DISCOVERY_CONFIG: dict[DiscoveryType, list[DiscoveryProviderConfig]] = {
    DiscoveryType.SEARCH_ENGINES: [
        DiscoveryProviderConfig(provider="serper", max_results=100, enabled=True, priority=1),
        DiscoveryProviderConfig(provider="google", max_results=100, enabled=True, priority=2),
        DiscoveryProviderConfig(provider="brave", max_results=50, enabled=False, priority=3),
    ],
    DiscoveryType.LLM_SEARCH: [
        DiscoveryProviderConfig(
            provider="perplexity",
            model="sonar-small-online",
            max_results=20,
            enabled=False,
            priority=1,
        ),
        DiscoveryProviderConfig(
            provider="openai",
            model="gpt-4-turbo",
            max_results=10,
            enabled=False,
            priority=2,
        ),
    ],
    DiscoveryType.SOCIAL_MEDIA: [
        DiscoveryProviderConfig(provider="instagram", max_results=20, enabled=True, priority=1),
        DiscoveryProviderConfig(provider="linkedin", max_results=20, enabled=True, priority=2),
        DiscoveryProviderConfig(provider="twitter", max_results=50, enabled=False, priority=3),
    ],
}


def select_discovery_providers(
    discovery_type: DiscoveryType,
    enabled_providers: list[str] | None = None,
    config: dict[DiscoveryType, list[DiscoveryProviderConfig]] | None = None,
) -> list[DiscoveryProviderConfig]:
    """
    Pick the providers to query for a discovery type.

    Keeps entries flagged enabled, narrows them to the names in
    enabled_providers when that list is non-empty, and orders them by
    ascending priority. An empty list applies no narrowing.

    Args:
        discovery_type: Discovery family to select from
        enabled_providers: Per-call allow-list of provider names (None or empty: all)
        config: Discovery table to read (defaults to DISCOVERY_CONFIG)

    Returns:
        Provider rules in query order (possibly empty)
    """
    table = DISCOVERY_CONFIG if config is None else config
    entries = [entry for entry in table.get(DiscoveryType(discovery_type), []) if entry.enabled]

    if enabled_providers:
        allowed = set(enabled_providers)
        entries = [entry for entry in entries if entry.provider in allowed]

    return sorted(entries, key=lambda entry: entry.priority)
