"""
Pydantic Schemas for Discovery Search

Result shapes produced by ProviderManager.search_multiple(), which queries
every enabled provider of a discovery type and merges their results.
"""

from pydantic import BaseModel, Field

from provider_manager.dispatcher.ports import SearchResult


class ProviderSearchResult(BaseModel):
    """
    Outcome of querying one provider during discovery.

    Failed providers are reported here with success=False instead of
    aborting the whole discovery run.
    """

    provider: str = Field(..., description="Provider that was queried")

    success: bool = Field(..., description="Whether the provider call succeeded")

    results: list[SearchResult] = Field(
        default_factory=list,
        description="Results returned by this provider, tagged with their source",
    )

    total_results: int = Field(default=0, ge=0)

    cost: float = Field(default=0.0, ge=0.0, description="Cost of this call in USD")

    latency_ms: float = Field(default=0.0, ge=0.0)

    error: str | None = Field(
        default=None,
        description="Failure message when success is False",
    )


class MultipleSearchResponse(BaseModel):
    """
    Merged discovery output.

    results holds every provider's results in query order, with later
    duplicates removed when URL de-duplication ran. total_results is the
    length of results after de-duplication.
    """

    query: str = Field(..., description="Query sent to every provider")

    discovery_type: str = Field(..., description="Discovery type that was fanned out")

    total_results: int = Field(default=0, ge=0)

    provider_results: list[ProviderSearchResult] = Field(
        default_factory=list,
        description="Per-provider outcome in query order",
    )

    results: list[SearchResult] = Field(default_factory=list)

    total_cost: float = Field(default=0.0, ge=0.0)

    total_latency_ms: float = Field(default=0.0, ge=0.0)

    deduplicated_count: int | None = Field(
        default=None,
        ge=0,
        description="Duplicates removed; set whenever de-duplication was requested",
    )

    @property
    def successful_providers(self) -> list[str]:
        """Names of the providers that answered successfully."""
        return [r.provider for r in self.provider_results if r.success]

    @property
    def failed_providers(self) -> list[str]:
        """Names of the providers that failed or were not configured."""
        return [r.provider for r in self.provider_results if not r.success]
