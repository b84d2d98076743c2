"""
Discovery Search Tests

Validates search_multiple(): sequential fan-out to every enabled provider
of a discovery type, result merging, URL de-duplication and per-provider
failure reporting.
"""

from unittest.mock import patch

import pytest

from fixtures import GOOGLE_RESULTS, SERPER_RESULTS, FakeSearchProvider
from provider_manager.dispatcher.discovery import deduplicate_by_url, tag_source
from provider_manager.dispatcher.ports import SearchResult
from provider_manager.errors import NoEligibleProvidersError
from provider_manager.registry.discovery import DiscoveryProviderConfig, DiscoveryType
from provider_manager.registry.use_cases import UseCase


class TestSearchMultiple:
    """Tests for ProviderManager.search_multiple()."""

    @pytest.mark.asyncio
    async def test_merges_and_deduplicates(self, search_manager):
        response = await search_manager.search_multiple("new york art competitions")

        assert response.query == "new york art competitions"
        assert response.discovery_type == "search_engines"
        assert response.total_results == 3
        assert response.deduplicated_count == 1
        assert [r.url for r in response.results] == [
            "https://www.nyfa.org/grants",
            "https://artdeadline.com/nyc",
            "https://creative-capital.org/awards",
        ]
        assert response.total_cost == pytest.approx(0.006)

    @pytest.mark.asyncio
    async def test_results_are_tagged_with_source(self, search_manager):
        response = await search_manager.search_multiple("art grants")

        assert [r.source for r in response.results] == ["serper", "serper", "google"]
        # First occurrence of the shared URL wins
        assert response.results[0].title == "NYFA Artist Grants"

    @pytest.mark.asyncio
    async def test_provider_results_in_priority_order(self, search_manager):
        response = await search_manager.search_multiple("art grants")

        assert [r.provider for r in response.provider_results] == ["serper", "google"]
        assert all(r.success for r in response.provider_results)
        assert response.provider_results[1].total_results == 2
        assert response.provider_results[1].cost == pytest.approx(0.005)

    @pytest.mark.asyncio
    async def test_failed_provider_is_reported_and_run_continues(self, search_manager):
        search_manager.search_providers.get("serper").error = RuntimeError("quota exceeded")

        response = await search_manager.search_multiple("art grants")

        serper, google = response.provider_results
        assert serper.success is False
        assert serper.error == "quota exceeded"
        assert google.success is True
        assert response.failed_providers == ["serper"]
        assert response.successful_providers == ["google"]
        assert response.total_results == 2
        assert response.deduplicated_count == 0

    @pytest.mark.asyncio
    async def test_unregistered_and_unconfigured_providers(self, manager):
        manager.register_search_provider(
            "google", FakeSearchProvider("google", results=GOOGLE_RESULTS, configured=False)
        )

        response = await manager.search_multiple("art grants")

        assert [(r.provider, r.error) for r in response.provider_results] == [
            ("serper", "Provider serper not registered"),
            ("google", "Provider google not configured"),
        ]
        assert response.results == []
        assert response.total_cost == 0.0
        # Skipped providers are never called, so nothing is tracked
        assert len(manager.tracker) == 0

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self, search_manager):
        search_manager.timeouts["search"] = 0.05
        search_manager.search_providers.get("google").delay = 1.0

        response = await search_manager.search_multiple("art grants")

        google = response.provider_results[1]
        assert google.success is False
        assert "timed out" in google.error

    @pytest.mark.asyncio
    async def test_social_media_uses_search_timeout(self, manager):
        manager.timeouts["social"] = 0.05
        manager.register_search_provider(
            "instagram", FakeSearchProvider("instagram", results=SERPER_RESULTS, delay=0.2)
        )

        with patch.object(
            manager, "_call_with_timeout", wraps=manager._call_with_timeout
        ) as call_with_timeout:
            response = await manager.search_multiple("ceramicists", "social_media")

        assert call_with_timeout.call_args.args[2] == 15.0
        instagram = response.provider_results[0]
        assert instagram.provider == "instagram"
        assert instagram.success is True

    @pytest.mark.asyncio
    async def test_max_results_per_provider_override(self, search_manager):
        response = await search_manager.search_multiple(
            "art grants", max_results_per_provider=1, filters={"location": "New York"}
        )

        serper = search_manager.search_providers.get("serper")
        _, _, options = serper.calls[0]
        assert options.max_results == 1
        assert options.location == "New York"
        # Both providers return only the shared NYFA URL
        assert response.total_results == 1
        assert response.deduplicated_count == 1

    @pytest.mark.asyncio
    async def test_default_max_results_come_from_discovery_table(self, search_manager):
        await search_manager.search_multiple("art grants")

        _, _, options = search_manager.search_providers.get("serper").calls[0]
        assert options.max_results == 100

    @pytest.mark.asyncio
    async def test_enabled_providers_narrow_the_run(self, search_manager):
        response = await search_manager.search_multiple("art grants", enabled_providers=["google"])

        assert [r.provider for r in response.provider_results] == ["google"]
        assert search_manager.search_providers.get("serper").calls == []

    @pytest.mark.asyncio
    async def test_empty_enabled_providers_queries_every_provider(self, search_manager):
        response = await search_manager.search_multiple("art grants", enabled_providers=[])

        assert [r.provider for r in response.provider_results] == ["serper", "google"]
        assert response.total_results == 3

    @pytest.mark.asyncio
    async def test_no_eligible_providers(self, search_manager):
        with pytest.raises(NoEligibleProvidersError, match="search_engines"):
            await search_manager.search_multiple("art grants", enabled_providers=["bing"])

        # Every llm_search entry is disabled by default
        with pytest.raises(NoEligibleProvidersError):
            await search_manager.search_multiple("art grants", DiscoveryType.LLM_SEARCH)

    @pytest.mark.asyncio
    async def test_deduplication_can_be_disabled(self, search_manager):
        response = await search_manager.search_multiple("art grants", deduplicate_urls=False)

        assert response.deduplicated_count is None
        assert response.total_results == 4

    @pytest.mark.asyncio
    async def test_non_search_engine_types_are_not_deduplicated(self, manager):
        manager.register_search_provider(
            "instagram", FakeSearchProvider("instagram", results=SERPER_RESULTS)
        )
        manager.register_search_provider(
            "linkedin", FakeSearchProvider("linkedin", results=SERPER_RESULTS)
        )

        response = await manager.search_multiple("ceramicists", "social_media")

        assert response.total_results == 4
        assert response.deduplicated_count == 0

    @pytest.mark.asyncio
    async def test_calls_are_tracked_as_web_search(self, search_manager):
        search_manager.search_providers.get("google").error = RuntimeError("down")

        await search_manager.search_multiple("art grants")

        ops = search_manager.tracker.operations
        assert [(op.use_case, op.provider, op.success) for op in ops] == [
            (UseCase.WEB_SEARCH, "serper", True),
            (UseCase.WEB_SEARCH, "google", False),
        ]

    @pytest.mark.asyncio
    async def test_custom_discovery_table(self, search_manager):
        search_manager.discovery_config = {
            DiscoveryType.SEARCH_ENGINES: [
                DiscoveryProviderConfig(provider="google", max_results=5, priority=1),
                DiscoveryProviderConfig(provider="serper", max_results=5, priority=2),
            ]
        }

        response = await search_manager.search_multiple("art grants")

        assert [r.source for r in response.results] == ["google", "google", "serper"]


class TestDiscoveryHelpers:
    """Tests for tag_source() and deduplicate_by_url()."""

    def test_tag_source_copies_results(self):
        tagged = tag_source(SERPER_RESULTS, "serper")

        assert [r.source for r in tagged] == ["serper", "serper"]
        assert SERPER_RESULTS[0].source is None

    def test_deduplicate_keeps_first_occurrence(self):
        unique, removed = deduplicate_by_url(SERPER_RESULTS + GOOGLE_RESULTS)

        assert removed == 1
        assert [r.title for r in unique] == [
            "NYFA Artist Grants",
            "Art Deadline",
            "Creative Capital Awards",
        ]

    def test_results_without_url_are_kept(self):
        results = [SearchResult(title="post one"), SearchResult(title="post two")]

        unique, removed = deduplicate_by_url(results)

        assert len(unique) == 2
        assert removed == 0
