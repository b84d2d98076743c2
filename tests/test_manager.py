"""
Provider Manager Tests

Validates dispatch, fallback, timeouts, caching and tracking of the
single-provider operations using in-process fake providers.

Test Categories:
1. TestGenerate - Primary dispatch and option resolution
2. TestFallback - Fallback chain semantics
3. TestTimeouts - Per-attempt timeouts
4. TestCaching - Response cache behavior
5. TestChat - Chat never falls back nor caches
6. TestEmbeddings - embed() and embed_batch()
7. TestExtraction - extract() with fallback
8. TestSearch - Single-provider search
9. TestAdministration - Config updates, alerts, reports
"""

import pytest

from fixtures import (
    GRANT_SCHEMA,
    GOOGLE_RESULTS,
    SERPER_RESULTS,
    FakeEmbeddingProvider,
    FakeExtractionProvider,
    FakeSearchProvider,
    FakeTextProvider,
)
from provider_manager.cache import ResponseCache
from provider_manager.config import ProviderManagerConfig
from provider_manager.dispatcher.manager import ProviderManager
from provider_manager.dispatcher.ports import ChatMessage
from provider_manager.errors import (
    AllProvidersFailed,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderTimeoutError,
    UnknownUseCaseError,
)
from provider_manager.metrics.store import CostAlert
from provider_manager.registry.use_cases import UseCase
from provider_manager.schemas.metrics import CostReportConfig


class TestGenerate:
    """Tests for primary dispatch of generate()."""

    @pytest.mark.asyncio
    async def test_generate_uses_primary_provider(self, text_manager, openai_text, anthropic_text):
        response = await text_manager.generate("art grants nyc", UseCase.QUERY_ENHANCEMENT)

        assert response.content == "generated by openai"
        assert len(openai_text.calls) == 1
        assert anthropic_text.calls == []

    @pytest.mark.asyncio
    async def test_generate_applies_use_case_config(self, text_manager, openai_text):
        await text_manager.generate("art grants nyc", "query-enhancement")

        _, prompt, options = openai_text.calls[0]
        assert prompt == "art grants nyc"
        assert options.model == "gpt-3.5-turbo"
        assert options.temperature == 0.7
        assert options.max_tokens == 200

    @pytest.mark.asyncio
    async def test_call_overrides_win_over_config(self, text_manager, openai_text):
        await text_manager.generate(
            "prompt",
            UseCase.RAG_QA,
            model="gpt-4",
            temperature=0.0,
            system_prompt="Be brief",
        )

        _, _, options = openai_text.calls[0]
        assert options.model == "gpt-4"
        assert options.temperature == 0.0
        assert options.system_prompt == "Be brief"
        assert options.max_tokens == 1000

    @pytest.mark.asyncio
    async def test_success_is_tracked(self, text_manager):
        await text_manager.generate("prompt", UseCase.RAG_QA)

        [op] = text_manager.tracker.operations
        assert op.use_case == UseCase.RAG_QA
        assert op.provider == "openai"
        assert op.success is True
        assert op.cost == pytest.approx(0.001)

    @pytest.mark.asyncio
    async def test_provider_override(self, text_manager, openai_text, anthropic_text):
        response = await text_manager.generate("prompt", UseCase.RAG_QA, provider="anthropic")

        assert response.content == "generated by anthropic"
        assert openai_text.calls == []

    @pytest.mark.asyncio
    async def test_unknown_use_case(self, text_manager):
        with pytest.raises(UnknownUseCaseError):
            await text_manager.generate("prompt", "translation")

    @pytest.mark.asyncio
    async def test_unregistered_primary_fails_fast(self, manager):
        anthropic = FakeTextProvider("anthropic")
        manager.register_text_provider("anthropic", anthropic)

        with pytest.raises(ProviderNotConfiguredError, match="openai"):
            await manager.generate("prompt", UseCase.RAG_QA)

        # Fallbacks only cover a primary that was actually called
        assert anthropic.calls == []
        assert len(manager.tracker) == 0

    @pytest.mark.asyncio
    async def test_unconfigured_primary_fails_fast(self, text_manager, openai_text, anthropic_text):
        openai_text.configured = False

        with pytest.raises(ProviderNotConfiguredError) as exc_info:
            await text_manager.generate("prompt", UseCase.RAG_QA)

        assert exc_info.value.provider == "openai"
        assert openai_text.calls == []
        assert anthropic_text.calls == []

    @pytest.mark.asyncio
    async def test_tracking_can_be_disabled(self, openai_text):
        manager = ProviderManager(ProviderManagerConfig(enable_cost_tracking=False))
        manager.register_text_provider("openai", openai_text)

        await manager.generate("prompt", UseCase.RAG_QA)

        assert len(manager.tracker) == 0


class TestFallback:
    """Tests for the fallback chain."""

    @pytest.mark.asyncio
    async def test_falls_back_after_primary_failure(self, text_manager, openai_text):
        openai_text.error = RuntimeError("HTTP 500")

        response = await text_manager.generate("prompt", UseCase.QUERY_ENHANCEMENT)

        assert response.content == "generated by anthropic"
        failed, succeeded = text_manager.tracker.operations
        assert (failed.provider, failed.success, failed.error) == ("openai", False, "HTTP 500")
        assert failed.model == "gpt-3.5-turbo"
        assert (succeeded.provider, succeeded.success) == ("anthropic", True)

    @pytest.mark.asyncio
    async def test_all_providers_failed(self, text_manager, openai_text, anthropic_text):
        primary_error = RuntimeError("HTTP 500")
        openai_text.error = primary_error
        anthropic_text.error = ProviderError("overloaded", "anthropic")

        with pytest.raises(AllProvidersFailed) as exc_info:
            await text_manager.generate("prompt", UseCase.QUERY_ENHANCEMENT)

        error = exc_info.value
        assert error.use_case == "query-enhancement"
        assert error.providers == ["openai", "anthropic"]
        assert error.errors[0].original_error is primary_error
        assert error.errors[1].message == "overloaded"
        assert len(text_manager.tracker) == 2

    @pytest.mark.asyncio
    async def test_every_search_fallback_failed(self, search_manager):
        search_manager.search_providers.get("serper").error = RuntimeError("quota")
        search_manager.search_providers.get("google").error = RuntimeError("HTTP 403")
        search_manager.register_search_provider(
            "brave", FakeSearchProvider("brave", error=RuntimeError("HTTP 503"))
        )

        with pytest.raises(AllProvidersFailed) as exc_info:
            await search_manager.search("art grants", disable_cache=True)

        error = exc_info.value
        assert error.use_case == "web-search"
        assert error.providers == ["serper", "google", "brave"]
        assert len(error.errors) == 3
        operations = search_manager.tracker.operations
        assert [op.provider for op in operations] == ["serper", "google", "brave"]
        assert not any(op.success for op in operations)

    @pytest.mark.asyncio
    async def test_disable_fallback_reraises_original(self, text_manager, openai_text, anthropic_text):
        openai_text.error = RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await text_manager.generate("prompt", UseCase.RAG_QA, disable_fallback=True)

        assert anthropic_text.calls == []
        assert len(text_manager.tracker) == 1

    @pytest.mark.asyncio
    async def test_skips_unavailable_fallbacks(self, text_manager, openai_text, anthropic_text):
        openai_text.error = RuntimeError("down")
        text_manager.register_text_provider("groq", FakeTextProvider("groq", configured=False))
        text_manager.update_use_case_config(
            UseCase.RAG_QA, {"fallback_providers": ["missing", "groq", "anthropic"]}
        )

        response = await text_manager.generate("prompt", UseCase.RAG_QA)

        assert response.content == "generated by anthropic"
        assert [op.provider for op in text_manager.tracker.operations] == ["openai", "anthropic"]

    @pytest.mark.asyncio
    async def test_primary_is_not_retried_from_chain(self, text_manager, openai_text, anthropic_text):
        openai_text.error = RuntimeError("down")
        text_manager.update_use_case_config(
            UseCase.RAG_QA, {"fallback_providers": ["openai", "anthropic"]}
        )

        await text_manager.generate("prompt", UseCase.RAG_QA)

        assert len(openai_text.calls) == 1
        assert len(anthropic_text.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_chain_raises_all_failed(self, text_manager, openai_text):
        openai_text.error = RuntimeError("down")
        text_manager.update_use_case_config(UseCase.RAG_QA, {"fallback_providers": []})

        with pytest.raises(AllProvidersFailed) as exc_info:
            await text_manager.generate("prompt", UseCase.RAG_QA)

        assert exc_info.value.providers == ["openai"]


class TestTimeouts:
    """Tests for per-attempt timeouts."""

    @pytest.mark.asyncio
    async def test_timeout_raises_provider_timeout(self, text_manager, openai_text):
        openai_text.delay = 1.0

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await text_manager.generate(
                "prompt", UseCase.RAG_QA, timeout=0.05, disable_fallback=True
            )

        assert exc_info.value.provider == "openai"
        assert exc_info.value.timeout == 0.05
        [op] = text_manager.tracker.operations
        assert op.success is False
        assert "timed out" in op.error

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, text_manager, openai_text):
        openai_text.delay = 1.0

        response = await text_manager.generate("prompt", UseCase.RAG_QA, timeout=0.05)

        assert response.content == "generated by anthropic"

    @pytest.mark.asyncio
    async def test_configured_timeouts_apply(self):
        manager = ProviderManager(ProviderManagerConfig(timeouts={"text": 0.05}))
        manager.register_text_provider("openai", FakeTextProvider("openai", delay=1.0))

        assert manager.timeouts["text"] == 0.05
        assert manager.timeouts["search"] == 15

        with pytest.raises(ProviderTimeoutError):
            await manager.generate("prompt", UseCase.RAG_QA, disable_fallback=True)


class TestCaching:
    """Tests for the response cache."""

    @pytest.mark.asyncio
    async def test_cache_hit_skips_provider_and_tracking(self, text_manager, openai_text):
        first = await text_manager.generate("prompt", UseCase.RAG_QA)
        second = await text_manager.generate("prompt", UseCase.RAG_QA)

        assert second is first
        assert len(openai_text.calls) == 1
        assert len(text_manager.tracker) == 1

    @pytest.mark.asyncio
    async def test_different_overrides_miss(self, text_manager, openai_text):
        await text_manager.generate("prompt", UseCase.RAG_QA)
        await text_manager.generate("prompt", UseCase.RAG_QA, model="gpt-4")

        assert len(openai_text.calls) == 2

    @pytest.mark.asyncio
    async def test_disable_cache(self, text_manager, openai_text):
        await text_manager.generate("prompt", UseCase.RAG_QA, disable_cache=True)
        await text_manager.generate("prompt", UseCase.RAG_QA, disable_cache=True)

        assert len(openai_text.calls) == 2
        assert len(text_manager.cache) == 0

    @pytest.mark.asyncio
    async def test_caching_disabled_by_config(self, text_manager, openai_text):
        text_manager.update_use_case_config(UseCase.RAG_QA, {"enable_caching": False})

        await text_manager.generate("prompt", UseCase.RAG_QA)
        await text_manager.generate("prompt", UseCase.RAG_QA)

        assert len(openai_text.calls) == 2

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, openai_text):
        now = [0.0]
        manager = ProviderManager(cache=ResponseCache(clock=lambda: now[0]))
        manager.register_text_provider("openai", openai_text)

        await manager.generate("prompt", UseCase.RAG_QA)
        now[0] = 300.0
        await manager.generate("prompt", UseCase.RAG_QA)
        now[0] = 301.0
        await manager.generate("prompt", UseCase.RAG_QA)

        assert len(openai_text.calls) == 2

    @pytest.mark.asyncio
    async def test_fallback_response_is_cached(self, text_manager, openai_text):
        openai_text.error = RuntimeError("down")
        await text_manager.generate("prompt", UseCase.RAG_QA)

        assert len(text_manager.cache) == 1

        text_manager.clear_cache()
        assert len(text_manager.cache) == 0


class TestChat:
    """Tests for chat()."""

    @pytest.mark.asyncio
    async def test_chat_accepts_dict_messages(self, text_manager, openai_text):
        response = await text_manager.chat(
            [
                {"role": "system", "content": "You find art grants"},
                {"role": "user", "content": "Any in NYC?"},
            ],
            UseCase.RAG_QA,
        )

        assert response.content == "generated by openai"
        _, messages, _ = openai_text.calls[0]
        assert messages == [
            ChatMessage(role="system", content="You find art grants"),
            ChatMessage(role="user", content="Any in NYC?"),
        ]

    @pytest.mark.asyncio
    async def test_chat_never_falls_back(self, text_manager, openai_text, anthropic_text):
        openai_text.error = RuntimeError("down")

        with pytest.raises(RuntimeError, match="down"):
            await text_manager.chat([ChatMessage("user", "hi")], UseCase.RAG_QA)

        assert anthropic_text.calls == []

    @pytest.mark.asyncio
    async def test_chat_is_never_cached(self, text_manager, openai_text):
        messages = [ChatMessage("user", "hi")]
        await text_manager.chat(messages, UseCase.RAG_QA)
        await text_manager.chat(messages, UseCase.RAG_QA)

        assert len(openai_text.calls) == 2
        assert len(text_manager.tracker) == 2


class TestEmbeddings:
    """Tests for embed() and embed_batch()."""

    @pytest.fixture
    def embedder(self):
        return FakeEmbeddingProvider("openai", tokens=8, cost=8 * 0.00002 / 1000)

    @pytest.fixture
    def embed_manager(self, manager, embedder):
        manager.register_embedding_provider("openai", embedder)
        return manager

    @pytest.mark.asyncio
    async def test_embed(self, embed_manager, embedder):
        response = await embed_manager.embed("art grants")

        assert response.dimensions == 1536
        assert len(response.embedding) == 1536
        assert response.model == "text-embedding-3-small"

        [op] = embed_manager.tracker.operations
        assert op.use_case == UseCase.EMBEDDINGS
        assert op.cost == pytest.approx(8 * 0.00002 / 1000)
        assert op.tokens == 8

    @pytest.mark.asyncio
    async def test_embed_is_cached(self, embed_manager, embedder):
        await embed_manager.embed("art grants")
        await embed_manager.embed("art grants")

        assert len(embedder.calls) == 1

    @pytest.mark.asyncio
    async def test_embed_passes_dimensions(self, embed_manager, embedder):
        await embed_manager.embed("art grants", dimensions=256)

        _, _, options = embedder.calls[0]
        assert options.dimensions == 256

    @pytest.mark.asyncio
    async def test_embed_never_falls_back(self, embed_manager, embedder):
        backup = FakeEmbeddingProvider("groq")
        embed_manager.register_embedding_provider("groq", backup)
        embed_manager.update_use_case_config(UseCase.EMBEDDINGS, {"fallback_providers": ["groq"]})
        embedder.error = RuntimeError("down")

        with pytest.raises(RuntimeError, match="down"):
            await embed_manager.embed("art grants")

        assert backup.calls == []

    @pytest.mark.asyncio
    async def test_embed_batch_tracks_each_item(self, embed_manager, embedder):
        responses = await embed_manager.embed_batch(["a", "b", "c"])

        assert len(responses) == 3
        assert len(embedder.calls) == 1
        assert len(embed_manager.tracker) == 3

    @pytest.mark.asyncio
    async def test_embed_batch_failure_tracked_once(self, embed_manager, embedder):
        embedder.error = RuntimeError("down")

        with pytest.raises(RuntimeError):
            await embed_manager.embed_batch(["a", "b", "c"])

        [op] = embed_manager.tracker.operations
        assert op.success is False
        assert op.model == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_embed_batch_requires_configured_provider(self, manager):
        with pytest.raises(ProviderNotConfiguredError):
            await manager.embed_batch(["a"])


class TestExtraction:
    """Tests for extract()."""

    @pytest.mark.asyncio
    async def test_extract_uses_schema_and_config(self, manager):
        anthropic = FakeExtractionProvider("anthropic")
        manager.register_extraction_provider("anthropic", anthropic)

        response = await manager.extract("NYFA grants page", GRANT_SCHEMA)

        assert response.data == {"title": "NYFA Artist Grants"}
        _, content, options = anthropic.calls[0]
        assert content == "NYFA grants page"
        assert options.schema == GRANT_SCHEMA
        assert options.model == "claude-3-haiku-20240307"
        assert options.temperature == 0.1

    @pytest.mark.asyncio
    async def test_extract_falls_back_and_is_not_cached(self, manager):
        anthropic = FakeExtractionProvider("anthropic", error=RuntimeError("down"))
        openai = FakeExtractionProvider("openai", data={"title": "from openai"})
        manager.register_extraction_provider("anthropic", anthropic)
        manager.register_extraction_provider("openai", openai)

        first = await manager.extract("page", GRANT_SCHEMA)
        await manager.extract("page", GRANT_SCHEMA)

        assert first.data == {"title": "from openai"}
        assert len(openai.calls) == 2
        assert len(manager.cache) == 0


class TestSearch:
    """Tests for single-provider search()."""

    @pytest.mark.asyncio
    async def test_search_passes_options(self, search_manager):
        serper = search_manager.search_providers.get("serper")

        response = await search_manager.search(
            "art grants",
            max_results=1,
            filters={"language": "en", "location": "New York", "gl": "us"},
        )

        assert response.provider == "serper"
        assert len(response.results) == 1
        _, query, options = serper.calls[0]
        assert query == "art grants"
        assert options.max_results == 1
        assert options.language == "en"
        assert options.location == "New York"
        assert options.extra == {"gl": "us"}

    @pytest.mark.asyncio
    async def test_search_falls_back(self, search_manager):
        search_manager.search_providers.get("serper").error = RuntimeError("quota")

        response = await search_manager.search("art grants", disable_cache=True)

        assert response.provider == "google"
        assert response.results == GOOGLE_RESULTS

    @pytest.mark.asyncio
    async def test_search_is_cached_per_query_and_options(self, search_manager):
        serper = search_manager.search_providers.get("serper")

        await search_manager.search("art grants")
        await search_manager.search("art grants")
        await search_manager.search("art grants", max_results=5)

        assert len(serper.calls) == 2

    @pytest.mark.asyncio
    async def test_social_search_uses_social_timeout(self, manager):
        manager.timeouts["social"] = 0.05
        manager.register_search_provider(
            "instagram", FakeSearchProvider("instagram", results=SERPER_RESULTS, delay=1.0)
        )

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await manager.search(
                "ceramics", UseCase.SOCIAL_SEARCH, disable_fallback=True, disable_cache=True
            )

        assert exc_info.value.timeout == 0.05


class TestAdministration:
    """Tests for config updates, alerts, stats and reports."""

    @pytest.mark.asyncio
    async def test_config_update_applies_to_next_call(self, text_manager, anthropic_text):
        updated = text_manager.update_use_case_config("rag-qa", {"provider": "anthropic"})

        assert updated.provider == "anthropic"
        await text_manager.generate("prompt", UseCase.RAG_QA)
        assert len(anthropic_text.calls) == 1

    @pytest.mark.asyncio
    async def test_cost_alert_through_manager(self, text_manager):
        fired = []
        text_manager.set_cost_alert(CostAlert(UseCase.RAG_QA, 0.0015, fired.append))

        await text_manager.generate("one", UseCase.RAG_QA)
        await text_manager.generate("two", UseCase.RAG_QA)

        assert len(fired) == 1

        text_manager.remove_cost_alert("rag-qa")
        await text_manager.generate("three", UseCase.RAG_QA)
        assert len(fired) == 1

    @pytest.mark.asyncio
    async def test_stats_and_report(self, text_manager, openai_text):
        openai_text.error = RuntimeError("down")
        await text_manager.generate("prompt", UseCase.QUERY_ENHANCEMENT)

        stats = text_manager.get_cost_stats("query-enhancement")
        assert stats.total_requests == 2
        assert stats.failed_requests == 1

        all_stats = text_manager.get_cost_stats()
        assert list(all_stats) == [UseCase.QUERY_ENHANCEMENT]

        metrics = text_manager.get_performance_metrics(UseCase.QUERY_ENHANCEMENT)
        assert metrics.error_rate == pytest.approx(0.5)
        assert metrics.last_error == "down"

        report = text_manager.generate_cost_report(CostReportConfig(group_by="provider"))
        assert "  - openai: $0.0000 (1 requests)" in report
        assert "  - anthropic: $0.0010 (1 requests)" in report

    def test_registered_providers(self, full_manager):
        assert full_manager.registered_providers() == {
            "text": ["openai", "anthropic"],
            "embedding": ["openai"],
            "extraction": ["anthropic", "openai"],
            "search": ["serper", "google"],
        }

    def test_get_all_use_case_configs(self, manager):
        configs = manager.get_all_use_case_configs()

        assert set(configs) == set(UseCase)
        assert manager.get_use_case_config(UseCase.WEB_SEARCH).provider == "serper"
