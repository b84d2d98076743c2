#!/usr/bin/env python3
"""
Demo Runner Script

Drives a ProviderManager with in-process simulated providers and reports
the resulting cost statistics, latency percentiles and cost report.

This script:
1. Registers simulated OpenAI, Anthropic, Serper and Google providers
2. Issues generate, embed, extract and search calls across use cases
3. Injects random primary failures so fallbacks show up in the stats
4. Runs one discovery search across the search engines
5. Prints per-use-case statistics and the plain-text cost report

Usage:
    python scripts/run_demo.py                        # 20 rounds, 20% failures
    python scripts/run_demo.py --rounds 100           # More traffic
    python scripts/run_demo.py --failure-rate 0.5     # Flakier primaries
    python scripts/run_demo.py --group-by provider    # Report by provider
    python scripts/run_demo.py --verbose              # Show each call
"""

import argparse
import asyncio
import logging
import random
import sys
import time
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from provider_manager import CostAlert, CostReportConfig, ProviderManager, UseCase
from provider_manager.dispatcher.ports import (
    ChatMessage,
    EmbeddingOptions,
    EmbeddingProvider,
    EmbeddingResponse,
    ExtractionOptions,
    ExtractionProvider,
    ExtractionResponse,
    SearchOptions,
    SearchProvider,
    SearchResponse,
    SearchResult,
    TextGenerationOptions,
    TextGenerationProvider,
    TextGenerationResponse,
    TokenUsage,
)
from provider_manager.errors import AllProvidersFailed, ProviderError
from provider_manager.metrics.cost import get_cost_calculator
from provider_manager.schemas.metrics import CostStatistics
from provider_manager.utils import format_cost, format_latency

SAMPLE_PROMPTS = [
    "art grants for painters in new york",
    "residencies for ceramic artists in europe",
    "open calls for public sculpture commissions",
    "fellowships for documentary photographers",
    "funding for community mural projects",
]

GRANT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "deadline": {"type": "string"},
        "amount": {"type": "number"},
    },
}


class SimulatedProvider:
    """Shared latency and failure behavior of the demo providers."""

    def __init__(self, name: str, rng: random.Random, failure_rate: float = 0.0,
                 latency_ms: tuple[float, float] = (20.0, 120.0)):
        self.name = name
        self._rng = rng
        self._failure_rate = failure_rate
        self._latency_ms = latency_ms

    def is_configured(self) -> bool:
        return True

    async def _simulate(self) -> float:
        latency_ms = self._rng.uniform(*self._latency_ms)
        await asyncio.sleep(latency_ms / 1000)
        if self._rng.random() < self._failure_rate:
            raise ProviderError(f"{self.name} returned HTTP 503", self.name)
        return latency_ms


class SimulatedTextProvider(SimulatedProvider, TextGenerationProvider):
    async def generate(
        self, prompt: str, options: TextGenerationOptions
    ) -> TextGenerationResponse:
        latency_ms = await self._simulate()
        model = options.model or f"{self.name}-default"
        usage = TokenUsage(
            prompt_tokens=len(prompt.split()) * 4,
            completion_tokens=self._rng.randint(20, options.max_tokens or 200),
        )
        cost = get_cost_calculator().calculate(
            self.name, model, usage.prompt_tokens, usage.completion_tokens
        ).total_cost_usd
        return TextGenerationResponse(
            content=f"[{self.name}] {prompt}",
            model=model,
            usage=usage,
            finish_reason="stop",
            cost=cost,
            latency_ms=latency_ms,
        )

    async def chat(
        self, messages: list[ChatMessage], options: TextGenerationOptions
    ) -> TextGenerationResponse:
        return await self.generate(messages[-1].content, options)


class SimulatedEmbeddingProvider(SimulatedProvider, EmbeddingProvider):
    async def embed(self, text: str, options: EmbeddingOptions) -> EmbeddingResponse:
        responses = await self.embed_batch([text], options)
        return responses[0]

    async def embed_batch(
        self, texts: list[str], options: EmbeddingOptions
    ) -> list[EmbeddingResponse]:
        latency_ms = await self._simulate()
        model = options.model or "text-embedding-3-small"
        dimensions = options.dimensions or 1536
        responses = []
        for text in texts:
            tokens = len(text.split()) * 4
            responses.append(
                EmbeddingResponse(
                    embedding=[self._rng.uniform(-1, 1) for _ in range(dimensions)],
                    model=model,
                    usage=TokenUsage(prompt_tokens=tokens),
                    cost=get_cost_calculator().calculate(self.name, model, tokens).total_cost_usd,
                    latency_ms=latency_ms / len(texts),
                )
            )
        return responses


class SimulatedExtractionProvider(SimulatedProvider, ExtractionProvider):
    async def extract(self, content: str, options: ExtractionOptions) -> ExtractionResponse:
        latency_ms = await self._simulate()
        model = options.model or f"{self.name}-default"
        usage = TokenUsage(prompt_tokens=len(content.split()) * 4 + 120, completion_tokens=60)
        data = {key: None for key in options.schema.get("properties", {})}
        data["title"] = content.title()
        return ExtractionResponse(
            data=data,
            model=model,
            confidence=round(self._rng.uniform(0.6, 0.95), 2),
            usage=usage,
            cost=get_cost_calculator().calculate(
                self.name, model, usage.prompt_tokens, usage.completion_tokens
            ).total_cost_usd,
            latency_ms=latency_ms,
        )


class SimulatedSearchProvider(SimulatedProvider, SearchProvider):
    def __init__(self, name: str, rng: random.Random, domains: list[str], **kwargs):
        super().__init__(name, rng, **kwargs)
        self._domains = domains

    async def search(self, query: str, options: SearchOptions) -> SearchResponse:
        latency_ms = await self._simulate()
        slug = query.replace(" ", "-")
        results = [
            SearchResult(
                title=f"{query.title()} ({domain})",
                url=f"https://{domain}/{slug}",
                snippet=f"Listing for {query} on {domain}",
                domain=domain,
                metadata={"position": position},
            )
            for position, domain in enumerate(self._domains[: options.max_results], 1)
        ]
        return SearchResponse(
            results=results,
            query=query,
            provider=self.name,
            cost=get_cost_calculator().search_cost(self.name),
            latency_ms=latency_ms,
        )


def build_demo_manager(rng: random.Random, failure_rate: float) -> ProviderManager:
    """Register simulated providers under the names the default routing uses."""
    manager = ProviderManager()

    manager.register_text_provider(
        "openai", SimulatedTextProvider("openai", rng, failure_rate=failure_rate)
    )
    manager.register_text_provider(
        "anthropic", SimulatedTextProvider("anthropic", rng, latency_ms=(60.0, 200.0))
    )
    manager.register_embedding_provider(
        "openai", SimulatedEmbeddingProvider("openai", rng, latency_ms=(5.0, 30.0))
    )
    manager.register_extraction_provider(
        "anthropic", SimulatedExtractionProvider("anthropic", rng, failure_rate=failure_rate)
    )
    manager.register_extraction_provider("openai", SimulatedExtractionProvider("openai", rng))
    manager.register_search_provider(
        "serper",
        SimulatedSearchProvider(
            "serper", rng, ["artdeadline.com", "nyfa.org", "transartists.org"],
            failure_rate=failure_rate,
        ),
    )
    manager.register_search_provider(
        "google",
        SimulatedSearchProvider("google", rng, ["nyfa.org", "artworkarchive.com"]),
    )
    return manager


async def run_demo(manager: ProviderManager, rounds: int, verbose: bool = False) -> dict[str, int]:
    """
    Issue a mix of calls and count outcomes.

    Args:
        manager: Manager with simulated providers registered
        rounds: Number of rounds; each round issues one call per operation
        verbose: Whether to print each call

    Returns:
        Outcome counts keyed by "ok" and "failed"
    """
    outcomes = {"ok": 0, "failed": 0}

    async def call(label: str, coro) -> None:
        try:
            response = await coro
        except (AllProvidersFailed, ProviderError) as e:
            outcomes["failed"] += 1
            if verbose:
                print(f"  FAILED {label:<28} {e}")
            return
        outcomes["ok"] += 1
        if verbose:
            print(f"  OK     {label:<28} {type(response).__name__}")

    print(f"\nProcessing {rounds} rounds...")
    print("-" * 60)

    for i in range(1, rounds + 1):
        prompt = SAMPLE_PROMPTS[i % len(SAMPLE_PROMPTS)]
        await call(
            "generate query-enhancement",
            manager.generate(prompt, UseCase.QUERY_ENHANCEMENT, disable_cache=True),
        )
        await call("generate rag-qa", manager.generate(prompt, UseCase.RAG_QA))
        await call("embed", manager.embed(prompt))
        await call("extract", manager.extract(prompt, GRANT_SCHEMA))
        await call("search", manager.search(prompt, disable_cache=True, max_results=5))

        if not verbose and i % 10 == 0:
            print(f"  Processed {i}/{rounds} rounds...")

    return outcomes


def print_report(manager: ProviderManager, outcomes: dict[str, int],
                 elapsed_seconds: float, report_config: CostReportConfig) -> None:
    """Print per-use-case statistics and the cost report."""

    print("\n" + "=" * 60)
    print("PROVIDER MANAGER DEMO RESULTS")
    print("=" * 60)

    total = outcomes["ok"] + outcomes["failed"]
    print(f"\nCalls: {total} ({outcomes['ok']} ok, {outcomes['failed']} failed)")
    print(f"Elapsed: {elapsed_seconds:.2f}s")
    print(f"Cache entries: {len(manager.cache)}")

    print("\nBy Use Case:")
    print(
        f"  {'Use case':<22} {'Requests':>8} {'Success':>8} "
        f"{'Cost':>10} {'p50':>9} {'p95':>9}"
    )
    print(f"  {'-'*22} {'-'*8} {'-'*8} {'-'*10} {'-'*9} {'-'*9}")

    stats = manager.get_cost_stats()
    performance = manager.get_performance_metrics()
    for use_case, item in stats.items():
        if item.total_requests == 0:
            continue
        perf = performance[use_case]
        print(
            f"  {use_case.value:<22} {item.total_requests:>8} "
            f"{item.success_rate:>7.0%} {format_cost(item.total_cost):>10} "
            f"{format_latency(perf.p50_latency_ms):>9} {format_latency(perf.p95_latency_ms):>9}"
        )

    print("\n" + manager.generate_cost_report(report_config))
    print("=" * 60)


def main():
    """Main entry point for the demo runner."""

    parser = argparse.ArgumentParser(
        description="Drive the provider manager with simulated providers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_demo.py                        Default run
  python scripts/run_demo.py --rounds 100           More traffic
  python scripts/run_demo.py --failure-rate 0.5     Flakier primaries
  python scripts/run_demo.py --group-by model       Report by model
        """
    )

    parser.add_argument("--rounds", type=int, default=20, help="Rounds of calls (default: 20)")
    parser.add_argument(
        "--failure-rate",
        type=float,
        default=0.2,
        help="Probability that a primary provider fails (default: 0.2)"
    )
    parser.add_argument("--seed", type=int, default=7, help="Random seed (default: 7)")
    parser.add_argument(
        "--period",
        choices=["daily", "weekly", "monthly"],
        default="daily",
        help="Cost report period"
    )
    parser.add_argument(
        "--group-by",
        choices=["use_case", "provider", "model"],
        default="use_case",
        help="Cost report breakdown"
    )
    parser.add_argument(
        "--daily-limit",
        type=float,
        help="Install a daily cost alert on rag-qa with this USD limit"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show each call")

    args = parser.parse_args()

    if not 0.0 <= args.failure_rate <= 1.0:
        print("ERROR: --failure-rate must be between 0 and 1")
        sys.exit(1)
    if args.rounds < 1:
        print("ERROR: --rounds must be positive")
        sys.exit(1)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)-8s | %(name)s | %(message)s")

    print("=" * 60)
    print("Provider Manager Demo Runner")
    print("=" * 60)

    rng = random.Random(args.seed)
    manager = build_demo_manager(rng, args.failure_rate)

    if args.daily_limit is not None:
        def on_exceeded(stats: CostStatistics) -> None:
            print(f"  ALERT rag-qa spent {format_cost(stats.total_cost)} today")

        manager.set_cost_alert(CostAlert(UseCase.RAG_QA, args.daily_limit, on_exceeded))

    for capability, names in manager.registered_providers().items():
        print(f"  {capability:<12} {', '.join(names)}")

    start_time = time.time()
    outcomes = asyncio.run(run_demo(manager, args.rounds, verbose=args.verbose))

    discovery = asyncio.run(
        manager.search_multiple("art grants new york", max_results_per_provider=5)
    )
    print(
        f"\nDiscovery: {discovery.total_results} results from "
        f"{', '.join(discovery.successful_providers) or 'no providers'}, "
        f"{discovery.deduplicated_count} duplicates removed, "
        f"{format_cost(discovery.total_cost)}"
    )
    for failed in discovery.provider_results:
        if not failed.success:
            print(f"  {failed.provider}: {failed.error}")

    print_report(
        manager,
        outcomes,
        time.time() - start_time,
        CostReportConfig(period=args.period, group_by=args.group_by),
    )


if __name__ == "__main__":
    main()
