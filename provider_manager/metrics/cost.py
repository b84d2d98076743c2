"""
Cost Calculator for Provider Calls

Turns token usage (or a search query) into a USD cost using the static
pricing tables in provider_manager.registry.providers. Adapters call this
to fill in the cost field of their responses.

Prices are quoted per 1K tokens:
    cost = prompt_tokens / 1000 * input_price
         + completion_tokens / 1000 * output_price

Unknown provider/model pairs cost 0.0 rather than failing the call.
"""

import logging
from dataclasses import dataclass

from provider_manager.registry.providers import (
    PROVIDER_PRICING,
    SEARCH_PRICING,
    ModelPricing,
)

logger = logging.getLogger(__name__)


@dataclass
class CostBreakdown:
    """
    Detailed cost breakdown for a single provider call.

    Attributes:
        provider: Provider that served the call
        model: Model that served the call
        input_tokens: Number of prompt tokens processed
        output_tokens: Number of completion tokens generated
        input_cost_usd: Cost for prompt tokens in USD
        output_cost_usd: Cost for completion tokens in USD
        priced: Whether pricing was found for the model
    """

    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    input_cost_usd: float
    output_cost_usd: float
    priced: bool = True

    @property
    def total_tokens(self) -> int:
        """Total tokens processed (input + output)."""
        return self.input_tokens + self.output_tokens

    @property
    def total_cost_usd(self) -> float:
        return self.input_cost_usd + self.output_cost_usd


class CostCalculator:
    """
    Calculate provider call costs from the pricing table.

    The calculator is thread-safe as it only reads the pricing table.

    Example:
        calculator = CostCalculator()
        breakdown = calculator.calculate("openai", "gpt-3.5-turbo", 1000, 500)
        print(f"${breakdown.total_cost_usd:.6f}")  # $0.002500
    """

    def __init__(
        self,
        pricing: dict[str, dict[str, ModelPricing]] | None = None,
        search_pricing: dict[str, float] | None = None,
    ):
        """
        Initialize the cost calculator.

        Args:
            pricing: Token pricing table, defaults to PROVIDER_PRICING
            search_pricing: Per-query pricing, defaults to SEARCH_PRICING
        """
        self._pricing = PROVIDER_PRICING if pricing is None else pricing
        self._search_pricing = SEARCH_PRICING if search_pricing is None else search_pricing

    def calculate(
        self,
        provider: str,
        model: str,
        input_tokens: int,
        output_tokens: int = 0,
    ) -> CostBreakdown:
        """
        Calculate cost breakdown for a call.

        Args:
            provider: Provider name (e.g., "openai")
            model: Model name as sent to the provider
            input_tokens: Number of prompt tokens used
            output_tokens: Number of completion tokens generated

        Returns:
            CostBreakdown, zero-cost and priced=False for unknown models
        """
        pricing = self._pricing.get(provider, {}).get(model)
        if pricing is None:
            logger.debug(f"No pricing for {provider}/{model}, recording zero cost")
            return CostBreakdown(
                provider=provider,
                model=model,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                input_cost_usd=0.0,
                output_cost_usd=0.0,
                priced=False,
            )

        return CostBreakdown(
            provider=provider,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            input_cost_usd=(input_tokens / 1000) * pricing.input_per_1k,
            output_cost_usd=(output_tokens / 1000) * pricing.output_per_1k,
        )

    def search_cost(self, provider: str, queries: int = 1) -> float:
        """Cost in USD of issuing queries against a search provider."""
        return self._search_pricing.get(provider, 0.0) * queries


_calculator: CostCalculator | None = None


def get_cost_calculator() -> CostCalculator:
    """
    Get the global cost calculator instance.

    Returns:
        Singleton CostCalculator instance over the default pricing tables
    """
    global _calculator
    if _calculator is None:
        _calculator = CostCalculator()
    return _calculator


def calculate_cost(
    provider: str,
    model: str,
    prompt_tokens: int,
    completion_tokens: int = 0,
) -> float:
    """Shortcut for get_cost_calculator().calculate(...).total_cost_usd."""
    return get_cost_calculator().calculate(
        provider, model, prompt_tokens, completion_tokens
    ).total_cost_usd
