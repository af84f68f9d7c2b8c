"""
Pricing calculations and rate management.

Fixed per-provider price table used to cost every completed generation call.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict

from .token_counter import TokenUsage

TOKENS_PER_MILLION = Decimal("1000000")
# Costs are kept to the nano-dollar; sub-cent requests must stay visible
COST_QUANTUM = Decimal("0.000000001")


class Provider(Enum):
    """Closed set of AI backends, in default priority order."""
    GEMINI = "gemini"          # free tier
    GPT5_NANO = "gpt-5-nano"   # cheap paid tier
    GPT5_MINI = "gpt-5-mini"   # premium paid tier


@dataclass(frozen=True)
class ProviderPricing:
    """Per-token pricing for a provider, in USD per 1M tokens."""
    input_cost_per_1m: Decimal
    output_cost_per_1m: Decimal

    @property
    def is_free(self) -> bool:
        return self.input_cost_per_1m == 0 and self.output_cost_per_1m == 0


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for supported providers."""
    prices: Dict[Provider, ProviderPricing]

    def get_pricing(self, provider: Provider) -> ProviderPricing:
        """Get pricing for a specific provider.

        Args:
            provider: Provider identity

        Returns:
            ProviderPricing for the provider

        Raises:
            ValueError: If provider has no published price
        """
        if provider not in self.prices:
            raise ValueError(f"Unsupported provider: {provider}")
        return self.prices[provider]


# Fixed pricing table - no dynamic fetching, no defaults
PRICING_TABLE = PricingTable({
    Provider.GEMINI: ProviderPricing(
        input_cost_per_1m=Decimal("0"),
        output_cost_per_1m=Decimal("0")
    ),
    Provider.GPT5_NANO: ProviderPricing(
        input_cost_per_1m=Decimal("0.05"),
        output_cost_per_1m=Decimal("0.40")
    ),
    Provider.GPT5_MINI: ProviderPricing(
        input_cost_per_1m=Decimal("0.25"),
        output_cost_per_1m=Decimal("2.00")
    ),
})


def calculate_cost(provider: Provider, usage: TokenUsage) -> float:
    """Calculate the cost of a call from its token counts.

    cost = (input / 1M) * input_price + (output / 1M) * output_price

    Args:
        provider: Provider that served the call
        usage: Token usage data

    Returns:
        Total cost in USD, rounded half-up to 1e-9

    Raises:
        ValueError: If provider is not supported
    """
    pricing = PRICING_TABLE.get_pricing(provider)

    input_cost = (Decimal(usage.input_tokens) / TOKENS_PER_MILLION) * pricing.input_cost_per_1m
    output_cost = (Decimal(usage.output_tokens) / TOKENS_PER_MILLION) * pricing.output_cost_per_1m

    total_cost = input_cost + output_cost
    return float(total_cost.quantize(COST_QUANTUM, rounding=ROUND_HALF_UP))
