"""
Provider fallback routing.

Routes each generation request through an ordered list of providers under a
cost-minimization policy:

1. Quota-limited free tier, while its rolling window has capacity
2. Cheap paid tier
3. Premium paid tier

A failing tier is logged and skipped; the request fails only when every
configured tier has been attempted or skipped.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..providers.base import Completion, CompletionClient, GenerationOverrides
from . import quota
from .errors import ConfigurationError, ProviderError, ProvidersExhaustedError
from .pricing import Provider, calculate_cost
from .quota import QuotaState
from .token_counter import TokenUsage, build_prompt_text, estimate_tokens

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GenerationRequest:
    """A single prompt to be completed by whichever provider is selected."""
    prompt: str
    system_instruction: Optional[str] = None
    overrides: Optional[GenerationOverrides] = None

    def __post_init__(self):
        """Validate the prompt is present."""
        if not self.prompt or not self.prompt.strip():
            raise ValueError("prompt is required and cannot be empty")


@dataclass(frozen=True)
class AIResponse:
    """Completion text plus the provider and cost metadata that produced it."""
    content: str
    provider: Provider
    tokens: TokenUsage
    cost: float

    def __post_init__(self):
        """Validate cost is non-negative."""
        if self.cost < 0:
            raise ValueError("cost cannot be negative")


@dataclass(frozen=True)
class ProviderDescriptor:
    """One tier of the fallback chain.

    A descriptor with a ``daily_limit`` is quota-limited: it is only
    eligible while its rolling window has capacity.
    """
    provider: Provider
    client: CompletionClient
    daily_limit: Optional[int] = None

    def __post_init__(self):
        """Validate the quota limit."""
        if self.daily_limit is not None and self.daily_limit <= 0:
            raise ValueError("daily_limit must be > 0")

    @property
    def quota_limited(self) -> bool:
        return self.daily_limit is not None


class ProviderRouter:
    """Attempts providers in a fixed priority order until one succeeds.

    Attempts are strictly sequential. Quota state lives on the router
    instance and is only advanced by successful quota-limited calls; with
    concurrent callers the cap is enforced approximately.
    """

    def __init__(
        self,
        descriptors: Sequence[ProviderDescriptor],
        clock: Optional[Clock] = None,
        quota_states: Optional[Dict[Provider, QuotaState]] = None
    ):
        """Initialize the router.

        Args:
            descriptors: Providers in priority order
            clock: Returns the current time; defaults to UTC wall clock
            quota_states: Initial quota state per quota-limited provider

        Raises:
            ConfigurationError: If no provider is configured or one is listed twice
        """
        if not descriptors:
            raise ConfigurationError(
                "At least one AI provider is required (set GEMINI_API_KEY or OPENAI_API_KEY)"
            )

        seen = set()
        for descriptor in descriptors:
            if descriptor.provider in seen:
                raise ConfigurationError(f"Provider configured twice: {descriptor.provider.value}")
            seen.add(descriptor.provider)

        self.descriptors: Tuple[ProviderDescriptor, ...] = tuple(descriptors)
        self._clock = clock or utc_now

        now = self._clock()
        initial = quota_states or {}
        self._quota: Dict[Provider, QuotaState] = {
            d.provider: initial.get(d.provider, quota.new_quota_state(now))
            for d in self.descriptors
            if d.quota_limited
        }

    @property
    def providers(self) -> List[Provider]:
        return [d.provider for d in self.descriptors]

    def quota_state(self, provider: Provider) -> QuotaState:
        """Current quota state for a quota-limited provider.

        Raises:
            KeyError: If the provider is not quota-limited on this router
        """
        return self._quota[provider]

    async def generate(self, request: GenerationRequest) -> AIResponse:
        """Complete the request with the cheapest provider that succeeds.

        Raises:
            ProvidersExhaustedError: If every provider failed or was ineligible
        """
        failures: List[Tuple[Provider, str]] = []
        last_error: Optional[ProviderError] = None

        for descriptor in self.descriptors:
            provider = descriptor.provider

            if descriptor.quota_limited and not self._check_quota(descriptor):
                logger.info(
                    "Skipping %s: free-tier quota of %d requests used",
                    provider.value, descriptor.daily_limit
                )
                failures.append((provider, "quota exhausted"))
                continue

            logger.debug("Attempting %s", provider.value)
            try:
                completion = await descriptor.client.complete(
                    request.prompt,
                    request.system_instruction,
                    request.overrides
                )
            except ProviderError as e:
                if e.provider is None:
                    e.provider = provider
                logger.warning("%s failed, falling back: %s", provider.value, e)
                failures.append((provider, str(e)))
                last_error = e
                continue

            if descriptor.quota_limited:
                self._quota[provider] = quota.consume(self._quota[provider])

            response = self._build_response(provider, request, completion)
            logger.info(
                "%s served request (%d in / %d out tokens, $%.6f)",
                provider.value,
                response.tokens.input_tokens,
                response.tokens.output_tokens,
                response.cost
            )
            return response

        raise ProvidersExhaustedError(failures) from last_error

    def stats(self) -> Dict[Provider, Dict[str, object]]:
        """Quota usage for each quota-limited provider in its current window."""
        now = self._clock()
        result: Dict[Provider, Dict[str, object]] = {}
        for descriptor in self.descriptors:
            if not descriptor.quota_limited:
                continue
            state = quota.refresh(self._quota[descriptor.provider], now)
            self._quota[descriptor.provider] = state
            result[descriptor.provider] = {
                "requests_used": state.count,
                "remaining_free": quota.remaining(state, descriptor.daily_limit),
                "next_reset": state.next_reset,
            }
        return result

    def _check_quota(self, descriptor: ProviderDescriptor) -> bool:
        state = quota.refresh(self._quota[descriptor.provider], self._clock())
        self._quota[descriptor.provider] = state
        return quota.has_capacity(state, descriptor.daily_limit)

    @staticmethod
    def _build_response(
        provider: Provider,
        request: GenerationRequest,
        completion: Completion
    ) -> AIResponse:
        input_tokens = completion.input_tokens
        if input_tokens is None:
            input_tokens = estimate_tokens(
                build_prompt_text(request.prompt, request.system_instruction)
            )
        output_tokens = completion.output_tokens
        if output_tokens is None:
            output_tokens = estimate_tokens(completion.text)

        usage = TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens)
        return AIResponse(
            content=completion.text,
            provider=provider,
            tokens=usage,
            cost=calculate_cost(provider, usage)
        )
