"""
Unit tests for provider fallback routing.

Tests priority order, fall-through, quota enforcement and cost metadata.
"""

import asyncio
from datetime import timedelta

import pytest

from ai_provider_router.core.errors import (
    ConfigurationError,
    ProviderError,
    ProvidersExhaustedError,
)
from ai_provider_router.core.pricing import Provider
from ai_provider_router.core.quota import QuotaState
from ai_provider_router.core.router import (
    GenerationRequest,
    ProviderDescriptor,
    ProviderRouter,
)
from ai_provider_router.providers.base import Completion, GenerationOverrides

from tests.fakes import FakeClient, failing


def _router(clock, gemini=None, nano=None, mini=None, daily_limit=1500, quota_states=None):
    descriptors = []
    if gemini is not None:
        descriptors.append(ProviderDescriptor(Provider.GEMINI, gemini, daily_limit=daily_limit))
    if nano is not None:
        descriptors.append(ProviderDescriptor(Provider.GPT5_NANO, nano))
    if mini is not None:
        descriptors.append(ProviderDescriptor(Provider.GPT5_MINI, mini))
    return ProviderRouter(descriptors, clock=clock, quota_states=quota_states)


def _generate(router, prompt="Summarize issue #12", system=None):
    return asyncio.run(router.generate(GenerationRequest(prompt=prompt, system_instruction=system)))


class TestConstruction:
    """Test router construction rules."""

    def test_no_providers_fails_at_construction(self, clock):
        """Test that an empty chain fails at construction."""
        with pytest.raises(ConfigurationError, match="At least one AI provider"):
            ProviderRouter([], clock=clock)

    def test_duplicate_provider_rejected(self, clock):
        """Test that duplicate providers fail."""
        client = FakeClient()
        with pytest.raises(ConfigurationError, match="configured twice"):
            ProviderRouter([
                ProviderDescriptor(Provider.GPT5_NANO, client),
                ProviderDescriptor(Provider.GPT5_NANO, client),
            ], clock=clock)

    def test_invalid_daily_limit(self):
        """Test that a zero daily limit fails."""
        with pytest.raises(ValueError, match="daily_limit"):
            ProviderDescriptor(Provider.GEMINI, FakeClient(), daily_limit=0)

    def test_empty_prompt_rejected(self):
        """Test that blank prompts fail."""
        with pytest.raises(ValueError, match="prompt is required"):
            GenerationRequest(prompt="   ")


class TestFreeTier:
    """Test the quota-limited free tier."""

    def test_free_tier_success_costs_nothing_and_counts_once(self, clock):
        """Test free-tier success costs nothing and counts once."""
        gemini = FakeClient(Completion(text="analysis"))
        nano = FakeClient()
        router = _router(clock, gemini=gemini, nano=nano)

        response = _generate(router)

        assert response.provider == Provider.GEMINI
        assert response.cost == 0
        assert response.content == "analysis"
        assert router.quota_state(Provider.GEMINI).count == 1
        assert nano.calls == []

    def test_free_tier_failure_does_not_count(self, clock):
        """Test free-tier failure does not consume quota."""
        gemini = FakeClient(failing("503 unavailable"))
        nano = FakeClient(Completion(text="fallback", input_tokens=10, output_tokens=5))
        router = _router(clock, gemini=gemini, nano=nano)

        response = _generate(router)

        assert response.provider == Provider.GPT5_NANO
        assert router.quota_state(Provider.GEMINI).count == 0

    def test_exhausted_quota_skips_free_tier(self, clock):
        """Test exhausted quota skips the free tier."""
        gemini = FakeClient()
        nano = FakeClient(Completion(text="paid", input_tokens=10, output_tokens=10))
        router = _router(
            clock, gemini=gemini, nano=nano,
            quota_states={Provider.GEMINI: QuotaState(count=1500, window_start=clock())}
        )

        response = _generate(router)

        assert gemini.calls == []
        assert response.provider == Provider.GPT5_NANO

    def test_quota_resets_after_window(self, clock):
        """Test free tier is used again after the window resets."""
        gemini = FakeClient(Completion(text="free again"))
        nano = FakeClient()
        router = _router(
            clock, gemini=gemini, nano=nano,
            quota_states={Provider.GEMINI: QuotaState(count=1500, window_start=clock())}
        )

        clock.advance(hours=23, minutes=59)
        assert _generate(router).provider == Provider.GPT5_NANO

        clock.advance(minutes=1)
        response = _generate(router)
        assert response.provider == Provider.GEMINI
        state = router.quota_state(Provider.GEMINI)
        assert state.count == 1
        assert state.window_start == clock()

    def test_1501_requests_in_one_window(self, clock):
        """Requests 1-1500 use the free tier; request 1501 is paid."""
        gemini = FakeClient(Completion(text="free"))
        nano = FakeClient(Completion(text="paid", input_tokens=100, output_tokens=50))
        router = _router(clock, gemini=gemini, nano=nano)

        async def run_all():
            results = []
            for _ in range(1501):
                results.append(await router.generate(GenerationRequest(prompt="triage")))
                clock.advance(seconds=1)
            return results

        responses = asyncio.run(run_all())

        assert all(r.provider == Provider.GEMINI and r.cost == 0 for r in responses[:1500])
        assert responses[1500].provider == Provider.GPT5_NANO
        assert responses[1500].cost > 0
        assert router.quota_state(Provider.GEMINI).count == 1500
        assert len(gemini.calls) == 1500


class TestPaidTiers:
    """Test fall-through across paid tiers."""

    def test_nano_cost_from_reported_usage(self, clock):
        """Test nano cost from reported usage."""
        nano = FakeClient(Completion(text="x", input_tokens=100, output_tokens=50))
        router = _router(clock, nano=nano)

        response = _generate(router)

        assert response.provider == Provider.GPT5_NANO
        assert response.tokens.input_tokens == 100
        assert response.tokens.output_tokens == 50
        assert response.cost == pytest.approx((100 / 1e6) * 0.05 + (50 / 1e6) * 0.40)

    def test_mini_after_nano_failure(self, clock):
        """Test mini is used after nano fails."""
        nano = FakeClient(failing("rate limited"))
        mini = FakeClient(Completion(text="premium", input_tokens=1000, output_tokens=500))
        router = _router(clock, nano=nano, mini=mini)

        response = _generate(router)

        assert response.provider == Provider.GPT5_MINI
        assert response.cost == pytest.approx((1000 / 1e6) * 0.25 + (500 / 1e6) * 2.00)
        assert len(nano.calls) == 1  # never retried

    def test_priority_order_is_fixed(self, clock):
        """Test providers are tried in configured order."""
        order = []

        class Recording(FakeClient):
            def __init__(self, name):
                super().__init__(failing(name))
                self.name = name

            async def complete(self, prompt, system_instruction=None, overrides=None):
                order.append(self.name)
                return await super().complete(prompt, system_instruction, overrides)

        router = _router(
            clock,
            gemini=Recording("gemini"),
            nano=Recording("nano"),
            mini=Recording("mini"),
        )
        with pytest.raises(ProvidersExhaustedError):
            _generate(router)
        assert order == ["gemini", "nano", "mini"]

    def test_all_providers_failing_raises_exhaustion(self, clock):
        """Test exhaustion error lists every failure."""
        router = _router(
            clock,
            gemini=FakeClient(failing("g down")),
            nano=FakeClient(failing("n down")),
            mini=FakeClient(failing("m down")),
        )

        with pytest.raises(ProvidersExhaustedError) as excinfo:
            _generate(router)

        failures = excinfo.value.failures
        assert [provider for provider, _ in failures] == [
            Provider.GEMINI, Provider.GPT5_NANO, Provider.GPT5_MINI
        ]
        assert "m down" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, ProviderError)
        assert excinfo.value.__cause__.provider == Provider.GPT5_MINI

    def test_free_tier_only_with_exhausted_quota(self, clock):
        """Test exhausted quota alone raises exhaustion."""
        router = _router(
            clock, gemini=FakeClient(),
            quota_states={Provider.GEMINI: QuotaState(count=1500, window_start=clock())}
        )
        with pytest.raises(ProvidersExhaustedError, match="quota exhausted"):
            _generate(router)


class TestTokenEstimation:
    """Test estimation when providers do not report usage."""

    def test_estimates_from_text_length(self, clock):
        """Test token estimate from text length."""
        gemini = FakeClient(Completion(text="a" * 10))
        router = _router(clock, gemini=gemini)

        response = _generate(router, prompt="p" * 13, system="s" * 4)

        # "ssss\n\n" + 13 chars = 19 chars -> ceil(19/4) = 5
        assert response.tokens.input_tokens == 5
        assert response.tokens.output_tokens == 3

    def test_paid_tier_estimate_feeds_cost(self, clock):
        """Test estimated tokens are priced."""
        nano = FakeClient(Completion(text="b" * 400))
        router = _router(clock, nano=nano)

        response = _generate(router, prompt="q" * 4000)

        assert response.tokens.input_tokens == 1000
        assert response.tokens.output_tokens == 100
        assert response.cost == pytest.approx((1000 / 1e6) * 0.05 + (100 / 1e6) * 0.40)

    def test_request_fields_forwarded(self, clock):
        """Test request fields reach the client."""
        nano = FakeClient(Completion(text="ok", input_tokens=1, output_tokens=1))
        router = _router(clock, nano=nano)
        overrides = GenerationOverrides(model="gpt-5-nano-2025", max_tokens=256)

        asyncio.run(router.generate(GenerationRequest(
            prompt="hello", system_instruction="be terse", overrides=overrides
        )))

        assert nano.calls == [("hello", "be terse", overrides)]


class TestStats:
    """Test quota statistics."""

    def test_stats_report_remaining_and_next_reset(self, clock):
        """Test stats report usage, remaining and next reset."""
        gemini = FakeClient(Completion(text="ok"))
        router = _router(clock, gemini=gemini, daily_limit=10)
        start = clock()

        for _ in range(3):
            _generate(router)

        stats = router.stats()[Provider.GEMINI]
        assert stats["requests_used"] == 3
        assert stats["remaining_free"] == 7
        assert stats["next_reset"] == start + timedelta(hours=24)

    def test_stats_only_cover_quota_limited_providers(self, clock):
        """Test stats skip providers without a quota."""
        router = _router(clock, nano=FakeClient())
        assert router.stats() == {}
