"""
Orchestration facade.

Single entry point for collaborators: generate a completion through the
fallback router and record what it cost.
"""

import logging
from typing import List, Optional

from openai import AsyncOpenAI

from .config.loader import Settings
from .core.pricing import Provider
from .core.router import AIResponse, GenerationRequest, ProviderDescriptor, ProviderRouter
from .providers.base import GenerationOverrides
from .providers.gemini_client import GeminiClient
from .providers.openai_client import OpenAIChatClient
from .storage.ledger import UsageLedger
from .storage.models import UsageEntry

logger = logging.getLogger(__name__)

DEFAULT_OPERATION = "general"


def build_descriptors(settings: Settings) -> List[ProviderDescriptor]:
    """Default three-tier chain, limited to providers with credentials.

    Raises:
        ConfigurationError: If no API key is configured
    """
    settings.require_credentials()

    descriptors: List[ProviderDescriptor] = []
    if settings.gemini_api_key:
        descriptors.append(ProviderDescriptor(
            provider=Provider.GEMINI,
            client=GeminiClient(api_key=settings.gemini_api_key, model=settings.models.gemini),
            daily_limit=settings.quota.daily_limit
        ))
    if settings.openai_api_key:
        openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
        descriptors.append(ProviderDescriptor(
            provider=Provider.GPT5_NANO,
            client=OpenAIChatClient(
                model=settings.models.nano,
                temperature=settings.temperature,
                client=openai_client
            )
        ))
        descriptors.append(ProviderDescriptor(
            provider=Provider.GPT5_MINI,
            client=OpenAIChatClient(
                model=settings.models.mini,
                temperature=settings.temperature,
                client=openai_client
            )
        ))
    return descriptors


class AIOrchestrator:
    """Routes a prompt to the cheapest working provider and records the cost.

    Recording is best effort: a ledger failure is logged by the ledger and
    the response is still returned.
    """

    def __init__(self, router: ProviderRouter, ledger: UsageLedger):
        self.router = router
        self.ledger = ledger

    @classmethod
    def from_settings(cls, settings: Settings) -> "AIOrchestrator":
        """Build the default provider chain and a file-backed ledger."""
        router = ProviderRouter(build_descriptors(settings))
        logger.info(
            "Provider chain: %s", ", ".join(p.value for p in router.providers)
        )
        return cls(router=router, ledger=UsageLedger.open(settings.log_dir))

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        operation: str = DEFAULT_OPERATION,
        issue_number: Optional[int] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> AIResponse:
        """Generate a completion and record its usage.

        Args:
            prompt: User prompt (required)
            system_instruction: Optional system instruction
            operation: Label stored with the usage record, e.g. "issue-analysis"
            issue_number: Optional correlation id stored with the record
            model: Optional model override for the selected provider
            temperature: Optional temperature override
            max_tokens: Optional output token cap

        Returns:
            AIResponse from the provider that served the request

        Raises:
            ValueError: If prompt or operation is empty
            ProvidersExhaustedError: If every provider failed
        """
        if not operation or not operation.strip():
            raise ValueError("operation is required and cannot be empty")

        overrides = None
        if model is not None or temperature is not None or max_tokens is not None:
            overrides = GenerationOverrides(
                model=model, temperature=temperature, max_tokens=max_tokens
            )
        request = GenerationRequest(
            prompt=prompt,
            system_instruction=system_instruction,
            overrides=overrides
        )

        response = await self.router.generate(request)

        self.ledger.record(UsageEntry(
            provider=response.provider,
            tokens_input=response.tokens.input_tokens,
            tokens_output=response.tokens.output_tokens,
            cost=response.cost,
            operation=operation,
            issue_number=issue_number
        ))
        return response

    def stats(self):
        """Router quota statistics, keyed by provider."""
        return self.router.stats()
