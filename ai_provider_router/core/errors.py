"""
Error types for provider routing and usage accounting.
"""

from typing import List, Optional, Tuple

from .pricing import Provider


class ConfigurationError(ValueError):
    """Raised when no usable provider is configured or settings are invalid."""


class ProviderError(Exception):
    """A single provider call failed (network, auth, rate limit, bad response)."""

    def __init__(self, message: str, provider: Optional[Provider] = None):
        super().__init__(message)
        self.provider = provider


class ProvidersExhaustedError(Exception):
    """Every configured provider was attempted or skipped and none succeeded."""

    def __init__(self, failures: List[Tuple[Provider, str]]):
        if failures:
            details = "; ".join(f"{provider.value}: {reason}" for provider, reason in failures)
            message = f"All AI providers failed ({details})"
        else:
            message = "All AI providers failed"
        super().__init__(message)
        self.failures = failures


class LedgerWriteError(Exception):
    """Recording a usage record failed. Never escapes the ledger."""
