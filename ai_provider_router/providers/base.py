"""
Provider capability interface.

Defines the ``complete`` call every backend exposes to the router.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GenerationOverrides:
    """Optional per-call overrides applied on top of a client's defaults."""
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    def __post_init__(self):
        """Validate override values."""
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")
        if self.temperature is not None and self.temperature < 0:
            raise ValueError("temperature cannot be negative")


@dataclass(frozen=True)
class Completion:
    """Raw result of a provider call.

    Token counts are None when the provider did not report them; the router
    estimates them from text length in that case.
    """
    text: str
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


class CompletionClient(ABC):
    """A backend that can complete a prompt."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        overrides: Optional[GenerationOverrides] = None
    ) -> Completion:
        """Generate a completion.

        Raises:
            ProviderError: If the call failed for any reason
        """
