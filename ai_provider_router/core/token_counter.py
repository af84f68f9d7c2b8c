"""
Token counting and usage tracking.

Holds reported token counts and the character-based estimate used when a
provider does not report usage.
"""

import math
from dataclasses import dataclass
from typing import Optional

# Rough estimate: ~4 characters per token
CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class TokenUsage:
    """Token counts for a single completed call."""
    input_tokens: int
    output_tokens: int

    def __post_init__(self):
        """Validate token counts are non-negative."""
        if self.input_tokens < 0:
            raise ValueError("input_tokens cannot be negative")
        if self.output_tokens < 0:
            raise ValueError("output_tokens cannot be negative")

    @property
    def total_tokens(self) -> int:
        """Total tokens used (input + output)."""
        return self.input_tokens + self.output_tokens


def estimate_tokens(text: str) -> int:
    """Estimate the token count of ``text`` as ``ceil(len(text) / 4)``.

    The same approximation is used everywhere so logged costs can be
    reproduced from text lengths.
    """
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def build_prompt_text(prompt: str, system_instruction: Optional[str] = None) -> str:
    """Join the system instruction and prompt the way single-string providers receive them."""
    if system_instruction:
        return f"{system_instruction}\n\n{prompt}"
    return prompt
