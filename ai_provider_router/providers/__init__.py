"""
Provider clients for AI Provider Router.

Each client exposes the single ``complete`` capability the router consumes.
"""

from .base import Completion, CompletionClient, GenerationOverrides
from .gemini_client import GeminiClient
from .openai_client import OpenAIChatClient

__all__ = [
    "Completion",
    "CompletionClient",
    "GenerationOverrides",
    "GeminiClient",
    "OpenAIChatClient",
]
