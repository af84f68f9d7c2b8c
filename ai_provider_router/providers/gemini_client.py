"""
Google Gemini client for the free tier.
"""

import asyncio
import logging
from typing import Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ..core.errors import ProviderError
from ..core.token_counter import build_prompt_text, estimate_tokens
from .base import Completion, CompletionClient, GenerationOverrides

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"


class GeminiClient(CompletionClient):
    """Gemini wrapper using the google-genai SDK.

    The system instruction is prepended to the prompt as a single text
    block, so input tokens can be estimated from that same string.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_GEMINI_MODEL,
        client: Optional[genai.Client] = None
    ):
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.model = model
        self.client = client or genai.Client(api_key=api_key)

    async def complete(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        overrides: Optional[GenerationOverrides] = None
    ) -> Completion:
        overrides = overrides or GenerationOverrides()
        model = overrides.model or self.model
        full_prompt = build_prompt_text(prompt, system_instruction)

        config = genai_types.GenerateContentConfig(
            temperature=overrides.temperature,
            max_output_tokens=overrides.max_tokens,
        )

        try:
            # Sync SDK call off the event loop
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=model,
                contents=full_prompt,
                config=config,
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise ProviderError(f"Gemini request failed for {model}: {e}") from e

        text = response.text
        if text is None:
            raise ProviderError(f"Gemini returned no text for {model}")

        usage = response.usage_metadata
        if usage is None or usage.prompt_token_count is None:
            return Completion(text=text)

        return Completion(
            text=text,
            input_tokens=usage.prompt_token_count,
            output_tokens=(
                usage.candidates_token_count
                if usage.candidates_token_count is not None
                else estimate_tokens(text)
            )
        )
