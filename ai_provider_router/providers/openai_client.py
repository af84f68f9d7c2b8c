"""
OpenAI chat completions client.

Serves both paid tiers; the tier is selected by the model name.
"""

import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from ..core.errors import ProviderError
from .base import Completion, CompletionClient, GenerationOverrides

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7


class OpenAIChatClient(CompletionClient):
    """Async OpenAI chat completions wrapper.

    SDK failures are re-raised as ProviderError so the router can fall
    through to the next tier.
    """

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        temperature: Optional[float] = DEFAULT_TEMPERATURE,
        client: Optional[AsyncOpenAI] = None
    ):
        """Initialize the client.

        Args:
            model: OpenAI model name (required)
            api_key: API key; the SDK falls back to OPENAI_API_KEY when omitted
            temperature: Default sampling temperature, None to use the model default
            client: Pre-built AsyncOpenAI instance

        Raises:
            ValueError: If model is missing/empty
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.model = model
        self.temperature = temperature
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def complete(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        overrides: Optional[GenerationOverrides] = None
    ) -> Completion:
        overrides = overrides or GenerationOverrides()

        messages: List[Dict[str, str]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        params: Dict[str, Any] = {
            "model": overrides.model or self.model,
            "messages": messages,
        }
        temperature = overrides.temperature if overrides.temperature is not None else self.temperature
        if temperature is not None:
            params["temperature"] = temperature
        if overrides.max_tokens is not None:
            params["max_completion_tokens"] = overrides.max_tokens

        try:
            response = await self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI request failed for {params['model']}: {e}") from e

        if not response.choices:
            raise ProviderError(f"OpenAI returned no choices for {params['model']}")

        content = response.choices[0].message.content or ""
        usage = response.usage
        if usage is None:
            logger.debug("OpenAI response for %s carried no usage block", params["model"])
            return Completion(text=content)

        return Completion(
            text=content,
            input_tokens=usage.prompt_tokens,
            output_tokens=usage.completion_tokens
        )
