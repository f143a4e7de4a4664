"""OpenAI-compatible chat completions provider.

Gemini, DeepSeek and xAI all expose OpenAI-compatible endpoints, so a single
client implementation serves every supported provider; only the base URL,
API key and default model differ.
"""

import logging
from typing import Any

from openai import OpenAI

from workflow_engine.llm.provider import Completion, LLMProvider

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(LLMProvider):
    """Provider backed by the `openai` SDK pointed at any compatible endpoint."""

    def __init__(
        self,
        *,
        name: str,
        api_key: str | None,
        default_model: str,
        base_url: str | None = None,
        temperature: float = 0.7,
        client: OpenAI | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            name: Provider name reported in node outputs.
            api_key: API key for the endpoint.
            default_model: Model used when a call doesn't name one.
            base_url: Endpoint base URL (None = api.openai.com).
            temperature: Default sampling temperature.
            client: Pre-built client (tests).

        Raises:
            ValueError: If API key is not provided.
        """
        if not api_key and client is None:
            raise ValueError(f"API key not found for provider: {name}. Set environment variable.")

        self.name = name
        self.default_model = default_model
        self.temperature = temperature
        self.client = client or OpenAI(api_key=api_key, base_url=base_url)

        logger.info(f"{name} provider initialized with model: {default_model}")

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> Completion:
        """Generate a completion for a single user prompt."""
        logger.debug(f"Generating completion for prompt: {prompt[:100]}...")
        return self.chat(
            [{"role": "user", "content": prompt}],
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs,
        )

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> Completion:
        """Generate chat completion using the chat completions API."""
        temp = temperature if temperature is not None else self.temperature
        model_name = model or self.default_model

        logger.debug(f"Generating chat completion with {len(messages)} messages")

        response = self.client.chat.completions.create(
            model=model_name,
            messages=messages,  # type: ignore
            max_tokens=max_tokens,
            temperature=temp,
            **kwargs,
        )

        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        tokens = getattr(usage, "total_tokens", 0) or 0
        logger.debug(f"Generated {len(content)} characters")

        return Completion(content=content, tokens_used=int(tokens), model=model_name)
