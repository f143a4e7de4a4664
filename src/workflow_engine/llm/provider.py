"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Completion:
    """Text returned by a provider plus its token accounting."""

    content: str
    tokens_used: int = 0
    model: str = ""


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    This interface allows pluggable LLM backends (Gemini, DeepSeek, Grok, ...).
    Implementations are synchronous; the engine calls them from a worker
    thread.
    """

    name: str = ""
    default_model: str = ""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> Completion:
        """Generate a completion for a single user prompt.

        Args:
            prompt: The input prompt.
            model: Model identifier; the provider default when None.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            **kwargs: Additional provider-specific parameters.

        Returns:
            The completion text and tokens used.
        """
        pass

    @abstractmethod
    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> Completion:
        """Generate a chat completion from messages.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model identifier; the provider default when None.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            **kwargs: Additional provider-specific parameters.

        Returns:
            The assistant reply and tokens used.
        """
        pass
