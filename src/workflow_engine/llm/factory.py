"""Factory for creating LLM providers."""

import logging
from dataclasses import dataclass

from workflow_engine.config import EngineSettings
from workflow_engine.llm.openai_provider import OpenAICompatibleProvider
from workflow_engine.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProviderSpec:
    name: str
    base_url: str | None
    default_model: str
    key_field: str


PROVIDERS: dict[str, ProviderSpec] = {
    "gemini": ProviderSpec(
        name="gemini",
        base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
        default_model="gemini-2.5-flash",
        key_field="gemini_api_key",
    ),
    "deepseek": ProviderSpec(
        name="deepseek",
        base_url="https://api.deepseek.com",
        default_model="deepseek-chat",
        key_field="deepseek_api_key",
    ),
    "grok": ProviderSpec(
        name="grok",
        base_url="https://api.x.ai/v1",
        default_model="grok-3-fast",
        key_field="xai_api_key",
    ),
    "openai": ProviderSpec(
        name="openai",
        base_url=None,
        default_model="gpt-4o-mini",
        key_field="openai_api_key",
    ),
}

ALIASES: dict[str, str] = {"google": "gemini", "xai": "grok"}


def canonical_provider_name(name: str) -> str:
    key = name.strip().lower()
    return ALIASES.get(key, key)


class LLMFactory:
    """Factory for creating LLM provider instances."""

    @staticmethod
    def create(name: str, settings: EngineSettings) -> LLMProvider:
        """Create an LLM provider by name.

        Args:
            name: Provider name or alias ('google', 'gemini', 'deepseek', 'grok', 'xai', 'openai').
            settings: Engine settings holding API keys.

        Returns:
            Configured LLM provider instance.

        Raises:
            ValueError: If the provider is unknown or its API key is missing.
        """
        spec = PROVIDERS.get(canonical_provider_name(name))
        if spec is None:
            supported = ", ".join(sorted({*PROVIDERS, *ALIASES}))
            raise ValueError(f"Unsupported AI provider: {name}. Use one of: {supported}")

        logger.info(f"Creating LLM provider: {spec.name}")

        return OpenAICompatibleProvider(
            name=spec.name,
            api_key=getattr(settings, spec.key_field),
            default_model=spec.default_model,
            base_url=spec.base_url,
            temperature=settings.ai_temperature,
        )
