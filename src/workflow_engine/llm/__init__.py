"""LLM package initialization."""

from workflow_engine.llm.factory import LLMFactory
from workflow_engine.llm.provider import Completion, LLMProvider

__all__ = [
    "Completion",
    "LLMFactory",
    "LLMProvider",
]
