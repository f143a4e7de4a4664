"""Test configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from workflow_engine.config import EngineSettings
from workflow_engine.engine import WorkflowExecutor
from workflow_engine.executors import default_registry
from workflow_engine.llm.provider import Completion, LLMProvider
from workflow_engine.models import Edge, Node, NodeType, Workflow
from workflow_engine.progress import CallbackProgressListener


class FakeProvider(LLMProvider):
    """In-memory provider that records prompts and replies with canned text."""

    def __init__(self, reply: str = "fake response", name: str = "fake") -> None:
        self.reply = reply
        self.name = name
        self.default_model = "fake-model"
        self.prompts: list[str] = []

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> Completion:
        self.prompts.append(prompt)
        return Completion(content=self.reply, tokens_used=7, model=model or self.default_model)

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> Completion:
        return self.complete(messages[-1]["content"], model=model)


def make_workflow(
    nodes: list[tuple[str, NodeType, dict[str, str]]],
    edges: list[tuple[str, str]] | None = None,
    *,
    workflow_id: str = "wf-test",
    name: str = "Test workflow",
) -> Workflow:
    return Workflow(
        id=workflow_id,
        name=name,
        nodes=[Node(id=nid, type=ntype, label=nid, config=config) for nid, ntype, config in nodes],
        edges=[Edge(id=f"e{i}", source=s, target=t) for i, (s, t) in enumerate(edges or [])],
    )


@pytest.fixture
def settings(tmp_path: Path) -> EngineSettings:
    """Settings isolated from the developer's environment, with JSONL checkpoints."""
    return EngineSettings(
        _env_file=None,
        checkpoint_root=tmp_path / "checkpoints",
        checkpoint_backend="jsonl",
        database_url=f"sqlite:///{tmp_path / 'engine.db'}",
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def events() -> list:
    """Progress events recorded by the `executor` fixture."""
    return []


@pytest.fixture
def executor(settings: EngineSettings, fake_provider: FakeProvider, events: list) -> WorkflowExecutor:
    registry = default_registry(settings, provider_factory=lambda _name: fake_provider)
    return WorkflowExecutor(
        settings,
        registry=registry,
        listener=CallbackProgressListener(events.append),
    )
