"""Unit tests for AI workflow generation."""

from __future__ import annotations

import json
import sys
from unittest.mock import Mock

import pytest
from conftest import FakeProvider

from workflow_engine.config import EngineSettings
from workflow_engine.engine import WorkflowExecutor
from workflow_engine.errors import WorkflowGenerationError
from workflow_engine.executors import default_registry
from workflow_engine.generator import SYSTEM_PROMPT, extract_json_object, generate_workflow
from workflow_engine.models import NodeStatus, NodeType
from workflow_engine.planner import execution_order

GENERATED = {
    "name": "Web Scraper & Analyzer",
    "description": "Fetch webpage content and analyze with AI",
    "nodes": [
        {"id": "1", "label": "Fetch", "type": "HttpRequest", "x": 100, "y": 100,
         "config": {"url": "https://example.com", "method": "GET"}},
        {"id": "2", "label": "Analyze", "type": "AiPrompt", "x": 450, "y": 100,
         "config": {"provider": "gemini", "prompt": "Summarize: {{1.body}}"}},
    ],
    "edges": [{"id": "e1", "source": "1", "target": "2"}],
}


def test_extract_from_code_fence() -> None:
    reply = '```json\n{\n  "name": "Test",\n  "nodes": []\n}\n```'

    extracted = extract_json_object(reply)

    assert json.loads(extracted) == {"name": "Test", "nodes": []}


def test_extract_ignores_surrounding_prose() -> None:
    reply = 'Here\'s the workflow:\n{"name": "Test"}\nThat should work!'

    assert extract_json_object(reply) == '{"name": "Test"}'


def test_extract_without_object() -> None:
    with pytest.raises(WorkflowGenerationError, match="No valid JSON object"):
        extract_json_object("I can't help with that.")


def test_generate_workflow_assigns_fresh_ids() -> None:
    provider = FakeProvider(reply="Sure!\n" + json.dumps(GENERATED))

    workflow = generate_workflow("scrape a website and analyze it", provider)

    assert workflow.name == "Web Scraper & Analyzer"
    assert [n.type for n in workflow.nodes] == [NodeType.HTTP_REQUEST, NodeType.AI_PROMPT]
    fetch, analyze = workflow.nodes
    assert fetch.id not in ("1", "2") and analyze.id not in ("1", "2")
    assert workflow.edges[0].source == fetch.id
    assert workflow.edges[0].target == analyze.id
    assert execution_order(workflow) == [fetch.id, analyze.id]
    assert "User Request: scrape a website and analyze it" in provider.prompts[0]


def test_generate_workflow_rejects_cycles() -> None:
    cyclic = {**GENERATED, "edges": [
        {"source": "1", "target": "2"},
        {"source": "2", "target": "1"},
    ]}

    with pytest.raises(WorkflowGenerationError, match="cycles or is invalid"):
        generate_workflow("loop forever", FakeProvider(reply=json.dumps(cyclic)))


def test_generate_workflow_rejects_unknown_node_type() -> None:
    bad = {"name": "x", "nodes": [{"id": "1", "type": "Teleport"}], "edges": []}

    with pytest.raises(WorkflowGenerationError, match="not a valid workflow"):
        generate_workflow("beam me up", FakeProvider(reply=json.dumps(bad)))


def test_generate_workflow_wraps_provider_errors() -> None:
    provider = FakeProvider()
    provider.complete = Mock(side_effect=RuntimeError("quota exceeded"))

    with pytest.raises(WorkflowGenerationError, match="quota exceeded"):
        generate_workflow("anything", provider)


def test_generate_workflow_requires_prompt() -> None:
    with pytest.raises(WorkflowGenerationError, match="must not be empty"):
        generate_workflow("  ", FakeProvider())


def test_generate_workflow_rewrites_placeholders_to_new_ids() -> None:
    workflow = generate_workflow("scrape and analyze", FakeProvider(reply=json.dumps(GENERATED)))

    fetch, analyze = workflow.nodes
    assert analyze.config["prompt"] == "Summarize: {{" + fetch.id + ".body}}"
    assert fetch.config == {"url": "https://example.com", "method": "GET"}


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell commands")
@pytest.mark.asyncio
async def test_generated_workflow_runs_with_working_placeholders(
    executor: WorkflowExecutor,
) -> None:
    reply = {
        "name": "Echo and log",
        "nodes": [
            {"id": "1", "label": "Echo", "type": "Shell", "config": {"cmd": "printf hi"}},
            {"id": "2", "label": "Report", "type": "Log",
             "config": {"message": "got {{1.stdout}} and ${ 1.exit_code }, HOME=${HOME}"}},
        ],
        "edges": [{"id": "e1", "source": "1", "target": "2"}],
    }
    workflow = generate_workflow("echo then log", FakeProvider(reply=json.dumps(reply)))

    echo, report = await executor.execute_workflow(workflow)

    assert echo.status == NodeStatus.SUCCESS
    assert report.output["message"] == "got hi and 0, HOME=${HOME}"


@pytest.mark.parametrize(
    ("node_type", "keys"),
    [
        (NodeType.SHELL, ["cmd"]),
        (NodeType.AI_PROMPT, ["provider", "model", "prompt"]),
        (NodeType.DATABASE, ["query", "db_type", "database_url"]),
        (NodeType.TRADE_AGENT, ["strategy", "symbol", "change"]),
        (NodeType.HTTP_REQUEST, ["url", "method", "body"]),
        (NodeType.FILE_READ, ["path"]),
        (NodeType.FILE_WRITE, ["path", "content"]),
        (NodeType.TRANSFORM, ["operation", "input"]),
        (NodeType.FILTER, ["condition"]),
        (NodeType.CONDITIONAL, ["condition"]),
        (NodeType.LOOP, ["iterations", "input"]),
        (NodeType.LOG, ["level", "message"]),
        (NodeType.NOTIFY, ["title", "message"]),
    ],
)
def test_prompt_lists_the_keys_each_executor_reads(node_type: NodeType, keys: list[str]) -> None:
    line = next(
        line for line in SYSTEM_PROMPT.splitlines() if line.startswith(f"- {node_type.value}:")
    )

    for key in keys:
        assert f'"{key}"' in line


def test_prompt_covers_required_keys_of_every_executor(settings: EngineSettings) -> None:
    registry = default_registry(settings)
    lines = {
        line.split(":", 1)[0].removeprefix("- "): line
        for line in SYSTEM_PROMPT.splitlines()
        if line.startswith("- ")
    }

    for node_type in registry:
        line = lines[node_type.value]
        for alternatives in registry.get(node_type).required:
            assert any(f'"{key}"' in line for key in alternatives), (node_type, alternatives)
    assert '"connection"' not in SYSTEM_PROMPT
    assert '"items"' not in SYSTEM_PROMPT
