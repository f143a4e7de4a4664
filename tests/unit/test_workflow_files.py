"""Unit tests for workflow import/export."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from workflow_engine.errors import WorkflowFileError
from workflow_engine.models import Edge, Node, NodeType, Workflow
from workflow_engine.workflow_files import load_workflow, save_workflow


def _workflow() -> Workflow:
    return Workflow(
        id="wf-1",
        name="Fetch and log",
        description="Fetch a page, then log its status",
        nodes=[
            Node(
                id="fetch",
                type=NodeType.HTTP_REQUEST,
                label="Fetch",
                config={"url": "https://example.com"},
                x=100,
                y=80,
                comments="public endpoint",
            ),
            Node(id="log", type=NodeType.LOG, label="Log", config={"message": "${fetch.status}"}),
        ],
        edges=[Edge(id="e1", source="fetch", target="log")],
        metadata={"owner": "ops"},
    )


def test_save_then_load_preserves_workflow(tmp_path: Path) -> None:
    path = tmp_path / "exports" / "wf.json"
    workflow = _workflow()

    save_workflow(workflow, path)
    loaded = load_workflow(path)

    assert loaded == workflow
    assert loaded.nodes[0].comments == "public endpoint"


def test_saved_file_uses_wire_names(tmp_path: Path) -> None:
    path = tmp_path / "wf.json"
    save_workflow(_workflow(), path)

    data = json.loads(path.read_text(encoding="utf-8"))

    assert [n["type"] for n in data["nodes"]] == ["HttpRequest", "Log"]
    assert data["edges"] == [{"id": "e1", "source": "fetch", "target": "log"}]


def test_load_stringifies_config_and_fills_ids(tmp_path: Path) -> None:
    path = tmp_path / "wf.json"
    path.write_text(
        json.dumps(
            {
                "name": "Imported",
                "metadata": None,
                "nodes": [
                    {
                        "id": "loop",
                        "type": "Loop",
                        "config": {"iterations": 3, "dry_run": True, "input": ["a"], "x": None},
                        "variables": {"ignored": "1"},
                    }
                ],
                "edges": [],
            }
        ),
        encoding="utf-8",
    )

    workflow = load_workflow(path)

    assert workflow.id
    assert workflow.metadata == {}
    assert workflow.nodes[0].config == {
        "iterations": "3",
        "dry_run": "true",
        "input": '["a"]',
        "x": "",
    }


def test_load_missing_file(tmp_path: Path) -> None:
    with pytest.raises(WorkflowFileError, match="Failed to read workflow file"):
        load_workflow(tmp_path / "missing.json")


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        '{"name": "x", "nodes": [{"id": "a", "type": "Teleport"}]}',
        '{"nodes": []}',
    ],
)
def test_load_invalid_definition(tmp_path: Path, content: str) -> None:
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(WorkflowFileError, match="Invalid workflow file"):
        load_workflow(path)


def test_get_node_by_id() -> None:
    workflow = _workflow()

    assert workflow.get_node("log").label == "Log"
    assert workflow.get_node("ghost") is None
