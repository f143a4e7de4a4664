from __future__ import annotations

import sys
import time
from collections.abc import Iterator

import pytest
from conftest import make_workflow
from fastapi.testclient import TestClient

from workflow_engine.config import EngineSettings
from workflow_engine.engine import WorkflowExecutor
from workflow_engine.manager import WorkflowManager
from workflow_engine.models import NodeType, Workflow
from workflow_engine.server.app import create_app

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell commands")


@pytest.fixture
def client(settings: EngineSettings, executor: WorkflowExecutor) -> Iterator[TestClient]:
    app = create_app(settings=settings, manager=WorkflowManager(executor))
    with TestClient(app) as client:
        yield client


def _body(workflow: Workflow) -> dict:
    return workflow.model_dump(mode="json")


def _wait_for_status(client: TestClient, run_id: str, statuses: set[str]) -> dict:
    deadline = time.monotonic() + 5
    while True:
        view = client.get(f"/api/v1/runs/{run_id}").json()
        if view["status"] in statuses:
            return view
        if time.monotonic() > deadline:
            raise AssertionError(f"run {run_id} stuck in {view['status']}")
        time.sleep(0.02)


def test_health_and_docs(client: TestClient) -> None:
    assert client.get("/api/v1/health").json() == {"status": "ok"}
    assert client.get("/api/openapi.json").status_code == 200


def test_validate_and_order(client: TestClient) -> None:
    good = make_workflow(
        [("c", NodeType.LOG, {}), ("a", NodeType.LOG, {})], [("a", "c")]
    )
    cyclic = make_workflow(
        [("a", NodeType.LOG, {}), ("b", NodeType.LOG, {})], [("a", "b"), ("b", "a")]
    )

    assert client.post("/api/v1/workflows/validate", json=_body(good)).json() == {
        "valid": True,
        "error": None,
    }
    invalid = client.post("/api/v1/workflows/validate", json=_body(cyclic)).json()
    assert invalid["valid"] is False
    assert "cycle" in invalid["error"]

    assert client.post("/api/v1/workflows/order", json=_body(good)).json() == {"order": ["a", "c"]}
    resp = client.post("/api/v1/workflows/order", json=_body(cyclic))
    assert resp.status_code == 422
    assert "cycle" in resp.json()["detail"]


def test_malformed_workflow_body_is_rejected(client: TestClient) -> None:
    resp = client.post("/api/v1/runs", json={"nodes": [{"id": "a", "type": "Teleport"}]})

    assert resp.status_code == 422


def test_run_lifecycle_and_checkpoints(client: TestClient) -> None:
    workflow = make_workflow(
        [("shout", NodeType.TRANSFORM, {"operation": "uppercase", "input": "hey"})],
        workflow_id="wf-api",
        name="API run",
    )

    resp = client.post("/api/v1/runs", json=_body(workflow))
    assert resp.status_code == 202
    run_id = resp.json()["run_id"]

    view = _wait_for_status(client, run_id, {"succeeded", "failed"})
    assert view["status"] == "succeeded"
    assert view["running"] is False
    assert view["results"][0]["output"] == {"result": "HEY", "operation": "uppercase"}
    assert [r["run_id"] for r in client.get("/api/v1/runs").json()] == [run_id]

    checkpoints = client.get("/api/v1/workflows/wf-api/checkpoints").json()
    assert [c["message"] for c in checkpoints] == [
        "Workflow completed: API run",
        "Node completed: shout (Transform) - Status: success",
        "Workflow started: API run",
    ]
    state = client.get(f"/api/v1/workflows/wf-api/checkpoints/{checkpoints[0]['checkpoint_id']}")
    assert state.json()["context"]["shout.result"] == "HEY"


def test_unknown_run_and_checkpoint(client: TestClient) -> None:
    assert client.get("/api/v1/runs/nope").status_code == 404
    assert client.delete("/api/v1/runs/nope").status_code == 404
    assert client.get("/api/v1/workflows/never-ran/checkpoints").json() == []
    assert client.get("/api/v1/workflows/never-ran/checkpoints/000001").status_code == 404


@posix_only
def test_cancel_running_run(client: TestClient) -> None:
    workflow = make_workflow(
        [("slow", NodeType.SHELL, {"cmd": "sleep 5"}), ("after", NodeType.LOG, {})],
        [("slow", "after")],
    )
    run_id = client.post("/api/v1/runs", json=_body(workflow)).json()["run_id"]
    _wait_for_status(client, run_id, {"running"})

    resp = client.delete(f"/api/v1/runs/{run_id}")

    assert resp.status_code == 200
    assert resp.json() == {"run_id": run_id, "cancelled": True}
    view = client.get(f"/api/v1/runs/{run_id}").json()
    assert view["status"] == "cancelled"
    assert view["running"] is False
    assert client.delete(f"/api/v1/runs/{run_id}").status_code == 404
