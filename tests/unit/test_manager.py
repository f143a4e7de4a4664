"""Unit tests for concurrent run management and cancellation."""

from __future__ import annotations

import asyncio
import sys

import pytest
from conftest import make_workflow

from workflow_engine.checkpoint import checkpoint_history
from workflow_engine.config import EngineSettings
from workflow_engine.engine import WorkflowExecutor
from workflow_engine.manager import WorkflowManager
from workflow_engine.models import NodeStatus, NodeType

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell commands")


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_run_completes_and_leaves_registry(executor: WorkflowExecutor) -> None:
    manager = WorkflowManager(executor)
    workflow = make_workflow([("a", NodeType.LOG, {}), ("b", NodeType.SHELL, {})])

    run_id = await manager.start(workflow)
    record = await manager.wait(run_id)

    assert record.status == "succeeded"
    assert record.workflow_id == workflow.id
    assert [r.node_id for r in record.results] == ["a", "b"]
    assert record.results[1].status == NodeStatus.FAILED
    assert not manager.is_running(run_id)
    assert await manager.cancel(run_id) is False


@pytest.mark.asyncio
async def test_invalid_workflow_run_fails_without_results(executor: WorkflowExecutor) -> None:
    manager = WorkflowManager(executor)
    workflow = make_workflow(
        [("A", NodeType.LOG, {}), ("B", NodeType.LOG, {})], [("A", "B"), ("B", "A")]
    )

    record = await manager.wait(await manager.start(workflow))

    assert record.status == "failed"
    assert record.error is not None and record.error.startswith("InvalidWorkflow: ")
    assert record.results == []


@pytest.mark.asyncio
async def test_runs_are_independent(executor: WorkflowExecutor) -> None:
    manager = WorkflowManager(executor)
    first = await manager.start(make_workflow([("a", NodeType.LOG, {})], workflow_id="wf-1"))
    second = await manager.start(make_workflow([("b", NodeType.LOG, {})], workflow_id="wf-2"))

    assert first != second
    records = [await manager.wait(first), await manager.wait(second)]

    assert [r.status for r in records] == ["succeeded", "succeeded"]
    assert {r.run_id for r in manager.list_runs()} == {first, second}


@posix_only
@pytest.mark.asyncio
async def test_cancel_mid_node_stops_run(
    executor: WorkflowExecutor, settings: EngineSettings, events: list
) -> None:
    manager = WorkflowManager(executor)
    workflow = make_workflow(
        [
            ("fast", NodeType.LOG, {"message": "first"}),
            ("slow", NodeType.SHELL, {"cmd": "sleep 5"}),
            ("after", NodeType.LOG, {}),
        ],
        [("fast", "slow"), ("slow", "after")],
        name="Slow",
    )

    run_id = await manager.start(workflow)
    assert manager.is_running(run_id)
    await _wait_for(lambda: any(e.node_id == "slow" for e in events))

    running = manager.get_run(run_id)
    assert running is not None and running.status == "running"
    assert [r.node_id for r in running.results] == ["fast"]

    assert await manager.cancel(run_id) is True

    assert not manager.is_running(run_id)
    record = manager.get_run(run_id)
    assert record is not None and record.status == "cancelled"
    assert [r.node_id for r in record.results] == ["fast"]
    assert record.results[0].status == NodeStatus.SUCCESS
    assert all(e.node_id != "after" for e in events)
    assert checkpoint_history(settings, workflow.id)[0].message == "Workflow cancelled: Slow"
    assert await manager.cancel(run_id) is False


@pytest.mark.asyncio
async def test_unknown_runs() -> None:
    manager = WorkflowManager(WorkflowExecutor(EngineSettings(_env_file=None)))

    assert manager.get_run("nope") is None
    assert manager.is_running("nope") is False
    assert await manager.cancel("nope") is False
    with pytest.raises(KeyError):
        await manager.wait("nope")


@posix_only
@pytest.mark.asyncio
async def test_shutdown_cancels_everything(executor: WorkflowExecutor) -> None:
    manager = WorkflowManager(executor)
    run_id = await manager.start(make_workflow([("slow", NodeType.SHELL, {"cmd": "sleep 5"})]))

    await manager.shutdown()

    assert not manager.is_running(run_id)
    assert manager.get_run(run_id).status == "cancelled"
