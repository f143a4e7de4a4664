"""Unit tests for progress listeners."""

from __future__ import annotations

import logging

import pytest

from workflow_engine.models import NodeExecutionResult, NodeStatus, ProgressEvent
from workflow_engine.progress import (
    CallbackProgressListener,
    FanOutProgressListener,
    LoggingProgressListener,
)


def _event(status: NodeStatus = NodeStatus.SUCCESS, error: str | None = None) -> ProgressEvent:
    return ProgressEvent(workflow_id="wf", run_id="run", node_id="n1", status=status, error=error)


def test_event_from_result_copies_outcome() -> None:
    result = NodeExecutionResult(node_id="n1").start().fail("ShellError: exit 1")

    event = ProgressEvent.from_result(result, workflow_id="wf", run_id="run")

    assert event.status == NodeStatus.FAILED
    assert event.error == "ShellError: exit 1"
    assert event.output == {}


def test_logging_listener_warns_on_failure(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="workflow_engine.progress"):
        LoggingProgressListener().emit(_event())
        LoggingProgressListener().emit(_event(NodeStatus.FAILED, "IoError: gone"))

    assert [r.levelno for r in caplog.records] == [logging.INFO, logging.WARNING]
    assert caplog.records[1].getMessage() == "Node n1 is failed"


def test_fan_out_isolates_failing_listener() -> None:
    received: list[ProgressEvent] = []

    def broken(_event: ProgressEvent) -> None:
        raise RuntimeError("socket closed")

    listener = FanOutProgressListener(
        CallbackProgressListener(broken), CallbackProgressListener(received.append)
    )
    listener.emit(_event())

    assert [e.node_id for e in received] == ["n1"]
