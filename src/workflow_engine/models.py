"""Workflow data model.

A `Workflow` is built by an external builder (UI, file import, AI generator)
and is frozen for the duration of a run. Results and progress events are the
records the engine produces while running it.
"""

from __future__ import annotations

import json
import re
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Workflow ids name a directory under the checkpoint root, so they must be a
# single path segment.
_WORKFLOW_ID = re.compile(r"[A-Za-z0-9_-][A-Za-z0-9._-]*")


def _new_id() -> str:
    return uuid.uuid4().hex


def is_safe_workflow_id(workflow_id: str) -> bool:
    return _WORKFLOW_ID.fullmatch(workflow_id) is not None and ".." not in workflow_id


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class NodeType(str, Enum):
    # Execution
    SHELL = "Shell"
    AI_PROMPT = "AiPrompt"
    DATABASE = "Database"
    TRADE_AGENT = "TradeAgent"

    # Data operations
    HTTP_REQUEST = "HttpRequest"
    FILE_READ = "FileRead"
    FILE_WRITE = "FileWrite"
    TRANSFORM = "Transform"
    FILTER = "Filter"

    # Control flow
    CONDITIONAL = "Conditional"
    LOOP = "Loop"
    AGGREGATOR = "Aggregator"
    MERGE = "Merge"

    # Output
    NOTIFY = "Notify"
    LOG = "Log"


class NodeStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


def _stringify_config_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    # Numbers, booleans, arrays and objects keep their JSON text.
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class Node(BaseModel):
    """A single typed step in a workflow."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default_factory=_new_id)
    type: NodeType
    label: str = ""
    config: dict[str, str] = Field(default_factory=dict)

    # Editor layout; carried through import/export untouched.
    x: float = 0.0
    y: float = 0.0
    comments: str | None = None

    @field_validator("config", mode="before")
    @classmethod
    def _flexible_config(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _stringify_config_value(v) for k, v in value.items()}
        return value


class Edge(BaseModel):
    """A dependency: `target` may not run until `source` has completed."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default_factory=_new_id)
    source: str
    target: str


class Workflow(BaseModel):
    """Immutable description of an automation graph."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default_factory=_new_id)
    name: str
    description: str | None = None
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_metadata(cls, value: Any) -> Any:
        return {} if value is None else value

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class NodeExecutionResult(BaseModel):
    """Outcome of one node within one run.

    Transitions Pending -> Running -> {Success, Failed} exactly once; each
    transition returns a new instance.
    """

    node_id: str
    status: NodeStatus = NodeStatus.PENDING
    output: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_ms: int | None = None

    def start(self) -> NodeExecutionResult:
        return self.model_copy(update={"status": NodeStatus.RUNNING, "started_at": _utc_now()})

    def succeed(self, output: dict[str, Any]) -> NodeExecutionResult:
        return self._finish(status=NodeStatus.SUCCESS, output=dict(output), error=None)

    def fail(self, error: str) -> NodeExecutionResult:
        return self._finish(status=NodeStatus.FAILED, output={}, error=error)

    def _finish(
        self, *, status: NodeStatus, output: dict[str, Any], error: str | None
    ) -> NodeExecutionResult:
        finished = _utc_now()
        started = self.started_at or finished
        duration = int((finished - started).total_seconds() * 1000)
        return self.model_copy(
            update={
                "status": status,
                "output": output,
                "error": error,
                "started_at": started,
                "finished_at": finished,
                "duration_ms": duration,
            }
        )


class ProgressEvent(BaseModel):
    """Per-node status transition reported to observers."""

    run_id: str | None = None
    workflow_id: str
    node_id: str
    status: NodeStatus
    output: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    timestamp: datetime = Field(default_factory=_utc_now)

    @classmethod
    def from_result(
        cls, result: NodeExecutionResult, *, workflow_id: str, run_id: str | None
    ) -> ProgressEvent:
        return cls(
            run_id=run_id,
            workflow_id=workflow_id,
            node_id=result.node_id,
            status=result.status,
            output=result.output,
            error=result.error,
        )
