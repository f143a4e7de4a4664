"""Workflow DAG Engine.

Validates, orders and executes typed automation graphs:
- structural validation and deterministic topological ordering
- one executor per node type, dispatched through a registry
- per-node checkpoints in a git (or JSON-lines) history
- concurrent runs with cancellation
"""

__version__ = "0.1.0"

from workflow_engine.config import EngineSettings
from workflow_engine.engine import WorkflowExecutor
from workflow_engine.manager import RunRecord, WorkflowManager
from workflow_engine.models import Edge, Node, NodeExecutionResult, NodeStatus, NodeType, Workflow

__all__ = [
    "__version__",
    "Edge",
    "EngineSettings",
    "Node",
    "NodeExecutionResult",
    "NodeStatus",
    "NodeType",
    "RunRecord",
    "Workflow",
    "WorkflowExecutor",
    "WorkflowManager",
]
