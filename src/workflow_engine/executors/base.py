"""Executor interface and the node-type registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from typing import Any, ClassVar

from workflow_engine.context import ResolvedConfig, RunContext
from workflow_engine.errors import MissingConfig, NodeNotFound
from workflow_engine.models import Node, NodeType


class NodeExecutor(ABC):
    """Performs the work of one node type.

    `required` lists the config keys checked before `execute` runs. Each entry
    is a tuple of alternatives: ``("cmd", "command")`` is satisfied by either.
    """

    node_type: ClassVar[NodeType]
    required: ClassVar[tuple[tuple[str, ...], ...]] = ()

    def check_required(self, config: ResolvedConfig) -> None:
        for alternatives in self.required:
            if config.first(*alternatives) is None:
                raise MissingConfig(" or ".join(alternatives))

    @abstractmethod
    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        """Run the node and return its outputs (unqualified keys).

        Raises:
            ExecutionError: A node-local failure.
        """


class ExecutorRegistry:
    """Maps node types to executor instances."""

    def __init__(self, executors: Iterable[NodeExecutor] = ()) -> None:
        self._executors: dict[NodeType, NodeExecutor] = {}
        for executor in executors:
            self.register(executor)

    def register(self, executor: NodeExecutor) -> None:
        self._executors[executor.node_type] = executor

    def get(self, node_type: NodeType) -> NodeExecutor:
        try:
            return self._executors[node_type]
        except KeyError:
            raise NodeNotFound(f"No executor found for node type: {node_type.value}") from None

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._executors

    def __iter__(self) -> Iterator[NodeType]:
        return iter(self._executors)

    def __len__(self) -> int:
        return len(self._executors)
