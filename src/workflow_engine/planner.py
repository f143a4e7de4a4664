"""Structural validation and deterministic topological ordering.

The planner works purely on structure (node ids, edges, cycles). It never
executes nodes and never touches a run context, so a rejected workflow has
no side effects.

Ordering uses Kahn's algorithm. When several nodes are ready at the same
time the one declared first in `workflow.nodes` wins, so the same workflow
always produces the same order.
"""

from __future__ import annotations

import heapq

from workflow_engine.errors import InvalidWorkflow
from workflow_engine.models import Node, Workflow, is_safe_workflow_id


def _index_nodes(workflow: Workflow) -> dict[str, int]:
    positions: dict[str, int] = {}
    for idx, node in enumerate(workflow.nodes):
        if not node.id.strip():
            raise InvalidWorkflow("Node id must be a non-empty string")
        if node.id in positions:
            raise InvalidWorkflow(f"Duplicate node id: {node.id}")
        positions[node.id] = idx
    return positions


def _find_cycle(
    remaining: list[str], incoming: dict[str, list[str]]
) -> list[str]:
    """Return one cycle among `remaining` nodes as [n0, n1, ..., n0].

    Every node left over by Kahn's algorithm still has a predecessor that is
    also left over, so walking predecessors must revisit a node.
    """

    left = set(remaining)
    path: list[str] = []
    seen_at: dict[str, int] = {}
    node_id = remaining[0]
    while node_id not in seen_at:
        seen_at[node_id] = len(path)
        path.append(node_id)
        node_id = next(p for p in incoming[node_id] if p in left)

    cycle = path[seen_at[node_id] :]
    cycle.reverse()
    return cycle + [cycle[0]]


def plan_execution(workflow: Workflow) -> list[Node]:
    """Validate `workflow` and return its nodes in execution order.

    Raises:
        InvalidWorkflow: On an unsafe workflow id, empty/duplicate node ids,
            edges referencing unknown nodes, or a cycle.
    """

    if not is_safe_workflow_id(workflow.id):
        raise InvalidWorkflow(
            f"Workflow id may only contain letters, digits, '.', '_' and '-': {workflow.id!r}"
        )
    positions = _index_nodes(workflow)

    outgoing: dict[str, list[str]] = {node_id: [] for node_id in positions}
    incoming: dict[str, list[str]] = {node_id: [] for node_id in positions}
    in_degree: dict[str, int] = {node_id: 0 for node_id in positions}
    for edge in workflow.edges:
        if edge.source not in positions:
            raise InvalidWorkflow(
                f"Edge {edge.id} references unknown source node '{edge.source}'"
            )
        if edge.target not in positions:
            raise InvalidWorkflow(
                f"Edge {edge.id} references unknown target node '{edge.target}'"
            )
        outgoing[edge.source].append(edge.target)
        incoming[edge.target].append(edge.source)
        in_degree[edge.target] += 1

    ready: list[tuple[int, str]] = [
        (positions[node_id], node_id) for node_id, degree in in_degree.items() if degree == 0
    ]
    heapq.heapify(ready)

    order: list[Node] = []
    while ready:
        idx, node_id = heapq.heappop(ready)
        order.append(workflow.nodes[idx])
        for child in outgoing[node_id]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                heapq.heappush(ready, (positions[child], child))

    if len(order) != len(positions):
        remaining = [node.id for node in workflow.nodes if in_degree[node.id] > 0]
        cycle = _find_cycle(remaining, incoming)
        raise InvalidWorkflow(
            "Workflow contains a cycle - must be a valid DAG: " + " -> ".join(cycle)
        )
    return order


def validate_workflow(workflow: Workflow) -> None:
    """Raise `InvalidWorkflow` if the workflow can't be scheduled."""

    plan_execution(workflow)


def execution_order(workflow: Workflow) -> list[str]:
    """Node ids in the order they will run."""

    return [node.id for node in plan_execution(workflow)]
