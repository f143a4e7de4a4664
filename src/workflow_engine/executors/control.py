"""Control-flow executors: conditionals, loops and fan-in nodes."""

from __future__ import annotations

import json
import logging
from typing import Any

from workflow_engine.conditions import evaluate_condition
from workflow_engine.context import ResolvedConfig, RunContext
from workflow_engine.executors.base import NodeExecutor
from workflow_engine.models import Node, NodeType

logger = logging.getLogger(__name__)


class ConditionalExecutor(NodeExecutor):
    """Evaluate a condition and report which branch it selects."""

    node_type = NodeType.CONDITIONAL

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        condition = config.get("condition") or ""
        logger.info("Evaluating condition: %s", condition, extra={"node_id": node.id})

        result = evaluate_condition(condition, context.snapshot())
        return {
            "result": result,
            "condition": condition,
            "branch": "true" if result else "false",
        }


def _parse_items(raw: str | None) -> list[Any]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return parsed if isinstance(parsed, list) else []


class LoopExecutor(NodeExecutor):
    """Work out an iteration count from `input` (JSON array) or `iterations`."""

    node_type = NodeType.LOOP

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        try:
            iterations = max(int((config.get("iterations") or "1").strip()), 0)
        except ValueError:
            iterations = 1
        items = _parse_items(config.get("input"))

        logger.info(
            "Loop node: %d iterations or %d array items",
            iterations,
            len(items),
            extra={"node_id": node.id},
        )

        return {
            "iterations": len(items) if items else iterations,
            "items": items,
            "current_index": 0,
            "completed": True,
        }


class AggregatorExecutor(NodeExecutor):
    """Collect every context value produced by other nodes into a list."""

    node_type = NodeType.AGGREGATOR

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        logger.info("Aggregating inputs for node: %s", node.id, extra={"node_id": node.id})

        inputs = [value for _key, value in context.foreign_items(node.id)]
        return {"inputs": inputs, "count": len(inputs), "aggregated": True}


class MergeExecutor(NodeExecutor):
    """Collapse every foreign context entry into one object keyed by qualified key."""

    node_type = NodeType.MERGE

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        logger.info("Merging data for node: %s", node.id, extra={"node_id": node.id})

        merged = dict(context.foreign_items(node.id))
        return {"merged": merged, "fields": len(merged)}
