"""Sequential execution of one workflow run.

The executor validates and orders the graph, then runs nodes one at a time.
For every node it emits a Running event, resolves the config, dispatches to
the registered executor, records the result, emits the final event, merges
outputs into the run context and writes a checkpoint.

Node-level failures never stop the run; only `InvalidWorkflow` (raised before
anything executes) and cancellation do.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from workflow_engine.checkpoint.manager import CheckpointManager
from workflow_engine.config import EngineSettings
from workflow_engine.context import RunContext
from workflow_engine.errors import ExecutionError, ExecutionFailed, describe
from workflow_engine.executors import default_registry
from workflow_engine.executors.base import ExecutorRegistry
from workflow_engine.models import Node, NodeExecutionResult, ProgressEvent, Workflow
from workflow_engine.planner import plan_execution
from workflow_engine.progress import LoggingProgressListener, ProgressListener

logger = logging.getLogger(__name__)

ResultCallback = Callable[[NodeExecutionResult], None]


class WorkflowExecutor:
    """Runs workflows node by node in topological order."""

    def __init__(
        self,
        settings: EngineSettings | None = None,
        *,
        registry: ExecutorRegistry | None = None,
        listener: ProgressListener | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.registry = registry or default_registry(self.settings)
        self.listener = listener or LoggingProgressListener()

    async def execute_node(
        self, node: Node, context: RunContext, result: NodeExecutionResult
    ) -> NodeExecutionResult:
        """Run a single node and capture its outcome; never raises ExecutionError."""

        log_extra = {"node_id": node.id, "node_type": node.type.value}
        try:
            executor = self.registry.get(node.type)
            config = context.resolve(node)
            executor.check_required(config)
            output = await executor.execute(node, config, context)
        except ExecutionError as e:
            logger.error(f"Node {node.id} execution failed: {e}", extra=log_extra)
            return result.fail(describe(e))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Node {node.id} raised unexpectedly", extra=log_extra)
            return result.fail(describe(ExecutionFailed(str(e))))

        logger.info(f"Node {node.id} executed successfully", extra=log_extra)
        return result.succeed(output)

    async def execute_workflow(
        self,
        workflow: Workflow,
        *,
        run_id: str | None = None,
        on_result: ResultCallback | None = None,
    ) -> list[NodeExecutionResult]:
        """Execute every node of `workflow` once.

        `on_result` is called with each final node result as soon as it is
        recorded, so callers can observe partial progress of a run that is
        later cancelled.

        Returns:
            One result per node, in execution order.

        Raises:
            InvalidWorkflow: If the graph is malformed or cyclic. Nothing has
                executed and no checkpoint has been written in that case.
        """
        order = plan_execution(workflow)
        log_extra = {"workflow_id": workflow.id, "run_id": run_id}

        logger.info(
            f"Executing workflow '{workflow.name}' with {len(order)} nodes", extra=log_extra
        )

        checkpoints = await asyncio.to_thread(CheckpointManager.open, self.settings, workflow.id)
        await asyncio.to_thread(
            checkpoints.record,
            f"Workflow started: {workflow.name}",
            {"workflow_id": workflow.id, "run_id": run_id, "workflow": workflow.model_dump(mode="json")},
        )

        context = RunContext()
        results: list[NodeExecutionResult] = []
        try:
            for node in order:
                running = NodeExecutionResult(node_id=node.id).start()
                self._emit(running, workflow, run_id)

                result = await self.execute_node(node, context, running)

                self._emit(result, workflow, run_id)
                context.merge(node.id, result.output)
                results.append(result)
                if on_result is not None:
                    on_result(result)

                await asyncio.to_thread(
                    checkpoints.record,
                    f"Node completed: {node.label or node.id} ({node.type.value}) "
                    f"- Status: {result.status.value}",
                    self._payload(workflow, results, context, current_node=node.id),
                )
        except asyncio.CancelledError:
            logger.warning(f"Workflow '{workflow.name}' cancelled", extra=log_extra)
            # Shielded so a second cancel can't interrupt the final write.
            await asyncio.shield(
                asyncio.to_thread(
                    checkpoints.record,
                    f"Workflow cancelled: {workflow.name}",
                    self._payload(workflow, results, context, status="cancelled"),
                )
            )
            raise

        await asyncio.to_thread(
            checkpoints.record,
            f"Workflow completed: {workflow.name}",
            self._payload(workflow, results, context, status="completed"),
        )
        logger.info(
            f"Workflow '{workflow.name}' completed with {len(results)} results",
            extra={**log_extra, "checkpoints": checkpoints.written},
        )
        return results

    def _emit(self, result: NodeExecutionResult, workflow: Workflow, run_id: str | None) -> None:
        event = ProgressEvent.from_result(result, workflow_id=workflow.id, run_id=run_id)
        try:
            self.listener.emit(event)
        except Exception:
            logger.exception("Progress listener failed", extra={"node_id": result.node_id})

    @staticmethod
    def _payload(
        workflow: Workflow,
        results: list[NodeExecutionResult],
        context: RunContext,
        *,
        current_node: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"workflow_id": workflow.id}
        if current_node is not None:
            payload["current_node"] = current_node
        if status is not None:
            payload["status"] = status
        payload["results"] = [r.model_dump(mode="json") for r in results]
        payload["context"] = context.snapshot()
        return payload
