"""Concurrent workflow runs: start, observe, cancel.

Each run is one asyncio task. The manager owns the registry of in-flight
tasks (inserted on start, removed on completion or cancel) plus a record of
every run it has started. Node results are added to a run's record as each
node finishes, so a cancelled run keeps the results it already produced.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from workflow_engine.engine import WorkflowExecutor
from workflow_engine.errors import InvalidWorkflow
from workflow_engine.models import NodeExecutionResult, Workflow

logger = logging.getLogger(__name__)

RunStatus = Literal["queued", "running", "succeeded", "failed", "cancelled"]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class RunRecord(BaseModel):
    run_id: str
    workflow_id: str
    workflow_name: str
    status: RunStatus
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    results: list[NodeExecutionResult] = Field(default_factory=list)
    error: str | None = None

    @property
    def finished(self) -> bool:
        return self.status in ("succeeded", "failed", "cancelled")


class WorkflowManager:
    """Owns concurrent execution of multiple workflow runs."""

    def __init__(self, executor: WorkflowExecutor | None = None) -> None:
        self.executor = executor or WorkflowExecutor()
        self._running: dict[str, asyncio.Task[None]] = {}
        self._records: dict[str, RunRecord] = {}
        self._lock = asyncio.Lock()

    def _update(self, run_id: str, **updates: object) -> RunRecord:
        record = self._records[run_id].model_copy(update={"updated_at": _utc_now(), **updates})
        self._records[run_id] = record
        return record

    async def start(self, workflow: Workflow) -> str:
        """Spawn a run of `workflow` and return its run id."""

        run_id = uuid.uuid4().hex
        async with self._lock:
            self._records[run_id] = RunRecord(
                run_id=run_id,
                workflow_id=workflow.id,
                workflow_name=workflow.name,
                status="queued",
            )
            task = asyncio.create_task(self._run(run_id, workflow), name=f"workflow-run-{run_id}")
            self._running[run_id] = task

        logger.info(
            f"Started workflow '{workflow.name}'",
            extra={"run_id": run_id, "workflow_id": workflow.id},
        )
        return run_id

    def _add_result(self, run_id: str, result: NodeExecutionResult) -> None:
        self._update(run_id, results=[*self._records[run_id].results, result])

    async def _run(self, run_id: str, workflow: Workflow) -> None:
        log_extra = {"run_id": run_id, "workflow_id": workflow.id}
        self._update(run_id, status="running")
        try:
            results = await self.executor.execute_workflow(
                workflow,
                run_id=run_id,
                on_result=lambda result: self._add_result(run_id, result),
            )
        except asyncio.CancelledError:
            self._update(run_id, status="cancelled")
            raise
        except InvalidWorkflow as e:
            logger.error(f"Workflow {workflow.id} rejected: {e}", extra=log_extra)
            self._update(run_id, status="failed", error=f"InvalidWorkflow: {e}")
        except Exception as e:
            logger.exception(f"Workflow {workflow.id} failed", extra=log_extra)
            self._update(run_id, status="failed", error=str(e))
        else:
            logger.info(
                f"Workflow {workflow.id} completed with {len(results)} results", extra=log_extra
            )
            self._update(run_id, status="succeeded", results=results)
        finally:
            self._running.pop(run_id, None)

    def is_running(self, run_id: str) -> bool:
        return run_id in self._running

    async def cancel(self, run_id: str) -> bool:
        """Abort a run immediately. Side effects already performed are kept.

        Returns:
            False if the run is unknown or has already finished.
        """
        async with self._lock:
            task = self._running.pop(run_id, None)
        if task is None:
            return False

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        if not self._records[run_id].finished:
            self._update(run_id, status="cancelled")
        logger.info("Cancelled workflow run", extra={"run_id": run_id})
        return True

    def get_run(self, run_id: str) -> RunRecord | None:
        return self._records.get(run_id)

    def list_runs(self) -> list[RunRecord]:
        return sorted(self._records.values(), key=lambda r: r.created_at)

    async def wait(self, run_id: str) -> RunRecord:
        """Wait for a run to finish and return its record.

        Raises:
            KeyError: If the run id is unknown.
        """
        if run_id not in self._records:
            raise KeyError(run_id)
        task = self._running.get(run_id)
        if task is not None:
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self._records[run_id]

    async def shutdown(self) -> None:
        """Cancel every in-flight run."""

        for run_id in list(self._running):
            await self.cancel(run_id)
