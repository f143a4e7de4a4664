"""FastAPI app factory.

Endpoints are thin wrappers over `WorkflowManager`, the planner and the
checkpoint history.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException

from workflow_engine import __version__
from workflow_engine.checkpoint import Checkpoint, checkpoint_history, checkpoint_state
from workflow_engine.config import EngineSettings
from workflow_engine.engine import WorkflowExecutor
from workflow_engine.errors import CheckpointError, InvalidWorkflow
from workflow_engine.manager import WorkflowManager
from workflow_engine.models import Workflow
from workflow_engine.planner import execution_order, validate_workflow
from workflow_engine.server.models import CancelView, OrderView, RunView, ValidationView

logger = logging.getLogger(__name__)


def create_app(
    settings: EngineSettings | None = None, manager: WorkflowManager | None = None
) -> FastAPI:
    settings = settings or EngineSettings()
    manager = manager or WorkflowManager(WorkflowExecutor(settings))

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await manager.shutdown()

    app = FastAPI(
        title="Workflow DAG Engine",
        version=__version__,
        description="REST API for validating, running and inspecting workflow DAGs.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    # Expose settings and the manager for request handlers that want to read them.
    app.state.settings = settings
    app.state.manager = manager

    def _view(run_id: str) -> RunView:
        record = manager.get_run(run_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Run not found")
        return RunView.from_record(record, running=manager.is_running(run_id))

    @app.get("/api/v1/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/v1/workflows/validate", response_model=ValidationView)
    def validate(workflow: Workflow) -> ValidationView:
        try:
            validate_workflow(workflow)
        except InvalidWorkflow as e:
            return ValidationView(valid=False, error=str(e))
        return ValidationView(valid=True)

    @app.post("/api/v1/workflows/order", response_model=OrderView)
    def order(workflow: Workflow) -> OrderView:
        try:
            return OrderView(order=execution_order(workflow))
        except InvalidWorkflow as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

    @app.post("/api/v1/runs", response_model=RunView, status_code=202)
    async def start_run(workflow: Workflow) -> RunView:
        run_id = await manager.start(workflow)
        return _view(run_id)

    @app.get("/api/v1/runs", response_model=list[RunView])
    def list_runs() -> list[RunView]:
        return [
            RunView.from_record(record, running=manager.is_running(record.run_id))
            for record in manager.list_runs()
        ]

    @app.get("/api/v1/runs/{run_id}", response_model=RunView)
    def get_run(run_id: str) -> RunView:
        return _view(run_id)

    @app.delete("/api/v1/runs/{run_id}", response_model=CancelView)
    async def cancel_run(run_id: str) -> CancelView:
        if not await manager.cancel(run_id):
            raise HTTPException(status_code=404, detail="Run not found or already finished")
        return CancelView(run_id=run_id, cancelled=True)

    @app.get("/api/v1/workflows/{workflow_id}/checkpoints", response_model=list[Checkpoint])
    def list_checkpoints(workflow_id: str, limit: int | None = None) -> list[Checkpoint]:
        try:
            return checkpoint_history(settings, workflow_id, limit)
        except CheckpointError as e:
            logger.error(str(e), extra={"workflow_id": workflow_id})
            raise HTTPException(status_code=503, detail=str(e)) from e

    @app.get("/api/v1/workflows/{workflow_id}/checkpoints/{checkpoint_id}")
    def get_checkpoint(workflow_id: str, checkpoint_id: str) -> dict[str, Any]:
        try:
            return checkpoint_state(settings, workflow_id, checkpoint_id)
        except CheckpointError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

    return app
