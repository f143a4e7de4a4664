"""Pydantic models for the REST server."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from workflow_engine.manager import RunRecord, RunStatus
from workflow_engine.models import NodeExecutionResult


class ValidationView(BaseModel):
    valid: bool
    error: str | None = None


class OrderView(BaseModel):
    order: list[str]


class RunView(BaseModel):
    run_id: str
    workflow_id: str
    workflow_name: str
    status: RunStatus
    running: bool

    created_at: datetime
    updated_at: datetime

    results: list[NodeExecutionResult] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_record(cls, record: RunRecord, *, running: bool) -> RunView:
        return cls(**record.model_dump(exclude={"results"}), results=record.results, running=running)


class CancelView(BaseModel):
    run_id: str
    cancelled: bool
