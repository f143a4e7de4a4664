"""Import and export of workflow definitions as JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from workflow_engine.errors import WorkflowFileError
from workflow_engine.models import Workflow

logger = logging.getLogger(__name__)


def save_workflow(workflow: Workflow, path: Path) -> None:
    payload = workflow.model_dump(mode="json")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    except OSError as e:
        raise WorkflowFileError(f"Failed to write workflow file {path}: {e}") from e

    logger.info(
        "Workflow exported",
        extra={"workflow_id": workflow.id, "path": str(path)},
    )


def load_workflow(path: Path) -> Workflow:
    """Read a workflow definition.

    Raises:
        WorkflowFileError: If the file is missing, not JSON, or doesn't
            describe a workflow.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise WorkflowFileError(f"Failed to read workflow file {path}: {e}") from e

    try:
        workflow = Workflow.model_validate_json(raw)
    except ValidationError as e:
        raise WorkflowFileError(f"Invalid workflow file {path}: {e}") from e

    logger.info(
        "Workflow imported",
        extra={"workflow_id": workflow.id, "path": str(path), "nodes": len(workflow.nodes)},
    )
    return workflow
