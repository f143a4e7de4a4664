"""Checkpoint management for workflow runs."""

from __future__ import annotations

import logging
from typing import Any

from workflow_engine.checkpoint.git_store import GitSnapshotStore
from workflow_engine.checkpoint.store import (
    Checkpoint,
    JsonlSnapshotStore,
    NullSnapshotStore,
    SnapshotStore,
)
from workflow_engine.config import EngineSettings
from workflow_engine.errors import CheckpointError

logger = logging.getLogger(__name__)


def open_store(settings: EngineSettings, workflow_id: str) -> SnapshotStore:
    """Open (creating if needed) the history of `workflow_id`.

    Raises:
        CheckpointError: If the backend can't be initialised.
    """
    directory = settings.workflow_checkpoint_dir(workflow_id)
    if settings.checkpoint_backend == "git":
        return GitSnapshotStore(
            directory,
            workflow_id,
            author_name=settings.git_author_name,
            author_email=settings.git_author_email,
        )
    if settings.checkpoint_backend == "jsonl":
        return JsonlSnapshotStore(directory, workflow_id)
    return NullSnapshotStore(workflow_id)


class CheckpointManager:
    """Best-effort checkpoint writer for one run.

    Write failures are logged and swallowed: checkpoints are an audit trail
    and must never abort the run they describe.
    """

    def __init__(self, store: SnapshotStore) -> None:
        self.store = store
        self.workflow_id = store.workflow_id
        self.written = 0

    @classmethod
    def open(cls, settings: EngineSettings, workflow_id: str) -> CheckpointManager:
        try:
            store = open_store(settings, workflow_id)
        except CheckpointError as e:
            logger.warning(
                f"Checkpointing disabled for this run: {e}",
                extra={"workflow_id": workflow_id},
            )
            store = NullSnapshotStore(workflow_id)
        return cls(store)

    def record(self, message: str, payload: dict[str, Any]) -> Checkpoint | None:
        try:
            checkpoint = self.store.append(message, payload)
        except Exception as e:
            logger.warning(
                f"Failed to create checkpoint: {e}",
                extra={"workflow_id": self.workflow_id, "checkpoint_message": message},
            )
            return None

        self.written += 1
        logger.debug(
            "Checkpoint created: %s",
            message,
            extra={"workflow_id": self.workflow_id, "checkpoint_id": checkpoint.checkpoint_id},
        )
        return checkpoint


def checkpoint_history(
    settings: EngineSettings, workflow_id: str, limit: int | None = None
) -> list[Checkpoint]:
    """History of `workflow_id`, newest first. Empty if none was ever written."""

    if not settings.workflow_checkpoint_dir(workflow_id).exists():
        return []
    store = open_store(settings, workflow_id)
    return store.history(limit or settings.checkpoint_history_limit)


def checkpoint_state(
    settings: EngineSettings, workflow_id: str, checkpoint_id: str
) -> dict[str, Any]:
    """Payload recorded at `checkpoint_id`.

    Raises:
        CheckpointError: If the history or the checkpoint doesn't exist.
    """
    if not settings.workflow_checkpoint_dir(workflow_id).exists():
        raise CheckpointError(f"No checkpoints for workflow: {workflow_id}")
    return open_store(settings, workflow_id).state_at(checkpoint_id)
