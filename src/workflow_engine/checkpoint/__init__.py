"""Versioned run-state checkpoints."""

from workflow_engine.checkpoint.git_store import GitSnapshotStore
from workflow_engine.checkpoint.manager import (
    CheckpointManager,
    checkpoint_history,
    checkpoint_state,
    open_store,
)
from workflow_engine.checkpoint.store import (
    Checkpoint,
    JsonlSnapshotStore,
    NullSnapshotStore,
    SnapshotStore,
)

__all__ = [
    "Checkpoint",
    "CheckpointManager",
    "GitSnapshotStore",
    "JsonlSnapshotStore",
    "NullSnapshotStore",
    "SnapshotStore",
    "checkpoint_history",
    "checkpoint_state",
    "open_store",
]
