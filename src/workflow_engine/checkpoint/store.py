"""Snapshot stores: append-only, versioned histories of run state.

One history exists per workflow id. A store only needs to append, list and
read back snapshots; how versions are kept (git commits, a JSON-lines log)
is up to the implementation.
"""

from __future__ import annotations

import json
import threading
import weakref
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel

from workflow_engine.errors import CheckpointError

# Entries live as long as some store holds the lock.
_PATH_LOCKS: weakref.WeakValueDictionary[Path, threading.Lock] = weakref.WeakValueDictionary()
_PATH_LOCKS_GUARD = threading.Lock()


def path_lock(path: Path) -> threading.Lock:
    """Process-wide lock for one history, shared by concurrent runs."""

    key = path.resolve()
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = _PATH_LOCKS[key] = threading.Lock()
        return lock


def utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


def dump_payload(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str) + "\n"


class Checkpoint(BaseModel):
    checkpoint_id: str
    message: str
    timestamp: str
    workflow_id: str


class SnapshotStore(Protocol):
    workflow_id: str

    def append(self, message: str, payload: dict[str, Any]) -> Checkpoint: ...

    def history(self, limit: int = 50) -> list[Checkpoint]:
        """Checkpoints, newest first."""
        ...

    def state_at(self, checkpoint_id: str) -> dict[str, Any]: ...


class NullSnapshotStore:
    """Discards snapshots. Used when checkpointing is disabled or unavailable."""

    def __init__(self, workflow_id: str) -> None:
        self.workflow_id = workflow_id

    def append(self, message: str, payload: dict[str, Any]) -> Checkpoint:
        return Checkpoint(
            checkpoint_id="",
            message=message,
            timestamp=utc_iso_now(),
            workflow_id=self.workflow_id,
        )

    def history(self, limit: int = 50) -> list[Checkpoint]:
        return []

    def state_at(self, checkpoint_id: str) -> dict[str, Any]:
        raise CheckpointError(f"Checkpoint not found: {checkpoint_id}")


class JsonlSnapshotStore:
    """Append-only JSON-lines log. Checkpoint ids are sequence numbers."""

    def __init__(self, directory: Path, workflow_id: str) -> None:
        self.workflow_id = workflow_id
        self.path = directory / "checkpoints.jsonl"
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CheckpointError(f"Failed to create checkpoint directory: {e}") from e
        self._lock = path_lock(self.path)

    def _load_unlocked(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        entries: list[dict[str, Any]] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                # A torn final line from a crashed writer; skip it.
                continue
        return entries

    def append(self, message: str, payload: dict[str, Any]) -> Checkpoint:
        with self._lock:
            try:
                sequence = len(self._load_unlocked()) + 1
                checkpoint = Checkpoint(
                    checkpoint_id=f"{sequence:06d}",
                    message=message,
                    timestamp=utc_iso_now(),
                    workflow_id=self.workflow_id,
                )
                entry = {**checkpoint.model_dump(mode="json"), "payload": payload}
                line = json.dumps(entry, ensure_ascii=False, default=str) + "\n"
                with open(self.path, "ab+") as f:
                    # Terminate a torn last line so this entry stays parseable.
                    f.seek(0, 2)
                    if f.tell() > 0:
                        f.seek(-1, 2)
                        if f.read(1) != b"\n":
                            line = "\n" + line
                    f.write(line.encode("utf-8"))
            except OSError as e:
                raise CheckpointError(f"Failed to write checkpoint: {e}") from e
        return checkpoint

    def history(self, limit: int = 50) -> list[Checkpoint]:
        with self._lock:
            entries = self._load_unlocked()
        newest_first = list(reversed(entries))[:limit]
        return [Checkpoint.model_validate(entry) for entry in newest_first]

    def state_at(self, checkpoint_id: str) -> dict[str, Any]:
        with self._lock:
            entries = self._load_unlocked()
        for entry in entries:
            if entry.get("checkpoint_id") == checkpoint_id:
                payload = entry.get("payload")
                return payload if isinstance(payload, dict) else {}
        raise CheckpointError(f"Checkpoint not found: {checkpoint_id}")
