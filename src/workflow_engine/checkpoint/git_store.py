"""Git-backed snapshot store.

Each workflow gets its own repository. Every checkpoint rewrites
`workflow_state.json`, appends a line to `execution.log` and commits; the
commit hash is the checkpoint id.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any

from workflow_engine.checkpoint.store import Checkpoint, dump_payload, path_lock, utc_iso_now
from workflow_engine.errors import CheckpointError

logger = logging.getLogger(__name__)

STATE_FILE = "workflow_state.json"
LOG_FILE = "execution.log"
_FIELD_SEP = "\x1f"


class GitSnapshotStore:
    def __init__(
        self,
        repo_path: Path,
        workflow_id: str,
        *,
        author_name: str = "Workflow Engine",
        author_email: str = "workflow-engine@localhost",
    ) -> None:
        self.repo_path = repo_path
        self.workflow_id = workflow_id
        self._env = {
            **os.environ,
            "GIT_AUTHOR_NAME": author_name,
            "GIT_AUTHOR_EMAIL": author_email,
            "GIT_COMMITTER_NAME": author_name,
            "GIT_COMMITTER_EMAIL": author_email,
        }
        self._lock = path_lock(repo_path)
        with self._lock:
            self._init_repo()

    def _git(self, *args: str) -> str:
        try:
            result = subprocess.run(
                ["git", "-c", "commit.gpgsign=false", *args],
                cwd=self.repo_path,
                env=self._env,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise CheckpointError("git executable not found") from e
        except subprocess.CalledProcessError as e:
            raise CheckpointError(
                f"git {args[0]} failed: {(e.stderr or e.stdout or '').strip()}"
            ) from e
        return result.stdout

    def _has_head(self) -> bool:
        try:
            self._git("rev-parse", "--verify", "HEAD")
        except CheckpointError:
            return False
        return True

    def _init_repo(self) -> None:
        try:
            self.repo_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CheckpointError(f"Failed to create workflow directory: {e}") from e

        if not (self.repo_path / ".git").exists():
            self._git("init")
            self._git("symbolic-ref", "HEAD", "refs/heads/main")

        (self.repo_path / ".gitignore").write_text("*.tmp\n", encoding="utf-8")
        (self.repo_path / "README.md").write_text(
            f"# Workflow Execution: {self.workflow_id}\n\n"
            "This repository tracks all executions and state changes for this workflow.\n",
            encoding="utf-8",
        )

        if not self._has_head():
            self._git("add", "-A")
            self._git("commit", "-m", "Initial commit: Workflow repository initialized")
            logger.info(
                "Created initial commit for workflow %s",
                self.workflow_id,
                extra={"workflow_id": self.workflow_id},
            )

    def append(self, message: str, payload: dict[str, Any]) -> Checkpoint:
        with self._lock:
            timestamp = utc_iso_now()
            try:
                (self.repo_path / STATE_FILE).write_text(dump_payload(payload), encoding="utf-8")
                with open(self.repo_path / LOG_FILE, "a", encoding="utf-8") as f:
                    f.write(f"[{timestamp}] {message}\n")
            except OSError as e:
                raise CheckpointError(f"Failed to write checkpoint files: {e}") from e

            self._git("add", "-A")
            self._git("commit", "--allow-empty", "-m", message)
            commit_hash = self._git("rev-parse", "HEAD").strip()

        return Checkpoint(
            checkpoint_id=commit_hash,
            message=message,
            timestamp=timestamp,
            workflow_id=self.workflow_id,
        )

    def history(self, limit: int = 50) -> list[Checkpoint]:
        with self._lock:
            if not self._has_head():
                return []
            raw = self._git(
                "log",
                f"-n{limit}",
                f"--format=%H{_FIELD_SEP}%cI{_FIELD_SEP}%s",
            )

        checkpoints: list[Checkpoint] = []
        for line in raw.splitlines():
            parts = line.split(_FIELD_SEP, 2)
            if len(parts) != 3:
                continue
            commit_hash, timestamp, subject = parts
            checkpoints.append(
                Checkpoint(
                    checkpoint_id=commit_hash,
                    message=subject,
                    timestamp=timestamp,
                    workflow_id=self.workflow_id,
                )
            )
        return checkpoints

    def state_at(self, checkpoint_id: str) -> dict[str, Any]:
        with self._lock:
            raw = self._git("show", f"{checkpoint_id}:{STATE_FILE}")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CheckpointError(f"{STATE_FILE} at {checkpoint_id} is not valid JSON") from e
        return data if isinstance(data, dict) else {}
