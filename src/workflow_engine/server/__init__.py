"""FastAPI server adapter for the workflow engine.

This module exposes a REST API over `WorkflowManager` and the checkpoint
history.

Design intent:
- Keep execution logic in `workflow_engine.engine` / `workflow_engine.manager`
- Keep server-specific concerns (routing, HTTP status mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from workflow_engine.server.app import create_app
