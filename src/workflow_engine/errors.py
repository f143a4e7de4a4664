"""Error taxonomy for workflow execution.

`InvalidWorkflow` is the only fatal error: it is raised before any node runs.
Every other `ExecutionError` is node-local and is captured into that node's
result by the engine.
"""

from __future__ import annotations


class ExecutionError(Exception):
    """Base class for errors raised while validating or executing a workflow."""


class InvalidWorkflow(ExecutionError):
    """The workflow graph is malformed (duplicate ids, unknown edge refs, cycles)."""


class NodeNotFound(ExecutionError):
    """No executor is registered for a node's type."""


class MissingConfig(ExecutionError):
    """A required config key is absent or blank after interpolation."""


class ShellError(ExecutionError):
    pass


class AIError(ExecutionError):
    pass


class DatabaseError(ExecutionError):
    pass


class IoError(ExecutionError):
    pass


class HttpError(ExecutionError):
    pass


class ExecutionFailed(ExecutionError):
    """Generic node failure that doesn't fit a more specific category."""


class CheckpointError(Exception):
    """A snapshot store could not be initialised, written or read."""


class WorkflowFileError(Exception):
    """A workflow file could not be read, parsed or written."""


class WorkflowGenerationError(Exception):
    """An AI provider did not return a usable workflow definition."""


def describe(error: BaseException) -> str:
    """Render an error the way node results record it."""

    return f"{type(error).__name__}: {error}"
