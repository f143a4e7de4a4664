"""Progress reporting for node status transitions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from workflow_engine.models import NodeStatus, ProgressEvent

logger = logging.getLogger(__name__)


class ProgressListener(Protocol):
    """Observer notified once per node per status transition."""

    def emit(self, event: ProgressEvent) -> None: ...


class LoggingProgressListener:
    """Default listener: one structured log line per event."""

    def emit(self, event: ProgressEvent) -> None:
        level = logging.WARNING if event.status == NodeStatus.FAILED else logging.INFO
        logger.log(
            level,
            "Node %s is %s",
            event.node_id,
            event.status.value,
            extra={
                "run_id": event.run_id,
                "workflow_id": event.workflow_id,
                "node_id": event.node_id,
                "status": event.status.value,
                "error": event.error,
            },
        )


class CallbackProgressListener:
    """Forward events to a plain callable (UI bridge, queue, test recorder)."""

    def __init__(self, callback: Callable[[ProgressEvent], None]) -> None:
        self._callback = callback

    def emit(self, event: ProgressEvent) -> None:
        self._callback(event)


class FanOutProgressListener:
    def __init__(self, *listeners: ProgressListener) -> None:
        self._listeners = listeners

    def emit(self, event: ProgressEvent) -> None:
        for listener in self._listeners:
            try:
                listener.emit(event)
            except Exception:
                logger.exception("Progress listener failed", extra={"node_id": event.node_id})
