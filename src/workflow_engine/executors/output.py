"""Output executors: log lines and user-facing notifications."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from workflow_engine.context import ResolvedConfig, RunContext
from workflow_engine.executors.base import NodeExecutor
from workflow_engine.models import Node, NodeType

logger = logging.getLogger(__name__)

# Messages from Log nodes go to their own logger so they can be routed separately.
node_logger = logging.getLogger("workflow_engine.nodes")

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class LogExecutor(NodeExecutor):
    node_type = NodeType.LOG

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        message = config.get("message")
        if message is None:
            message = "No message"
        level = (config.first("level") or "info").strip().lower()

        node_logger.log(
            LOG_LEVELS.get(level, logging.INFO),
            message,
            extra={"node_id": node.id, "node_label": node.label},
        )
        return {"message": message, "level": level, "logged": True}


Notifier = Callable[[str, str], None]


def log_notification(title: str, message: str) -> None:
    logger.info("Notification: %s - %s", title, message)


class NotifyExecutor(NodeExecutor):
    """Emit a notification through the configured notifier.

    A notifier that raises is logged; the node still reports the attempt.
    """

    node_type = NodeType.NOTIFY

    def __init__(self, notifier: Notifier | None = None) -> None:
        self.notifier = notifier or log_notification

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        title = config.first("title") or "Notification"
        message = config.first("message") or "No message"

        sent = True
        try:
            self.notifier(title, message)
        except Exception:
            logger.exception("Notifier failed", extra={"node_id": node.id})
            sent = False

        return {"title": title, "message": message, "sent": sent}
