"""Data operation executors: HTTP, files, text transforms and filters."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import requests

from workflow_engine.context import ResolvedConfig, RunContext
from workflow_engine.errors import ExecutionFailed, HttpError, IoError, MissingConfig
from workflow_engine.executors.base import NodeExecutor
from workflow_engine.models import Node, NodeType

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE")


class HttpRequestExecutor(NodeExecutor):
    """Issue a single HTTP request. Non-2xx responses are data, not errors."""

    node_type = NodeType.HTTP_REQUEST
    required = (("url",),)

    def __init__(
        self, timeout_seconds: float = 30.0, session: requests.Session | None = None
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        url = config.require("url")
        method = (config.first("method") or "GET").upper()
        body = config.get("body")

        if method not in HTTP_METHODS:
            raise ExecutionFailed(f"Unsupported HTTP method: {method}")

        logger.info("Executing HTTP %s request to %s", method, url, extra={"node_id": node.id})

        try:
            response = await asyncio.to_thread(
                self.session.request,
                method,
                url,
                data=body.encode("utf-8") if body else None,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise HttpError(str(e)) from e

        status = response.status_code
        return {
            "status": status,
            "body": response.text,
            "success": 200 <= status < 300,
        }


class FileReadExecutor(NodeExecutor):
    node_type = NodeType.FILE_READ
    required = (("path",),)

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        path = config.require("path")
        logger.info("Reading file: %s", path, extra={"node_id": node.id})

        try:
            content = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise IoError(str(e)) from e

        return {"content": content, "path": path, "size": len(content)}


class FileWriteExecutor(NodeExecutor):
    """Write text to a file. Empty content is allowed; absent content is not."""

    node_type = NodeType.FILE_WRITE
    required = (("path",),)

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        path = config.require("path")
        if "content" not in config:
            raise MissingConfig("content")
        content = config.get("content") or ""

        logger.info("Writing file: %s", path, extra={"node_id": node.id})

        try:
            await asyncio.to_thread(Path(path).write_text, content, encoding="utf-8")
        except OSError as e:
            raise IoError(str(e)) from e

        return {"path": path, "bytes_written": len(content.encode("utf-8")), "success": True}


def _json_parse(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ExecutionFailed(f"JSON parse error: {e}") from e


TRANSFORMS: dict[str, Callable[[str], Any]] = {
    "uppercase": str.upper,
    "lowercase": str.lower,
    "trim": str.strip,
    "json_parse": _json_parse,
}


class TransformExecutor(NodeExecutor):
    """Apply a named text operation; unknown operations pass input through."""

    node_type = NodeType.TRANSFORM
    required = (("operation",),)

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        operation = config.require("operation").strip()
        value = config.get("input") or ""

        logger.info("Transforming data with operation: %s", operation, extra={"node_id": node.id})

        transform = TRANSFORMS.get(operation)
        result = transform(value) if transform is not None else value
        return {"result": result, "operation": operation}


class FilterExecutor(NodeExecutor):
    node_type = NodeType.FILTER

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        condition = config.get("condition") or ""
        logger.info("Evaluating filter condition: %s", condition, extra={"node_id": node.id})

        passes = condition not in ("", "false", "0")
        return {"passes": passes, "condition": condition}
