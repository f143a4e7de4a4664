"""Executors that do external work: processes, AI providers, databases, trading."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any

from openai import OpenAIError
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from workflow_engine.config import EngineSettings
from workflow_engine.context import ResolvedConfig, RunContext
from workflow_engine.errors import AIError, DatabaseError, ShellError
from workflow_engine.executors.base import NodeExecutor
from workflow_engine.llm.factory import LLMFactory
from workflow_engine.llm.provider import LLMProvider
from workflow_engine.models import Node, NodeType

logger = logging.getLogger(__name__)


class ShellExecutor(NodeExecutor):
    """Run a command through the system shell and capture its output."""

    node_type = NodeType.SHELL
    required = (("cmd", "command"),)

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self.timeout_seconds = timeout_seconds

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        command = config.require("cmd", "command")
        logger.info("Executing shell command: %s", command, extra={"node_id": node.id})

        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ShellError(f"Failed to spawn command: {e}") from e

        try:
            stdout_raw, stderr_raw = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds
            )
        except TimeoutError:
            await _kill(process)
            raise ShellError(
                f"Command timed out after {self.timeout_seconds} seconds"
            ) from None
        except asyncio.CancelledError:
            # Don't leave the child running when the whole run is cancelled.
            await _kill(process)
            raise

        stdout = stdout_raw.decode("utf-8", errors="replace")
        stderr = stderr_raw.decode("utf-8", errors="replace")
        exit_code = process.returncode if process.returncode is not None else -1

        if exit_code != 0:
            raise ShellError(f"Command failed with exit code {exit_code}: {stderr}")

        return {"stdout": stdout, "stderr": stderr, "exit_code": exit_code}


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()


ProviderFactory = Callable[[str], LLMProvider]


class AiPromptExecutor(NodeExecutor):
    """Send an interpolated prompt to a named AI provider."""

    node_type = NodeType.AI_PROMPT
    required = (("prompt",),)

    def __init__(
        self,
        settings: EngineSettings,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        self.settings = settings
        self._provider_factory = provider_factory or (
            lambda name: LLMFactory.create(name, settings)
        )

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        prompt = config.require("prompt")
        provider_name = config.first("provider") or self.settings.ai_provider
        model = config.first("model")

        logger.info(
            "Executing AI prompt with provider: %s, model: %s",
            provider_name,
            model or "(default)",
            extra={"node_id": node.id},
        )

        try:
            provider = self._provider_factory(provider_name)
        except ValueError as e:
            raise AIError(str(e)) from e

        try:
            completion = await asyncio.to_thread(provider.complete, prompt, model)
        except OpenAIError as e:
            raise AIError(f"{provider.name or provider_name} API error: {e}") from e

        return {
            "response": completion.content,
            "model": completion.model or model or provider.default_model,
            "provider": provider.name or provider_name,
            "tokens_used": completion.tokens_used,
        }


class DatabaseExecutor(NodeExecutor):
    """Execute a SQL statement through SQLAlchemy."""

    node_type = NodeType.DATABASE
    required = (("query",),)

    def __init__(self, default_url: str) -> None:
        self.default_url = default_url
        self._engines: dict[str, Engine] = {}
        self._lock = threading.Lock()

    def _engine(self, url: str) -> Engine:
        with self._lock:
            engine = self._engines.get(url)
            if engine is None:
                engine = create_engine(url)
                self._engines[url] = engine
            return engine

    def _run(self, url: str, query: str) -> tuple[int, list[dict[str, Any]]]:
        with self._engine(url).begin() as conn:
            result = conn.execute(text(query))
            if result.returns_rows:
                return 0, [dict(row._mapping) for row in result]
            return max(result.rowcount, 0), []

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        query = config.require("query")
        db_type = config.first("db_type") or "sqlite"
        url = config.first("database_url") or self.default_url

        logger.info("Executing database query on %s: %s", db_type, query, extra={"node_id": node.id})

        try:
            rows_affected, rows = await asyncio.to_thread(self._run, url, query)
        except SQLAlchemyError as e:
            raise DatabaseError(str(e)) from e

        return {"rows_affected": rows_affected, "result": rows, "db_type": db_type}

    def dispose(self) -> None:
        with self._lock:
            for engine in self._engines.values():
                engine.dispose()
            self._engines.clear()


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _hold(_config: ResolvedConfig) -> tuple[str, float]:
    return "hold", 0.5


def _momentum(config: ResolvedConfig) -> tuple[str, float]:
    change = _parse_float(config.get("change"))
    if not change:
        return "hold", 0.5
    confidence = min(0.5 + abs(change) / 20.0, 0.95)
    return ("buy" if change > 0 else "sell"), confidence


def _mean_reversion(config: ResolvedConfig) -> tuple[str, float]:
    action, confidence = _momentum(config)
    flipped = {"buy": "sell", "sell": "buy"}.get(action, action)
    return flipped, confidence


TRADE_STRATEGIES: dict[str, Callable[[ResolvedConfig], tuple[str, float]]] = {
    "hold": _hold,
    "momentum": _momentum,
    "mean_reversion": _mean_reversion,
}


class TradeAgentExecutor(NodeExecutor):
    """Apply a named strategy to a symbol and recommend an action.

    `change` (percent move, may be interpolated) feeds the momentum and
    mean-reversion strategies. Unknown strategies recommend holding.
    """

    node_type = NodeType.TRADE_AGENT
    required = (("strategy",), ("symbol", "asset"))

    async def execute(
        self, node: Node, config: ResolvedConfig, context: RunContext
    ) -> dict[str, Any]:
        # The strategy name is taken literally; only the symbol is interpolated.
        strategy = (config.raw_value("strategy") or "").strip()
        symbol = config.require("symbol", "asset")

        logger.info(
            "Executing trade agent with strategy: %s for symbol: %s",
            strategy,
            symbol,
            extra={"node_id": node.id},
        )

        decide = TRADE_STRATEGIES.get(strategy.lower(), _hold)
        action, confidence = decide(config)
        return {
            "strategy": strategy,
            "symbol": symbol,
            "action": action,
            "confidence": confidence,
        }
