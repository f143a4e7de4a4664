"""Node executors and the default registry wiring."""

from __future__ import annotations

import requests

from workflow_engine.config import EngineSettings
from workflow_engine.executors.base import ExecutorRegistry, NodeExecutor
from workflow_engine.executors.control import (
    AggregatorExecutor,
    ConditionalExecutor,
    LoopExecutor,
    MergeExecutor,
)
from workflow_engine.executors.data import (
    FileReadExecutor,
    FileWriteExecutor,
    FilterExecutor,
    HttpRequestExecutor,
    TransformExecutor,
)
from workflow_engine.executors.execution import (
    AiPromptExecutor,
    DatabaseExecutor,
    ProviderFactory,
    ShellExecutor,
    TradeAgentExecutor,
)
from workflow_engine.executors.output import LogExecutor, Notifier, NotifyExecutor

__all__ = [
    "AggregatorExecutor",
    "AiPromptExecutor",
    "ConditionalExecutor",
    "DatabaseExecutor",
    "ExecutorRegistry",
    "FileReadExecutor",
    "FileWriteExecutor",
    "FilterExecutor",
    "HttpRequestExecutor",
    "LogExecutor",
    "LoopExecutor",
    "MergeExecutor",
    "NodeExecutor",
    "NotifyExecutor",
    "ShellExecutor",
    "TradeAgentExecutor",
    "TransformExecutor",
    "default_registry",
]


def default_registry(
    settings: EngineSettings,
    *,
    provider_factory: ProviderFactory | None = None,
    http_session: requests.Session | None = None,
    notifier: Notifier | None = None,
) -> ExecutorRegistry:
    """Registry with one executor for every built-in node type."""

    return ExecutorRegistry(
        [
            # Execution
            ShellExecutor(timeout_seconds=settings.shell_timeout_seconds),
            AiPromptExecutor(settings, provider_factory=provider_factory),
            DatabaseExecutor(default_url=settings.database_url),
            TradeAgentExecutor(),
            # Data operations
            HttpRequestExecutor(
                timeout_seconds=settings.http_timeout_seconds, session=http_session
            ),
            FileReadExecutor(),
            FileWriteExecutor(),
            TransformExecutor(),
            FilterExecutor(),
            # Control flow
            ConditionalExecutor(),
            LoopExecutor(),
            AggregatorExecutor(),
            MergeExecutor(),
            # Output
            NotifyExecutor(notifier),
            LogExecutor(),
        ]
    )
