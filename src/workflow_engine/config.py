"""Configuration for the workflow engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Provider API keys use the conventional variable names of each vendor so an
existing shell environment works without extra setup.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_engine.errors import CheckpointError
from workflow_engine.models import is_safe_workflow_id


def _default_checkpoint_root() -> Path:
    return Path.home() / ".workflow_engine" / "workflows"


class EngineSettings(BaseSettings):
    """Settings for the workflow engine.

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `EngineSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        validation_alias="WORKFLOW_LOG_FORMAT",
        description="Log output format",
    )

    checkpoint_root: Path = Field(
        default_factory=_default_checkpoint_root,
        validation_alias="WORKFLOW_CHECKPOINT_ROOT",
        description="Directory holding one checkpoint history per workflow id",
    )
    checkpoint_backend: Literal["git", "jsonl", "none"] = Field(
        default="git",
        validation_alias="WORKFLOW_CHECKPOINT_BACKEND",
        description="Snapshot store used for per-node checkpoints",
    )
    checkpoint_history_limit: int = Field(
        default=50,
        gt=0,
        validation_alias="WORKFLOW_CHECKPOINT_HISTORY_LIMIT",
        description="Maximum number of checkpoints returned by history queries",
    )
    git_author_name: str = Field(
        default="Workflow Engine",
        validation_alias="WORKFLOW_GIT_AUTHOR_NAME",
    )
    git_author_email: str = Field(
        default="workflow-engine@localhost",
        validation_alias="WORKFLOW_GIT_AUTHOR_EMAIL",
    )

    ai_provider: str = Field(
        default="google",
        validation_alias="WORKFLOW_AI_PROVIDER",
        description="Provider used by AiPrompt nodes that don't name one",
    )
    ai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        validation_alias="WORKFLOW_AI_TEMPERATURE",
    )

    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY", "GENAI_API_KEY"),
    )
    deepseek_api_key: str | None = Field(default=None, validation_alias="DEEPSEEK_API_KEY")
    xai_api_key: str | None = Field(default=None, validation_alias="XAI_API_KEY")
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="WORKFLOW_HTTP_TIMEOUT_SECONDS",
    )
    shell_timeout_seconds: float | None = Field(
        default=None,
        validation_alias="WORKFLOW_SHELL_TIMEOUT_SECONDS",
        description="Kill shell commands that run longer than this (None = no limit)",
    )
    database_url: str = Field(
        default="sqlite:///workflow_engine.db",
        validation_alias="WORKFLOW_DATABASE_URL",
        description="SQLAlchemy URL used by Database nodes without an explicit database_url",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    def workflow_checkpoint_dir(self, workflow_id: str) -> Path:
        """Directory where the checkpoint history of one workflow lives.

        Raises:
            CheckpointError: If `workflow_id` is not a single plain path segment.
        """
        if not is_safe_workflow_id(workflow_id):
            raise CheckpointError(f"Unsafe workflow id for checkpoint storage: {workflow_id!r}")
        return self.checkpoint_root / workflow_id
