"""CLI entrypoint for the workflow engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from workflow_engine import __version__
from workflow_engine.checkpoint import checkpoint_history, checkpoint_state
from workflow_engine.config import EngineSettings
from workflow_engine.engine import WorkflowExecutor
from workflow_engine.errors import (
    CheckpointError,
    InvalidWorkflow,
    WorkflowFileError,
    WorkflowGenerationError,
)
from workflow_engine.generator import generate_workflow
from workflow_engine.llm import LLMFactory
from workflow_engine.logging import configure_logging
from workflow_engine.models import NodeStatus
from workflow_engine.planner import execution_order, validate_workflow
from workflow_engine.workflow_files import load_workflow, save_workflow

logger = logging.getLogger(__name__)


def _print_json(value: object) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-engine",
        description="Validate, run and inspect workflow DAGs",
    )
    parser.add_argument("--version", action="version", version=f"workflow-engine {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Check a workflow file for structural errors")
    validate.add_argument("file", type=Path, help="Workflow JSON file")

    order = subparsers.add_parser("order", help="Print the execution order of a workflow file")
    order.add_argument("file", type=Path, help="Workflow JSON file")

    run = subparsers.add_parser(
        "run",
        help="Execute a workflow and print its node results as JSON",
    )
    run.add_argument("file", type=Path, help="Workflow JSON file")

    history = subparsers.add_parser("history", help="List checkpoints of a workflow, newest first")
    history.add_argument("workflow_id", help="Workflow id")
    history.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of checkpoints (defaults to WORKFLOW_CHECKPOINT_HISTORY_LIMIT)",
    )

    show = subparsers.add_parser("show", help="Print the state recorded at a checkpoint")
    show.add_argument("workflow_id", help="Workflow id")
    show.add_argument("checkpoint_id", help="Checkpoint id from 'history'")

    generate = subparsers.add_parser(
        "generate",
        help="Generate a workflow from a natural-language description",
    )
    generate.add_argument("prompt", help="What the workflow should do")
    generate.add_argument(
        "--provider",
        default=None,
        help="AI provider: gemini | deepseek | grok | openai (defaults to WORKFLOW_AI_PROVIDER)",
    )
    generate.add_argument("--model", default=None, help="Model override")
    generate.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the workflow to this file instead of stdout",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = EngineSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_format)

    try:
        if args.command == "validate":
            validate_workflow(load_workflow(args.file))
            print("Workflow is valid")
            return 0

        if args.command == "order":
            for node_id in execution_order(load_workflow(args.file)):
                print(node_id)
            return 0

        if args.command == "run":
            workflow = load_workflow(args.file)
            results = asyncio.run(WorkflowExecutor(settings).execute_workflow(workflow))
            _print_json([r.model_dump(mode="json") for r in results])
            failed = [r.node_id for r in results if r.status == NodeStatus.FAILED]
            if failed:
                logger.warning("Some nodes failed", extra={"failed_nodes": failed})
                return 1
            return 0

        if args.command == "history":
            for checkpoint in checkpoint_history(settings, args.workflow_id, args.limit):
                print(f"{checkpoint.checkpoint_id}  {checkpoint.timestamp}  {checkpoint.message}")
            return 0

        if args.command == "show":
            _print_json(checkpoint_state(settings, args.workflow_id, args.checkpoint_id))
            return 0

        if args.command == "generate":
            provider = LLMFactory.create(args.provider or settings.ai_provider, settings)
            workflow = generate_workflow(args.prompt, provider, model=args.model)
            if args.output is not None:
                save_workflow(workflow, args.output)
                print(f"Saved workflow '{workflow.name}' to {args.output}")
            else:
                _print_json(workflow.model_dump(mode="json"))
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except (InvalidWorkflow, WorkflowFileError) as e:
        print(f"Invalid workflow: {e}", file=sys.stderr)
        return 2

    except (CheckpointError, WorkflowGenerationError, ValueError) as e:
        logger.error(str(e), extra={"command": args.command})
        print(str(e), file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
