#!/usr/bin/env python3
"""Programmatic workflow execution example.

This demonstrates using the engine components directly:

* load settings from `.env`
* build a small workflow in code
* run it through `WorkflowManager` and print each node result
* list the checkpoints the run wrote

The shell command is passed as an argument so the example works anywhere.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from workflow_engine.checkpoint import checkpoint_history
from workflow_engine.config import EngineSettings
from workflow_engine.engine import WorkflowExecutor
from workflow_engine.logging import configure_logging
from workflow_engine.manager import WorkflowManager
from workflow_engine.models import Edge, Node, NodeType, Workflow


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a small workflow (programmatic example).")
    parser.add_argument("--cmd", default="echo 42", help='Shell command, e.g. "date +%%s"')
    parser.add_argument(
        "--threshold",
        default="10",
        help="Value the command output is compared against",
    )
    return parser.parse_args(argv)


def build_workflow(cmd: str, threshold: str) -> Workflow:
    return Workflow(
        name="Example: shell, trim, branch, log",
        nodes=[
            Node(id="run", type=NodeType.SHELL, label="Run command", config={"cmd": cmd}),
            Node(
                id="clean",
                type=NodeType.TRANSFORM,
                label="Trim output",
                config={"operation": "trim", "input": "${run.stdout}"},
            ),
            Node(
                id="check",
                type=NodeType.CONDITIONAL,
                label="Above threshold?",
                config={"condition": f"${{clean.result}} > {threshold}"},
            ),
            Node(
                id="report",
                type=NodeType.LOG,
                label="Report",
                config={"message": "value={{clean.result}} branch={{check.branch}}"},
            ),
        ],
        edges=[
            Edge(source="run", target="clean"),
            Edge(source="clean", target="check"),
            Edge(source="check", target="report"),
        ],
    )


async def _run(settings: EngineSettings, workflow: Workflow) -> int:
    manager = WorkflowManager(WorkflowExecutor(settings))
    record = await manager.wait(await manager.start(workflow))

    for result in record.results:
        detail = result.error or result.output
        print(f"{result.node_id:<8} {result.status.value:<8} {detail}")
    return 0 if record.status == "succeeded" else 1


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = EngineSettings()
    configure_logging(settings.log_level, settings.log_format)

    workflow = build_workflow(args.cmd, args.threshold)
    exit_code = asyncio.run(_run(settings, workflow))

    for checkpoint in checkpoint_history(settings, workflow.id):
        print(f"{checkpoint.checkpoint_id[:12]}  {checkpoint.message}")
    print(f"Checkpoints stored under: {settings.workflow_checkpoint_dir(workflow.id)}")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
