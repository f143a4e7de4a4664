"""Natural-language to workflow generation through an LLM provider."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from pydantic import ValidationError

from workflow_engine.context import remap_node_ids
from workflow_engine.errors import InvalidWorkflow, WorkflowGenerationError
from workflow_engine.llm.provider import LLMProvider
from workflow_engine.models import Workflow
from workflow_engine.planner import plan_execution

logger = logging.getLogger(__name__)

GENERATION_MAX_TOKENS = 32768

SYSTEM_PROMPT = """You are a workflow generation expert. Convert natural language descriptions \
into executable workflow definitions.

RULES:
1. Return ONLY valid JSON. No markdown, no explanations.
2. Use realistic, executable configurations.
3. Connect dependent steps with edges; the graph must not contain cycles.
4. Position nodes left-to-right (x = node_index * 350, y varies by layer).

NODE TYPES AND CONFIG KEYS:

Execution:
- Shell: {"cmd": "shell command"}
- AiPrompt: {"provider": "gemini|deepseek|grok", "model": "optional", "prompt": "..."}
- Database: {"query": "SELECT ...", "db_type": "sqlite", "database_url": "sqlite:///path.db"}
- TradeAgent: {"strategy": "hold|momentum|mean_reversion", "symbol": "BTC", "change": "1.5"}

Data operations:
- HttpRequest: {"url": "https://...", "method": "GET|POST|PUT|DELETE", "body": "optional"}
- FileRead: {"path": "/path/to/file.txt"}
- FileWrite: {"path": "/path/to/output.txt", "content": "{{node_id.key}}"}
- Transform: {"operation": "uppercase|lowercase|trim|json_parse", "input": "{{node_id.key}}"}
- Filter: {"condition": "{{node_id.key}} > 10"}

Control flow:
- Conditional: {"condition": "{{node_id.status}} == 200"}
- Loop: {"iterations": "3"} or {"input": "[\\"a\\", \\"b\\"]"}
- Aggregator: {}
- Merge: {}

Output:
- Log: {"level": "info|warn|error", "message": "{{node_id.key}}"}
- Notify: {"title": "...", "message": "..."}

VARIABLES:
Reference outputs of earlier nodes with {{node_id.output_key}}, for example
{{1.stdout}}, {{2.response}} or {{3.body}}.

OUTPUT FORMAT:
{
  "name": "Workflow Name",
  "description": "Brief description",
  "nodes": [
    {"id": "1", "label": "Fetch Webpage", "type": "HttpRequest", "x": 100, "y": 100,
     "config": {"url": "https://example.com", "method": "GET"}},
    {"id": "2", "label": "Summarize", "type": "AiPrompt", "x": 450, "y": 100,
     "config": {"provider": "gemini", "prompt": "Summarize this webpage: {{1.body}}"}}
  ],
  "edges": [{"id": "e1", "source": "1", "target": "2"}]
}
"""


def build_prompt(request: str) -> str:
    return f"{SYSTEM_PROMPT}\nUser Request: {request.strip()}\n\nGenerate the workflow JSON now:"


def extract_json_object(response: str) -> str:
    """Pull the outermost JSON object out of a model reply.

    Markdown code fences and prose before or after the object are dropped.

    Raises:
        WorkflowGenerationError: If the reply contains no object.
    """
    text = response.strip()
    if text.startswith("```"):
        inside: list[str] = []
        in_block = False
        for line in text.splitlines():
            if line.strip().startswith("```"):
                in_block = not in_block
                continue
            if in_block:
                inside.append(line)
        text = "\n".join(inside)

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise WorkflowGenerationError(
            f"No valid JSON object found in response: {response.strip()[:200]}"
        )
    return text[start : end + 1]


def _assign_fresh_ids(data: dict[str, Any]) -> dict[str, Any]:
    # Models number nodes "1", "2", ...; replace them with unique ids and
    # rewrite edge endpoints and config placeholders to match.
    id_map: dict[str, str] = {}
    nodes = []
    for raw in data.get("nodes") or []:
        if not isinstance(raw, dict):
            nodes.append(raw)
            continue
        new_id = uuid.uuid4().hex
        if "id" in raw:
            id_map[str(raw["id"])] = new_id
        nodes.append({**raw, "id": new_id})

    for raw in nodes:
        if isinstance(raw, dict) and isinstance(raw.get("config"), dict):
            raw["config"] = {
                key: remap_node_ids(value, id_map) if isinstance(value, str) else value
                for key, value in raw["config"].items()
            }

    edges = []
    for raw in data.get("edges") or []:
        if not isinstance(raw, dict):
            edges.append(raw)
            continue
        source = str(raw.get("source", ""))
        target = str(raw.get("target", ""))
        edges.append(
            {
                **raw,
                "id": uuid.uuid4().hex,
                "source": id_map.get(source, source),
                "target": id_map.get(target, target),
            }
        )

    return {**data, "id": uuid.uuid4().hex, "nodes": nodes, "edges": edges}


def generate_workflow(prompt: str, provider: LLMProvider, model: str | None = None) -> Workflow:
    """Ask `provider` to design a workflow for `prompt`.

    Returns:
        A validated workflow with freshly generated node and edge ids.

    Raises:
        WorkflowGenerationError: If the provider fails or its reply isn't a
            valid acyclic workflow.
    """
    if not prompt.strip():
        raise WorkflowGenerationError("Prompt must not be empty")

    try:
        completion = provider.complete(
            build_prompt(prompt), model=model, max_tokens=GENERATION_MAX_TOKENS
        )
    except Exception as e:
        raise WorkflowGenerationError(f"AI provider {provider.name} failed: {e}") from e

    logger.debug(
        "Workflow generation response received",
        extra={"provider": provider.name, "tokens_used": completion.tokens_used},
    )

    try:
        data = json.loads(extract_json_object(completion.content))
    except json.JSONDecodeError as e:
        raise WorkflowGenerationError(f"Failed to parse AI response as workflow JSON: {e}") from e
    if not isinstance(data, dict):
        raise WorkflowGenerationError("AI response is not a JSON object")

    try:
        workflow = Workflow.model_validate(_assign_fresh_ids(data))
        plan_execution(workflow)
    except ValidationError as e:
        raise WorkflowGenerationError(f"AI response is not a valid workflow: {e}") from e
    except InvalidWorkflow as e:
        raise WorkflowGenerationError(
            f"Generated workflow contains cycles or is invalid: {e}"
        ) from e

    logger.info(
        f"AI generated workflow: {workflow.name} with {len(workflow.nodes)} nodes "
        f"and {len(workflow.edges)} edges",
        extra={"workflow_id": workflow.id, "provider": provider.name},
    )
    return workflow
