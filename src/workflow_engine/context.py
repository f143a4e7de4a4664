"""Run context and config interpolation.

The run context is a single blackboard shared by every node of a run: any
node can read any key produced earlier, not only its graph parents. Keys
are always qualified as ``"{node_id}.{output_key}"``.

Placeholders in node config take either form::

    ${fetch.body}
    {{ fetch.body }}

A placeholder whose key is missing resolves to an empty string. Text such as
`${HOME}` that names no node output is not a placeholder and is kept as is.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from workflow_engine.errors import MissingConfig
from workflow_engine.models import Node

# Only qualified `node.key` references are placeholders; shell-style `${VAR}`
# is left as written.
_KEY = r"[^{}\s.]+\.[^{}\s]+"
_PLACEHOLDER = re.compile(r"\$\{\s*(" + _KEY + r")\s*\}|\{\{\s*(" + _KEY + r")\s*\}\}")


def stringify(value: Any) -> str:
    """Render a context value for substitution into text."""

    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


def qualified_key(node_id: str, key: str) -> str:
    return f"{node_id}.{key}"


def remap_node_ids(template: str, id_map: Mapping[str, str]) -> str:
    """Rewrite placeholders so they reference renamed nodes.

    Placeholders naming a node that is not in `id_map` are left untouched.
    """

    def _sub(match: re.Match[str]) -> str:
        key = match.group(1) or match.group(2)
        owners = [old for old in id_map if key.startswith(f"{old}.")]
        if not owners:
            return match.group(0)
        old = max(owners, key=len)
        renamed = qualified_key(id_map[old], key[len(old) + 1 :])
        return match.group(0).replace(key, renamed, 1)

    return _PLACEHOLDER.sub(_sub, template)


class RunContext:
    """Accumulated, namespaced outputs of one run. Grows monotonically."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def merge(self, node_id: str, output: Mapping[str, Any]) -> None:
        """Publish a node's outputs under its own namespace."""

        for key, value in output.items():
            self._values[qualified_key(node_id, key)] = value

    def foreign_items(self, node_id: str) -> list[tuple[str, Any]]:
        """Entries that don't belong to `node_id`, in insertion order."""

        prefix = f"{node_id}."
        return [(k, v) for k, v in self._values.items() if not k.startswith(prefix)]

    def snapshot(self) -> dict[str, Any]:
        return dict(self._values)

    def interpolate(self, template: str) -> str:
        if "${" not in template and "{{" not in template:
            return template

        def _sub(match: re.Match[str]) -> str:
            key = match.group(1) or match.group(2)
            if key not in self._values:
                return ""
            return stringify(self._values[key])

        return _PLACEHOLDER.sub(_sub, template)

    def resolve(self, node: Node) -> ResolvedConfig:
        """Interpolate every config value of `node` in a single pass."""

        values = {key: self.interpolate(raw) for key, raw in node.config.items()}
        return ResolvedConfig(node_id=node.id, raw=dict(node.config), values=values)


@dataclass(frozen=True, slots=True)
class ResolvedConfig:
    """A node's config after interpolation, plus the raw values it came from."""

    node_id: str
    raw: dict[str, str] = field(default_factory=dict)
    values: dict[str, str] = field(default_factory=dict)

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.values.get(key, default)

    def has_value(self, key: str) -> bool:
        value = self.values.get(key)
        return value is not None and value.strip() != ""

    def first(self, *keys: str) -> str | None:
        """First of `keys` with a non-blank value."""

        for key in keys:
            if self.has_value(key):
                return self.values[key]
        return None

    def require(self, *keys: str) -> str:
        """First non-blank value among `keys` (alternatives), else MissingConfig."""

        value = self.first(*keys)
        if value is None:
            raise MissingConfig(" or ".join(keys))
        return value

    def raw_value(self, key: str) -> str | None:
        """Config value before interpolation."""

        return self.raw.get(key)
