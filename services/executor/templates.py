"""
Template substitution between workflow nodes.

``{{ identifier.output }}`` is replaced by the recorded output of an earlier
node, where ``identifier`` is a node id or a normalized node label.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from .models import WorkflowNode

TEMPLATE_PATTERN = re.compile(r"\{\{\s*([a-zA-Z0-9_-]+)\.output\s*\}\}")

COMMAND_ECHO_PREFIX = "$ "

# Node data fields that may contain templates
TEMPLATED_LIST_FIELDS = ("commands", "args")
TEMPLATED_TEXT_FIELDS = ("prompt", "path")


@dataclass
class ExecutionContext:
    """Outputs produced so far in one workflow run"""
    outputs: Dict[str, str] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)

    def record(self, node_id: str, output: str) -> None:
        self.outputs[node_id] = output


def normalize_label(label: str) -> str:
    """Lowercase a label and turn runs of whitespace into underscores."""
    return re.sub(r"\s+", "_", label.lower())


def resolve_reference(identifier: str, context: ExecutionContext) -> Optional[str]:
    """
    Look up the output an identifier refers to.

    Node ids win over labels. When several labels normalize to the same
    identifier the first node (in workflow order) with an output is used.
    """
    if identifier in context.outputs:
        return context.outputs[identifier]

    wanted = identifier.lower()
    for node_id, label in context.labels.items():
        if normalize_label(label) == wanted or label == identifier:
            if node_id in context.outputs:
                return context.outputs[node_id]
    return None


def replace_templates(text: str, context: ExecutionContext) -> str:
    """Substitute every resolvable reference; unresolved ones are left verbatim."""
    def _substitute(match: re.Match) -> str:
        value = resolve_reference(match.group(1), context)
        return match.group(0) if value is None else value

    return TEMPLATE_PATTERN.sub(_substitute, text)


def process_node_templates(node: WorkflowNode, context: ExecutionContext) -> WorkflowNode:
    """Return a copy of the node with templates in its parameter fields substituted."""
    data = dict(node.data)

    for name in TEMPLATED_LIST_FIELDS:
        values = data.get(name)
        if isinstance(values, list):
            data[name] = [
                replace_templates(v, context) if isinstance(v, str) else v
                for v in values
            ]

    for name in TEMPLATED_TEXT_FIELDS:
        value = data.get(name)
        if isinstance(value, str):
            data[name] = replace_templates(value, context)

    return node.with_data(data)


def clean_output(output: str) -> str:
    """Drop command echo lines and surrounding whitespace before storing an output."""
    lines = [line for line in output.split("\n") if not line.startswith(COMMAND_ECHO_PREFIX)]
    return "\n".join(lines).strip()
