"""
Workflow Execution Engine

Runs a workflow graph breadth-first from its start nodes. Each node sees the
outputs of the nodes executed before it through ``{{ id.output }}`` templates.
The first failing node stops the run; nothing queued after it starts.

This module can be imported and used from:
- API endpoints
- The trigger run launcher
- Scripts and tests
"""

import asyncio
import os
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from core.logging_config import get_logger
from .models import (
    ExecuteRequest,
    ExecuteResponse,
    NodeKind,
    NodeResult,
    NodeStatus,
    ScriptNodeData,
    ShellNodeData,
    WorkdirNodeData,
    WorkflowEdge,
    WorkflowNode,
)
from .shell import DEFAULT_SHELL, CommandFailure, run_commands, run_scripts
from .templates import ExecutionContext, clean_output, process_node_templates

logger = get_logger(__name__)


class WorkflowGraphError(ValueError):
    """The graph cannot be executed as given."""

    def __init__(self, message: str, cycle: Optional[List[str]] = None):
        super().__init__(message)
        self.cycle = cycle or []


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_adjacency(edges: List[WorkflowEdge]) -> Dict[str, List[str]]:
    """Map each source node to its targets, in edge order."""
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
    return adjacency


def find_start_nodes(nodes: List[WorkflowNode], edges: List[WorkflowEdge]) -> List[str]:
    """
    Pick where execution begins.

    Explicit trigger nodes are preferred; otherwise every node without an
    incoming edge is a start node.
    """
    triggers = [
        n.id for n in nodes
        if n.node_type == NodeKind.TRIGGER.value or n.type == NodeKind.TRIGGER.value
    ]
    if triggers:
        return triggers

    has_incoming = {edge.target for edge in edges}
    return [n.id for n in nodes if n.id not in has_incoming]


def find_cycle(start_nodes: List[str], adjacency: Dict[str, List[str]]) -> Optional[List[str]]:
    """
    Find a cycle reachable from the start nodes.

    Returns:
        The node ids forming the cycle (first node repeated at the end), or None
    """
    visiting, done = 1, 2
    state: Dict[str, int] = {}

    for start in start_nodes:
        if state.get(start) == done:
            continue
        path: List[str] = [start]
        state[start] = visiting
        stack = [iter(adjacency.get(start, []))]

        while stack:
            child = next(stack[-1], None)
            if child is None:
                state[path.pop()] = done
                stack.pop()
                continue
            child_state = state.get(child)
            if child_state == visiting:
                return path[path.index(child):] + [child]
            if child_state is None:
                state[child] = visiting
                path.append(child)
                stack.append(iter(adjacency.get(child, [])))

    return None


class WorkflowExecutor:
    """Main workflow execution engine"""

    def __init__(self, shell: str = DEFAULT_SHELL):
        self.shell = shell

    async def execute(self, request: Union[ExecuteRequest, Dict[str, Any]]) -> ExecuteResponse:
        """
        Execute a workflow graph.

        Args:
            request: Nodes, edges, optional root directory and start node

        Returns:
            Overall success, per-node results and the execution order

        Raises:
            WorkflowGraphError: If the start node is unknown, there is nothing
                to start from, or a cycle is reachable from the start nodes
        """
        if not isinstance(request, ExecuteRequest):
            request = ExecuteRequest.model_validate(request)

        nodes = request.nodes
        node_map = {node.id: node for node in nodes}
        adjacency = build_adjacency(request.edges)
        root_directory = request.root_directory or os.getcwd()

        if request.start_node_id:
            if request.start_node_id not in node_map:
                raise WorkflowGraphError(f"Start node '{request.start_node_id}' not found")
            start_nodes = [request.start_node_id]
        else:
            start_nodes = find_start_nodes(nodes, request.edges)
            if not start_nodes:
                raise WorkflowGraphError("No trigger or start node found")

        cycle = find_cycle(start_nodes, adjacency)
        if cycle:
            logger.error(f"Refusing to execute cyclic workflow: {' -> '.join(cycle)}")
            raise WorkflowGraphError(
                f"Workflow graph contains a cycle: {' -> '.join(cycle)}", cycle=cycle
            )

        context = ExecutionContext(labels={node.id: node.label for node in nodes})
        results: List[NodeResult] = []
        execution_order: List[str] = []
        visited: Set[str] = set()
        success = True

        queue = deque(start_nodes)
        logger.info(f"▶️  Executing workflow from {start_nodes} ({len(nodes)} nodes)")

        while queue:
            node_id = queue.popleft()
            if node_id in visited:
                continue
            visited.add(node_id)

            node = node_map.get(node_id)
            if node is None:
                continue

            execution_order.append(node_id)
            processed = process_node_templates(node, context)
            result = await self.execute_node(processed, root_directory)
            results.append(result)

            if result.output:
                context.record(node_id, clean_output(result.output))

            if result.status == NodeStatus.FAILED:
                logger.warning(f"Node {node_id} failed (exit code {result.exit_code}): {result.error}")
                success = False
                break

            for next_id in adjacency.get(node_id, []):
                if next_id not in visited:
                    queue.append(next_id)

        logger.info(f"{'✅' if success else '❌'} Workflow finished: {execution_order}")
        return ExecuteResponse(success=success, results=results, execution_order=execution_order)

    def _resolve_cwd(self, path: Optional[str], root_directory: str) -> str:
        if not path:
            return root_directory
        resolved = Path(path).expanduser()
        if not resolved.is_absolute():
            resolved = Path(root_directory) / resolved
        return str(resolved)

    async def execute_node(self, node: WorkflowNode, root_directory: str) -> NodeResult:
        """Execute a single node. Errors become a failed result rather than an exception."""
        start_time = _utcnow()
        node_type = node.node_type
        logger.info(f"Running node {node.id} ({node_type or 'untyped'})")

        def finish(status: NodeStatus, output: Optional[str] = None, **extra) -> NodeResult:
            return NodeResult(
                node_id=node.id,
                status=status,
                output=output,
                start_time=start_time,
                end_time=_utcnow(),
                **extra
            )

        if node_type == NodeKind.TRIGGER.value:
            return finish(NodeStatus.COMPLETED, "Trigger activated")

        try:
            data = node.typed_data()

            if isinstance(data, ShellNodeData):
                if not data.commands:
                    return finish(NodeStatus.COMPLETED, "(no commands to execute)")
                cwd = self._resolve_cwd(data.path, root_directory)
                output, exit_code = await run_commands(node.id, data.commands, cwd, self.shell)
                return finish(NodeStatus.COMPLETED, output, exit_code=exit_code)

            if isinstance(data, ScriptNodeData):
                if not data.script_files:
                    return finish(NodeStatus.COMPLETED, "(no scripts to execute)")
                cwd = self._resolve_cwd(data.path, root_directory)
                output, exit_code = await run_scripts(
                    node.id, data.script_files, cwd, data.args, self.shell
                )
                return finish(NodeStatus.COMPLETED, output, exit_code=exit_code)

            if isinstance(data, WorkdirNodeData):
                return finish(NodeStatus.COMPLETED, f"Working directory: {data.path or '(not set)'}")

            return finish(
                NodeStatus.COMPLETED,
                f"Node type '{node_type}' execution not yet implemented"
            )

        except CommandFailure as e:
            return finish(NodeStatus.FAILED, e.output, error=str(e), exit_code=e.exit_code)
        except Exception as e:
            logger.exception(f"Node {node.id} raised an error")
            return finish(NodeStatus.FAILED, error=str(e), exit_code=1)


async def execute_workflow_async(
    nodes: List[Union[WorkflowNode, Dict[str, Any]]],
    edges: List[Union[WorkflowEdge, Dict[str, Any]]],
    root_directory: Optional[str] = None,
    start_node_id: Optional[str] = None,
    shell: str = DEFAULT_SHELL
) -> ExecuteResponse:
    """Convenience wrapper: build a request and execute it."""
    request = ExecuteRequest(
        nodes=nodes,
        edges=edges,
        root_directory=root_directory,
        start_node_id=start_node_id,
    )
    return await WorkflowExecutor(shell=shell).execute(request)


def execute_workflow_sync(
    nodes: List[Union[WorkflowNode, Dict[str, Any]]],
    edges: List[Union[WorkflowEdge, Dict[str, Any]]],
    root_directory: Optional[str] = None,
    start_node_id: Optional[str] = None,
    shell: str = DEFAULT_SHELL
) -> ExecuteResponse:
    """Execute a workflow from synchronous code (must not be called inside a running loop)."""
    return asyncio.run(execute_workflow_async(nodes, edges, root_directory, start_node_id, shell))
