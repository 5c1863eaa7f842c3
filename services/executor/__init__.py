"""
Workflow Execution Engine Package

Executes workflow graphs (shell, script, trigger and workdir nodes) with
template substitution between steps.

Main exports:
- WorkflowExecutor: Main execution engine class
- execute_workflow_async / execute_workflow_sync: Convenience wrappers
- run_workflow_file: Load a YAML/JSON workflow and run it
"""

from .executor import (
    WorkflowExecutor,
    WorkflowGraphError,
    build_adjacency,
    find_start_nodes,
    find_cycle,
    execute_workflow_async,
    execute_workflow_sync
)

from .models import (
    ExecuteRequest,
    ExecuteResponse,
    NodeKind,
    NodeResult,
    NodeStatus,
    RunStatus,
    WorkflowEdge,
    WorkflowNode,
    WorkflowSchema
)

from .shell import CommandFailure
from .templates import ExecutionContext, replace_templates
from .run_workflow import WorkflowLoadError, load_workflow, run_workflow, run_workflow_file

__all__ = [
    # Main classes
    "WorkflowExecutor",
    "ExecutionContext",

    # Errors
    "WorkflowGraphError",
    "WorkflowLoadError",
    "CommandFailure",

    # Models
    "ExecuteRequest",
    "ExecuteResponse",
    "NodeResult",
    "WorkflowEdge",
    "WorkflowNode",
    "WorkflowSchema",

    # Enums
    "NodeKind",
    "NodeStatus",
    "RunStatus",

    # Graph helpers
    "build_adjacency",
    "find_start_nodes",
    "find_cycle",
    "replace_templates",

    # Execution functions
    "execute_workflow_async",
    "execute_workflow_sync",
    "load_workflow",
    "run_workflow",
    "run_workflow_file"
]

__version__ = "1.0.0"
