"""
Load workflow files and run them

Usage:
    from services.executor.run_workflow import run_workflow_file

    response = await run_workflow_file("workflows/hello-world.yaml")
"""

import json
from pathlib import Path
from typing import Optional, Union

import yaml

from core.logging_config import get_logger
from .executor import WorkflowExecutor
from .models import ExecuteRequest, ExecuteResponse, WorkflowSchema

logger = get_logger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class WorkflowLoadError(ValueError):
    """A workflow file is missing or cannot be parsed."""


def load_workflow(path: Union[str, Path]) -> WorkflowSchema:
    """
    Load a workflow from a YAML or JSON file.

    Raises:
        WorkflowLoadError: If the file cannot be read or does not describe a workflow
    """
    wf_path = Path(path).expanduser()
    try:
        text = wf_path.read_text(encoding="utf-8")
    except OSError as e:
        raise WorkflowLoadError(f"Cannot read workflow file {wf_path}: {e}") from e

    try:
        if wf_path.suffix.lower() in YAML_SUFFIXES:
            raw = yaml.safe_load(text)
        else:
            raw = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise WorkflowLoadError(f"Cannot parse workflow file {wf_path}: {e}") from e

    if not isinstance(raw, dict):
        raise WorkflowLoadError(f"Workflow file {wf_path} does not contain a mapping")

    try:
        return WorkflowSchema.model_validate(raw)
    except ValueError as e:
        raise WorkflowLoadError(f"Invalid workflow file {wf_path}: {e}") from e


def resolve_root_directory(schema: WorkflowSchema, workflow_file: Path) -> str:
    """A relative ``rootDirectory`` is relative to the workflow file; a missing one is its folder."""
    base = workflow_file.expanduser().resolve().parent
    root = schema.metadata.root_directory
    if not root:
        return str(base)
    root_path = Path(root).expanduser()
    if not root_path.is_absolute():
        root_path = base / root_path
    return str(root_path)


async def run_workflow(
    schema: WorkflowSchema,
    root_directory: str,
    start_node_id: Optional[str] = None,
    executor: Optional[WorkflowExecutor] = None
) -> ExecuteResponse:
    """Execute an already loaded workflow."""
    executor = executor or WorkflowExecutor()
    request = ExecuteRequest(
        nodes=schema.nodes,
        edges=schema.edges,
        root_directory=root_directory,
        start_node_id=start_node_id,
    )
    return await executor.execute(request)


async def run_workflow_file(
    path: Union[str, Path],
    start_node_id: Optional[str] = None,
    root_directory: Optional[str] = None,
    executor: Optional[WorkflowExecutor] = None
) -> ExecuteResponse:
    """
    Load a workflow file and execute it.

    Args:
        path: YAML or JSON workflow file
        start_node_id: Node to start from (defaults to trigger/source nodes)
        root_directory: Overrides the file's ``metadata.rootDirectory``
        executor: Executor to use (a default one is created if omitted)
    """
    wf_path = Path(path)
    schema = load_workflow(wf_path)
    root = root_directory or resolve_root_directory(schema, wf_path)
    logger.info(f"Running workflow {schema.metadata.name or wf_path.name} in {root}")
    return await run_workflow(schema, root, start_node_id, executor)
