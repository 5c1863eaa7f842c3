"""
Data models for workflow graphs and their execution results.

Nodes arrive as a loose envelope (``id``, ``type``, ``data``) so that the
editor can store whatever it likes; ``WorkflowNode.typed_data()`` narrows the
payload to the variant the executor understands for that node type.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NodeKind(str, Enum):
    """Node types the executor knows how to run"""
    SHELL = "shell"
    SCRIPT = "script"
    TRIGGER = "trigger"
    WORKDIR = "workdir"


class NodeStatus(str, Enum):
    """Node execution status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Workflow run status"""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


# Typed node payloads

class NodeData(CamelModel):
    """Fields shared by every node type."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="allow")

    label: Optional[str] = None
    node_type: Optional[str] = None


class ShellNodeData(NodeData):
    commands: List[str] = Field(default_factory=list)
    path: Optional[str] = None


class ScriptNodeData(NodeData):
    script_files: List[str] = Field(default_factory=list)
    args: List[str] = Field(default_factory=list)
    path: Optional[str] = None


class TriggerNodeData(NodeData):
    trigger_type: Literal["manual", "cron", "idle"] = "manual"
    cron: Optional[str] = None
    idle_minutes: Optional[float] = Field(None, ge=0)


class WorkdirNodeData(NodeData):
    path: Optional[str] = None


class OpaqueNodeData(NodeData):
    """Anything the executor does not run itself (agents, components, ...)."""


TypedNodeData = Union[ShellNodeData, ScriptNodeData, TriggerNodeData, WorkdirNodeData, OpaqueNodeData]

_DATA_MODELS = {
    NodeKind.SHELL.value: ShellNodeData,
    NodeKind.SCRIPT.value: ScriptNodeData,
    NodeKind.TRIGGER.value: TriggerNodeData,
    NodeKind.WORKDIR.value: WorkdirNodeData,
}


class WorkflowNode(BaseModel):
    """One step of a workflow graph."""

    id: str
    type: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def node_type(self) -> str:
        """Effective type: ``data.nodeType`` wins over the envelope type."""
        return self.data.get("nodeType") or self.type

    @property
    def label(self) -> str:
        return self.data.get("label") or self.id

    def typed_data(self) -> TypedNodeData:
        model = _DATA_MODELS.get(self.node_type, OpaqueNodeData)
        return model.model_validate(self.data)

    def with_data(self, data: Dict[str, Any]) -> "WorkflowNode":
        return self.model_copy(update={"data": data})


class WorkflowEdge(BaseModel):
    """Directed edge; ``source`` must finish before ``target`` starts."""

    id: str = ""
    source: str
    target: str


class ExecuteRequest(CamelModel):
    nodes: List[WorkflowNode]
    edges: List[WorkflowEdge] = Field(default_factory=list)
    root_directory: Optional[str] = None
    start_node_id: Optional[str] = None


class NodeResult(CamelModel):
    node_id: str
    status: NodeStatus = NodeStatus.PENDING
    output: Optional[str] = None
    error: Optional[str] = None
    exit_code: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class ExecuteResponse(CamelModel):
    success: bool
    results: List[NodeResult] = Field(default_factory=list)
    execution_order: List[str] = Field(default_factory=list)

    @property
    def status(self) -> RunStatus:
        return RunStatus.COMPLETED if self.success else RunStatus.FAILED

    def failed_result(self) -> Optional[NodeResult]:
        """The node that stopped the run, if any."""
        for result in self.results:
            if result.status == NodeStatus.FAILED:
                return result
        return None


class WorkflowMetadata(CamelModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="allow")

    name: str = ""
    description: Optional[str] = None
    root_directory: Optional[str] = None


class WorkflowSchema(CamelModel):
    """A workflow file: metadata plus its graph."""

    version: Union[int, str] = 1
    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
