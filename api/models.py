"""
API models for the workflow trigger and execution engine
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
from datetime import datetime

from services.scheduler.models import TriggerConfig


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


# ============================================================================
# Trigger Models
# ============================================================================

class RegisterTriggerRequest(ApiModel):
    workspace: str
    workflow_path: str
    node_id: str
    label: str = ""
    config: TriggerConfig


class SyncWorkflowRequest(ApiModel):
    workspace: str
    workflow_path: str


class EnableTriggerRequest(ApiModel):
    key: str
    enabled: bool = True


class ValidateCronRequest(ApiModel):
    expression: str
    count: int = Field(default=5, ge=1, le=50, description="Number of upcoming runs to preview")


class ValidateCronResponse(ApiModel):
    valid: bool
    next_runs: List[datetime] = Field(default_factory=list)
    error: Optional[str] = None


class TriggerListResponse(ApiModel):
    triggers: List[Dict[str, Any]]
    count: int


# ============================================================================
# Scheduler Models
# ============================================================================

class SetIdleRequest(ApiModel):
    idle: bool


class StartSchedulerRequest(ApiModel):
    interval_ms: Optional[int] = Field(default=None, gt=0)


class CheckResponse(ApiModel):
    fired: List[Dict[str, Any]]
    count: int


class LaunchListResponse(ApiModel):
    launches: List[Dict[str, Any]]
    count: int
