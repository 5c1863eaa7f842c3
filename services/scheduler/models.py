"""
Data models for the trigger scheduler.
"""

from datetime import datetime
from typing import Annotated, Dict, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .clock import ensure_utc

KEY_SEPARATOR = ":"


def make_trigger_key(workspace: str, workflow_path: str, node_id: str) -> str:
    """Build the composite key identifying one trigger."""
    return KEY_SEPARATOR.join([workspace, workflow_path, node_id])


def workflow_key_prefix(workspace: str, workflow_path: str) -> str:
    """Prefix shared by every trigger key of one workflow."""
    return f"{workspace}{KEY_SEPARATOR}{workflow_path}{KEY_SEPARATOR}"


class CronTriggerConfig(BaseModel):
    """Fire on a cron schedule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["cron"] = "cron"
    expression: str = Field(..., alias="cron", description="Cron expression (5 or 6 field)")


class IdleTriggerConfig(BaseModel):
    """Fire once the system has been idle for a number of minutes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["idle"] = "idle"
    threshold_minutes: float = Field(
        0, ge=0, alias="idleMinutes", description="Required idle duration in minutes"
    )


TriggerConfig = Annotated[
    Union[CronTriggerConfig, IdleTriggerConfig],
    Field(discriminator="type"),
]


class RegisteredTrigger(BaseModel):
    """A trigger known to the registry."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    key: str = Field(..., alias="id", description="workspace:workflowPath:nodeId")
    workspace: str
    workflow_path: str
    node_id: str
    label: str = ""
    config: TriggerConfig
    enabled: bool = True
    next_run: Optional[datetime] = None
    last_run: Optional[datetime] = None

    @field_validator("next_run", "last_run")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @property
    def is_cron(self) -> bool:
        return isinstance(self.config, CronTriggerConfig)

    @property
    def is_idle(self) -> bool:
        return isinstance(self.config, IdleTriggerConfig)

    def to_record(self) -> Dict:
        """Serialize into the JSON shape used on disk and over HTTP."""
        return self.model_dump(mode="json", by_alias=True)

