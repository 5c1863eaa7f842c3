"""
RunLauncher for starting workflow executions from fired triggers.
"""

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

from core.logging_config import get_logger
from services.executor.executor import WorkflowExecutor, WorkflowGraphError
from services.executor.models import ExecuteResponse
from services.executor.run_workflow import WorkflowLoadError, load_workflow, run_workflow_file
from .clock import format_instant
from .discovery import register_workflow_triggers
from .models import RegisteredTrigger
from .worker import TriggerScheduler

logger = get_logger(__name__)


@dataclass
class LaunchRecord:
    """Outcome of one triggered run"""
    trigger_key: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    success: bool = False
    error: Optional[str] = None
    response: Optional[ExecuteResponse] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "triggerKey": self.trigger_key,
            "startedAt": format_instant(self.started_at),
            "finishedAt": format_instant(self.finished_at) if self.finished_at else None,
            "success": self.success,
            "error": self.error,
            "executionOrder": self.response.execution_order if self.response else [],
        }


class RunLauncher:
    """Launches workflow runs from fired triggers and keeps the idle state honest."""

    def __init__(
        self,
        scheduler: TriggerScheduler,
        executor: Optional[WorkflowExecutor] = None,
        workspace_roots: Optional[Dict[str, str]] = None,
        history_size: int = 50
    ):
        """
        Initialize the RunLauncher.

        Args:
            scheduler: Scheduler whose triggers this launcher runs
            executor: Workflow executor (a default one is created if omitted)
            workspace_roots: Optional workspace name -> directory mapping; by
                default the workspace itself is the directory
            history_size: How many launch records to keep
        """
        self.scheduler = scheduler
        self.executor = executor or WorkflowExecutor()
        self.workspace_roots = workspace_roots or {}
        self.history: Deque[LaunchRecord] = deque(maxlen=history_size)
        self._active_runs = 0

    def attach(self) -> None:
        """Install this launcher as the scheduler's fire callback; the system starts idle."""
        self.scheduler.on_fire(self.on_fire)
        self.scheduler.set_idle(True)

    @property
    def active_runs(self) -> int:
        return self._active_runs

    def workflow_file(self, workspace: str, workflow_path: str) -> Path:
        root = Path(self.workspace_roots.get(workspace, workspace)).expanduser()
        return root / workflow_path

    def register_workflow(self, workspace: str, workflow_path: str) -> List[RegisteredTrigger]:
        """Load a workflow file and sync its trigger nodes into the registry."""
        schema = load_workflow(self.workflow_file(workspace, workflow_path))
        return register_workflow_triggers(self.scheduler.registry, workspace, workflow_path, schema)

    async def on_fire(self, trigger: RegisteredTrigger) -> None:
        """
        Run the workflow a trigger belongs to, starting at the trigger node.

        Load and graph errors are recorded as failed launches rather than
        raised, so the trigger still counts as fired.
        """
        record = LaunchRecord(trigger_key=trigger.key, started_at=self.scheduler.clock.now())
        self.history.append(record)

        self._active_runs += 1
        self.scheduler.set_idle(False)
        try:
            path = self.workflow_file(trigger.workspace, trigger.workflow_path)
            logger.info(f"🚀 Launching {path} from trigger {trigger.label or trigger.node_id}")
            response = await run_workflow_file(
                path, start_node_id=trigger.node_id, executor=self.executor
            )
            record.response = response
            record.success = response.success
            failed = response.failed_result()
            if failed is not None:
                record.error = f"Node {failed.node_id} failed: {failed.error}"
                logger.warning(f"Triggered run of {path} failed at node {failed.node_id}")
        except (WorkflowLoadError, WorkflowGraphError) as e:
            record.error = str(e)
            logger.error(f"Could not run workflow for trigger {trigger.key}: {e}")
        finally:
            record.finished_at = self.scheduler.clock.now()
            self._active_runs -= 1
            if self._active_runs == 0:
                self.scheduler.set_idle(True)

    def recent_launches(self) -> List[LaunchRecord]:
        return list(self.history)
