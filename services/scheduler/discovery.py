"""
Register the trigger nodes of a workflow with the trigger registry.
"""

from typing import List

from pydantic import ValidationError

from core.logging_config import get_logger
from services.executor.models import NodeKind, TriggerNodeData, WorkflowSchema
from .models import CronTriggerConfig, IdleTriggerConfig, RegisteredTrigger, workflow_key_prefix
from .registry import TriggerRegistry

logger = get_logger(__name__)


def register_workflow_triggers(
    registry: TriggerRegistry,
    workspace: str,
    workflow_path: str,
    schema: WorkflowSchema
) -> List[RegisteredTrigger]:
    """
    Sync a workflow's registered triggers with the ones its file declares.

    Manual trigger nodes are skipped. Cron triggers with an invalid expression
    are still registered (without a next run) so they show up for the user.
    Triggers the file no longer declares are removed; re-declared ones keep
    their last run time.

    Returns:
        The triggers registered for the workflow
    """
    registered: List[RegisteredTrigger] = []
    for node in schema.nodes:
        if node.node_type != NodeKind.TRIGGER.value:
            continue

        try:
            data = TriggerNodeData.model_validate(node.data)
        except ValidationError as e:
            logger.warning(f"Skipping trigger node {node.id} in {workflow_path}: {e.error_count()} errors")
            continue

        if data.trigger_type == "cron":
            if not data.cron:
                logger.warning(f"Cron trigger {node.id} in {workflow_path} has no expression")
                continue
            config = CronTriggerConfig(expression=data.cron)
        elif data.trigger_type == "idle":
            config = IdleTriggerConfig(threshold_minutes=data.idle_minutes or 0)
        else:
            continue

        registered.append(
            registry.register(workspace, workflow_path, node.id, node.label, config)
        )

    declared = {t.key for t in registered}
    prefix = workflow_key_prefix(workspace, workflow_path)
    for trigger in registry.list_all():
        if trigger.key.startswith(prefix) and trigger.key not in declared:
            registry.unregister(trigger.key)

    return registered
