"""
Trigger management routes.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from core.logging_config import get_logger
from services.executor.run_workflow import WorkflowLoadError
from services.scheduler import RunLauncher, TriggerScheduler, is_valid_cron, preview_fire_times
from ..models import (
    EnableTriggerRequest,
    RegisterTriggerRequest,
    SyncWorkflowRequest,
    TriggerListResponse,
    ValidateCronRequest,
    ValidateCronResponse,
)
from .dependencies import get_launcher, get_scheduler

logger = get_logger(__name__)
router = APIRouter(prefix="/triggers", tags=["Triggers"])


@router.get("", response_model=TriggerListResponse, response_model_by_alias=True)
async def list_triggers(
    workspace: Optional[str] = None,
    scheduler: TriggerScheduler = Depends(get_scheduler)
):
    """List registered triggers, optionally for one workspace"""
    if workspace:
        triggers = scheduler.registry.list_by_workspace(workspace)
    else:
        triggers = scheduler.registry.list_all()
    return TriggerListResponse(triggers=[t.to_record() for t in triggers], count=len(triggers))


@router.post("/register")
async def register_trigger(
    request: RegisterTriggerRequest,
    scheduler: TriggerScheduler = Depends(get_scheduler)
):
    """Register or re-register a trigger"""
    trigger = scheduler.registry.register(
        request.workspace,
        request.workflow_path,
        request.node_id,
        request.label,
        request.config,
    )
    scheduler.save()
    return trigger.to_record()


@router.post("/enable")
async def enable_trigger(
    request: EnableTriggerRequest,
    scheduler: TriggerScheduler = Depends(get_scheduler)
):
    """Enable or disable a trigger"""
    if not scheduler.registry.set_enabled(request.key, request.enabled):
        raise HTTPException(status_code=404, detail=f"Trigger {request.key} not found")
    scheduler.save()
    return {"key": request.key, "enabled": request.enabled}


@router.post("/validate-cron", response_model=ValidateCronResponse, response_model_by_alias=True)
async def validate_cron(request: ValidateCronRequest):
    """Validate a cron expression and preview its next fire times"""
    if not is_valid_cron(request.expression):
        return ValidateCronResponse(
            valid=False, error=f"Invalid cron expression: {request.expression!r}"
        )
    next_runs = preview_fire_times(
        request.expression, datetime.now(timezone.utc), request.count
    )
    return ValidateCronResponse(valid=True, next_runs=next_runs)


@router.post("/sync", response_model=TriggerListResponse, response_model_by_alias=True)
async def sync_workflow(
    request: SyncWorkflowRequest,
    scheduler: TriggerScheduler = Depends(get_scheduler),
    launcher: RunLauncher = Depends(get_launcher)
):
    """Load a workflow file and sync its trigger nodes into the registry"""
    try:
        triggers = launcher.register_workflow(request.workspace, request.workflow_path)
    except WorkflowLoadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    scheduler.save()
    return TriggerListResponse(triggers=[t.to_record() for t in triggers], count=len(triggers))


@router.delete("/workflow")
async def delete_workflow_triggers(
    workspace: str,
    workflow_path: str = Query(..., alias="workflowPath"),
    scheduler: TriggerScheduler = Depends(get_scheduler)
):
    """Unregister every trigger of one workflow"""
    removed = scheduler.registry.unregister_workflow(workspace, workflow_path)
    if removed:
        scheduler.save()
    return {"workspace": workspace, "workflowPath": workflow_path, "removed": removed}


@router.get("/{key:path}")
async def get_trigger(
    key: str,
    scheduler: TriggerScheduler = Depends(get_scheduler)
):
    """Get a single trigger by key"""
    trigger = scheduler.registry.get(key)
    if trigger is None:
        raise HTTPException(status_code=404, detail=f"Trigger {key} not found")
    return trigger.to_record()


@router.delete("/{key:path}")
async def delete_trigger(
    key: str,
    scheduler: TriggerScheduler = Depends(get_scheduler)
):
    """Unregister a trigger"""
    if not scheduler.registry.unregister(key):
        raise HTTPException(status_code=404, detail=f"Trigger {key} not found")
    scheduler.save()
    logger.info(f"Unregistered trigger {key}")
    return {"key": key, "deleted": True}
