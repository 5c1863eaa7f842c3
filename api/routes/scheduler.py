"""
Scheduler control routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from services.scheduler import RunLauncher, TriggerScheduler
from ..models import CheckResponse, LaunchListResponse, SetIdleRequest, StartSchedulerRequest
from .dependencies import get_launcher, get_scheduler

router = APIRouter(prefix="/scheduler", tags=["Scheduler"])


@router.get("/status")
async def scheduler_status(scheduler: TriggerScheduler = Depends(get_scheduler)):
    """Get scheduler loop and idle status"""
    return scheduler.status()


@router.post("/start")
async def start_scheduler(
    request: Optional[StartSchedulerRequest] = None,
    scheduler: TriggerScheduler = Depends(get_scheduler)
):
    """Start (or restart) the trigger check loop"""
    interval_ms = request.interval_ms if request and request.interval_ms else scheduler.interval_ms
    scheduler.start(interval_ms)
    return scheduler.status()


@router.post("/stop")
async def stop_scheduler(scheduler: TriggerScheduler = Depends(get_scheduler)):
    """Stop the trigger check loop"""
    scheduler.stop()
    return scheduler.status()


@router.post("/check", response_model=CheckResponse, response_model_by_alias=True)
async def check_triggers(scheduler: TriggerScheduler = Depends(get_scheduler)):
    """Run one check cycle now"""
    fired = await scheduler.check_and_fire()
    return CheckResponse(fired=[t.to_record() for t in fired], count=len(fired))


@router.post("/idle")
async def set_idle(
    request: SetIdleRequest,
    scheduler: TriggerScheduler = Depends(get_scheduler)
):
    """Report whether the host is idle"""
    scheduler.set_idle(request.idle)
    return scheduler.status()


@router.get("/launches", response_model=LaunchListResponse, response_model_by_alias=True)
async def list_launches(launcher: RunLauncher = Depends(get_launcher)):
    """Recent workflow runs started by fired triggers, oldest first"""
    launches = launcher.recent_launches()
    return LaunchListResponse(launches=[r.to_record() for r in launches], count=len(launches))
