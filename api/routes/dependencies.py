"""
Shared route dependencies: services live on ``app.state``.
"""

from fastapi import HTTPException, Request

from services.executor import WorkflowExecutor
from services.scheduler import RunLauncher, TriggerScheduler


def get_scheduler(request: Request) -> TriggerScheduler:
    """Dependency to get the scheduler instance."""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=500, detail="Scheduler not initialized")
    return scheduler


def get_executor(request: Request) -> WorkflowExecutor:
    """Dependency to get the executor instance."""
    executor = getattr(request.app.state, "executor", None)
    if executor is None:
        raise HTTPException(status_code=500, detail="Executor not initialized")
    return executor


def get_launcher(request: Request) -> RunLauncher:
    """Dependency to get the run launcher instance."""
    launcher = getattr(request.app.state, "launcher", None)
    if launcher is None:
        raise HTTPException(status_code=500, detail="Run launcher not initialized")
    return launcher
