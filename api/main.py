"""
Main FastAPI application for the workflow trigger and execution engine.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import (
    execute_router,
    scheduler_router,
    system_router,
    triggers_router
)
from core.config import Settings, settings as default_settings
from core.logging_config import get_logger
from api.middleware import add_logging_middleware
from services.executor import WorkflowExecutor
from services.scheduler import RunLauncher, TriggerScheduler, TriggerStateStore

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    scheduler: Optional[TriggerScheduler] = None,
    executor: Optional[WorkflowExecutor] = None,
    launcher: Optional[RunLauncher] = None
) -> FastAPI:
    """
    Build the API application.

    Services that are not passed in are created from ``settings``. When the
    scheduler is created here, the RunLauncher is attached to it so fired
    triggers start their workflows.
    """
    settings = settings or default_settings
    executor = executor or WorkflowExecutor(shell=settings.shell_executable)
    owns_scheduler = scheduler is None
    if owns_scheduler:
        scheduler = TriggerScheduler(store=TriggerStateStore(settings.resolve_triggers_file()))
    launcher = launcher or RunLauncher(scheduler, executor)
    if owns_scheduler:
        launcher.attach()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🚀 Starting workflow engine API...")
        loaded = scheduler.load()
        logger.info(f"📚 Loaded {loaded} persisted triggers")
        scheduler.start(settings.trigger_check_interval_ms)
        yield
        logger.info("🛑 Shutting down workflow engine API...")
        await scheduler.shutdown()
        scheduler.save()
        logger.info("👋 Shutdown complete")

    app = FastAPI(
        title="Nodeflow Engine API",
        description="Runs workflow graphs and fires their cron and idle triggers.",
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "System", "description": "Health checks"},
            {"name": "Execution", "description": "Workflow graph execution"},
            {"name": "Triggers", "description": "Trigger registration and management"},
            {"name": "Scheduler", "description": "Trigger check loop and idle state"}
        ]
    )
    app.state.settings = settings
    app.state.scheduler = scheduler
    app.state.executor = executor
    app.state.launcher = launcher

    # Logging middleware first (for request tracking)
    add_logging_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,  # Must be False when allow_origins=["*"]
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(system_router)
    app.include_router(execute_router)
    app.include_router(triggers_router)
    app.include_router(scheduler_router)

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "message": "Nodeflow Engine API",
            "version": "1.0.0",
            "docs": "/docs",
            "redoc": "/redoc"
        }

    return app


app = create_app()
