"""
API Routes Package

This package contains all the route modules organized by functionality.
"""

from api.routes.execute import router as execute_router
from api.routes.scheduler import router as scheduler_router
from api.routes.system import router as system_router
from api.routes.triggers import router as triggers_router

__all__ = [
    "execute_router",
    "scheduler_router",
    "system_router",
    "triggers_router"
]
