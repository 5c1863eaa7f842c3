"""
Services package for the workflow engine.
"""

from .executor import WorkflowExecutor
from .scheduler import TriggerScheduler

__all__ = [
    "WorkflowExecutor",
    "TriggerScheduler",
]
