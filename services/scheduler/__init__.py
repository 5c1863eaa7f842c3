"""
Trigger Scheduler Service

Fires cron and idle triggers registered from workflow files and starts
workflow runs for them.
"""

from .clock import Clock, ManualClock, SystemClock, system_clock
from .cron_utils import InvalidCronExpression, is_valid_cron, next_occurrence, preview_fire_times
from .database import TriggerStateStore
from .discovery import register_workflow_triggers
from .idle import IdleTracker
from .models import (
    CronTriggerConfig,
    IdleTriggerConfig,
    RegisteredTrigger,
    TriggerConfig,
    make_trigger_key
)
from .registry import TriggerRegistry
from .run_launcher import LaunchRecord, RunLauncher
from .worker import TriggerScheduler

__all__ = [
    "TriggerScheduler",
    "TriggerRegistry",
    "TriggerStateStore",
    "IdleTracker",
    "RunLauncher",
    "LaunchRecord",
    "Clock",
    "ManualClock",
    "SystemClock",
    "system_clock",
    "CronTriggerConfig",
    "IdleTriggerConfig",
    "RegisteredTrigger",
    "TriggerConfig",
    "InvalidCronExpression",
    "is_valid_cron",
    "next_occurrence",
    "preview_fire_times",
    "make_trigger_key",
    "register_workflow_triggers"
]
