"""
Trigger Registry for managing trigger registration and due-time queries.
"""

import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

from core.logging_config import get_logger
from .clock import Clock, system_clock
from .cron_utils import InvalidCronExpression, next_occurrence
from .idle import IdleTracker
from .models import (
    CronTriggerConfig,
    IdleTriggerConfig,
    RegisteredTrigger,
    TriggerConfig,
    make_trigger_key,
    workflow_key_prefix,
)

logger = get_logger(__name__)


class TriggerRegistry:
    """
    Owns every registered trigger.

    Records never leave the registry by reference: queries return copies and
    all mutations go through registry methods, under a single lock.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or system_clock
        self._triggers: Dict[str, RegisteredTrigger] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._triggers)

    def __contains__(self, key: str) -> bool:
        return key in self._triggers

    @staticmethod
    def key_for(workspace: str, workflow_path: str, node_id: str) -> str:
        return make_trigger_key(workspace, workflow_path, node_id)

    def _compute_next_run(self, key: str, config: TriggerConfig, base: datetime) -> Optional[datetime]:
        if not isinstance(config, CronTriggerConfig):
            return None
        try:
            return next_occurrence(config.expression, base)
        except InvalidCronExpression as e:
            logger.warning(f"Invalid cron for {key}: {e.reason}")
            return None

    def register(
        self,
        workspace: str,
        workflow_path: str,
        node_id: str,
        label: str,
        config: TriggerConfig
    ) -> RegisteredTrigger:
        """
        Register or re-register a trigger.

        Re-registering an existing key replaces its label and config but keeps
        its last run time. An invalid cron expression leaves ``next_run`` unset.

        Returns:
            A copy of the stored trigger
        """
        key = make_trigger_key(workspace, workflow_path, node_id)
        with self._lock:
            previous = self._triggers.get(key)
            trigger = RegisteredTrigger(
                key=key,
                workspace=workspace,
                workflow_path=workflow_path,
                node_id=node_id,
                label=label,
                config=config,
                enabled=True,
                next_run=self._compute_next_run(key, config, self.clock.now()),
                last_run=previous.last_run if previous else None,
            )
            self._triggers[key] = trigger
            logger.info(f"Registered {config.type} trigger {key}")
            return trigger.model_copy(deep=True)

    def restore(self, triggers: Iterable[RegisteredTrigger]) -> int:
        """Insert previously persisted records as-is."""
        count = 0
        with self._lock:
            for trigger in triggers:
                self._triggers[trigger.key] = trigger.model_copy(deep=True)
                count += 1
        return count

    def unregister(self, key: str) -> bool:
        with self._lock:
            return self._triggers.pop(key, None) is not None

    def unregister_workflow(self, workspace: str, workflow_path: str) -> int:
        """Remove every trigger belonging to one workflow."""
        prefix = workflow_key_prefix(workspace, workflow_path)
        with self._lock:
            doomed = [key for key in self._triggers if key.startswith(prefix)]
            for key in doomed:
                del self._triggers[key]
        if doomed:
            logger.info(f"Unregistered {len(doomed)} triggers for {workspace}:{workflow_path}")
        return len(doomed)

    def get(self, key: str) -> Optional[RegisteredTrigger]:
        with self._lock:
            trigger = self._triggers.get(key)
            return trigger.model_copy(deep=True) if trigger else None

    def list_all(self) -> List[RegisteredTrigger]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._triggers.values()]

    def list_by_workspace(self, workspace: str) -> List[RegisteredTrigger]:
        return [t for t in self.list_all() if t.workspace == workspace]

    def set_enabled(self, key: str, enabled: bool) -> bool:
        """Enable or disable a trigger. Returns False if the key is unknown."""
        with self._lock:
            trigger = self._triggers.get(key)
            if trigger is None:
                return False
            trigger.enabled = enabled
            return True

    def due_cron_triggers(self, now: Optional[datetime] = None) -> List[RegisteredTrigger]:
        """Enabled cron triggers whose next run is at or before ``now``."""
        now = now or self.clock.now()
        return [
            t for t in self.list_all()
            if t.enabled and t.is_cron and t.next_run is not None and t.next_run <= now
        ]

    def due_idle_triggers(self, idle: IdleTracker, now: Optional[datetime] = None) -> List[RegisteredTrigger]:
        """Enabled idle triggers whose threshold has been reached by the current idle period."""
        if not idle.is_idle():
            return []
        now = now or self.clock.now()
        idle_minutes = idle.idle_minutes(now)
        return [
            t for t in self.list_all()
            if t.enabled
            and isinstance(t.config, IdleTriggerConfig)
            and t.config.threshold_minutes <= idle_minutes
        ]

    def mark_fired(
        self,
        trigger: Union[str, RegisteredTrigger],
        now: Optional[datetime] = None
    ) -> Optional[RegisteredTrigger]:
        """
        Record that a trigger fired and schedule its next cron run.

        Args:
            trigger: The trigger (or its key) that fired
            now: Fire instant, defaults to the registry clock

        Returns:
            A copy of the updated trigger, or None if it was removed meanwhile
        """
        key = trigger if isinstance(trigger, str) else trigger.key
        now = now or self.clock.now()
        with self._lock:
            record = self._triggers.get(key)
            if record is None:
                return None
            record.last_run = now
            if record.is_cron:
                record.next_run = self._compute_next_run(key, record.config, now)
            return record.model_copy(deep=True)

    def clear(self) -> None:
        with self._lock:
            self._triggers.clear()
