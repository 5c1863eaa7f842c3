"""
Trigger Scheduler that checks due triggers on a timer and fires them.
"""

import asyncio
import random
from datetime import timedelta
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Union

from core.logging_config import get_logger
from .clock import Clock, system_clock
from .database import TriggerStateStore
from .idle import IdleTracker
from .models import RegisteredTrigger
from .registry import TriggerRegistry

logger = get_logger(__name__)

FireCallback = Callable[[RegisteredTrigger], Awaitable[None]]

DEFAULT_INTERVAL_MS = 10000


class TriggerScheduler:
    """Ties the trigger registry and idle tracker to a fire callback."""

    def __init__(
        self,
        registry: Optional[TriggerRegistry] = None,
        idle: Optional[IdleTracker] = None,
        store: Optional[Union[TriggerStateStore, Path, str]] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the scheduler.

        Args:
            registry: Trigger registry (a fresh one is created if omitted)
            idle: Idle tracker (a fresh one is created if omitted)
            store: State store or file path; None disables persistence
            clock: Time source shared by registry and idle tracker
            rng: Random source used to pick among due idle triggers
        """
        self.clock = clock or system_clock
        self.registry = registry or TriggerRegistry(self.clock)
        self.idle = idle or IdleTracker(self.clock)
        if store is None or isinstance(store, TriggerStateStore):
            self.store = store or TriggerStateStore(None)
        else:
            self.store = TriggerStateStore(Path(store))
        self.rng = rng or random.Random()

        self._on_fire: Optional[FireCallback] = None
        self._task: Optional[asyncio.Task] = None
        self._interval_ms = DEFAULT_INTERVAL_MS
        self._cycle_lock = asyncio.Lock()

    # Callback and idle state

    def on_fire(self, callback: Optional[FireCallback]) -> None:
        """Set the callback invoked for each fired trigger (replaces any previous one)."""
        self._on_fire = callback

    def set_idle(self, idle: bool) -> None:
        self.idle.set_idle(idle)

    def is_idle(self) -> bool:
        return self.idle.is_idle()

    def idle_duration(self) -> timedelta:
        return self.idle.idle_duration(self.clock.now())

    # Persistence

    def load(self) -> int:
        """Merge persisted trigger records into the registry."""
        return self.registry.restore(self.store.load().values())

    def save(self) -> bool:
        return self.store.save(self.registry.list_all(), self.clock.now())

    # Check cycle

    async def _fire(self, trigger: RegisteredTrigger, kind: str) -> Optional[RegisteredTrigger]:
        """Run the callback for one trigger. Returns the updated trigger, or None on failure."""
        if self._on_fire is not None:
            try:
                await self._on_fire(trigger)
            except Exception:
                logger.exception(f"Error firing {kind} trigger {trigger.key}")
                return None
        fired = self.registry.mark_fired(trigger.key, self.clock.now())
        return fired or trigger

    async def check_and_fire(self) -> List[RegisteredTrigger]:
        """
        Fire every due cron trigger and at most one due idle trigger.

        Returns:
            The triggers that fired during this cycle
        """
        async with self._cycle_lock:
            fired: List[RegisteredTrigger] = []

            for trigger in self.registry.due_cron_triggers(self.clock.now()):
                logger.info(f"⏰ Firing cron trigger: {trigger.label or trigger.key}")
                result = await self._fire(trigger, "cron")
                if result is not None:
                    fired.append(result)

            due_idle = self.registry.due_idle_triggers(self.idle, self.clock.now())
            if due_idle:
                selected = self.rng.choice(due_idle)
                idle_minutes = round(self.idle.idle_minutes(self.clock.now()))
                logger.info(
                    f"💤 Firing idle trigger: {selected.label or selected.key} "
                    f"(idle for {idle_minutes} minutes)"
                )
                # Marking the system busy is left to whoever actually starts the workflow.
                result = await self._fire(selected, "idle")
                if result is not None:
                    fired.append(result)

            if fired:
                self.save()

            return fired

    # Loop management

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    async def _run_loop(self, interval_ms: int) -> None:
        while True:
            await asyncio.sleep(interval_ms / 1000.0)
            try:
                await self.check_and_fire()
            except Exception:
                logger.exception("Error in trigger check loop")

    def start(self, interval_ms: int = DEFAULT_INTERVAL_MS) -> None:
        """
        Start the check loop on the running event loop.

        Starting while already running replaces the previous loop.
        """
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if self._task is not None:
            self.stop()

        self._interval_ms = interval_ms
        self._task = asyncio.get_running_loop().create_task(self._run_loop(interval_ms))
        logger.info(f"Trigger scheduler started (checking every {interval_ms}ms)")

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.info("Trigger scheduler stopped")

    async def shutdown(self) -> None:
        """Stop the loop and wait for the current cycle to unwind."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def status(self) -> dict:
        now = self.clock.now()
        return {
            "running": self.is_running,
            "interval_ms": self._interval_ms,
            "idle": self.is_idle(),
            "idle_since": self.idle.idle_since.isoformat() if self.idle.idle_since else None,
            "idle_minutes": self.idle.idle_minutes(now),
            "trigger_count": len(self.registry),
            "persistence": str(self.store.path) if self.store.enabled else None,
        }
