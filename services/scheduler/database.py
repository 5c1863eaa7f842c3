"""
JSON file storage for trigger state.

File layout::

    {
      "triggers": {"<workspace>:<workflowPath>:<nodeId>": {...record...}},
      "lastUpdated": "2025-01-01T09:00:00.000Z"
    }
"""

import json
import os
from datetime import datetime
from typing import Dict, Iterable, Optional
from pathlib import Path

from pydantic import ValidationError

from core.logging_config import get_logger
from .clock import format_instant
from .models import RegisteredTrigger

logger = get_logger(__name__)


class TriggerStateStore:
    """Loads and saves trigger records. A ``None`` path disables all I/O."""

    def __init__(self, path: Optional[Path]):
        self.path = Path(path) if path is not None else None

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def load(self) -> Dict[str, RegisteredTrigger]:
        """
        Read persisted triggers.

        A missing file means no prior state. Any other read or parse error is
        logged and also treated as no prior state.
        """
        if self.path is None:
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading triggers from {self.path}: {e}")
            return {}

        raw_triggers = data.get("triggers") if isinstance(data, dict) else None
        if not isinstance(raw_triggers, dict):
            logger.error(f"Ignoring malformed trigger file {self.path}")
            return {}

        triggers: Dict[str, RegisteredTrigger] = {}
        for key, record in raw_triggers.items():
            try:
                trigger = RegisteredTrigger.model_validate(record)
            except ValidationError as e:
                logger.warning(f"Skipping invalid trigger record {key}: {e.error_count()} errors")
                continue
            triggers[trigger.key] = trigger

        logger.info(f"Loaded {len(triggers)} triggers from {self.path}")
        return triggers

    def save(self, triggers: Iterable[RegisteredTrigger], now: datetime) -> bool:
        """
        Overwrite the trigger file with the given records.

        Returns:
            True if the file was written, False if persistence is disabled or failed
        """
        if self.path is None:
            return False

        state = {
            "triggers": {t.key: t.to_record() for t in triggers},
            "lastUpdated": format_instant(now),
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_name(self.path.name + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
            os.replace(tmp_path, self.path)
            return True
        except OSError as e:
            logger.error(f"Error saving triggers to {self.path}: {e}")
            return False
