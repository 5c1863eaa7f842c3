"""
Pytest configuration and fixtures for the workflow engine tests.
"""
import random
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from services.executor import WorkflowExecutor
from services.scheduler import IdleTracker, ManualClock, TriggerRegistry, TriggerScheduler


START_TIME = datetime(2025, 1, 1, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """A manual clock starting at 2025-01-01 08:00 UTC."""
    return ManualClock(START_TIME)


@pytest.fixture
def registry(clock):
    """An empty trigger registry on the manual clock."""
    return TriggerRegistry(clock)


@pytest.fixture
def idle_tracker(clock):
    """An idle tracker on the manual clock (starts busy)."""
    return IdleTracker(clock)


@pytest.fixture
def scheduler(clock, registry, idle_tracker):
    """A scheduler with persistence disabled and a seeded random source."""
    return TriggerScheduler(
        registry=registry,
        idle=idle_tracker,
        store=None,
        clock=clock,
        rng=random.Random(42),
    )


@pytest.fixture
def executor():
    """A workflow executor using the POSIX shell."""
    return WorkflowExecutor(shell="/bin/sh")


@pytest.fixture
def sample_workflow_nodes():
    """Trigger -> echo -> echo using the previous output."""
    return [
        {"id": "trigger", "type": "trigger", "data": {"label": "Start", "triggerType": "manual"}},
        {"id": "greet", "type": "shell", "data": {"label": "Greet", "commands": ["echo hello"]}},
        {
            "id": "shout",
            "type": "shell",
            "data": {"label": "Shout", "commands": ["echo {{ greet.output }} world"]},
        },
    ]


@pytest.fixture
def sample_workflow_edges():
    return [
        {"id": "e1", "source": "trigger", "target": "greet"},
        {"id": "e2", "source": "greet", "target": "shout"},
    ]


@pytest.fixture
def workflow_file(tmp_path):
    """A YAML workflow with a cron trigger, an idle trigger and one shell step."""
    content = """
version: 1
metadata:
  name: nightly
nodes:
  - id: cron-trigger
    type: trigger
    data:
      label: Every morning
      triggerType: cron
      cron: "0 0 9 * * *"
  - id: idle-trigger
    type: trigger
    data:
      label: When idle
      triggerType: idle
      idleMinutes: 5
  - id: step
    type: shell
    data:
      label: Step
      commands:
        - echo ran
edges:
  - id: e1
    source: cron-trigger
    target: step
  - id: e2
    source: idle-trigger
    target: step
"""
    path = tmp_path / "workflows" / "nightly.yaml"
    path.parent.mkdir(parents=True)
    path.write_text(content)
    return path
