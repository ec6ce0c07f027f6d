# src/tdo/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..config import Preferences
from ..tasks.task_store import TaskStore
from .engine import Engine


@dataclass
class AppState:
    # Settings kept loosely typed so tests can pass a SimpleNamespace.
    settings: Any

    prefs: Preferences
    store: TaskStore
    engine: Engine
