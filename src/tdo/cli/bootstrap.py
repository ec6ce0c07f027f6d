# src/tdo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the data directory exists (private to the user),
- loads or creates the preferences file,
- resolves the two store paths and wires TaskStore + Engine into AppState.
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path

from ..config import Preferences, get_settings, resolve_store_paths
from ..core.engine import Engine
from ..core.ports import Clock
from ..core.state import AppState
from ..tasks.task_store import StoreError, TaskStore
from ..tasks.uid import RandomSource

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    data_dir: Path = settings.data_dir
    if data_dir.exists() and not data_dir.is_dir():
        raise StoreError(f"{data_dir} exists but is not a directory", path=data_dir)
    try:
        data_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        settings.config_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StoreError(f"Cannot create {data_dir}: {e}", path=data_dir, cause=e) from e


def create_initial_state(
    *,
    settings=None,
    file_flag: str | None = None,
    archive_flag: str | None = None,
    clock: Clock | None = None,
    rng: RandomSource | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings(). Raises StoreError when the data
    directory or the task files cannot be prepared.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    prefs = Preferences.load_or_create(settings.config_path)
    active, archive = resolve_store_paths(
        settings, prefs, file_flag=file_flag, archive_flag=archive_flag
    )

    store = TaskStore(active, archive)
    engine = Engine(store, clock=clock, rng=rng)
    logger.debug("State ready active=%s archive=%s", active, archive)

    return AppState(settings=settings, prefs=prefs, store=store, engine=engine)


def save_preferences(state: AppState) -> None:
    """Persist state.prefs; keep the file private on disk (it can hold paths)."""
    path = Path(state.settings.config_path)
    state.prefs.save(path)
    with contextlib.suppress(OSError):
        path.chmod(0o600)
    logger.info("Saved preferences to %s", path)
