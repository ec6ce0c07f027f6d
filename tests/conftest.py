# tests/conftest.py

from __future__ import annotations

import logging
import random
from pathlib import Path
from types import SimpleNamespace

import pytest

from tdo.cli.bootstrap import create_initial_state
from tdo.core.engine import Engine
from tdo.core.state import AppState
from tdo.tasks.task_store import TaskStore

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment and ~/.config.
    """
    data_dir = tmp_path / "tdo"
    return SimpleNamespace(
        app_name="tdo",
        log_level="WARNING",
        log_to_file=False,
        data_dir=data_dir,
        config_path=data_dir / "config",
        active_path=None,
        archive_path=None,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "active.md", tmp_path / "archive.md")


@pytest.fixture()
def engine(store: TaskStore, clock: FakeClock, rng: random.Random) -> Engine:
    return Engine(store, clock=clock, rng=rng)


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock, rng: random.Random) -> AppState:
    """AppState wired through the real bootstrap, with a pinned clock and RNG."""
    return create_initial_state(settings=settings, clock=clock, rng=rng)


@pytest.fixture()
def restore_root_logging():
    """The CLI reconfigures the root logger; put pytest's handlers back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)
