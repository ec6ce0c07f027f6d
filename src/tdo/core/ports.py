# src/tdo/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The engine depends on Protocols instead of concrete implementations.
This keeps storage swappable and lets tests pin the clock and the random source.
"""

from collections.abc import Callable, Iterable
from typing import Protocol

from ..tasks.task_models import ArchivedTask, OpenTask

Clock = Callable[[], str]
# Returns the current timestamp in the stored textual format.


class TaskRepo(Protocol):
    """Whole-snapshot access to the open list and the archive log."""

    def read_open(self) -> list[OpenTask]: ...
    def read_archive(self) -> list[ArchivedTask]: ...
    def write_open(self, tasks: Iterable[OpenTask]) -> None: ...
    def write_archive(self, tasks: Iterable[ArchivedTask]) -> None: ...
