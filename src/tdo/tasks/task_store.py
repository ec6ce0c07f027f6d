# tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TypeVar

from .task_models import ArchivedTask, OpenTask

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(Exception):
    """Base class for task file failures; carries the path and the underlying cause."""

    def __init__(self, message: str, *, path: Path, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.cause = cause


class StoreReadError(StoreError):
    def __init__(self, path: Path, cause: BaseException) -> None:
        super().__init__(f"Failed to read {path}: {cause}", path=path, cause=cause)


class AtomicWriteError(StoreError):
    def __init__(self, path: Path, cause: BaseException) -> None:
        super().__init__(f"Atomic write failed for {path}: {cause}", path=path, cause=cause)


# ---- low-level helpers ----


def read_lines(path: str | Path) -> list[str]:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise StoreReadError(path, e) from e
    # Records end at "\n" only (read_text folds "\r\n"); U+2028 etc. may sit inside text.
    return text.split("\n")


def atomic_write_lines(path: str | Path, lines: Iterable[str]) -> None:
    """
    Replace `path` with `lines` joined by newlines (no trailing newline).

    The content goes to a temp file in the same directory, is fsynced, then
    os.replace()d over the target, so readers see either the old file or the
    complete new one.
    """
    path = Path(path)
    content = "\n".join(lines)

    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=".tmp.", dir=str(path.parent))
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
                logger.debug("Removed temp file %s after failed write.", tmp_name)
        raise AtomicWriteError(path, e) from e


def _decode_lines(
    path: str | Path, decode: Callable[[str], T | None]
) -> list[T]:
    out: list[T] = []
    dropped = 0
    for line in read_lines(path):
        item = decode(line)
        if item is None:
            if line.strip():
                dropped += 1
            continue
        out.append(item)
    if dropped:
        logger.warning("Skipped %d malformed line(s) in %s", dropped, path)
    return out


def read_open(path: str | Path) -> list[OpenTask]:
    return _decode_lines(path, OpenTask.decode)


def read_archive(path: str | Path) -> list[ArchivedTask]:
    return _decode_lines(path, ArchivedTask.decode)


def write_open(path: str | Path, tasks: Iterable[OpenTask]) -> None:
    atomic_write_lines(path, (t.encode() for t in tasks))


def write_archive(path: str | Path, tasks: Iterable[ArchivedTask]) -> None:
    atomic_write_lines(path, (t.encode() for t in tasks))


class TaskStore:
    """
    Flat-file task store: one file of open tasks, one archive file.

    Every call reads or rewrites a whole file; nothing is cached between calls.
    There is no cross-process locking, so two concurrent writers race and the
    last one wins.
    """

    def __init__(self, active_path: str | Path, archive_path: str | Path) -> None:
        self.active_path = Path(active_path)
        self.archive_path = Path(archive_path)
        self._ensure_files()
        logger.debug("TaskStore ready active=%s archive=%s", self.active_path, self.archive_path)

    def _ensure_files(self) -> None:
        for path in (self.active_path, self.archive_path):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                if not path.exists():
                    path.touch(mode=0o600)
                    logger.info("Created empty task file %s", path)
            except OSError as e:
                raise StoreError(f"Cannot prepare {path}: {e}", path=path, cause=e) from e

    # ---- public API ----

    def read_open(self) -> list[OpenTask]:
        return read_open(self.active_path)

    def read_archive(self) -> list[ArchivedTask]:
        return read_archive(self.archive_path)

    def write_open(self, tasks: Iterable[OpenTask]) -> None:
        write_open(self.active_path, tasks)

    def write_archive(self, tasks: Iterable[ArchivedTask]) -> None:
        write_archive(self.archive_path, tasks)
