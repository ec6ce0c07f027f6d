# src/tdo/core/engine.py

"""
Command executor.

Each call to Engine.execute() reads a fresh snapshot of both task files,
applies one command in memory, persists what changed and returns the output
lines, whether storage was mutated, and an exit code.

User-level problems (no match, nothing to undo, empty text...) are reported
as "note: ..." lines with USER_ERROR; only storage and identifier failures
travel as exceptions, and they are mapped to exit codes here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import IntEnum
from typing import NamedTuple

from ..tasks.task_models import Action, ArchivedTask, OpenTask, now_iso
from ..tasks.task_store import StoreError
from ..tasks.uid import (
    RandomSource,
    UIDGenerationError,
    ambiguity_note,
    generate_uid,
    pick_newest,
    resolve,
)
from .parser import (
    CONFIG_COMMANDS,
    Act,
    Add,
    Command,
    Exit,
    Find,
    Foo,
    ListTasks,
    ParseError,
    Pin,
    Shell,
    Show,
    Undo,
    Unpin,
)
from .ports import Clock, TaskRepo

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    OK = 0
    USER_ERROR = 1
    IO_ERROR = 2
    UNEXPECTED = 3


class ExecResult(NamedTuple):
    lines: list[str]
    mutated: bool
    code: ExitCode


def note(message: str) -> str:
    return f"note: {message}"


def error(message: str) -> str:
    return f"error: {message}"


def count_info(text: str) -> str:
    """Words / characters / UTF-8 bytes, e.g. "2w 9c 9b"."""
    words = len(text.split())
    return f"{words}w {len(text)}c {len(text.encode('utf-8'))}b"


def _contains(query: str, *fields: str) -> bool:
    return any(query in f.lower() for f in fields)


def _open_line(t: OpenTask) -> str:
    return f"[{t.uid}] {t.text}"


def _archived_line(a: ArchivedTask) -> str:
    return f"[{a.uid}] {a.text} @ {a.completed_at} status: {a.status}"


def _newest_open_first(tasks: Iterable[OpenTask]) -> list[OpenTask]:
    return sorted(tasks, key=lambda t: t.created_at, reverse=True)


def open_list_lines(tasks: Iterable[OpenTask]) -> list[str]:
    """Plain list rendering shared by `list` and the shell's redraw."""
    return [_open_line(t) for t in _newest_open_first(tasks)]


def _detail_open(t: OpenTask) -> list[str]:
    return [f"[{t.uid}] {t.text} · {count_info(t.text)}", f"created: {t.created_at}"]


def _detail_archived(a: ArchivedTask) -> list[str]:
    return [
        f"[{a.uid}] {a.text} · {count_info(a.text)}",
        f"created: {a.created_at}",
        f"completed: {a.completed_at}",
        f"status: {a.status}",
    ]


class Engine:
    def __init__(
        self,
        repo: TaskRepo,
        *,
        clock: Clock | None = None,
        rng: RandomSource | None = None,
    ) -> None:
        self._repo = repo
        self._clock: Clock = clock or now_iso
        self._rng = rng

    # ---- snapshot accessors (no formatting) ----

    def open_tasks(self) -> list[OpenTask]:
        return self._repo.read_open()

    # ---- entry point ----

    def execute(self, cmd: Command) -> ExecResult:
        try:
            return self._dispatch(cmd)
        except StoreError as e:
            logger.error("Storage failure while running %s: %s", type(cmd).__name__, e)
            return ExecResult([error(str(e))], False, ExitCode.IO_ERROR)
        except UIDGenerationError as e:
            logger.error("Identifier space exhausted after %d attempts.", e.attempts)
            return ExecResult([error(str(e))], False, ExitCode.UNEXPECTED)
        except ParseError as e:
            return ExecResult([error(str(e))], False, ExitCode.USER_ERROR)
        except Exception as e:
            logger.exception("Command %s crashed.", type(cmd).__name__)
            return ExecResult([error(str(e))], False, ExitCode.UNEXPECTED)

    def _dispatch(self, cmd: Command) -> ExecResult:
        if isinstance(cmd, Add):
            return self._add(cmd.text)
        if isinstance(cmd, ListTasks):
            return ExecResult(self._list(), False, ExitCode.OK)
        if isinstance(cmd, Find):
            return ExecResult(self._find(cmd.query), False, ExitCode.OK)
        if isinstance(cmd, Foo):
            return ExecResult(self._foo(cmd.query), False, ExitCode.OK)
        if isinstance(cmd, Undo):
            return self._undo()
        if isinstance(cmd, Show):
            return self._show(cmd.prefix)
        if isinstance(cmd, Act):
            return self._act(cmd.ids, cmd.action, cmd.status)
        if isinstance(cmd, Shell):
            # The REPL lives in the CLI; reaching here means it was passed through by mistake.
            return ExecResult(
                [error("'shell' is only valid as a top-level command")], False, ExitCode.USER_ERROR
            )
        if isinstance(cmd, (Pin, Unpin)):
            return ExecResult([note("pin/unpin handled by desktop app")], False, ExitCode.OK)
        if isinstance(cmd, Exit):
            return ExecResult([note("exit handled by the shell")], False, ExitCode.OK)
        if isinstance(cmd, CONFIG_COMMANDS):
            return ExecResult([note("config handled externally")], False, ExitCode.OK)
        raise TypeError(f"unsupported command: {cmd!r}")

    # ---- commands ----

    def _add(self, text: str) -> ExecResult:
        trimmed = text.strip()
        if not trimmed:
            return ExecResult([note("empty task text — nothing added")], False, ExitCode.USER_ERROR)

        open_tasks = self._repo.read_open()
        archive = self._repo.read_archive()
        existing = {t.uid for t in open_tasks} | {a.uid for a in archive}

        uid = generate_uid(existing, self._rng)
        task = OpenTask(uid=uid, created_at=self._clock(), text=trimmed)
        open_tasks.append(task)
        self._repo.write_open(open_tasks)

        logger.info("Task added uid=%s", uid)
        return ExecResult([f"added: [{uid}] {trimmed} · {count_info(trimmed)}"], True, ExitCode.OK)

    def _list(self) -> list[str]:
        return open_list_lines(self._repo.read_open())

    def _find(self, query: str | None) -> list[str]:
        q = (query or "").lower()
        if not q:
            return self._list()
        return open_list_lines(t for t in self._repo.read_open() if _contains(q, t.uid, t.text))

    def _foo(self, query: str | None) -> list[str]:
        q = (query or "").lower()
        open_tasks = self._repo.read_open()
        archive = self._repo.read_archive()

        if q:
            open_tasks = [t for t in open_tasks if _contains(q, t.uid, t.text)]
            archive = [a for a in archive if _contains(q, a.uid, a.text, a.status)]

        lines = open_list_lines(open_tasks)
        lines.extend(
            _archived_line(a)
            for a in sorted(archive, key=lambda a: a.completed_at, reverse=True)
        )
        return lines

    def _undo(self) -> ExecResult:
        """Pop the top of the archive stack (its last line) back into the open list."""
        open_tasks = self._repo.read_open()
        archive = self._repo.read_archive()

        if not archive:
            return ExecResult([note("nothing to undo")], False, ExitCode.USER_ERROR)

        last = archive[-1]
        if any(t.uid == last.uid for t in open_tasks):
            return ExecResult(
                [note(f"cannot undo [{last.uid}]; already open")], False, ExitCode.USER_ERROR
            )

        archive.pop()
        restored = last.reopen()
        open_tasks.append(restored)

        # Open file first: if the archive write then fails the task is duplicated, not lost.
        self._repo.write_open(open_tasks)
        self._repo.write_archive(archive)

        logger.info("Undo restored uid=%s", restored.uid)
        return ExecResult([f"undo: [{restored.uid}] {restored.text}"], True, ExitCode.OK)

    def _show(self, prefix: str) -> ExecResult:
        pfx = prefix.upper()
        open_tasks = self._repo.read_open()

        for t in open_tasks:
            if t.uid == pfx:
                return ExecResult(_detail_open(t), False, ExitCode.OK)
        candidates = [t for t in open_tasks if t.uid.startswith(pfx)]
        if len(candidates) == 1:
            return ExecResult(_detail_open(candidates[0]), False, ExitCode.OK)
        if candidates:
            chosen = pick_newest(candidates, key=lambda t: t.created_at)
            lines = [note(ambiguity_note(prefix, chosen.uid, (t.uid for t in candidates)))]
            return ExecResult(lines + _detail_open(chosen), False, ExitCode.OK)

        archive = self._repo.read_archive()
        for a in archive:
            if a.uid == pfx:
                return ExecResult(_detail_archived(a), False, ExitCode.OK)
        archived = [a for a in archive if a.uid.startswith(pfx)]
        if not archived:
            return ExecResult([note(f"no task matches '{prefix}'")], False, ExitCode.USER_ERROR)
        if len(archived) == 1:
            return ExecResult(_detail_archived(archived[0]), False, ExitCode.OK)
        chosen_a = pick_newest(archived, key=lambda a: a.completed_at)
        lines = [note(ambiguity_note(prefix, chosen_a.uid, (a.uid for a in archived)))]
        return ExecResult(lines + _detail_archived(chosen_a), False, ExitCode.OK)

    def _act(self, ids: Iterable[str], action: Action, status: str | None) -> ExecResult:
        ids = list(ids)
        open_tasks = self._repo.read_open()
        output: list[str] = []

        if not ids and action is Action.DONE:
            # Bare "done" marks the newest open task.
            if open_tasks:
                matches = [pick_newest(open_tasks, key=lambda t: t.created_at)]
                notes: list[str] = []
            else:
                matches, notes = [], ["no open tasks to mark done"]
        else:
            resolution = resolve(ids, open_tasks)
            matches, notes = resolution.matches, resolution.notes

        output.extend(note(n) for n in notes)

        if not matches:
            return ExecResult(output or [note("nothing matched")], False, ExitCode.USER_ERROR)

        status_text = status if status and status.strip() else action.default_status
        # "|" is the field separator; keep the status field clean so lines stay decodable.
        status_text = status_text.replace("|", "/")

        completed_at = self._clock()
        acted = {t.uid for t in matches}
        kept: list[OpenTask] = []
        archived: list[ArchivedTask] = []

        for t in open_tasks:
            if t.uid not in acted:
                kept.append(t)
                continue
            archived.append(ArchivedTask.from_open(t, completed_at=completed_at, status=status_text))
            output.append(f"{action.value}: [{t.uid}] {t.text} status: {status_text}")

        archive = self._repo.read_archive()
        archive.extend(archived)

        # Archive first: a failure before the open write leaves a duplicate, never a lost task.
        self._repo.write_archive(archive)
        self._repo.write_open(kept)

        logger.info(
            "Archived %d task(s) action=%s uids=%s",
            len(archived),
            action.value,
            ",".join(a.uid for a in archived),
        )
        return ExecResult(output, True, ExitCode.OK)
