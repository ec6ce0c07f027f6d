# tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

FIELD_SEP = "|"


def now_iso() -> str:
    """Local time with explicit UTC offset, e.g. 2026-10-19T14:03:11+02:00."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


class Action(StrEnum):
    """
    Batch action applied to open tasks.

    Each action archives the task; the value doubles as the default status label
    for "done", while "remove" stores "deleted".
    """

    DONE = "done"
    REMOVE = "remove"

    @property
    def default_status(self) -> str:
        return "done" if self is Action.DONE else "deleted"


@dataclass(frozen=True, slots=True)
class OpenTask:
    uid: str
    created_at: str
    text: str

    def encode(self) -> str:
        return FIELD_SEP.join((self.uid, self.created_at, self.text))

    @classmethod
    def decode(cls, line: str) -> OpenTask | None:
        # Text is the last field, so it may itself contain the separator.
        parts = line.split(FIELD_SEP, 2)
        if len(parts) != 3:
            return None
        return cls(uid=parts[0], created_at=parts[1], text=parts[2])


@dataclass(frozen=True, slots=True)
class ArchivedTask:
    uid: str
    created_at: str
    text: str
    completed_at: str
    status: str

    def encode(self) -> str:
        return FIELD_SEP.join(
            (self.uid, self.created_at, self.text, self.completed_at, self.status)
        )

    @classmethod
    def decode(cls, line: str) -> ArchivedTask | None:
        """
        Split two fields off the left and two off the right.

        Text may contain the separator as long as the status does not; lines
        written without a separator in the text decode exactly as a plain split.
        """
        head = line.split(FIELD_SEP, 2)
        if len(head) != 3:
            return None
        tail = head[2].rsplit(FIELD_SEP, 2)
        if len(tail) != 3:
            return None
        return cls(
            uid=head[0],
            created_at=head[1],
            text=tail[0],
            completed_at=tail[1],
            status=tail[2],
        )

    def reopen(self) -> OpenTask:
        return OpenTask(uid=self.uid, created_at=self.created_at, text=self.text)

    @classmethod
    def from_open(cls, task: OpenTask, *, completed_at: str, status: str) -> ArchivedTask:
        return cls(
            uid=task.uid,
            created_at=task.created_at,
            text=task.text,
            completed_at=completed_at,
            status=status,
        )
