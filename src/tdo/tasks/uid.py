# tasks/uid.py

"""
Task identifiers: five uppercase letters, referenced by prefix.

Generation is rejection sampling against the identifiers already in use (open
and archived). Resolution maps user prefixes to open tasks; when a prefix is
ambiguous the newest candidate wins and a note says so.
"""

from __future__ import annotations

import random
import string
from collections.abc import Callable, Collection, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol, TypeVar

from .task_models import OpenTask

UID_LENGTH = 5
UID_ALPHABET = string.ascii_uppercase
MAX_ATTEMPTS = 10_000

# Keep command words from showing up inside generated identifiers.
FORBIDDEN_SUBSTRINGS: tuple[str, ...] = (
    "DO",
    "DON",  # do / done
    "REM",  # remove
    "LIS",  # list
    "FIN",  # find
    "FOO",  # foo
)

T = TypeVar("T")


class UIDGenerationError(RuntimeError):
    def __init__(self, attempts: int = MAX_ATTEMPTS) -> None:
        super().__init__("could not generate UID")
        self.attempts = attempts


class RandomSource(Protocol):
    def choice(self, seq: Sequence[str]) -> str: ...


_SYSTEM_RANDOM = random.SystemRandom()


def is_allowed_full_uid(uid: str) -> bool:
    u = uid.upper()
    if len(u) != UID_LENGTH or any(ch not in UID_ALPHABET for ch in u):
        return False
    return not any(bad in u for bad in FORBIDDEN_SUBSTRINGS)


def generate_uid(
    existing: Collection[str],
    rng: RandomSource | None = None,
    *,
    attempts: int = MAX_ATTEMPTS,
) -> str:
    """
    Draw a fresh identifier not present in `existing`.

    Raises UIDGenerationError once `attempts` candidates have been rejected.
    """
    rng = rng or _SYSTEM_RANDOM
    for _ in range(attempts):
        uid = "".join(rng.choice(UID_ALPHABET) for _ in range(UID_LENGTH))
        if is_allowed_full_uid(uid) and uid not in existing:
            return uid
    raise UIDGenerationError(attempts)


def normalize_prefix_token(token: str) -> str | None:
    """Uppercase `token` if it is ASCII letters only; None for anything else."""
    if not token or not (token.isascii() and token.isalpha()):
        return None
    return token.upper()


def pick_newest(candidates: Iterable[T], key: Callable[[T], str]) -> T:
    """Tie-break among several matches: the latest timestamp wins (first one on equal stamps)."""
    return max(candidates, key=key)


def ambiguity_note(prefix: str, chosen: str, choices: Iterable[str]) -> str:
    return f"ambiguous prefix '{prefix}' → chose {chosen} among [{','.join(choices)}]"


@dataclass(slots=True)
class Resolution:
    matches: list[OpenTask] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


def resolve(prefixes: Iterable[str], open_tasks: Sequence[OpenTask]) -> Resolution:
    """
    Resolve each prefix against the open tasks, in input order.

    Exact matches win. A prefix with no candidates adds a note and nothing else;
    processing continues with the next prefix.
    """
    result = Resolution()
    by_uid = {t.uid: t for t in open_tasks}

    for raw in prefixes:
        pfx = raw.upper()

        exact = by_uid.get(pfx)
        if exact is not None:
            result.matches.append(exact)
            continue

        candidates = [t for t in open_tasks if t.uid.startswith(pfx)]
        if not candidates:
            result.notes.append(f"no open task matches '{raw}'")
        elif len(candidates) == 1:
            result.matches.append(candidates[0])
        else:
            chosen = pick_newest(candidates, key=lambda t: t.created_at)
            result.notes.append(ambiguity_note(raw, chosen.uid, (t.uid for t in candidates)))
            result.matches.append(chosen)

    return result
