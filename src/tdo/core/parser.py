# src/tdo/core/parser.py

"""
Command grammar.

Input is a token list (already split on whitespace). Rules are tried in a fixed
order and the first one that produces a command wins:

1. explicit keyword (do, list, find, foo, show, undo, shell, pin, unpin, exit, config)
2. action-first sugar:     done|remove [PREFIX...] [status...]
3. bare single prefix:     PREFIX            -> show
4. identifier-first form:  PREFIX... done|remove [status...]

Identifiers are only normalized here; resolving them against real tasks happens
at execution time.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from ..tasks.task_models import Action
from ..tasks.uid import normalize_prefix_token


class ParseError(ValueError):
    @classmethod
    def empty(cls) -> ParseError:
        return cls("no command")

    @classmethod
    def unknown_command(cls, token: str) -> ParseError:
        return cls(f"unknown command: {token}")


# ---- command variants ----


@dataclass(frozen=True, slots=True)
class Shell:
    pass


@dataclass(frozen=True, slots=True)
class Add:
    text: str


@dataclass(frozen=True, slots=True)
class ListTasks:
    pass


@dataclass(frozen=True, slots=True)
class Find:
    query: str | None = None


@dataclass(frozen=True, slots=True)
class Foo:
    query: str | None = None


@dataclass(frozen=True, slots=True)
class Undo:
    pass


@dataclass(frozen=True, slots=True)
class Show:
    prefix: str


@dataclass(frozen=True, slots=True)
class Act:
    ids: tuple[str, ...]
    action: Action
    status: str | None = None


@dataclass(frozen=True, slots=True)
class Pin:
    pass


@dataclass(frozen=True, slots=True)
class Unpin:
    pass


@dataclass(frozen=True, slots=True)
class Exit:
    pass


@dataclass(frozen=True, slots=True)
class ConfigShow:
    pass


@dataclass(frozen=True, slots=True)
class ConfigOpen:
    pass


@dataclass(frozen=True, slots=True)
class ConfigTransparency:
    value: int


@dataclass(frozen=True, slots=True)
class ConfigPin:
    enabled: bool


Command = (
    Shell
    | Add
    | ListTasks
    | Find
    | Foo
    | Undo
    | Show
    | Act
    | Pin
    | Unpin
    | Exit
    | ConfigShow
    | ConfigOpen
    | ConfigTransparency
    | ConfigPin
)

CONFIG_COMMANDS = (ConfigShow, ConfigOpen, ConfigTransparency, ConfigPin)

Builder = Callable[[list[str]], Command]
Rule = Callable[[list[str]], Command | None]

_INT_RE = re.compile(r"[+-]?[0-9]+")
_PIN_VALUES = {"on": True, "true": True, "off": False, "false": False}


# ---- helpers ----


def tokenize(line: str) -> list[str]:
    return line.split()


def _join_or_none(tokens: Sequence[str]) -> str | None:
    joined = " ".join(tokens)
    return joined if joined.strip() else None


_LINE_BREAKS = frozenset("\x85\u2028\u2029")


def _sanitize_text(text: str) -> str:
    """Drop control characters and Unicode line breaks (tab is kept), then trim."""
    return "".join(
        ch for ch in text if (ord(ch) >= 32 or ch == "\t") and ch not in _LINE_BREAKS
    ).strip()


def _action_for(token: str) -> Action | None:
    lowered = token.lower()
    if lowered == Action.DONE:
        return Action.DONE
    if lowered == Action.REMOVE:
        return Action.REMOVE
    return None


# ---- keyword table ----


class KeywordTable:
    """Leading-keyword registry: keyword -> builder taking the remaining tokens."""

    def __init__(self) -> None:
        self._builders: dict[str, Builder] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        builder: Builder,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._builders[key] = builder
        self._help[key] = help_text
        for alias in aliases:
            self._builders[alias.lower()] = builder

    def lookup(self, token: str) -> Builder | None:
        return self._builders.get(token.lower())

    def build_help(self) -> list[str]:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  {name} - {help_text}")
        lines.extend(
            [
                "  <PREFIX...> done|remove [status] - archive matching tasks",
                "  done|remove [PREFIX...] [status] - same, action first (done alone: newest task)",
                "  <PREFIX> - show one task",
            ]
        )
        return lines


def _build_config(args: list[str]) -> Command:
    if not args:
        return ConfigShow()

    sub = args[0].lower()
    rest = args[1:]

    if sub == "open" and not rest:
        return ConfigOpen()
    if sub == "transparency" and len(rest) == 1 and _INT_RE.fullmatch(rest[0]):
        return ConfigTransparency(int(rest[0]))
    if sub == "pin" and len(rest) == 1 and rest[0].lower() in _PIN_VALUES:
        return ConfigPin(_PIN_VALUES[rest[0].lower()])

    raise ParseError.unknown_command("config")


def _build_show(args: list[str]) -> Command:
    norm = normalize_prefix_token(args[0]) if len(args) == 1 else None
    if norm is None:
        raise ParseError.unknown_command("show")
    return Show(norm)


keywords = KeywordTable()
keywords.register("do", lambda args: Add(_sanitize_text(" ".join(args))), "Add a task: do <text>.")
keywords.register("list", lambda args: ListTasks(), "List open tasks, newest first.")
keywords.register("find", lambda args: Find(_join_or_none(args)), "Search open tasks: find [query].")
keywords.register("foo", lambda args: Foo(_join_or_none(args)), "Search open and archived tasks: foo [query].")
keywords.register(
    "show",
    _build_show,
    "Show one task in detail: show <prefix> (one prefix, nothing after it).",
)
keywords.register("undo", lambda args: Undo(), "Restore the most recently archived task.")
keywords.register("shell", lambda args: Shell(), "Start the interactive shell.")
keywords.register("pin", lambda args: Pin(), "Keep the desktop window on top.")
keywords.register("unpin", lambda args: Unpin(), "Release the desktop window.")
keywords.register("exit", lambda args: Exit(), "Leave the shell.")
keywords.register(
    "config",
    _build_config,
    "Preferences: config | config open | config transparency <int> | config pin <on|off>.",
)


# ---- rules ----


def _keyword_rule(tokens: list[str]) -> Command | None:
    builder = keywords.lookup(tokens[0])
    if builder is None:
        return None
    return builder(tokens[1:])


def _action_first_rule(tokens: list[str]) -> Command | None:
    action = _action_for(tokens[0])
    if action is None:
        return None

    ids: list[str] = []
    i = 1
    while i < len(tokens):
        norm = normalize_prefix_token(tokens[i])
        if norm is None:
            break
        ids.append(norm)
        i += 1

    return Act(tuple(ids), action, _join_or_none(tokens[i:]))


def _bare_show_rule(tokens: list[str]) -> Command | None:
    if len(tokens) != 1:
        return None
    norm = normalize_prefix_token(tokens[0])
    return Show(norm) if norm is not None else None


def _uid_first_rule(tokens: list[str]) -> Command | None:
    ids: list[str] = []
    for idx, tok in enumerate(tokens):
        action = _action_for(tok)
        if action is not None:
            return Act(tuple(ids), action, _join_or_none(tokens[idx + 1 :]))
        norm = normalize_prefix_token(tok)
        if norm is not None:
            ids.append(norm)
    return None


RULES: tuple[Rule, ...] = (
    _keyword_rule,
    _action_first_rule,
    _bare_show_rule,
    _uid_first_rule,
)


def parse(tokens: Sequence[str]) -> Command:
    argv = list(tokens)
    if not argv:
        raise ParseError.empty()

    for rule in RULES:
        cmd = rule(argv)
        if cmd is not None:
            return cmd

    raise ParseError.unknown_command(argv[0])


def help_lines() -> list[str]:
    return keywords.build_help()
