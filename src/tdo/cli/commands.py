# src/tdo/cli/commands.py

"""
Commands owned by the presentation layer.

The engine only acknowledges `config ...`; the CLI and the shell route those
commands here, where they read or edit the preferences file.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..core.engine import ExecResult, ExitCode, error
from ..core.parser import Command, ConfigOpen, ConfigPin, ConfigShow, ConfigTransparency
from ..core.state import AppState
from ..tasks.task_store import StoreError
from .bootstrap import save_preferences

CommandHandler = Callable[[AppState, Any], ExecResult]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Command-type -> handler registry for commands the engine does not own."""

    def __init__(self) -> None:
        self._handlers: dict[type, CommandHandler] = {}

    def register(self, cmd_type: type, handler: CommandHandler) -> None:
        self._handlers[cmd_type] = handler

    def handle(self, state: AppState, cmd: Command) -> ExecResult | None:
        """
        Run the handler registered for type(cmd).
        Returns None if the command is not a presentation command.
        """
        handler = self._handlers.get(type(cmd))
        if handler is None:
            return None
        try:
            return handler(state, cmd)
        except StoreError as e:
            logger.error("Preferences update failed: %s", e)
            return ExecResult([error(str(e))], False, ExitCode.IO_ERROR)


registry = CommandRegistry()


def _on_off(flag: bool) -> str:
    return "on" if flag else "off"


def _editor_command() -> list[str]:
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR")
    if editor:
        return shlex.split(editor)
    return ["open"] if sys.platform == "darwin" else ["xdg-open"]


def cmd_config_show(state: AppState, cmd: ConfigShow) -> ExecResult:
    prefs = state.prefs
    return ExecResult(
        [
            f"config: {state.settings.config_path}",
            f"transparency: {prefs.transparency}",
            f"pin: {_on_off(prefs.pin)}",
            f"active: {state.store.active_path}",
            f"archive: {state.store.archive_path}",
        ],
        False,
        ExitCode.OK,
    )


def cmd_config_open(state: AppState, cmd: ConfigOpen) -> ExecResult:
    path = Path(state.settings.config_path)
    argv = [*_editor_command(), str(path)]
    logger.debug("Opening preferences with %s", argv)
    try:
        subprocess.run(argv, check=False)
    except OSError as e:
        return ExecResult([error(f"cannot open {path}: {e}")], False, ExitCode.USER_ERROR)
    return ExecResult([f"opened: {path}"], False, ExitCode.OK)


def cmd_config_transparency(state: AppState, cmd: ConfigTransparency) -> ExecResult:
    value = max(0, min(100, cmd.value))
    state.prefs.transparency = value
    save_preferences(state)
    return ExecResult([f"transparency: {value}"], False, ExitCode.OK)


def cmd_config_pin(state: AppState, cmd: ConfigPin) -> ExecResult:
    state.prefs.pin = cmd.enabled
    save_preferences(state)
    return ExecResult([f"pin: {_on_off(cmd.enabled)}"], False, ExitCode.OK)


registry.register(ConfigShow, cmd_config_show)
registry.register(ConfigOpen, cmd_config_open)
registry.register(ConfigTransparency, cmd_config_transparency)
registry.register(ConfigPin, cmd_config_pin)


def dispatch(state: AppState, cmd: Command) -> ExecResult:
    """Presentation commands first, everything else goes to the engine."""
    result = registry.handle(state, cmd)
    if result is not None:
        return result
    return state.engine.execute(cmd)
