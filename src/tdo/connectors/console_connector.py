# src/tdo/connectors/console_connector.py

from __future__ import annotations

import logging

from ..cli.commands import dispatch
from ..core.engine import error, open_list_lines
from ..core.parser import ListTasks, ParseError, Shell, help_lines, parse, tokenize
from ..core.state import AppState
from ..tasks.task_store import StoreError

logger = logging.getLogger(__name__)

PROMPT = "> "


def print_block(lines: list[str]) -> None:
    """Print lines with a blank line before and after; nothing for an empty block."""
    if not lines:
        return
    print()
    for line in lines:
        print(line)
    print()


def print_open_list(state: AppState) -> None:
    try:
        tasks = state.engine.open_tasks()
    except StoreError as e:
        logger.error("Could not load tasks: %s", e)
        print_block([error("could not load tasks")])
        return
    print_block(open_list_lines(tasks))


def run_console_loop(state: AppState) -> None:
    """
    Interactive shell: one line in, one dispatch, output printed, repeat.

    - blank line   -> redraw the open list
    - exit / quit  -> leave (EOF and Ctrl+C too)
    - help         -> command overview
    Anything else is parsed and dispatched; mutations are followed by a redraw.
    """
    logger.info("Console shell started (active=%s).", state.store.active_path)

    while True:
        try:
            user_input = input(PROMPT).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            print_open_list(state)
            continue

        lowered = user_input.lower()
        if lowered in ("exit", "quit"):
            logger.info("Console exit command received.")
            break
        if lowered == "help":
            print_block(help_lines())
            continue

        try:
            cmd = parse(tokenize(user_input))
        except ParseError as e:
            print_block([error(str(e))])
            continue

        if isinstance(cmd, Shell):
            continue
        if isinstance(cmd, ListTasks):
            print_open_list(state)
            continue

        try:
            result = dispatch(state, cmd)
        except Exception:
            logger.exception("Command handler crashed.")
            print_block([error("internal error while handling a command")])
            continue

        print_block(result.lines)
        if result.mutated:
            print_open_list(state)

    logger.info("Console shell finished.")
