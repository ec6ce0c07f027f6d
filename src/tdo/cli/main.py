# src/tdo/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either runs one command and exits
with its status code, or starts the interactive shell (no arguments / `shell`).
"""

from __future__ import annotations

import argparse
import logging
import sys

from .. import __version__
from ..config import get_settings
from ..connectors.console_connector import print_block, print_open_list, run_console_loop
from ..core.engine import ExitCode, error
from ..core.parser import ParseError, Shell, parse
from ..logging_setup import setup_logging
from ..tasks.task_store import StoreError
from .bootstrap import create_initial_state
from .commands import dispatch

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tdo",
        description="Tiny task tracker. Run without arguments for the interactive shell.",
        allow_abbrev=False,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--file", help="Open-task file (overrides TDO_FILE and preferences)")
    parser.add_argument("--archive", help="Archive file (overrides TDO_ARCHIVE and preferences)")
    return parser


GLOBAL_FLAGS = ("--file", "--archive")
STANDALONE_FLAGS = (["-h"], ["--help"], ["--version"])


def split_global_flags(argv: list[str]) -> tuple[list[str], list[str]]:
    """
    Pull `--file X` / `--archive X` pairs out of argv, wherever they appear.

    Every other token is command text and is returned untouched, so task text
    like `do read -h docs` never reaches argparse. Help and version are only
    honoured when they are the whole command line.
    """
    if argv in STANDALONE_FLAGS:
        return list(argv), []

    flags: list[str] = []
    rest: list[str] = []
    i = 0
    while i < len(argv):
        tok = argv[i]
        if tok in GLOBAL_FLAGS and i + 1 < len(argv):
            # "--file=VALUE" keeps argparse from reading a dash-led path as an option.
            flags.append(f"{tok}={argv[i + 1]}")
            i += 2
            continue
        rest.append(tok)
        i += 1
    return flags, rest


def _configure_logging(settings) -> None:
    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = getattr(logging, level_name, logging.WARNING)
    log_dir = settings.data_dir if getattr(settings, "log_to_file", True) else None
    try:
        setup_logging(log_dir=log_dir, console_level=console_level)
    except OSError as e:
        setup_logging(log_dir=None, console_level=console_level)
        logger.warning("File logging disabled (%s).", e)


def main(argv: list[str] | None = None, *, settings=None) -> int:
    parser = build_parser()
    argv = list(argv) if argv is not None else list(sys.argv[1:])
    flag_argv, rest = split_global_flags(argv)
    args = parser.parse_args(flag_argv)

    if settings is None:
        settings = get_settings()
    _configure_logging(settings)
    logger.info("Starting %s %s...", getattr(settings, "app_name", "tdo"), __version__)

    try:
        cmd = parse(rest or ["shell"])
    except ParseError as e:
        print_block([error(str(e))])
        return ExitCode.USER_ERROR

    try:
        state = create_initial_state(
            settings=settings, file_flag=args.file, archive_flag=args.archive
        )
    except StoreError as e:
        print(error(str(e)), file=sys.stderr)
        return ExitCode.IO_ERROR

    if isinstance(cmd, Shell):
        run_console_loop(state)
        return ExitCode.OK

    result = dispatch(state, cmd)
    print_block(result.lines)
    if result.mutated:
        print_open_list(state)
    return result.code


def run() -> None:
    raise SystemExit(int(main()))


if __name__ == "__main__":
    run()
