"""
Command core.

- parser.py: token list -> Command
- engine.py: Command + task store -> output lines, mutation flag, exit code
- ports.py: protocols the engine depends on
- state.py: application state shared by the CLI and the shell
"""
