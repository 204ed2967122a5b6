"""CLI utility functions for typecheck.

Provides helper functions for:
- Config wiring: Extracting Typer CLI options and passing to load_config
- Error formatting: Consistent user-friendly error messages with exit codes
- Option factories shared by several commands
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, NoReturn

import typer

from typecheck.config import TypeCheckConfig, load_config

# Exit code conventions
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # Bad input, missing file, non-conforming value
EXIT_SYSTEM_ERROR = 2  # Permissions, I/O, etc.


# -----------------------------------------------------------------------------
# Error Formatting Helpers
# -----------------------------------------------------------------------------


def error(msg: str, *, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print an error message and exit with the given exit code.

    Args:
        msg: The error message to display.
        exit_code: Exit code to use (default: EXIT_USER_ERROR=1).

    Raises:
        typer.Exit: Always raises to exit the program.
    """
    styled_prefix = typer.style("Error:", fg=typer.colors.RED, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)
    raise typer.Exit(code=exit_code)


def warning(msg: str) -> None:
    """Print a warning message to stderr."""
    styled_prefix = typer.style("Warning:", fg=typer.colors.YELLOW, bold=True)
    typer.echo(f"{styled_prefix} {msg}", err=True)


def success(msg: str) -> None:
    """Print a success message to stdout."""
    styled_prefix = typer.style("Success:", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"{styled_prefix} {msg}")


def info(msg: str) -> None:
    typer.echo(msg)


def ensure_file(path: Path, path_type: str = "file") -> Path:
    """Ensure ``path`` exists and is a regular file.

    Raises:
        typer.Exit: If the path is missing or not a file.
    """
    if not path.exists():
        error(f"{path_type} does not exist: {path}")
    if not path.is_file():
        error(f"{path_type} is not a file: {path}")
    return path


# -----------------------------------------------------------------------------
# Config Wiring Helper
# -----------------------------------------------------------------------------


def wire_config(
    width: int | None = None,
    max_depth: int | None = None,
    debug: bool | None = None,
    start_dir: Path | None = None,
) -> TypeCheckConfig:
    """Wire CLI options to load_config with appropriate overrides.

    Args:
        width: Override for the inspector line width.
        max_depth: Override for the maximum expansion depth.
        debug: Override for debug output.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved TypeCheckConfig instance.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    overrides: dict[str, Any] = {}

    if width is not None:
        overrides["inspect_width"] = width
    if max_depth is not None:
        overrides["max_expansion_depth"] = max_depth
    if debug is not None:
        overrides["debug"] = debug

    try:
        return load_config(overrides=overrides, start_dir=start_dir)
    except ValueError as e:
        error(f"Invalid configuration: {e}", exit_code=EXIT_USER_ERROR)


# -----------------------------------------------------------------------------
# Typer Option Factory Functions
# -----------------------------------------------------------------------------
# Typer consumes Option objects when decorating commands, so each command
# gets a fresh instance.


def width_option() -> Any:
    """Create a Typer Option for --width / -w."""
    return typer.Option(
        None,
        "--width",
        "-w",
        help="Line width for rendered types (default: 80).",
        envvar="TYPECHECK_INSPECT_WIDTH",
    )


def json_option() -> Any:
    """Create a Typer Option for --json."""
    return typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    )
