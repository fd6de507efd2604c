"""Shared helpers for recbuilder CLI commands."""

import logging
import sys
from pathlib import Path

import typer

from recbuilder.cli.errors import ExitCode, print_error
from recbuilder.core.builder.splice import extract_digest


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for CLI commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def read_source(path: Path) -> str:
    """Read an input file or exit with USER_ERROR."""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        print_error(f"Cannot read {path}", reason=e.strerror or str(e))
        raise typer.Exit(ExitCode.USER_ERROR)


def write_output(path: Path, text: str, *, force: bool) -> None:
    """Write generated text, refusing to clobber a hand-written file without --force.

    Files that carry a recbuilder digest banner are regenerated freely.
    """
    if path.exists() and not force:
        existing = path.read_text(encoding="utf-8")
        if extract_digest(existing) is None:
            print_error(
                f"{path} exists and was not generated by recbuilder",
                solution="pass --force to overwrite it",
            )
            raise typer.Exit(ExitCode.USER_ERROR)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
