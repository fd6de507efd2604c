"""
Standardized error handling and exit codes for the recbuilder CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

from recbuilder.core.builder.errors import GenerationError

# Diagnostics go to stderr; stdout may carry generated source
console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for recbuilder CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error, or a stale output under --check."""

    USER_ERROR = 2
    """A declaration or input the user has to fix."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Cannot read models.py",
        ...     reason="No such file or directory",
        ...     solution="recbuilder generate path/to/models.py",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}", highlight=False)

    if reason:
        console.print(f"[dim]{reason}[/dim]", highlight=False)

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}", highlight=False)


_SOLUTIONS = {
    "UnresolvableType": "use a type expression such as 'int', 'list[str]' or 'Optional[str]'",
    "InvalidDefaultExpression": "make the default a Python expression of the field's type",
    "MemberNameCollision": "rename the field or the conflicting member",
}


def print_generation_error(error: GenerationError, *, path: str | None = None) -> None:
    """Print a generation error with its location and a hint for its kind."""
    location = path
    if location and error.line is not None:
        location = f"{location}:{error.line}"
    problem = f"{location}: {error}" if location else str(error)
    print_error(
        problem,
        reason=type(error).__name__,
        solution=_SOLUTIONS.get(type(error).__name__),
    )
