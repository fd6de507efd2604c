"""Markers recognised inside record declarations."""


class default:  # noqa: N801 - reads as an attribute: Annotated[int, default("10")]
    """Declare a field default as source text.

    Example:
        >>> from typing import Annotated
        >>> count: Annotated[int, default("10")]
    """

    __slots__ = ("expr",)

    def __init__(self, expr: str) -> None:
        if not isinstance(expr, str):
            raise TypeError(f"default() takes the expression as a string, got {type(expr).__name__}")
        self.expr = expr

    def __repr__(self) -> str:
        return f"default({self.expr!r})"
