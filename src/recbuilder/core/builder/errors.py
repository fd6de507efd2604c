"""
Generation errors.

Every error is raised while a record is being generated (decoration or
CLI generation time) and names the record and the offending field.
"""


class GenerationError(Exception):
    """Base exception for builder generation errors."""

    def __init__(
        self,
        message: str,
        *,
        record: str | None = None,
        field: str | None = None,
        line: int | None = None,
    ) -> None:
        self.message = message
        self.record = record
        self.field = field
        self.line = line
        super().__init__(self._format())

    def _format(self) -> str:
        location = ""
        if self.record and self.field:
            location = f"{self.record}.{self.field}: "
        elif self.record:
            location = f"{self.record}: "
        elif self.field:
            location = f"{self.field}: "
        return f"{location}{self.message}"

    def attribute(
        self,
        record: str | None = None,
        *,
        field: str | None = None,
        line: int | None = None,
    ) -> "GenerationError":
        """Attach location details and return self (for re-raising)."""
        if record is not None:
            self.record = record
        if field is not None:
            self.field = field
        if line is not None:
            self.line = line
        self.args = (self._format(),)
        return self


class ClassificationError(GenerationError):
    """A field could not be classified."""


class UnresolvableType(ClassificationError):
    """The field type is neither a plain type nor a recognised optional container."""


class InvalidDefaultExpression(ClassificationError):
    """The ``default`` payload does not parse or does not fit the field type."""


class MemberNameCollision(GenerationError):
    """A generated member name is already taken."""


class ExtractionError(GenerationError):
    """The record declaration cannot be turned into field descriptors."""
