"""
recbuilder - builder-pattern members for record classes

Declare a record with annotated fields, mark it with ``@builder``, and
get a required-fields constructor, an ``<Record>Init`` companion,
immutable ``with_``/``opt_``/``without_`` setters and a mutable
``<Record>Builder``.
"""

__version__ = "0.1.0"

# Re-export the public API for convenience
from recbuilder.core.builder import (
    ClassificationError,
    ExtractionError,
    FieldKind,
    GenerationError,
    GenerationPlan,
    InvalidDefaultExpression,
    MemberNameCollision,
    UnresolvableType,
    builder,
    builder_class_for,
    classify,
    classify_fields,
    default,
    generate,
    init_class_for,
    synthesize,
)

__all__ = [
    "builder",
    "default",
    "classify",
    "classify_fields",
    "synthesize",
    "generate",
    "FieldKind",
    "GenerationPlan",
    "GenerationError",
    "ClassificationError",
    "UnresolvableType",
    "InvalidDefaultExpression",
    "MemberNameCollision",
    "ExtractionError",
    "init_class_for",
    "builder_class_for",
    "__version__",
]
