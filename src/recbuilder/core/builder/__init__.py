"""
Builder generation for record types.

Turns a record declaration (a class with annotated fields) into a
generation plan and renders it as Python source, either at import time
through the ``@builder`` decorator or into a module file.

Main entry points:
    - classify(): Decide required/optional/defaulted for one field
    - synthesize(): Member specs for a list of classified fields
    - generate(): Full plan for one record declaration
    - builder: Class decorator attaching the generated members
    - splice_module(): Module text with members spliced into each record
    - render_schema_module(): Module text from a sidecar schema

Example:
    >>> from recbuilder.core.builder import extract_records, generate
    >>> source = '''
    ... @builder
    ... class Point:
    ...     x: int
    ...     label: Optional[str]
    ... '''
    >>> plan = generate(extract_records(source)[0])
    >>> plan.member_names()
    ['__init__', 'Init', 'from_init', 'with_label', 'opt_label', 'without_label', 'label', 'mopt_label', 'reset_label']
"""

from recbuilder.core.builder.classifier import (
    DEFAULT_ATTRIBUTE,
    classify,
    classify_fields,
    normalize_default,
    required_fields,
)
from recbuilder.core.builder.emitter import (
    EmitOptions,
    render_companions,
    render_record_class,
    render_record_members,
)
from recbuilder.core.builder.errors import (
    ClassificationError,
    ExtractionError,
    GenerationError,
    InvalidDefaultExpression,
    MemberNameCollision,
    UnresolvableType,
)
from recbuilder.core.builder.extractor import (
    DEFAULT_DECORATORS,
    declaration_from_class,
    extract_class,
    extract_module,
    extract_records,
)
from recbuilder.core.builder.markers import default
from recbuilder.core.builder.models import (
    ClassifiedField,
    FieldDescriptor,
    FieldKind,
    GenerationPlan,
    MemberSpec,
    RecordDeclaration,
    SetterStyle,
    Visibility,
)
from recbuilder.core.builder.pipeline import BatchResult, RecordFailure, generate, generate_all
from recbuilder.core.builder.runtime import (
    apply_builder,
    builder,
    builder_class_for,
    init_class_for,
)
from recbuilder.core.builder.schema import (
    SchemaFile,
    generate_schema,
    load_schema,
    parse_schema,
    render_schema_module,
)
from recbuilder.core.builder.splice import SpliceResult, extract_digest, splice_module
from recbuilder.core.builder.synthesizer import synthesize
from recbuilder.core.builder.types import DEFAULT_RULES, TypeRules

__all__ = [
    # Models
    "ClassifiedField",
    "FieldDescriptor",
    "FieldKind",
    "GenerationPlan",
    "MemberSpec",
    "RecordDeclaration",
    "SetterStyle",
    "Visibility",
    "TypeRules",
    "DEFAULT_RULES",
    # Errors
    "ClassificationError",
    "ExtractionError",
    "GenerationError",
    "InvalidDefaultExpression",
    "MemberNameCollision",
    "UnresolvableType",
    # Core
    "DEFAULT_ATTRIBUTE",
    "classify",
    "classify_fields",
    "normalize_default",
    "required_fields",
    "synthesize",
    "generate",
    "generate_all",
    "BatchResult",
    "RecordFailure",
    # Extraction
    "DEFAULT_DECORATORS",
    "declaration_from_class",
    "extract_class",
    "extract_module",
    "extract_records",
    # Emission
    "EmitOptions",
    "render_companions",
    "render_record_class",
    "render_record_members",
    "SpliceResult",
    "extract_digest",
    "splice_module",
    "SchemaFile",
    "generate_schema",
    "load_schema",
    "parse_schema",
    "render_schema_module",
    # Runtime
    "apply_builder",
    "builder",
    "builder_class_for",
    "default",
    "init_class_for",
]
