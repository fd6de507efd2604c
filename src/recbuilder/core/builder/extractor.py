"""
Field descriptor extraction from Python source.

Reads class declarations with ``ast`` and turns each one marked with a
builder decorator into a RecordDeclaration:

- annotated assignments are fields, in source order;
- ``Annotated[T, default("expr")]`` and ``name: T = expr`` both supply
  the ``default`` attribute;
- ``ClassVar`` annotations, methods, plain assignments and nested
  classes are declared members of the host record.
"""

import ast
import inspect
import logging
import textwrap
from dataclasses import dataclass, field
from typing import Any

from recbuilder.core.builder.errors import ExtractionError, GenerationError
from recbuilder.core.builder.models import FieldDescriptor, RecordDeclaration, Visibility

logger = logging.getLogger(__name__)

DEFAULT_DECORATORS = ("builder",)
# Keyword arguments of the decorator, mirrored by EmitOptions.
DECORATOR_OPTIONS = ("builder_suffix", "record_protocol", "annotate")
_TYPING_MODULES = ("typing", "typing_extensions", "t")


@dataclass
class ExtractedRecord:
    """A decorated class node and its declaration (or the reason it has none)."""

    node: ast.ClassDef
    decorator: ast.expr
    declaration: RecordDeclaration | None = None
    options: dict[str, Any] = field(default_factory=dict)
    error: GenerationError | None = None

    def unwrap(self) -> RecordDeclaration:
        """The declaration, or raise the reason it could not be extracted."""
        if self.declaration is None:
            raise self.error or ExtractionError("record was not extracted", record=self.node.name)
        return self.declaration


def _qualified_name(node: ast.expr) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def _is_typing_form(node: ast.expr, form: str) -> bool:
    """``Form`` or ``typing.Form``, optionally subscripted."""
    if isinstance(node, ast.Subscript):
        node = node.value
    if isinstance(node, ast.Name):
        return node.id == form
    return (
        isinstance(node, ast.Attribute)
        and node.attr == form
        and isinstance(node.value, ast.Name)
        and node.value.id in _TYPING_MODULES
    )


def builder_decorator(node: ast.ClassDef, names: tuple[str, ...]) -> ast.expr | None:
    """Return the builder decorator on a class, if any."""
    for decorator in node.decorator_list:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        if _qualified_name(target) in names:
            return decorator
    return None


def decorator_options(decorator: ast.expr, record: str) -> dict[str, Any]:
    """Literal keyword arguments of a ``@builder(...)`` call.

    Raises:
        ExtractionError: For positional arguments, unknown keywords or
            values that are not literals
    """
    if not isinstance(decorator, ast.Call):
        return {}
    if decorator.args:
        raise ExtractionError(
            "the builder decorator takes keyword arguments only",
            record=record,
            line=decorator.lineno,
        )
    options: dict[str, Any] = {}
    for keyword in decorator.keywords:
        if keyword.arg not in DECORATOR_OPTIONS:
            raise ExtractionError(
                f"unknown builder option '{keyword.arg or '**'}'",
                record=record,
                line=decorator.lineno,
            )
        try:
            options[keyword.arg] = ast.literal_eval(keyword.value)
        except (ValueError, TypeError) as e:
            raise ExtractionError(
                f"builder option '{keyword.arg}' must be a literal",
                record=record,
                line=decorator.lineno,
            ) from e
    return options


def _split_annotated(annotation: ast.expr, field_name: str) -> tuple[ast.expr, str | None]:
    """Strip ``Annotated[...]`` and pull out a ``default("...")`` payload."""
    if not (isinstance(annotation, ast.Subscript) and _is_typing_form(annotation, "Annotated")):
        return annotation, None
    if not isinstance(annotation.slice, ast.Tuple) or len(annotation.slice.elts) < 2:
        return annotation, None

    inner, *metadata = annotation.slice.elts
    payload: str | None = None
    for meta in metadata:
        if not (isinstance(meta, ast.Call) and _qualified_name(meta.func) == "default"):
            continue
        if payload is not None:
            raise ExtractionError("default() given more than once", field=field_name)
        if (
            len(meta.args) != 1
            or meta.keywords
            or not isinstance(meta.args[0], ast.Constant)
            or not isinstance(meta.args[0].value, str)
        ):
            raise ExtractionError(
                "default() takes exactly one string literal, e.g. default(\"10\")",
                field=field_name,
                line=meta.lineno,
            )
        payload = meta.args[0].value
    return inner, payload


def _type_params(node: ast.ClassDef) -> tuple[list[str], str | None, bool]:
    pep695 = [p.name for p in getattr(node, "type_params", []) if hasattr(p, "name")]
    if pep695:
        return pep695, None, True
    for base in node.bases:
        if isinstance(base, ast.Subscript) and _is_typing_form(base, "Generic"):
            args = base.slice.elts if isinstance(base.slice, ast.Tuple) else [base.slice]
            names = [a.id for a in args if isinstance(a, ast.Name)]
            return names, ast.unparse(base.value), False
    return [], None, False


def extract_class(node: ast.ClassDef) -> RecordDeclaration:
    """Build a RecordDeclaration from a class definition node.

    Raises:
        ExtractionError: If a field cannot be described
    """
    fields: list[FieldDescriptor] = []
    members: list[str] = []

    for stmt in node.body:
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            members.append(stmt.name)
        elif isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                if isinstance(target, ast.Name):
                    members.append(target.id)
        elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
            name = stmt.target.id
            if _is_typing_form(stmt.annotation, "ClassVar"):
                members.append(name)
                continue
            if name.startswith("__"):
                raise ExtractionError(
                    "fields starting with '__' are name-mangled and cannot get a builder",
                    record=node.name,
                    field=name,
                    line=stmt.lineno,
                )
            try:
                declared, payload = _split_annotated(stmt.annotation, name)
            except ExtractionError as e:
                raise e.attribute(node.name)
            attributes: dict[str, str] = {}
            if payload is not None:
                attributes["default"] = payload
            if stmt.value is not None:
                if payload is not None:
                    raise ExtractionError(
                        "default declared both with default() and an assignment",
                        record=node.name,
                        field=name,
                        line=stmt.lineno,
                    )
                attributes["default"] = ast.unparse(stmt.value)
            fields.append(
                FieldDescriptor(
                    name=name,
                    declared_type=ast.unparse(declared),
                    visibility=Visibility.from_name(name),
                    raw_attributes=attributes,
                    line=stmt.lineno,
                )
            )

    type_params, generic_base, pep695 = _type_params(node)
    return RecordDeclaration(
        name=node.name,
        fields=fields,
        declared_members=members,
        type_params=type_params,
        generic_base=generic_base,
        pep695=pep695,
        line=node.lineno,
    )


def find_record_classes(
    tree: ast.Module, decorator_names: tuple[str, ...] = DEFAULT_DECORATORS
) -> list[tuple[ast.ClassDef, ast.expr]]:
    """All classes carrying a builder decorator, with that decorator, in source order."""
    found = []
    for node in ast.walk(tree):
        if isinstance(node, ast.ClassDef):
            decorator = builder_decorator(node, decorator_names)
            if decorator is not None:
                found.append((node, decorator))
    return sorted(found, key=lambda pair: (pair[0].lineno, pair[0].col_offset))


def extract_module(
    source: str, decorator_names: tuple[str, ...] = DEFAULT_DECORATORS
) -> list[ExtractedRecord]:
    """Extract every decorated record in a module.

    A record that cannot be extracted carries its error instead of a
    declaration; the other records are unaffected.

    Raises:
        ExtractionError: If the module itself does not parse
    """
    try:
        tree = ast.parse(source)
    except SyntaxError as e:
        raise ExtractionError(f"cannot parse module: {e.msg}", line=e.lineno) from e

    top_level = {id(node) for node in tree.body}
    extracted: list[ExtractedRecord] = []
    for node, decorator in find_record_classes(tree, decorator_names):
        item = ExtractedRecord(node=node, decorator=decorator)
        if id(node) not in top_level:
            item.error = ExtractionError(
                "only module-level records can be generated into source",
                record=node.name,
                line=node.lineno,
            )
        else:
            try:
                item.options = decorator_options(decorator, node.name)
                item.declaration = extract_class(node)
            except GenerationError as e:
                item.error = e
        extracted.append(item)
    logger.debug("extracted %d record(s)", len(extracted))
    return extracted


def extract_records(
    source: str, decorator_names: tuple[str, ...] = DEFAULT_DECORATORS
) -> list[RecordDeclaration]:
    """Extract every decorated record, failing on the first unusable one."""
    return [item.unwrap() for item in extract_module(source, decorator_names)]


def declaration_from_class(cls: type[Any]) -> RecordDeclaration:
    """Read a live class's declaration from its source code.

    Raises:
        ExtractionError: If the source is unavailable (REPL, exec'd code)
    """
    try:
        lines, start = inspect.getsourcelines(cls)
    except (OSError, TypeError) as e:
        raise ExtractionError(
            f"source code is not available ({e}); declare the record in a module file",
            record=cls.__name__,
        ) from e

    tree = ast.parse(textwrap.dedent("".join(lines)))
    ast.increment_lineno(tree, max(start - 1, 0))
    for node in tree.body:
        if isinstance(node, ast.ClassDef) and node.name == cls.__name__:
            return extract_class(node)
    raise ExtractionError("class definition not found in its source", record=cls.__name__)
