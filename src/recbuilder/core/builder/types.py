"""
Structural analysis of type annotations.

Type annotations arrive as source text. They are parsed with ``ast`` and
tested for the optional-container shape by structure only:
``Optional[X]``, ``Union[..., None]`` and ``X | None`` (optionally
qualified by a typing module, optionally inside a string forward
reference). A generic that merely has "Optional" somewhere in its name is
a plain type.

This module also knows enough about builtin types to decide whether a
literal default value fits a declared type.
"""

import ast
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from recbuilder.core.builder.errors import UnresolvableType

# Builtin scalar types and the Python types their literals may have.
_SCALARS: dict[str, tuple[type, ...]] = {
    "int": (int,),
    "float": (int, float),
    "complex": (int, float, complex),
    "str": (str,),
    "bytes": (bytes,),
    "bool": (bool,),
}

_SEQUENCES: dict[str, type] = {
    "list": list,
    "List": list,
    "set": set,
    "Set": set,
    "tuple": tuple,
    "Tuple": tuple,
}

_MAPPINGS = {"dict", "Dict"}

_TOP_TYPES = {"Any", "object"}

# Subscripted forms whose arguments are values, not types.
_VALUE_ARG_FORMS = {"Literal"}


class TypeRules(BaseModel):
    """Names that identify the optional-container shape."""

    model_config = ConfigDict(frozen=True)

    optional_aliases: tuple[str, ...] = Field(default=("Optional",))
    union_aliases: tuple[str, ...] = Field(default=("Union",))
    typing_modules: tuple[str, ...] = Field(default=("typing", "typing_extensions", "t"))


DEFAULT_RULES = TypeRules()


class OptionalShape(BaseModel):
    """Result of the optional-container test."""

    model_config = ConfigDict(frozen=True)

    is_optional: bool
    inner_type: str


def parse_type(text: str, rules: TypeRules = DEFAULT_RULES) -> ast.expr:
    """Parse annotation text into a validated type expression node.

    Raises:
        UnresolvableType: If the text is not a type expression
    """
    if not text or not text.strip():
        raise UnresolvableType("empty type annotation")
    try:
        tree = ast.parse(text.strip(), mode="eval")
    except SyntaxError as e:
        raise UnresolvableType(f"cannot parse type {text!r}: {e.msg}") from e
    _check_type_expr(tree.body, text, rules, in_subscript=False)
    return tree.body


def _base_name(node: ast.expr, rules: TypeRules) -> str | None:
    """Return the bare name of ``X`` or ``typing.X``; None for anything else."""
    if isinstance(node, ast.Name):
        return node.id
    if (
        isinstance(node, ast.Attribute)
        and isinstance(node.value, ast.Name)
        and node.value.id in (*rules.typing_modules, "builtins")
    ):
        return node.attr
    return None


def _is_dotted(node: ast.expr) -> bool:
    while isinstance(node, ast.Attribute):
        node = node.value
    return isinstance(node, ast.Name)


def _check_type_expr(
    node: ast.expr, text: str, rules: TypeRules, *, in_subscript: bool
) -> None:
    if isinstance(node, ast.Name) or (isinstance(node, ast.Attribute) and _is_dotted(node)):
        return
    if isinstance(node, ast.Constant):
        if node.value is None:
            return
        if node.value is Ellipsis and in_subscript:
            return
        if isinstance(node.value, str):
            parse_type(node.value, rules)
            return
        raise UnresolvableType(f"{text!r} is not a type expression")
    if isinstance(node, ast.Subscript):
        if not (isinstance(node.value, ast.Name) or _is_dotted(node.value)):
            raise UnresolvableType(f"{text!r} is not a type expression")
        name = _base_name(node.value, rules)
        args = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
        if not args:
            raise UnresolvableType(f"{text!r} has an empty type argument list")
        if name in _VALUE_ARG_FORMS:
            return
        if name == "Annotated":
            _check_type_expr(args[0], text, rules, in_subscript=True)
            return
        for arg in args:
            _check_type_expr(arg, text, rules, in_subscript=True)
        return
    if isinstance(node, ast.List) and in_subscript:
        for elt in node.elts:
            _check_type_expr(elt, text, rules, in_subscript=True)
        return
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        _check_type_expr(node.left, text, rules, in_subscript=in_subscript)
        _check_type_expr(node.right, text, rules, in_subscript=in_subscript)
        return
    raise UnresolvableType(f"{text!r} is not a type expression")


def _is_none(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and node.value is None


def _union_members(node: ast.expr) -> list[ast.expr]:
    """Flatten an ``A | B | C`` chain."""
    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        return _union_members(node.left) + _union_members(node.right)
    return [node]


def _unwrap_forward_ref(node: ast.expr, rules: TypeRules = DEFAULT_RULES) -> ast.expr:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return _unwrap_forward_ref(parse_type(node.value, rules), rules)
    return node


def optional_shape(text: str, rules: TypeRules = DEFAULT_RULES) -> OptionalShape:
    """Decide whether ``text`` is an optional container and extract its inner type.

    Raises:
        UnresolvableType: If the annotation is malformed or reduces to
            neither a plain type nor an optional container
    """
    node = _unwrap_forward_ref(parse_type(text, rules), rules)

    if _is_none(node):
        raise UnresolvableType("a field of type None can never hold a value")

    if isinstance(node, (ast.Name, ast.Attribute)):
        name = _base_name(node, rules)
        if name in rules.optional_aliases or name in rules.union_aliases:
            raise UnresolvableType(f"{name} requires type arguments")
        return OptionalShape(is_optional=False, inner_type=ast.unparse(node))

    if isinstance(node, ast.Subscript):
        name = _base_name(node.value, rules)
        if name in rules.optional_aliases:
            if isinstance(node.slice, ast.Tuple):
                raise UnresolvableType(
                    f"{name} takes exactly one type argument, got {len(node.slice.elts)}"
                )
            inner = _unwrap_forward_ref(node.slice, rules)
            if _is_none(inner):
                raise UnresolvableType(f"{name}[None] has no inner type")
            return OptionalShape(is_optional=True, inner_type=ast.unparse(inner))
        if name in rules.union_aliases:
            args = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
            args = [_unwrap_forward_ref(a, rules) for a in args]
            others = [a for a in args if not _is_none(a)]
            if not others:
                raise UnresolvableType(f"{name} of only None has no inner type")
            if len(others) == len(args):
                return OptionalShape(is_optional=False, inner_type=ast.unparse(node))
            if len(others) == 1:
                inner_text = ast.unparse(others[0])
            else:
                inner_text = ast.unparse(
                    ast.Subscript(value=node.value, slice=ast.Tuple(elts=others, ctx=ast.Load()))
                )
            return OptionalShape(is_optional=True, inner_type=inner_text)
        return OptionalShape(is_optional=False, inner_type=ast.unparse(node))

    if isinstance(node, ast.BinOp):
        members = [_unwrap_forward_ref(m, rules) for m in _union_members(node)]
        others = [m for m in members if not _is_none(m)]
        if not others:
            raise UnresolvableType("a union of only None has no inner type")
        if len(others) == len(members):
            return OptionalShape(is_optional=False, inner_type=ast.unparse(node))
        return OptionalShape(
            is_optional=True, inner_type=" | ".join(ast.unparse(m) for m in others)
        )

    raise UnresolvableType(f"{text!r} is not a type expression")


def type_names(text: str) -> set[str]:
    """All bare names referenced by a type annotation, forward references included."""
    names: set[str] = set()
    for node in ast.walk(ast.parse(text.strip(), mode="eval")):
        if isinstance(node, ast.Name):
            names.add(node.id)
        elif isinstance(node, ast.Constant) and isinstance(node.value, str):
            try:
                names |= type_names(node.value)
            except SyntaxError:
                continue
    return names


def _combine(results: list[bool | None]) -> bool | None:
    """All-of: False wins, then unknown, then True."""
    if any(r is False for r in results):
        return False
    if any(r is None for r in results):
        return None
    return True


def _any_of(results: list[bool | None]) -> bool | None:
    if any(r is True for r in results):
        return True
    if any(r is None for r in results):
        return None
    return False


def literal_fits(value: Any, text: str, rules: TypeRules = DEFAULT_RULES) -> bool | None:
    """Check a literal value against a declared type.

    Returns:
        True if it fits, False if it definitely does not, None if the type
        is not statically known (user classes, type variables, aliases)
    """
    return _fits(value, parse_type(text, rules), rules)


def _fits(value: Any, node: ast.expr, rules: TypeRules) -> bool | None:
    node = _unwrap_forward_ref(node, rules)

    if _is_none(node):
        return value is None

    if isinstance(node, ast.BinOp):
        return _any_of([_fits(value, m, rules) for m in _union_members(node)])

    if isinstance(node, (ast.Name, ast.Attribute)):
        name = _base_name(node, rules)
        if name is None:
            return None
        if name in _TOP_TYPES:
            return True
        if name in _SCALARS:
            if isinstance(value, bool) and name != "bool":
                return False
            return isinstance(value, _SCALARS[name])
        if name in _SEQUENCES:
            return isinstance(value, _SEQUENCES[name])
        if name in _MAPPINGS:
            return isinstance(value, dict)
        return None

    if isinstance(node, ast.Subscript):
        name = _base_name(node.value, rules)
        args = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
        if name in rules.optional_aliases:
            return value is None or _fits(value, args[0], rules)
        if name in rules.union_aliases:
            return _any_of([_fits(value, a, rules) for a in args])
        if name == "Annotated":
            return _fits(value, args[0], rules)
        if name == "Literal":
            try:
                allowed = [ast.literal_eval(a) for a in args]
            except (ValueError, TypeError):
                return None
            return any(type(value) is type(a) and value == a for a in allowed)
        if name in ("list", "List", "set", "Set"):
            if not isinstance(value, _SEQUENCES[name]):
                return False
            return _combine([_fits(v, args[0], rules) for v in value])
        if name in ("tuple", "Tuple"):
            if not isinstance(value, tuple):
                return False
            if len(args) == 2 and isinstance(args[1], ast.Constant) and args[1].value is Ellipsis:
                return _combine([_fits(v, args[0], rules) for v in value])
            if len(args) != len(value):
                return False
            return _combine([_fits(v, a, rules) for v, a in zip(value, args)])
        if name in _MAPPINGS:
            if not isinstance(value, dict):
                return False
            if len(args) != 2:
                return None
            return _combine(
                [_fits(k, args[0], rules) for k in value]
                + [_fits(v, args[1], rules) for v in value.values()]
            )
        return None

    return None
