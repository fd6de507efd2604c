"""
The ``@builder`` class decorator.

Generation happens when the class statement executes: the declaration
is read from the class's source, classified and synthesized, and the
rendered members are compiled against the defining module's globals.
Any error surfaces as an exception from the class statement, i.e. when
the defining module is imported.

Example:
    >>> from typing import Annotated, Optional
    >>> from recbuilder import builder, default
    >>>
    >>> @builder
    ... class Request:
    ...     url: str
    ...     retries: Annotated[int, default("3")]
    ...     tag: Optional[str]
    >>>
    >>> Request("https://example.com").with_tag("x").retries
    3
"""

import copy
import linecache
import logging
import sys
from typing import Any, Callable, TypeVar, overload

from recbuilder.core.builder.emitter import (
    EmitOptions,
    indent,
    record_options,
    render_companions,
    render_record_members,
)
from recbuilder.core.builder.errors import GenerationError
from recbuilder.core.builder.extractor import declaration_from_class
from recbuilder.core.builder.models import GenerationPlan
from recbuilder.core.builder.pipeline import generate
from recbuilder.core.builder.types import TypeRules

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=type)

_HOLDER = "__RecbuilderMembers"
_SKIPPED_ATTRIBUTES = frozenset(
    {
        "__module__",
        "__qualname__",
        "__doc__",
        "__dict__",
        "__weakref__",
        "__annotations__",
        "__annotate__",
        "__firstlineno__",
        "__static_attributes__",
    }
)

# record class -> (init class, builder class)
_registry: dict[type, tuple[type, type]] = {}


def render_runtime_source(plan: GenerationPlan, options: EmitOptions) -> str:
    """Source compiled by the decorator: a holder class plus the companions."""
    lines = ["from __future__ import annotations", "", f"class {_HOLDER}:"]
    lines += indent(render_record_members(plan, options) or ["pass"])
    lines += ["", ""] + render_companions(plan, options)
    return "\n".join(lines) + "\n"


def _rehome(obj: Any, module: str, qualname: str) -> None:
    target = obj.__func__ if isinstance(obj, (classmethod, staticmethod)) else obj
    if hasattr(target, "__qualname__"):
        target.__qualname__ = qualname
        target.__module__ = module


def _project_settings() -> tuple[EmitOptions, TypeRules]:
    """Emit options and type rules from the layered project configuration."""
    from recbuilder.core.config import load_config

    config = load_config()
    return config.to_emit_options(), config.to_rules()


def apply_builder(
    cls: T,
    *,
    options: EmitOptions | None = None,
    rules: TypeRules | None = None,
) -> T:
    """Generate and attach builder members to ``cls``.

    Options and rules not given come from the project configuration, the
    same settings ``recbuilder generate`` uses.

    Raises:
        GenerationError: If the record cannot be generated
    """
    if options is None or rules is None:
        configured_options, configured_rules = _project_settings()
        if options is None:
            options = configured_options
        if rules is None:
            rules = configured_rules
    plan = generate(declaration_from_class(cls), rules)
    source = render_runtime_source(plan, options)

    module = sys.modules.get(cls.__module__)
    namespace: dict[str, Any] = dict(vars(module)) if module is not None else {}
    namespace.update({"copy": copy, cls.__name__: cls})

    filename = f"<recbuilder {cls.__module__}.{cls.__qualname__}>"
    linecache.cache[filename] = (len(source), None, source.splitlines(True), filename)
    try:
        code = compile(source, filename, "exec")
    except SyntaxError as e:
        raise GenerationError(
            f"generated members do not compile: {e.msg}", record=cls.__qualname__
        ) from e
    exec(code, namespace)

    declared = set(plan.record.declared_members)
    for name, value in vars(namespace[_HOLDER]).items():
        # __hash__ is implied by __eq__ on the holder; never clobber the record's own
        if name in _SKIPPED_ATTRIBUTES or name in declared:
            continue
        _rehome(value, cls.__module__, f"{cls.__qualname__}.{name}")
        setattr(cls, name, value)

    record = plan.record
    prefix = cls.__qualname__[: -len(cls.__name__)]
    companions = []
    for name in (record.init_name, record.builder_name(options.builder_suffix)):
        companion = namespace[name]
        companion.__module__ = cls.__module__
        companion.__qualname__ = prefix + name
        for attr, value in vars(companion).items():
            if callable(value) or isinstance(value, (classmethod, staticmethod)):
                _rehome(value, cls.__module__, f"{companion.__qualname__}.{attr}")
        companions.append(companion)

    init_cls, builder_cls = companions
    _registry[cls] = (init_cls, builder_cls)
    if module is not None and not prefix:
        setattr(module, init_cls.__name__, init_cls)
        setattr(module, builder_cls.__name__, builder_cls)

    logger.debug(
        "attached %d members to %s", len(plan.record_members()) + 2, cls.__qualname__
    )
    return cls


@overload
def builder(cls: T) -> T: ...


@overload
def builder(
    cls: None = None,
    *,
    builder_suffix: str = ...,
    record_protocol: bool = ...,
    annotate: bool = ...,
) -> Callable[[T], T]: ...


def builder(
    cls: Any = None,
    *,
    builder_suffix: str | None = None,
    record_protocol: bool | None = None,
    annotate: bool | None = None,
) -> Any:
    """Class decorator generating the builder API for a record.

    Usable bare (``@builder``) or with options
    (``@builder(builder_suffix="Mutator")``). Options not given come from
    the project configuration.
    """
    overrides = {
        name: value
        for name, value in (
            ("builder_suffix", builder_suffix),
            ("record_protocol", record_protocol),
            ("annotate", annotate),
        )
        if value is not None
    }

    def wrap(target: T) -> T:
        options, rules = _project_settings()
        options = record_options(options, overrides, target.__qualname__)
        return apply_builder(target, options=options, rules=rules)

    if cls is None:
        return wrap
    return wrap(cls)


def _lookup(cls: type) -> tuple[type, type]:
    try:
        return _registry[cls]
    except KeyError:
        raise TypeError(f"{cls.__qualname__} is not a @builder record") from None


def init_class_for(cls: type) -> type:
    """The generated ``<Record>Init`` class of a decorated record."""
    return _lookup(cls)[0]


def builder_class_for(cls: type) -> type:
    """The generated ``<Record>Builder`` class of a decorated record."""
    return _lookup(cls)[1]
